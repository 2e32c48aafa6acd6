"""
PDF rendering with PyMuPDF.

Pure functions from content to bytes. Nothing here knows about plans or orders;
callers check entitlements first.
"""
import logging
import textwrap
from typing import Any, Dict, Iterable, List, Optional, Tuple

import fitz  # pymupdf

from cvforge.core.template_registry import DEFAULT_TEMPLATE_ID, get_template

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 50
LINE_HEIGHT = 14
WRAP_CHARS = 95

Line = Tuple[str, float, Tuple[float, float, float]]  # text, font size, color

BLACK = (0, 0, 0)


class _Writer:
    """Appends wrapped lines, opening a new page when the current one is full."""

    def __init__(self, doc: "fitz.Document"):
        self.doc = doc
        self.page = None
        self.y = PAGE_HEIGHT

    def write(self, text: str, size: float = 10, color=BLACK, bold: bool = False):
        fontname = "hebo" if bold else "helv"
        for raw in (text or "").splitlines() or [""]:
            for chunk in textwrap.wrap(raw, WRAP_CHARS) or [""]:
                if self.y + LINE_HEIGHT > PAGE_HEIGHT - MARGIN:
                    self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
                    self.y = MARGIN
                self.y += max(LINE_HEIGHT, size + 4)
                self.page.insert_text((MARGIN, self.y), chunk, fontsize=size, fontname=fontname, color=color)

    def gap(self, height: float = 8):
        self.y += height


def _section_lines(items: Iterable[Any], fields: List[str]) -> List[str]:
    lines = []
    for item in items or []:
        if isinstance(item, dict):
            head = " - ".join(str(item[f]) for f in fields if item.get(f))
            lines.append(head)
            if item.get("description"):
                lines.append(f"  {item['description']}")
        elif item:
            lines.append(str(item))
    return lines


def render(cv_data: Dict[str, Any], template_id: Optional[str] = None) -> bytes:
    """Render a CV to PDF bytes using the template's accent color."""
    template = get_template(template_id) or get_template(DEFAULT_TEMPLATE_ID)
    doc = fitz.open()
    writer = _Writer(doc)

    writer.write(cv_data.get("full_name", ""), size=20, color=template.accent, bold=True)
    contact = " | ".join(
        str(cv_data[k]) for k in ("email", "phone", "location", "website", "linkedin") if cv_data.get(k)
    )
    writer.write(contact, size=9)
    writer.gap()

    sections = [
        ("Summary", [cv_data["summary"]] if cv_data.get("summary") else []),
        ("Experience", _section_lines(cv_data.get("experience"), ["title", "company", "start_date", "end_date"])),
        ("Education", _section_lines(cv_data.get("education"), ["degree", "institution", "year"])),
        ("Skills", [", ".join(
            s.get("name", "") if isinstance(s, dict) else str(s) for s in cv_data.get("skills") or []
        )] if cv_data.get("skills") else []),
        ("Certifications", _section_lines(cv_data.get("certifications"), ["name", "issuer", "year"])),
        ("Achievements", _section_lines(cv_data.get("achievements"), ["title"])),
    ]
    for title, lines in sections:
        if not lines:
            continue
        writer.write(title.upper(), size=12, color=template.accent, bold=True)
        for line in lines:
            writer.write(line)
        writer.gap()

    data = doc.tobytes()
    doc.close()
    logger.info(f"Rendered CV PDF: template={template.id}, bytes={len(data)}")
    return data


def render_cover_letter(letter: Dict[str, Any]) -> bytes:
    doc = fitz.open()
    writer = _Writer(doc)

    if letter.get("full_name"):
        writer.write(letter["full_name"], size=16, bold=True)
    writer.write(f"Re: {letter.get('job_title', '')} - {letter.get('company_name', '')}", size=10)
    writer.gap(16)
    writer.write(letter.get("content", ""), size=11)

    data = doc.tobytes()
    doc.close()
    return data


def render_linkedin(profile: Dict[str, Any]) -> bytes:
    doc = fitz.open()
    writer = _Writer(doc)

    writer.write(profile.get("full_name", ""), size=18, bold=True)
    writer.write(profile.get("headline", ""), size=11)
    writer.gap()
    for title, key in (("About", "about"), ("Experience", "experience"), ("Skills", "skills")):
        if profile.get(key):
            writer.write(title.upper(), size=12, bold=True)
            writer.write(profile[key])
            writer.gap()
    if profile.get("suggestions"):
        writer.write("SUGGESTIONS", size=12, bold=True)
        for suggestion in profile["suggestions"]:
            writer.write(f"- {suggestion}")

    data = doc.tobytes()
    doc.close()
    return data

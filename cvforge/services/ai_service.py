"""
AI text service: CV enhancement, cover letters, ATS analysis, LinkedIn profiles.

Uses OpenAI when OPENAI_API_KEY is configured, otherwise falls back to rule-based
output so the product works without an API key. No entitlement logic lives here;
callers gate and meter before calling in.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import OpenAI, APIError

from cvforge.core.config import OPENAI_API_KEY, OPENAI_MODEL
from cvforge.core.errors import AIServiceError

logger = logging.getLogger(__name__)

client: Optional[OpenAI] = None
if OPENAI_API_KEY:
    client = OpenAI(api_key=OPENAI_API_KEY)
    logger.info("OpenAI client initialized")
else:
    logger.info("OPENAI_API_KEY not configured - using rule-based AI")


ACTION_VERBS = [
    "Led", "Delivered", "Built", "Improved", "Managed", "Designed",
    "Launched", "Streamlined", "Coordinated", "Developed",
]

WEAK_OPENERS = re.compile(r"^(responsible for|worked on|helped with|in charge of|duties included)\s*", re.IGNORECASE)


def _use_openai() -> bool:
    return client is not None


def _call_openai_json(system: str, prompt: str, temperature: float = 0.7, max_tokens: int = 2000) -> Dict[str, Any]:
    """
    Call OpenAI in JSON mode.

    Raises:
        AIServiceError: API failure or a reply that is not a JSON object
    """
    try:
        response = client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
    except APIError as e:
        logger.error(f"OpenAI API error: {e}", exc_info=True)
        raise AIServiceError()

    content = response.choices[0].message.content or "{}"
    try:
        result = json.loads(content)
    except json.JSONDecodeError:
        logger.error(f"OpenAI returned invalid JSON: {content[:200]}")
        raise AIServiceError("AI service returned an unreadable response. Please try again.")
    if not isinstance(result, dict):
        raise AIServiceError("AI service returned an unreadable response. Please try again.")
    return result


def _cv_brief(cv: Dict[str, Any]) -> str:
    return (
        f"Name: {cv.get('full_name', '')}\n"
        f"Summary: {cv.get('summary') or 'Not provided'}\n"
        f"Experience: {json.dumps(cv.get('experience') or [])}\n"
        f"Education: {json.dumps(cv.get('education') or [])}\n"
        f"Skills: {json.dumps(cv.get('skills') or [])}"
    )


def _skill_names(cv: Dict[str, Any]) -> List[str]:
    names = []
    for skill in cv.get("skills") or []:
        if isinstance(skill, dict):
            skill = skill.get("name", "")
        if skill:
            names.append(str(skill))
    return names


# ============================================
# Rule-based fallbacks
# ============================================

def _strengthen(description: str, index: int) -> str:
    description = (description or "").strip()
    if not description:
        return description
    stripped = WEAK_OPENERS.sub("", description)
    if stripped != description:
        stripped = stripped[0].lower() + stripped[1:] if stripped else stripped
        description = f"{ACTION_VERBS[index % len(ACTION_VERBS)]} {stripped}"
    if not description.endswith("."):
        description += "."
    return description


def _rule_based_enhance(cv: Dict[str, Any]) -> Dict[str, Any]:
    experience = []
    for i, item in enumerate(cv.get("experience") or []):
        item = dict(item)
        item["description"] = _strengthen(item.get("description", ""), i)
        experience.append(item)

    summary = (cv.get("summary") or "").strip()
    if not summary:
        latest = (cv.get("experience") or [{}])[0]
        title = latest.get("title") or "professional"
        skills = ", ".join(_skill_names(cv)[:3])
        summary = f"Results-driven {title}" + (f" skilled in {skills}." if skills else ".")

    return {**cv, "summary": summary, "experience": experience}


def _rule_based_cover_letter(cv: Dict[str, Any], job_title: str, company_name: str) -> str:
    name = cv.get("full_name") or "Applicant"
    skills = ", ".join(_skill_names(cv)[:4])
    latest = (cv.get("experience") or [{}])[0]
    background = latest.get("title")

    paragraphs = [
        "Dear Hiring Manager,",
        f"I am writing to apply for the {job_title} position at {company_name}.",
    ]
    if background:
        paragraphs.append(
            f"In my recent role as {background}, I built the experience this position calls for."
        )
    if skills:
        paragraphs.append(f"My strengths include {skills}, which I would bring to your team from day one.")
    paragraphs.append(
        f"I would welcome the opportunity to discuss how I can contribute to {company_name}. "
        "Thank you for your time and consideration."
    )
    paragraphs.append(f"Sincerely,\n{name}")
    return "\n\n".join(paragraphs)


def _rule_based_ats(cv: Dict[str, Any]) -> Dict[str, Any]:
    score = 40
    strengths, weaknesses, recommendations = [], [], []

    if cv.get("summary"):
        score += 15
        strengths.append("Includes a professional summary")
    else:
        weaknesses.append("Missing professional summary")
        recommendations.append("Add a 2-3 sentence summary with role keywords")

    experience = cv.get("experience") or []
    if experience:
        score += 20
        strengths.append(f"Lists {len(experience)} role(s) of work experience")
        if any(re.search(r"\d", item.get("description", "")) for item in experience):
            score += 10
            strengths.append("Quantifies achievements")
        else:
            recommendations.append("Add numbers to achievements (%, revenue, team size)")
    else:
        weaknesses.append("No work experience listed")

    skills = _skill_names(cv)
    if len(skills) >= 5:
        score += 15
        strengths.append("Strong skills section")
    else:
        weaknesses.append("Few skills listed")
        recommendations.append("List at least 5 relevant hard skills")

    return {
        "score": min(score, 100),
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": recommendations,
    }


def _rule_based_linkedin(cv: Dict[str, Any]) -> Dict[str, Any]:
    latest = (cv.get("experience") or [{}])[0]
    title = latest.get("title") or "Professional"
    skills = _skill_names(cv)
    headline = " | ".join([title] + skills[:2])[:120]
    return {
        "full_name": cv.get("full_name", ""),
        "headline": headline,
        "about": cv.get("summary") or f"{title} focused on delivering measurable results.",
        "experience": "\n".join(
            f"{item.get('title', '')} at {item.get('company', '')}" for item in cv.get("experience") or []
        ),
        "skills": ", ".join(skills),
        "suggestions": [
            "Add a professional profile photo",
            "Ask former colleagues for recommendations",
            "Feature your best work in the Featured section",
        ],
    }


# ============================================
# Public API
# ============================================

def enhance_cv(cv: Dict[str, Any]) -> Dict[str, Any]:
    """Return ``cv`` with an improved summary and experience descriptions."""
    if not _use_openai():
        return _rule_based_enhance(cv)

    result = _call_openai_json(
        "You are a professional CV optimization expert. Return only valid JSON.",
        "Improve the summary and the experience descriptions of this CV for impact and ATS "
        "compatibility. Return {\"summary\": str, \"experience\": [objects with the same keys]}.\n\n"
        + _cv_brief(cv),
    )
    return {
        **cv,
        "summary": result.get("summary") or cv.get("summary"),
        "experience": result.get("experience") or cv.get("experience") or [],
    }


def generate_cover_letter(
    cv: Dict[str, Any],
    job_title: str,
    company_name: str,
    company_description: Optional[str] = None,
) -> str:
    if not _use_openai():
        return _rule_based_cover_letter(cv, job_title, company_name)

    prompt = (
        f"Write a cover letter for the {job_title} position at {company_name}. "
        f"{('About the company: ' + company_description) if company_description else ''}\n"
        "Return {\"content\": str}.\n\n" + _cv_brief(cv)
    )
    result = _call_openai_json("You are an expert career writer. Return only valid JSON.", prompt)
    content = result.get("content")
    if not content:
        raise AIServiceError("AI service returned an empty cover letter. Please try again.")
    return content


def analyze_ats(cv: Dict[str, Any]) -> Dict[str, Any]:
    """Returns score (0-100), strengths, weaknesses and recommendations."""
    if not _use_openai():
        return _rule_based_ats(cv)

    result = _call_openai_json(
        "You are an ATS and recruitment expert. Return only valid JSON.",
        "Score this CV for ATS compatibility. Return {\"score\": 0-100, \"strengths\": [str], "
        "\"weaknesses\": [str], \"recommendations\": [str]}.\n\n" + _cv_brief(cv),
        temperature=0.5,
        max_tokens=1000,
    )
    return {
        "score": max(0, min(100, int(result.get("score") or 0))),
        "strengths": result.get("strengths") or [],
        "weaknesses": result.get("weaknesses") or [],
        "recommendations": result.get("recommendations") or [],
    }


def optimize_linkedin(cv: Dict[str, Any]) -> Dict[str, Any]:
    if not _use_openai():
        return _rule_based_linkedin(cv)

    result = _call_openai_json(
        "You are a LinkedIn profile expert. Return only valid JSON.",
        "Write a LinkedIn profile from this CV. Return {\"headline\": str (max 120 chars), "
        "\"about\": str, \"experience\": str, \"skills\": str, \"suggestions\": [str]}.\n\n" + _cv_brief(cv),
    )
    fallback = _rule_based_linkedin(cv)
    return {key: result.get(key) or fallback[key] for key in fallback}

"""
CV template registry.

Templates are identified by id; premium ones require the ``premiumTemplates``
capability. Visual design lives in the frontend, the renderer only needs the
accent color.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

DEFAULT_TEMPLATE_ID = "azurill"


@dataclass(frozen=True)
class Template:
    id: str
    name: str
    category: str
    premium: bool = False
    accent: Tuple[float, float, float] = (0.15, 0.15, 0.15)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "category": self.category, "premium": self.premium}


TEMPLATES: Dict[str, Template] = {t.id: t for t in [
    Template("azurill", "Azurill", "professional", accent=(0.11, 0.31, 0.55)),
    Template("bronzor", "Bronzor", "classic", accent=(0.45, 0.33, 0.20)),
    Template("chikorita", "Chikorita", "modern", accent=(0.25, 0.55, 0.30)),
    Template("ditto", "Ditto", "minimal"),
    Template("glalie", "Glalie", "modern", accent=(0.20, 0.45, 0.60)),
    Template("kakuna", "Kakuna", "creative", accent=(0.75, 0.60, 0.10)),
    Template("nosepass", "Nosepass", "classic", accent=(0.30, 0.30, 0.45)),
    Template("pikachu", "Pikachu", "creative", accent=(0.85, 0.65, 0.05)),
    Template("rhyhorn", "Rhyhorn", "professional", accent=(0.35, 0.35, 0.35)),
    Template("gengar", "Gengar", "executive", premium=True, accent=(0.40, 0.20, 0.55)),
    Template("leafish", "Leafish", "executive", premium=True, accent=(0.15, 0.45, 0.35)),
    Template("onyx", "Onyx", "executive", premium=True, accent=(0.10, 0.10, 0.10)),
]}


def get_template(template_id: Optional[str]) -> Optional[Template]:
    return TEMPLATES.get(template_id or DEFAULT_TEMPLATE_ID)


def list_templates() -> List[Template]:
    return list(TEMPLATES.values())

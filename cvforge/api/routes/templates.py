from fastapi import APIRouter, HTTPException

from cvforge.core.template_registry import DEFAULT_TEMPLATE_ID, get_template, list_templates

router = APIRouter(prefix="/api/templates", tags=["Templates"])


@router.get("")
def templates():
    return {
        "default": DEFAULT_TEMPLATE_ID,
        "templates": [t.to_dict() for t in list_templates()],
    }


@router.get("/{template_id}")
def template_detail(template_id: str):
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return template.to_dict()

"""
CV CRUD.

Creating a CV uses one ``cvGenerations`` unit. Choosing a premium template needs
the ``premiumTemplates`` capability. Editing a CV that has a completed order uses
one edit from that order, in the same transaction as the change.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from cvforge.core.auth_dependency import get_current_user
from cvforge.core.errors import CVNotFound
from cvforge.core.plan_catalog import Capability, Feature
from cvforge.core.plan_guard import get_entitlement_checker
from cvforge.core.template_registry import DEFAULT_TEMPLATE_ID, get_template
from cvforge.db.models.cover_letter import CoverLetter
from cvforge.db.models.cv import CV
from cvforge.db.models.order import Order
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.cv import CVCreate, CVResponse, CVUpdate, CVUpdateResponse
from cvforge.services import order_service
from cvforge.services.entitlement_service import EntitlementChecker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cvs", tags=["CVs"])


def get_owned_cv(db: Session, cv_id: str, user_id: str) -> CV:
    cv = db.query(CV).filter(CV.id == cv_id, CV.user_id == user_id).first()
    if not cv:
        raise CVNotFound(cv_id)
    return cv


def cv_payload(cv: CV) -> dict:
    """Plain dict of a CV's content, as handed to the AI service and renderer."""
    return CVResponse.model_validate(cv).model_dump()


def _check_template(entitlements: EntitlementChecker, user_id: str, template_id: Optional[str]) -> str:
    template = get_template(template_id)
    if template is None:
        raise HTTPException(status_code=400, detail=f"Unknown template: {template_id}")
    if template.premium:
        entitlements.require_capability(user_id, Capability.PREMIUM_TEMPLATES)
    return template.id


@router.get("", response_model=List[CVResponse])
def list_cvs(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return db.query(CV).filter(CV.user_id == user.id).order_by(CV.created_at.desc()).all()


@router.post("", response_model=CVResponse, status_code=201)
def create_cv(
    payload: CVCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    template_id = _check_template(entitlements, user.id, payload.template_id or DEFAULT_TEMPLATE_ID)

    with entitlements.metered(user.id, Feature.CV_GENERATIONS):
        cv = CV(user_id=user.id, **payload.model_dump(exclude={"template_id"}), template_id=template_id)
        db.add(cv)
        db.commit()
        db.refresh(cv)

    logger.info(f"CV created: cv_id={cv.id}, user_id={user.id}, template={template_id}")
    return cv


@router.get("/{cv_id}", response_model=CVResponse)
def get_cv(cv_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_owned_cv(db, cv_id, user.id)


@router.patch("/{cv_id}", response_model=CVUpdateResponse)
def update_cv(
    cv_id: str,
    payload: CVUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    cv = get_owned_cv(db, cv_id, user.id)
    changes = payload.model_dump(exclude_unset=True)
    for required in ("full_name", "email"):
        if changes.get(required, "") is None:
            raise HTTPException(status_code=400, detail=f"{required} cannot be empty")

    if "template_id" in changes:
        changes["template_id"] = _check_template(entitlements, user.id, changes["template_id"])

    changes = {field: value for field, value in changes.items() if getattr(cv, field) != value}
    if not changes:
        # Nothing differs, so no edit is charged against the order
        return {"cv": cv, "order_id": None, "edits_remaining": None}

    order =order_service.get_active_order(db, user.id, cv_id=cv.id)
    edits_remaining = None
    if order is not None:
        # Raises EditsExhausted before anything on the CV changes
        edits_remaining = order_service.decrement_edits(db, order.id, user_id=user.id, commit=False)

    for field, value in changes.items():
        setattr(cv, field, value)
    db.commit()
    db.refresh(cv)

    logger.info(f"CV updated: cv_id={cv.id}, fields={sorted(changes)}, order_id={order.id if order else None}")
    return {
        "cv": cv,
        "order_id": order.id if order else None,
        "edits_remaining": order_service.edits_display(edits_remaining) if edits_remaining is not None else None,
    }


@router.delete("/{cv_id}", status_code=204)
def delete_cv(cv_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    cv = get_owned_cv(db, cv_id, user.id)
    if db.query(Order).filter(Order.cv_id == cv.id).first():
        raise HTTPException(status_code=409, detail="This CV has orders and cannot be deleted")

    db.query(CoverLetter).filter(CoverLetter.cv_id == cv.id).delete(synchronize_session=False)
    db.delete(cv)
    db.commit()
    logger.info(f"CV deleted: cv_id={cv_id}, user_id={user.id}")

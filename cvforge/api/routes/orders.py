"""
Order history, edit consumption and downloads.

Downloads are gated by the bundle stamped on the order at completion, not by the
user's subscription plan.
"""
import logging
from enum import Enum
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from cvforge.api.routes.cvs import cv_payload, get_owned_cv
from cvforge.core.auth_dependency import get_current_user
from cvforge.core.errors import AccessDenied, CoverLetterNotFound, CVNotFound, OrderStateError
from cvforge.core.plan_catalog import Capability, PlanCatalog, get_catalog
from cvforge.db.models.cover_letter import CoverLetter
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.order import EditConsumedResponse, OrderResponse
from cvforge.services import ai_service, order_service, pdf_service
from cvforge.services.order_service import OrderStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


class DownloadType(str, Enum):
    CV = "cv"
    COVER_LETTER = "cover-letter"
    LINKEDIN = "linkedin"


def _pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _require_bundle_flag(catalog: PlanCatalog, order, flag: str, capability: Capability):
    if getattr(order, flag):
        return
    required = catalog.minimum_package_for(flag)
    raise AccessDenied(
        feature=capability.value,
        current_plan=order.package_type,
        required_plan=required.value if required else None,
    )


@router.get("", response_model=List[OrderResponse])
def list_orders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.list_orders_for_user(db, user.id)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return order_service.get_order(db, order_id, user_id=user.id)


@router.post("/{order_id}/edits", response_model=EditConsumedResponse)
def consume_edit(order_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Use one edit from a completed order."""
    remaining = order_service.decrement_edits(db, order_id, user_id=user.id)
    return {
        "order_id": order_id,
        "edits_remaining": remaining,
        "edits_display": order_service.edits_display(remaining),
    }


@router.get("/{order_id}/download/{download_type}")
def download(
    order_id: str,
    download_type: DownloadType,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
):
    order = order_service.get_order(db, order_id, user_id=user.id)
    if order.status != OrderStatus.COMPLETED.value:
        raise OrderStateError("Downloads are available once payment is complete", order_id=order.id, status=order.status)
    if not order.cv_id:
        raise CVNotFound(cv_id=None)

    cv = get_owned_cv(db, order.cv_id, user.id)

    if download_type == DownloadType.CV:
        pdf = pdf_service.render(cv_payload(cv), cv.template_id)
        if not order.pdf_file_name:
            order.pdf_file_name = f"cv-{order.id}.pdf"
            order.download_url = f"/api/orders/{order.id}/download/cv"
            db.commit()
        return _pdf_response(pdf, order.pdf_file_name)

    if download_type == DownloadType.COVER_LETTER:
        _require_bundle_flag(catalog, order, "has_cover_letter", Capability.COVER_LETTER)
        letter = db.query(CoverLetter).filter(
            CoverLetter.cv_id == cv.id,
            CoverLetter.user_id == user.id,
        ).order_by(CoverLetter.created_at.desc()).first()
        if not letter:
            raise CoverLetterNotFound(cv_id=cv.id)
        pdf = pdf_service.render_cover_letter({
            "full_name": cv.full_name,
            "job_title": letter.job_title,
            "company_name": letter.company_name,
            "content": letter.content,
        })
        return _pdf_response(pdf, f"cover-letter-{order.id}.pdf")

    _require_bundle_flag(catalog, order, "has_linkedin_optimization", Capability.LINKEDIN_OPTIMIZATION)
    profile = ai_service.optimize_linkedin(cv_payload(cv))
    logger.info(f"LinkedIn profile generated for order: order_id={order.id}")
    return _pdf_response(pdf_service.render_linkedin(profile), f"linkedin-{order.id}.pdf")

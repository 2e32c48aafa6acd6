"""
One-time package purchases.

initialize -> customer pays on the gateway -> verify (callback page) or webhook.
Verification is idempotent; a completed order is never stamped twice.
"""
import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from cvforge.api.routes.cvs import get_owned_cv
from cvforge.core.auth_dependency import get_current_user
from cvforge.core.clock import Clock, get_clock
from cvforge.core.config import FRONTEND_URL
from cvforge.core.errors import PaymentGatewayError, PaymentVerificationFailed
from cvforge.core.plan_catalog import PlanCatalog, get_catalog
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.order import OrderResponse, PaymentInitializeRequest, PaymentInitializeResponse
from cvforge.services import order_service
from cvforge.services.order_service import OrderStatus
from cvforge.services.payment_gateway import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.post("/initialize", response_model=PaymentInitializeResponse)
def initialize_payment(
    payload: PaymentInitializeRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    if payload.cv_id:
        get_owned_cv(db, payload.cv_id, user.id)

    package = catalog.get_package(payload.package_type)
    order = order_service.create_order(db, catalog, user.id, package.package_type, cv_id=payload.cv_id)

    try:
        charge = gateway.initialize_charge(
            amount=order.amount,
            currency=order.currency,
            reference=order.id,
            callback_url=f"{FRONTEND_URL}/payment-callback",
            email=user.email,
            metadata={"user_id": user.id, "package_type": order.package_type, "package_name": package.name},
        )
    except PaymentGatewayError:
        order_service.fail_order(db, order.id, reason="payment initialization failed")
        raise

    order = order_service.attach_payment(db, order, charge)
    return {
        "order_id": order.id,
        "reference": charge.reference,
        "authorization_url": charge.authorization_url,
        "access_code": charge.access_code,
    }


@router.get("/verify/{reference}", response_model=OrderResponse)
def verify_payment(
    reference: str,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    clock: Clock = Depends(get_clock),
):
    """
    Safe to call repeatedly. Returns the completed order, the order with 202 while a
    delayed payment is still settling, or a 402 if payment did not go through.
    """
    order = order_service.verify_payment(db, gateway, reference, user_id=user.id, clock=clock)
    if order.status == OrderStatus.PROCESSING.value:
        response.status_code = 202
        return order
    if order.status != OrderStatus.COMPLETED.value:
        raise PaymentVerificationFailed(
            "Payment was not successful. Please try again.",
            reference=reference,
            order_id=order.id,
        )
    return order

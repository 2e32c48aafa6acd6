import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

from cvforge.core.clock import Clock, get_clock
from cvforge.core.errors import OrderNotFound
from cvforge.db.session import get_db
from cvforge.services import order_service
from cvforge.services.payment_gateway import PaymentGateway, get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Payment Webhook"])

SETTLED_EVENTS = {
    "checkout.session.async_payment_succeeded",
    "checkout.session.async_payment_failed",
    "checkout.session.expired",
}


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    clock: Clock = Depends(get_clock),
):
    payload = await request.body()
    event = gateway.parse_webhook(payload, stripe_signature)

    event_type = event["type"]
    session = event["data"]["object"]
    reference = session["id"]

    if event_type != "checkout.session.completed" and event_type not in SETTLED_EVENTS:
        return {"status": "ignored"}

    try:
        order = order_service.get_order_by_reference(db, reference)
    except OrderNotFound:
        logger.warning(f"Webhook for unknown payment reference: reference={reference}, type={event_type}")
        return {"status": "ignored"}

    if event_type == "checkout.session.completed":
        order_service.mark_processing(db, order.id)
        # Delayed payment methods settle later via async_payment_* events
        if session.get("payment_status") != "paid":
            return {"status": "processing"}

    if event_type == "checkout.session.async_payment_failed":
        order_service.fail_order(db, order.id, reason="async payment failed")
        order = order_service.get_order(db, order.id)
        logger.info(f"Webhook processed: type={event_type}, order_id={order.id}, status={order.status}")
        return {"status": order.status}

    order = order_service.verify_payment(db, gateway, reference, clock=clock)
    logger.info(f"Webhook processed: type={event_type}, order_id={order.id}, status={order.status}")
    return {"status": order.status}

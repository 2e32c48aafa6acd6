"""
Order ledger and order lifecycle.

    pending -> processing -> completed
    pending -> completed
    pending | processing -> failed

``completed`` and ``failed`` are terminal. Every status change is a conditional
UPDATE on the current status, so replays (a second verify call, a retried
webhook) find nothing to change and do not grant entitlements twice.
"""
import logging
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from cvforge.core.clock import Clock, utc_now
from cvforge.core.errors import (
    EditsExhausted,
    OrderNotFound,
    OrderStateError,
)
from cvforge.core.plan_catalog import PlanCatalog, UNLIMITED_EDITS
from cvforge.db.models.order import Order
from cvforge.services.payment_gateway import ChargeInitialization, PaymentGateway

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.FAILED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.COMPLETED, OrderStatus.FAILED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}

PROCESSING_PROGRESS = 10


def can_transition(current: str, target: str) -> bool:
    return OrderStatus(target) in ALLOWED_TRANSITIONS[OrderStatus(current)]


def _sources_for(target: OrderStatus) -> List[str]:
    """Statuses from which ``target`` may be entered."""
    return [s.value for s, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def edits_display(edits_remaining: int):
    """999 and above read as "Unlimited"; the stored value is still a plain count."""
    return "Unlimited" if edits_remaining >= UNLIMITED_EDITS else edits_remaining


# ============================================
# Lookups
# ============================================

def get_order(db: Session, order_id: str, user_id: Optional[str] = None) -> Order:
    """Fetch an order; with ``user_id``, orders of other users are reported as missing."""
    query = db.query(Order).filter(Order.id == order_id)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    order = query.first()
    if not order:
        raise OrderNotFound(order_id=order_id)
    return order


def get_order_by_reference(db: Session, reference: str, user_id: Optional[str] = None) -> Order:
    query = db.query(Order).filter(Order.payment_reference == reference)
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)
    order = query.first()
    if not order:
        raise OrderNotFound(reference=reference)
    return order


def list_orders_for_user(db: Session, user_id: str) -> List[Order]:
    return db.query(Order).filter(Order.user_id == user_id).order_by(Order.created_at.desc()).all()


def list_all_orders(db: Session, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Order]:
    query = db.query(Order)
    if status:
        query = query.filter(Order.status == OrderStatus(status).value)
    return query.order_by(Order.created_at.desc()).offset(offset).limit(limit).all()


def get_active_order(db: Session, user_id: str, cv_id: Optional[str] = None) -> Optional[Order]:
    """The user's most recent completed order (for ``cv_id`` if given); its bundle applies."""
    query = db.query(Order).filter(
        Order.user_id == user_id,
        Order.status == OrderStatus.COMPLETED.value,
    )
    if cv_id is not None:
        query = query.filter(Order.cv_id == cv_id)
    return query.order_by(Order.completed_at.desc(), Order.created_at.desc()).first()


# ============================================
# Lifecycle
# ============================================

def create_order(
    db: Session,
    catalog: PlanCatalog,
    user_id: str,
    package_type: str,
    cv_id: Optional[str] = None,
) -> Order:
    """
    Create a pending order for a package.

    The package bundle is captured now and stored on the order; completion stamps
    it from there so later catalog changes do not alter what was bought.
    """
    package = catalog.get_package(package_type)

    order = Order(
        user_id=user_id,
        cv_id=cv_id,
        package_type=package.package_type.value,
        amount=package.price,
        currency=catalog.currency,
        status=OrderStatus.PENDING.value,
        progress=0,
        package_snapshot=package.bundle(),
        edits_remaining=0,
        has_cover_letter=False,
        has_linkedin_optimization=False,
        template_count=0,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    logger.info(
        f"Order created: order_id={order.id}, user_id={user_id}, "
        f"package={order.package_type}, amount={order.amount} {order.currency}"
    )
    return order


def attach_payment(db: Session, order: Order, charge: ChargeInitialization) -> Order:
    order.payment_reference = charge.reference
    order.payment_access_code = charge.access_code
    db.commit()
    db.refresh(order)
    return order


def _transition(db: Session, order_id: str, target: OrderStatus, values: dict) -> bool:
    """Apply ``target`` only if the order is in a state that allows it. True if applied."""
    updated = db.query(Order).filter(
        Order.id == order_id,
        Order.status.in_(_sources_for(target)),
    ).update({Order.status: target.value, **values}, synchronize_session=False)
    db.commit()
    return bool(updated)


def mark_processing(db: Session, order_id: str) -> Order:
    """Payment reported by the gateway but not yet verified. No-op unless pending."""
    if _transition(db, order_id, OrderStatus.PROCESSING, {Order.progress: PROCESSING_PROGRESS}):
        logger.info(f"Order processing: order_id={order_id}")
    order = get_order(db, order_id)
    db.refresh(order)
    return order


def complete_order(db: Session, order_id: str, clock: Clock = utc_now) -> bool:
    """
    Move an order to completed and stamp its entitlement bundle.

    Returns True if this call completed the order, False if it was already
    completed. Completing a failed order raises OrderStateError.
    """
    order = get_order(db, order_id)
    bundle = order.package_snapshot or {}

    applied = _transition(db, order_id, OrderStatus.COMPLETED, {
        Order.progress: 100,
        Order.edits_remaining: int(bundle.get("edits_allowed", 0)),
        Order.has_cover_letter: bool(bundle.get("has_cover_letter", False)),
        Order.has_linkedin_optimization: bool(bundle.get("has_linkedin_optimization", False)),
        Order.template_count: int(bundle.get("template_count", 0)),
        Order.completed_at: clock(),
    })
    db.refresh(order)

    if applied:
        logger.info(
            f"Order completed: order_id={order_id}, package={order.package_type}, "
            f"edits={order.edits_remaining}, cover_letter={order.has_cover_letter}, "
            f"linkedin={order.has_linkedin_optimization}"
        )
        return True

    if order.status == OrderStatus.COMPLETED.value:
        logger.info(f"Order already completed, nothing to stamp: order_id={order_id}")
        return False

    raise OrderStateError(
        f"Order cannot move from {order.status} to completed",
        order_id=order_id,
        status=order.status,
    )


def fail_order(db: Session, order_id: str, reason: str = "") -> bool:
    """
    Mark a pending or processing order failed. Nothing is stamped.

    A failure reported for an order that already completed is ignored.
    """
    applied = _transition(db, order_id, OrderStatus.FAILED, {})
    if applied:
        logger.warning(f"Order failed: order_id={order_id}, reason={reason or 'unspecified'}")
    else:
        order = get_order(db, order_id)
        logger.info(f"Order not failed, already {order.status}: order_id={order_id}")
    return applied


def verify_payment(
    db: Session,
    gateway: PaymentGateway,
    reference: str,
    user_id: Optional[str] = None,
    clock: Clock = utc_now,
) -> Order:
    """
    Verify a payment with the gateway and settle its order.

    Orders already completed or failed are returned untouched without calling the
    gateway. A charge still settling leaves the order in processing. A charge that
    is not paid, or paid for a different amount or currency, fails the order.
    """
    order = get_order_by_reference(db, reference, user_id=user_id)

    if order.status in (OrderStatus.COMPLETED.value, OrderStatus.FAILED.value):
        logger.info(f"Payment already settled: order_id={order.id}, status={order.status}")
        return order

    result = gateway.verify(reference)

    if result.pending:
        logger.info(f"Payment still settling: order_id={order.id}, reference={reference}")
        return mark_processing(db, order.id)

    if not result.succeeded:
        fail_order(db, order.id, reason=f"gateway status {result.status or 'unpaid'}")
    elif result.amount is not None and result.amount != order.amount:
        fail_order(db, order.id, reason=f"amount mismatch: paid {result.amount}, expected {order.amount}")
    elif result.currency and result.currency.upper() != order.currency.upper():
        fail_order(db, order.id, reason=f"currency mismatch: paid {result.currency}, expected {order.currency}")
    else:
        complete_order(db, order.id, clock=clock)

    db.refresh(order)
    return order


# ============================================
# Edits
# ============================================

def decrement_edits(db: Session, order_id: str, user_id: Optional[str] = None, commit: bool = True) -> int:
    """
    Consume one edit from a completed order.

    The decrement is a single conditional UPDATE, so the count never goes below
    zero. With ``commit=False`` the caller commits it together with the edit itself.

    Returns:
        Edits remaining after this one

    Raises:
        OrderNotFound: no such order (or not the user's)
        OrderStateError: order is not completed
        EditsExhausted: no edits left
    """
    query = db.query(Order).filter(
        Order.id == order_id,
        Order.status == OrderStatus.COMPLETED.value,
        Order.edits_remaining > 0,
    )
    if user_id is not None:
        query = query.filter(Order.user_id == user_id)

    updated = query.update({Order.edits_remaining: Order.edits_remaining - 1}, synchronize_session=False)

    if not updated:
        db.rollback()
        order = get_order(db, order_id, user_id=user_id)
        if order.status != OrderStatus.COMPLETED.value:
            raise OrderStateError(
                "Edits can only be used on a completed order",
                order_id=order_id,
                status=order.status,
            )
        logger.warning(f"Edits exhausted: order_id={order_id}, package={order.package_type}")
        raise EditsExhausted(order_id, package_type=order.package_type)

    if commit:
        db.commit()

    order = get_order(db, order_id)
    db.refresh(order)
    logger.info(f"Edit consumed: order_id={order_id}, remaining={edits_display(order.edits_remaining)}")
    return order.edits_remaining


# ============================================
# Reporting
# ============================================

def sales_overview(db: Session) -> dict:
    """Completed-order revenue per package plus counts per status."""
    by_package = db.query(
        Order.package_type,
        func.count(Order.id),
        func.coalesce(func.sum(Order.amount), 0),
    ).filter(
        Order.status == OrderStatus.COMPLETED.value
    ).group_by(Order.package_type).all()

    by_status = dict(
        db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )

    packages = {package: {"orders": int(count), "revenue": int(revenue)} for package, count, revenue in by_package}

    return {
        "total_revenue": sum(p["revenue"] for p in packages.values()),
        "completed_orders": sum(p["orders"] for p in packages.values()),
        "by_package": packages,
        "by_status": {s.value: int(by_status.get(s.value, 0)) for s in OrderStatus},
    }

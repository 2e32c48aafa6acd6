import copy
import json

import pytest

from cvforge.core import config
from cvforge.core.errors import EditsExhausted, OrderNotFound, OrderStateError
from cvforge.core.plan_catalog import PlanCatalog
from cvforge.db.models.order import Order
from cvforge.services import order_service
from cvforge.services.order_service import OrderStatus


def paid_order(db, catalog, gateway, user, package_type="standard"):
    """Pending order with a gateway charge attached."""
    order = order_service.create_order(db, catalog, user.id, package_type)
    charge = gateway.initialize_charge(
        amount=order.amount,
        currency=order.currency,
        reference=order.id,
        callback_url="http://localhost/callback",
    )
    return order_service.attach_payment(db, order, charge)


def test_create_order_is_pending_with_nothing_granted(db, catalog, make_user):
    user = make_user()

    order = order_service.create_order(db, catalog, user.id, "premium")

    assert order.status == "pending"
    assert order.amount == 15000
    assert order.currency == "GHS"
    assert order.edits_remaining == 0
    assert not order.has_cover_letter
    assert not order.has_linkedin_optimization
    assert order.package_snapshot["edits_allowed"] == 999


def test_create_order_accepts_pro_alias(db, catalog, make_user):
    user = make_user()
    order = order_service.create_order(db, catalog, user.id, "pro")
    assert order.package_type == "standard"
    assert order.amount == 12000


def test_transition_table():
    assert order_service.can_transition("pending", "processing")
    assert order_service.can_transition("pending", "completed")
    assert order_service.can_transition("processing", "failed")
    assert not order_service.can_transition("completed", "failed")
    assert not order_service.can_transition("failed", "completed")
    assert not order_service.can_transition("processing", "pending")


def test_standard_package_verify_then_edits(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "standard")

    settled = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    assert settled.status == "completed"
    assert settled.progress == 100
    assert settled.edits_remaining == 10
    assert settled.has_cover_letter
    assert not settled.has_linkedin_optimization
    assert settled.completed_at is not None

    assert order_service.decrement_edits(db, order.id) == 9


def test_second_verify_grants_nothing_more(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "standard")
    order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)
    order_service.decrement_edits(db, order.id)

    again = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    assert again.status == "completed"
    assert again.edits_remaining == 9
    # Settled orders are not re-verified with the gateway
    assert gateway.verify_calls == [order.payment_reference]


def test_complete_order_twice_stamps_once(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "basic")

    assert order_service.complete_order(db, order.id, clock=clock) is True
    order_service.decrement_edits(db, order.id)
    assert order_service.complete_order(db, order.id, clock=clock) is False

    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).first().edits_remaining == 0


def test_basic_package_second_edit_is_exhausted(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "basic")
    order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    assert order_service.decrement_edits(db, order.id) == 0
    with pytest.raises(EditsExhausted) as exc_info:
        order_service.decrement_edits(db, order.id)

    assert exc_info.value.to_payload()["edits_remaining"] == 0
    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).first().edits_remaining == 0


def test_premium_package_edits_display_unlimited(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "premium")
    order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    remaining = order_service.decrement_edits(db, order.id)

    assert remaining == 998
    assert order_service.edits_display(999) == "Unlimited"
    assert order_service.edits_display(remaining) == 998


def test_edits_need_a_completed_order(db, catalog, make_user):
    user = make_user()
    order = order_service.create_order(db, catalog, user.id, "standard")

    with pytest.raises(OrderStateError):
        order_service.decrement_edits(db, order.id)


def test_edits_on_someone_elses_order(db, catalog, gateway, clock, make_user):
    owner = make_user()
    stranger = make_user()
    order = paid_order(db, catalog, gateway, owner, "standard")
    order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    with pytest.raises(OrderNotFound):
        order_service.decrement_edits(db, order.id, user_id=stranger.id)


def test_unpaid_charge_fails_the_order(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user)
    gateway.set_outcome(order.payment_reference, succeeded=False)

    settled = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    assert settled.status == "failed"
    assert settled.edits_remaining == 0
    assert not settled.has_cover_letter


def test_amount_mismatch_fails_the_order(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "premium")
    gateway.set_outcome(order.payment_reference, succeeded=True, amount=100)

    settled = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)

    assert settled.status == "failed"


def test_currency_mismatch_fails_the_order(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user)
    gateway.set_outcome(order.payment_reference, succeeded=True, currency="USD")

    assert order_service.verify_payment(db, gateway, order.payment_reference, clock=clock).status == "failed"


def test_failure_after_completion_is_ignored(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user)
    order_service.complete_order(db, order.id, clock=clock)

    assert order_service.fail_order(db, order.id, reason="late webhook") is False
    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).first().status == "completed"


def test_completing_a_failed_order_is_an_error(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user)
    order_service.fail_order(db, order.id)

    with pytest.raises(OrderStateError):
        order_service.complete_order(db, order.id, clock=clock)


def test_processing_then_completed(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user)

    processing = order_service.mark_processing(db, order.id)
    assert processing.status == "processing"
    assert processing.progress == order_service.PROCESSING_PROGRESS

    settled = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)
    assert settled.status == "completed"

    # No going back
    assert order_service.mark_processing(db, order.id).status == "completed"


def test_completion_stamps_bundle_captured_at_purchase(db, catalog, gateway, clock, make_user):
    with open(config.PRICING_CONFIG_PATH, encoding="utf-8") as fh:
        data = copy.deepcopy(json.load(fh))
    data["packages"]["standard"]["editsAllowed"] = 2
    old_catalog = PlanCatalog.from_dict(data)

    user = make_user()
    order = paid_order(db, old_catalog, gateway, user, "standard")

    # Completion happens after the catalog moved on to 10 edits
    assert catalog.get_package("standard").edits_allowed == 10
    order_service.complete_order(db, order.id, clock=clock)

    db.expire_all()
    assert db.query(Order).filter(Order.id == order.id).first().edits_remaining == 2


def test_verify_unknown_reference(db, gateway):
    with pytest.raises(OrderNotFound):
        order_service.verify_payment(db, gateway, "cs_missing")


def test_active_order_is_latest_completed(db, catalog, gateway, clock, make_user):
    user = make_user()
    pending = paid_order(db, catalog, gateway, user, "premium")
    completed = paid_order(db, catalog, gateway, user, "basic")
    order_service.complete_order(db, completed.id, clock=clock)

    active = order_service.get_active_order(db, user.id)

    assert active.id == completed.id
    assert active.id != pending.id


def test_sales_overview_counts_completed_revenue(db, catalog, gateway, clock, make_user):
    user = make_user()
    for package in ("basic", "standard", "standard"):
        order = paid_order(db, catalog, gateway, user, package)
        order_service.complete_order(db, order.id, clock=clock)
    failed = paid_order(db, catalog, gateway, user, "premium")
    order_service.fail_order(db, failed.id)
    paid_order(db, catalog, gateway, user, "premium")

    overview = order_service.sales_overview(db)

    assert overview["total_revenue"] == 5000 + 12000 * 2
    assert overview["completed_orders"] == 3
    assert overview["by_package"]["standard"] == {"orders": 2, "revenue": 24000}
    assert "premium" not in overview["by_package"]
    assert overview["by_status"] == {"pending": 1, "processing": 0, "completed": 3, "failed": 1}


def test_list_orders_filters_by_status(db, catalog, gateway, clock, make_user):
    user = make_user()
    done = paid_order(db, catalog, gateway, user)
    order_service.complete_order(db, done.id, clock=clock)
    paid_order(db, catalog, gateway, user)

    completed = order_service.list_all_orders(db, status=OrderStatus.COMPLETED.value)

    assert [o.id for o in completed] == [done.id]
    assert len(order_service.list_orders_for_user(db, user.id)) == 2


def test_settling_payment_keeps_order_open(db, catalog, gateway, clock, make_user):
    user = make_user()
    order = paid_order(db, catalog, gateway, user, "standard")
    gateway.set_outcome(order.payment_reference, succeeded=False, pending=True)

    settling = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)
    assert settling.status == "processing"
    assert settling.edits_remaining == 0

    gateway.set_outcome(order.payment_reference, succeeded=True)
    settled = order_service.verify_payment(db, gateway, order.payment_reference, clock=clock)
    assert settled.status == "completed"
    assert settled.edits_remaining == 10

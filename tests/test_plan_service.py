
import pytest

from cvforge.core.errors import InvalidUpgradePath, UnknownPlan, UserNotFound
from cvforge.core.plan_catalog import Feature
from cvforge.db.models.user import User
from cvforge.services import plan_service, usage_service


def test_upgrade_moves_user_up_and_resets_usage(db, catalog, clock, make_user):
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.CV_GENERATIONS, now=clock())
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    result = plan_service.upgrade_plan(db, catalog, user.id, "pro", clock=clock)

    assert result == {"previous_plan": "basic", "new_plan": "pro"}
    db.expire_all()
    refreshed = db.query(User).filter(User.id == user.id).first()
    assert refreshed.current_plan == "pro"
    assert refreshed.plan_start_date.date() == clock().date()
    usage = usage_service.get_usage_for_period(db, user.id, now=clock())
    assert all(count == 0 for count in usage.values())


def test_upgrade_skipping_a_tier_is_allowed(db, catalog, clock, make_user):
    user = make_user("basic")
    result = plan_service.upgrade_plan(db, catalog, user.id, "premium", clock=clock)
    assert result["new_plan"] == "premium"


def test_upgrade_to_same_plan_is_rejected(db, catalog, clock, make_user):
    user = make_user("pro")

    with pytest.raises(InvalidUpgradePath) as exc_info:
        plan_service.upgrade_plan(db, catalog, user.id, "pro", clock=clock)

    assert exc_info.value.message == "You're already on this plan."


def test_downgrade_is_rejected_and_nothing_changes(db, catalog, clock, make_user):
    user = make_user("premium")
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    with pytest.raises(InvalidUpgradePath):
        plan_service.upgrade_plan(db, catalog, user.id, "basic", clock=clock)

    db.expire_all()
    assert db.query(User).filter(User.id == user.id).first().current_plan == "premium"
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=clock()) == 1


def test_upgrade_to_unknown_plan(db, catalog, clock, make_user):
    user = make_user("basic")
    with pytest.raises(UnknownPlan):
        plan_service.upgrade_plan(db, catalog, user.id, "enterprise", clock=clock)


def test_upgrade_unknown_user(db, catalog, clock):
    with pytest.raises(UserNotFound):
        plan_service.upgrade_plan(db, catalog, "no-such-user", "pro", clock=clock)


def test_admin_can_set_any_plan_without_touching_usage(db, catalog, clock, make_user):
    user = make_user("premium")
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    result = plan_service.admin_set_plan(db, catalog, user.id, "basic", clock=clock)

    assert result == {"previous_plan": "premium", "new_plan": "basic"}
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=clock()) == 1


def test_admin_reset_usage(db, clock, make_user):
    user = make_user("pro")
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    assert plan_service.admin_reset_usage(db, user.id) == 1
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=clock()) == 0

    with pytest.raises(UserNotFound):
        plan_service.admin_reset_usage(db, "no-such-user")


def test_ensure_admin_user_promotes_existing_account(db, make_user):
    user = make_user(email="owner@example.com")

    promoted = plan_service.ensure_admin_user(db, "Owner@Example.com")

    assert promoted.id == user.id
    assert promoted.role == "admin"
    assert promoted.is_admin


def test_ensure_admin_user_without_account_or_setting(db):
    assert plan_service.ensure_admin_user(db, None) is None
    assert plan_service.ensure_admin_user(db, "missing@example.com") is None

from cvforge.core.plan_catalog import Feature
from cvforge.db.models.user import User
from cvforge.services import usage_service
from scripts import admin_cli


def test_set_plan_by_email(db, make_user, session_factory):
    user = make_user("premium", email="ama@example.com")

    code = admin_cli.main(["set-plan", "--email", "AMA@example.com", "--plan", "basic"], session_factory=session_factory)

    assert code == 0
    db.expire_all()
    assert db.query(User).filter(User.id == user.id).first().current_plan == "basic"


def test_reset_usage_by_id(db, clock, make_user, session_factory):
    user = make_user("basic")
    usage_service.increment_usage(db, user.id, Feature.AI_RUNS, now=clock())

    code = admin_cli.main(["reset-usage", "--user-id", user.id], session_factory=session_factory)

    assert code == 0
    assert usage_service.get_usage_count(db, user.id, Feature.AI_RUNS, now=clock()) == 0


def test_unknown_user(db, session_factory):
    assert admin_cli.main(["reset-usage", "--email", "nobody@example.com"], session_factory=session_factory) == 1
    assert admin_cli.main(["set-plan", "--user-id", "missing", "--plan", "pro"], session_factory=session_factory) == 1

"""
Plan upgrade controller and admin plan overrides.
"""
import logging
from typing import Optional, Union

from sqlalchemy.orm import Session

from cvforge.core.clock import Clock, utc_now
from cvforge.core.errors import InvalidUpgradePath, UserNotFound
from cvforge.core.plan_catalog import PlanCatalog, PlanId
from cvforge.db.models.user import User
from cvforge.services import usage_service

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise UserNotFound(user_id)
    return user


def upgrade_plan(
    db: Session,
    catalog: PlanCatalog,
    user_id: str,
    target_plan: Union[str, PlanId],
    clock: Clock = utc_now,
) -> dict:
    """
    Move a user to a strictly higher tier and start them on a clean allowance.

    The plan change is committed before usage is reset. If the reset fails the user
    is still upgraded; running the reset again (or calling this for admin tooling)
    is safe.

    Raises:
        UnknownPlan: target is not a catalog tier
        InvalidUpgradePath: target is the current tier or below it
    """
    target = catalog.get_plan(target_plan).plan_id
    user = _get_user(db, user_id)
    current = PlanId.parse(user.current_plan)

    if target == current:
        raise InvalidUpgradePath("You're already on this plan.", current.value, target.value)
    if target.rank < current.rank:
        raise InvalidUpgradePath(
            "You can only upgrade to a higher plan. Downgrades are not available here.",
            current.value,
            target.value,
        )

    user.current_plan = target.value
    user.plan_start_date = clock()
    db.commit()

    logger.info(f"Plan upgraded: user_id={user_id}, from={current.value}, to={target.value}")

    usage_service.reset_usage_for_user(db, user_id)

    return {"previous_plan": current.value, "new_plan": target.value}


def admin_set_plan(
    db: Session,
    catalog: PlanCatalog,
    user_id: str,
    plan: Union[str, PlanId],
    clock: Clock = utc_now,
) -> dict:
    """Set a user's plan unconditionally. Usage counters are left alone."""
    target = catalog.get_plan(plan).plan_id
    user = _get_user(db, user_id)
    previous = user.current_plan

    user.current_plan = target.value
    user.plan_start_date = clock()
    db.commit()

    logger.info(f"Plan set by admin: user_id={user_id}, from={previous}, to={target.value}")
    return {"previous_plan": previous, "new_plan": target.value}


def admin_reset_usage(db: Session, user_id: str) -> int:
    _get_user(db, user_id)
    return usage_service.reset_usage_for_user(db, user_id)


def ensure_admin_user(db: Session, admin_email: Optional[str]) -> Optional[User]:
    """
    Promote the account registered with ``admin_email`` to admin.

    Accounts are only created through signup; if none exists yet nothing happens
    and the promotion is retried on the next start.
    """
    if not admin_email:
        logger.info("ADMIN_EMAIL not set - skipping admin initialization")
        return None

    user = db.query(User).filter(User.email == admin_email.lower()).first()
    if user is None:
        logger.warning(f"Admin user not found: email={admin_email}. Sign up with this address, then restart.")
        return None

    if user.role != "admin":
        user.role = "admin"
        db.commit()
        logger.info(f"Promoted existing user to admin: user_id={user.id}")

    return user

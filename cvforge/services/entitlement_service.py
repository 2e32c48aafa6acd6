"""
Entitlement checker.

Decides whether a user may perform a gated action, from the plan catalog and the
usage ledger, and says which plan would lift a denial.

Two kinds of gate exist and the capability gate always runs first:

* capability: does the user's tier include the feature at all (premium templates,
  cover letters, ATS check, LinkedIn optimization)
* count: has the user used up this month's allowance for a metered feature
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Union

from sqlalchemy.orm import Session

from cvforge.core.clock import Clock, utc_now
from cvforge.core.errors import AccessDenied, LimitReached, UserNotFound
from cvforge.core.plan_catalog import (
    Capability,
    Feature,
    Limit,
    PlanCatalog,
    PlanId,
)
from cvforge.db.models.user import User
from cvforge.services import usage_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LimitStatus:
    feature: Feature
    reached: bool
    current: int
    limit: Limit
    current_plan: Optional[PlanId]
    required_plan: Optional[PlanId] = None

    def to_dict(self) -> dict:
        return {
            "feature": self.feature.value,
            "reached": self.reached,
            "current": self.current,
            "limit": self.limit.to_wire(),
            "unlimited": self.limit.is_unlimited,
            "current_plan": self.current_plan.value if self.current_plan else None,
            "required_plan": self.required_plan.value if self.required_plan else None,
        }

    def to_error(self) -> LimitReached:
        return LimitReached(
            feature=self.feature.value,
            current=self.current,
            limit=self.limit.to_wire(),
            current_plan=self.current_plan.value if self.current_plan else None,
            required_plan=self.required_plan.value if self.required_plan else None,
        )


class EntitlementChecker:
    """Per-request entitlement checks bound to a session, catalog and clock."""

    def __init__(self, db: Session, catalog: PlanCatalog, clock: Clock = utc_now):
        self.db = db
        self.catalog = catalog
        self.clock = clock

    def _resolve_plan(self, user_id: str) -> Optional[PlanId]:
        """
        The user's current plan, or None if the user does not exist.

        A stored plan outside the catalog raises UnknownPlan rather than being
        treated as any particular tier.
        """
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            return None
        return PlanId.parse(user.current_plan)

    def required_plan_for(self, current_plan: PlanId, feature: Feature) -> Optional[PlanId]:
        """
        Lowest tier above ``current_plan`` whose limit for ``feature`` is strictly
        more generous. None when no higher tier helps.
        """
        current_limit = self.catalog.get_limit(current_plan, feature)
        for candidate in self.catalog.tiers_above(current_plan):
            if self.catalog.get_limit(candidate, feature).grants_more_than(current_limit):
                return candidate
        return None

    def check_limit(self, user_id: str, feature: Union[str, Feature]) -> LimitStatus:
        feature = Feature(feature)
        plan_id = self._resolve_plan(user_id)
        if plan_id is None:
            logger.warning(f"Limit check for unknown user: user_id={user_id}, feature={feature.value}")
            return LimitStatus(feature=feature, reached=True, current=0, limit=Limit.limited(0), current_plan=None)

        limit = self.catalog.get_limit(plan_id, feature)
        if limit.is_unlimited:
            return LimitStatus(feature=feature, reached=False, current=0, limit=limit, current_plan=plan_id)

        if feature.metered:
            current = usage_service.get_usage_count(self.db, user_id, feature, now=self.clock())
        else:
            current = 0
        reached = limit.is_reached(current)
        required = self.required_plan_for(plan_id, feature) if reached else None
        return LimitStatus(
            feature=feature,
            reached=reached,
            current=current,
            limit=limit,
            current_plan=plan_id,
            required_plan=required,
        )

    def check_access(self, user_id: str, required_plan: Union[str, PlanId], feature: str = "") -> bool:
        """True if the user's tier ranks at or above ``required_plan``."""
        required = PlanId.parse(required_plan)
        plan_id = self._resolve_plan(user_id)
        allowed = plan_id is not None and plan_id.rank >= required.rank
        if not allowed:
            logger.info(
                f"Access denied: user_id={user_id}, feature={feature}, "
                f"plan={plan_id.value if plan_id else None}, required={required.value}"
            )
        return allowed

    def require_capability(self, user_id: str, capability: Union[str, Capability]) -> None:
        """Raise AccessDenied unless the user's tier includes ``capability``."""
        capability = Capability(capability)
        required = self.catalog.minimum_plan_for(capability)
        plan_id = self._resolve_plan(user_id)

        if plan_id is not None and self.catalog.has_capability(plan_id, capability):
            return

        logger.info(
            f"Capability denied: user_id={user_id}, capability={capability.value}, "
            f"plan={plan_id.value if plan_id else None}, required={required.value if required else None}"
        )
        raise AccessDenied(
            feature=capability.value,
            current_plan=plan_id.value if plan_id else None,
            required_plan=required.value if required else None,
        )

    def require_limit(self, user_id: str, feature: Union[str, Feature]) -> LimitStatus:
        """Raise LimitReached if this month's allowance is used up."""
        status = self.check_limit(user_id, feature)
        if status.reached:
            logger.warning(
                f"Limit reached: user_id={user_id}, feature={status.feature.value}, "
                f"used={status.current}/{status.limit}, plan={status.current_plan.value if status.current_plan else None}"
            )
            raise status.to_error()
        return status

    @contextmanager
    def metered(
        self,
        user_id: str,
        feature: Union[str, Feature],
        capability: Union[str, Capability, None] = None,
    ) -> Iterator[LimitStatus]:
        """
        Gate and meter one use of ``feature`` around the ``with`` body.

        For capped features a unit is reserved atomically before the body runs and
        given back if the body raises. Unlimited features are recorded only after the
        body succeeds.
        """
        if capability is not None:
            self.require_capability(user_id, capability)

        status = self.require_limit(user_id, feature)
        now = self.clock()

        if status.limit.is_unlimited:
            yield status
            usage_service.increment_usage(self.db, user_id, status.feature, now=now)
            return

        if not usage_service.try_consume(self.db, user_id, status.feature, status.limit, now=now):
            # Lost a race with a concurrent request for the last unit
            raise replace(
                status,
                reached=True,
                current=status.limit.cap,
                required_plan=self.required_plan_for(status.current_plan, status.feature),
            ).to_error()

        try:
            yield status
        except Exception:
            self.db.rollback()
            usage_service.release(self.db, user_id, status.feature, now=now)
            raise

    def get_plan_status(self, user_id: str) -> dict:
        """Plan, limits, this month's usage and capabilities for display."""
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise UserNotFound(user_id)

        plan = self.catalog.get_plan(user.current_plan)
        usage = usage_service.get_usage_for_period(self.db, user_id, now=self.clock())

        limits = {}
        for feature in Feature:
            limit = plan.limit(feature)
            used = usage.get(feature, 0)
            limits[feature.value] = {
                "limit": limit.to_wire(),
                "used": used,
                "remaining": None if limit.is_unlimited else max(0, limit.cap - used),
                "unlimited": limit.is_unlimited,
            }

        return {
            "plan": plan.plan_id.value,
            "plan_name": plan.name,
            "plan_start_date": user.plan_start_date,
            "limits": limits,
            "capabilities": sorted(c.value for c in plan.capabilities),
            "upgrade_prompts": dict(plan.upgrade_prompts),
        }

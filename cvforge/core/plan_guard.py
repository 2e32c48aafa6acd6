"""
FastAPI dependencies for plan gating.

``get_entitlement_checker`` binds the request's session, the process-wide catalog
and the clock. Count-based metering happens inside route bodies with
``checker.metered(...)`` so the usage is only kept when the action succeeds.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from cvforge.core.auth_dependency import get_current_user
from cvforge.core.clock import Clock, get_clock
from cvforge.core.plan_catalog import Capability, PlanCatalog, get_catalog
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.services.entitlement_service import EntitlementChecker


def get_entitlement_checker(
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
    clock: Clock = Depends(get_clock),
) -> EntitlementChecker:
    return EntitlementChecker(db, catalog, clock)


def require_capability(capability: Capability):
    """Dependency factory: the user's tier must include ``capability``."""

    def checker(
        user: User = Depends(get_current_user),
        entitlements: EntitlementChecker = Depends(get_entitlement_checker),
    ) -> User:
        entitlements.require_capability(user.id, capability)
        return user

    return checker

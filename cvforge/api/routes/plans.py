"""
Plan catalog, plan status, limit checks and self-service upgrades.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cvforge.core.auth_dependency import get_current_user
from cvforge.core.clock import Clock, get_clock
from cvforge.core.plan_catalog import Feature, PlanCatalog, get_catalog
from cvforge.core.plan_guard import get_entitlement_checker
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.usage import (
    LimitStatusResponse,
    PlanStatusResponse,
    UpgradePlanRequest,
    UpgradePlanResponse,
)
from cvforge.services import plan_service
from cvforge.services.entitlement_service import EntitlementChecker

router = APIRouter(prefix="/api", tags=["Plans"])


@router.get("/plans")
def list_plans(catalog: PlanCatalog = Depends(get_catalog)):
    """Public pricing: subscription plans and one-time packages."""
    return {
        "currency": catalog.currency,
        "plans": [plan.to_dict() for plan in catalog.plans()],
        "packages": [package.to_dict() for package in catalog.packages()],
    }


@router.get("/user/plan-status", response_model=PlanStatusResponse)
def plan_status(
    user: User = Depends(get_current_user),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    return entitlements.get_plan_status(user.id)


@router.get("/user/limits/{feature}", response_model=LimitStatusResponse)
def limit_status(
    feature: Feature,
    user: User = Depends(get_current_user),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    """Whether the monthly limit for ``feature`` is reached, with the plan that would lift it."""
    return entitlements.check_limit(user.id, feature).to_dict()


@router.post("/user/upgrade-plan", response_model=UpgradePlanResponse)
def upgrade_plan(
    payload: UpgradePlanRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
    clock: Clock = Depends(get_clock),
):
    result = plan_service.upgrade_plan(db, catalog, user.id, payload.plan, clock=clock)
    return {**result, "message": f"Upgraded to {catalog.get_plan(result['new_plan']).name}"}

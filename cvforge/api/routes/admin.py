"""
Admin endpoints. Plan changes here skip upgrade-path validation.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from cvforge.core.auth_dependency import require_admin
from cvforge.core.clock import Clock, get_clock
from cvforge.core.plan_catalog import PlanCatalog, get_catalog
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.admin import (
    AdminPlanChangeResponse,
    AdminResetUsageResponse,
    AdminSetPlanRequest,
    SalesOverviewResponse,
)
from cvforge.schemas.auth import UserResponse
from cvforge.schemas.order import OrderResponse
from cvforge.services import order_service, plan_service

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=List[UserResponse])
def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return db.query(User).order_by(User.created_at.desc()).offset(offset).limit(limit).all()


@router.patch("/users/{user_id}/plan", response_model=AdminPlanChangeResponse)
def set_user_plan(
    user_id: str,
    payload: AdminSetPlanRequest,
    db: Session = Depends(get_db),
    catalog: PlanCatalog = Depends(get_catalog),
    clock: Clock = Depends(get_clock),
):
    result = plan_service.admin_set_plan(db, catalog, user_id, payload.plan, clock=clock)
    return {"user_id": user_id, **result}


@router.post("/users/{user_id}/reset-usage", response_model=AdminResetUsageResponse)
def reset_user_usage(user_id: str, db: Session = Depends(get_db)):
    return {"user_id": user_id, "counters_reset": plan_service.admin_reset_usage(db, user_id)}


@router.get("/orders", response_model=List[OrderResponse])
def list_orders(
    status: Optional[order_service.OrderStatus] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return order_service.list_all_orders(db, status=status.value if status else None, limit=limit, offset=offset)


@router.get("/sales", response_model=SalesOverviewResponse)
def sales(db: Session = Depends(get_db)):
    return order_service.sales_overview(db)

"""
Pydantic schemas for admin endpoints.
"""
from typing import Dict
from pydantic import BaseModel, Field


class AdminSetPlanRequest(BaseModel):
    plan: str = Field(..., description="basic | pro | premium; applied without upgrade-path checks")


class AdminPlanChangeResponse(BaseModel):
    user_id: str
    previous_plan: str
    new_plan: str


class AdminResetUsageResponse(BaseModel):
    user_id: str
    counters_reset: int


class PackageSales(BaseModel):
    orders: int
    revenue: int


class SalesOverviewResponse(BaseModel):
    total_revenue: int = Field(..., description="Completed-order revenue in minor currency units")
    completed_orders: int
    by_package: Dict[str, PackageSales]
    by_status: Dict[str, int]

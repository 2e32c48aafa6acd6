"""
Pydantic schemas for plan status, limit checks and upgrades.
"""
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field


class FeatureUsageDetail(BaseModel):
    """Usage details for a single feature."""
    limit: int = Field(..., description="Monthly limit (-1 for unlimited)")
    used: int = Field(..., description="Current month usage")
    remaining: Optional[int] = Field(None, description="Remaining this month (None for unlimited)")
    unlimited: bool


class PlanStatusResponse(BaseModel):
    """Response schema for GET /api/user/plan-status."""
    plan: str = Field(..., description="Current plan (basic, pro, premium)")
    plan_name: str
    plan_start_date: Optional[datetime] = None
    limits: Dict[str, FeatureUsageDetail]
    capabilities: List[str]
    upgrade_prompts: Dict[str, str] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "plan": "basic",
                "plan_name": "Basic",
                "plan_start_date": "2026-01-04T10:00:00Z",
                "limits": {
                    "cvGenerations": {"limit": 1, "used": 1, "remaining": 0, "unlimited": False},
                    "aiRuns": {"limit": 1, "used": 0, "remaining": 1, "unlimited": False}
                },
                "capabilities": [],
                "upgrade_prompts": {"cvLimit": "You've created your free CV this month."}
            }
        }


class LimitStatusResponse(BaseModel):
    """Response schema for GET /api/user/limits/{feature}."""
    feature: str
    reached: bool
    current: int
    limit: int = Field(..., description="-1 for unlimited")
    unlimited: bool
    current_plan: Optional[str] = None
    required_plan: Optional[str] = Field(None, description="Lowest plan that lifts the limit, when reached")


class UpgradePlanRequest(BaseModel):
    plan: str = Field(..., description="Target plan (pro or premium)")


class UpgradePlanResponse(BaseModel):
    previous_plan: str
    new_plan: str
    message: str = "Plan upgraded successfully"

"""
Pydantic schemas for orders and payments.
"""
from datetime import datetime
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field

from cvforge.core.plan_catalog import UNLIMITED_EDITS


class PaymentInitializeRequest(BaseModel):
    package_type: str = Field(..., description="basic | standard | premium ('pro' is accepted for standard)")
    cv_id: Optional[str] = Field(None, description="CV this purchase applies to")

    class Config:
        json_schema_extra = {
            "example": {
                "package_type": "standard",
                "cv_id": "3f1c9d2e-6a4b-4c1e-9f7a-2b8d5e6c7a90"
            }
        }


class PaymentInitializeResponse(BaseModel):
    order_id: str
    reference: str
    authorization_url: str
    access_code: Optional[str] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    cv_id: Optional[str] = None
    package_type: str
    amount: int
    currency: str
    status: str
    progress: int
    payment_reference: Optional[str] = None
    edits_remaining: int
    has_cover_letter: bool
    has_linkedin_optimization: bool
    template_count: int
    pdf_file_name: Optional[str] = None
    download_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @computed_field
    @property
    def edits_display(self) -> Union[int, str]:
        return "Unlimited" if self.edits_remaining >= UNLIMITED_EDITS else self.edits_remaining


class EditConsumedResponse(BaseModel):
    order_id: str
    edits_remaining: int
    edits_display: Union[int, str]

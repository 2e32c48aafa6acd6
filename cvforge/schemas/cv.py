"""
Pydantic schemas for CV endpoints.

Section contents are free-form objects; only ownership and template matter to
entitlements.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CVBase(BaseModel):
    template_id: Optional[str] = Field(None, description="Template id, defaults to azurill")
    phone: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    summary: Optional[str] = None
    photo_url: Optional[str] = None
    experience: List[Dict[str, Any]] = Field(default_factory=list)
    education: List[Dict[str, Any]] = Field(default_factory=list)
    skills: List[Any] = Field(default_factory=list)
    certifications: List[Dict[str, Any]] = Field(default_factory=list)
    achievements: List[Dict[str, Any]] = Field(default_factory=list)
    custom_sections: List[Dict[str, Any]] = Field(default_factory=list)
    references: List[Dict[str, Any]] = Field(default_factory=list)


class CVCreate(CVBase):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Ama Mensah",
                "email": "ama.mensah@example.com",
                "template_id": "azurill",
                "summary": "Operations analyst with five years in logistics.",
                "experience": [
                    {"title": "Operations Analyst", "company": "Kumasi Freight", "description": "Managed route planning."}
                ],
                "skills": ["Excel", "SQL", "Forecasting"]
            }
        }


class CVUpdate(BaseModel):
    """Partial update; only fields present in the request are changed."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    template_id: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None
    github: Optional[str] = None
    summary: Optional[str] = None
    photo_url: Optional[str] = None
    experience: Optional[List[Dict[str, Any]]] = None
    education: Optional[List[Dict[str, Any]]] = None
    skills: Optional[List[Any]] = None
    certifications: Optional[List[Dict[str, Any]]] = None
    achievements: Optional[List[Dict[str, Any]]] = None
    custom_sections: Optional[List[Dict[str, Any]]] = None
    references: Optional[List[Dict[str, Any]]] = None


class CVResponse(CVBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    full_name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CVUpdateResponse(BaseModel):
    cv: CVResponse
    order_id: Optional[str] = Field(None, description="Order whose edit allowance was used, if any")
    edits_remaining: Optional[Any] = Field(None, description="Edits left on that order; 'Unlimited' for 999")

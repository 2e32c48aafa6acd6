"""
Pydantic schemas for AI endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class CVTargetRequest(BaseModel):
    cv_id: str = Field(..., description="CV to work on")


class CoverLetterRequest(BaseModel):
    cv_id: str = Field(..., description="CV the letter is based on")
    job_title: str = Field(..., min_length=1, max_length=200)
    company_name: str = Field(..., min_length=1, max_length=200)
    company_description: Optional[str] = Field(None, max_length=5000)

    class Config:
        json_schema_extra = {
            "example": {
                "cv_id": "3f1c9d2e-6a4b-4c1e-9f7a-2b8d5e6c7a90",
                "job_title": "Supply Chain Manager",
                "company_name": "Accra Logistics",
                "company_description": "Regional freight and warehousing provider."
            }
        }


class CoverLetterPDFRequest(BaseModel):
    cover_letter_id: str


class CoverLetterResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    cv_id: Optional[str] = None
    job_title: str
    company_name: str
    content: str
    created_at: Optional[datetime] = None


class ATSAnalysisResponse(BaseModel):
    score: int = Field(..., ge=0, le=100, description="ATS compatibility score 0-100")
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class OptimizedCVResponse(BaseModel):
    cv_id: str
    summary: Optional[str] = None
    experience: List[Dict[str, Any]] = Field(default_factory=list)


class LinkedInProfileResponse(BaseModel):
    full_name: str = ""
    headline: str
    about: str
    experience: str = ""
    skills: str = ""
    suggestions: List[str] = Field(default_factory=list)

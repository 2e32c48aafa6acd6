"""
AI-assisted content endpoints.

Each call is gated before the AI service runs and metered only when it succeeds:

    optimize-cv            aiRuns
    analyze-ats            atsCheck capability, then aiRuns
    generate-cover-letter  coverLetter capability, then coverLetterGenerations
    optimize-linkedin      linkedInOptimization capability, then aiRuns
"""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from cvforge.api.routes.cvs import cv_payload, get_owned_cv
from cvforge.core.auth_dependency import get_current_user
from cvforge.core.errors import CoverLetterNotFound
from cvforge.core.plan_catalog import Capability, Feature
from cvforge.core.plan_guard import get_entitlement_checker, require_capability
from cvforge.db.models.cover_letter import CoverLetter
from cvforge.db.models.user import User
from cvforge.db.session import get_db
from cvforge.schemas.ai import (
    ATSAnalysisResponse,
    CoverLetterPDFRequest,
    CoverLetterRequest,
    CoverLetterResponse,
    CVTargetRequest,
    LinkedInProfileResponse,
    OptimizedCVResponse,
)
from cvforge.services import ai_service, pdf_service
from cvforge.services.entitlement_service import EntitlementChecker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])


@router.post("/optimize-cv", response_model=OptimizedCVResponse)
def optimize_cv(
    payload: CVTargetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    """Suggest an improved summary and experience section. The CV itself is not changed."""
    cv = get_owned_cv(db, payload.cv_id, user.id)

    with entitlements.metered(user.id, Feature.AI_RUNS):
        enhanced = ai_service.enhance_cv(cv_payload(cv))

    return {"cv_id": cv.id, "summary": enhanced.get("summary"), "experience": enhanced.get("experience") or []}


@router.post("/analyze-ats", response_model=ATSAnalysisResponse)
def analyze_ats(
    payload: CVTargetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    cv = get_owned_cv(db, payload.cv_id, user.id)

    with entitlements.metered(user.id, Feature.AI_RUNS, capability=Capability.ATS_CHECK):
        result = ai_service.analyze_ats(cv_payload(cv))

    logger.info(f"ATS analysis: user_id={user.id}, cv_id={cv.id}, score={result['score']}")
    return result


@router.post("/generate-cover-letter", response_model=CoverLetterResponse, status_code=201)
def generate_cover_letter(
    payload: CoverLetterRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    cv = get_owned_cv(db, payload.cv_id, user.id)

    with entitlements.metered(
        user.id,
        Feature.COVER_LETTER_GENERATIONS,
        capability=Capability.COVER_LETTER,
    ):
        content = ai_service.generate_cover_letter(
            cv_payload(cv),
            payload.job_title,
            payload.company_name,
            payload.company_description,
        )
        letter = CoverLetter(
            user_id=user.id,
            cv_id=cv.id,
            job_title=payload.job_title,
            company_name=payload.company_name,
            company_description=payload.company_description,
            content=content,
        )
        db.add(letter)
        db.commit()
        db.refresh(letter)

    logger.info(f"Cover letter generated: user_id={user.id}, cover_letter_id={letter.id}")
    return letter


@router.post("/optimize-linkedin", response_model=LinkedInProfileResponse)
def optimize_linkedin(
    payload: CVTargetRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    entitlements: EntitlementChecker = Depends(get_entitlement_checker),
):
    cv = get_owned_cv(db, payload.cv_id, user.id)

    with entitlements.metered(user.id, Feature.AI_RUNS, capability=Capability.LINKEDIN_OPTIMIZATION):
        return ai_service.optimize_linkedin(cv_payload(cv))


@router.post("/cover-letter-pdf")
def cover_letter_pdf(
    payload: CoverLetterPDFRequest,
    user: User = Depends(require_capability(Capability.COVER_LETTER)),
    db: Session = Depends(get_db),
):
    """Render a previously generated cover letter. Not metered."""
    letter = db.query(CoverLetter).filter(
        CoverLetter.id == payload.cover_letter_id,
        CoverLetter.user_id == user.id,
    ).first()
    if not letter:
        raise CoverLetterNotFound(payload.cover_letter_id)

    pdf = pdf_service.render_cover_letter({
        "full_name": user.full_name,
        "job_title": letter.job_title,
        "company_name": letter.company_name,
        "content": letter.content,
    })
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="cover-letter-{letter.id}.pdf"'},
    )

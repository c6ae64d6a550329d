"""Recommendations router — AI study recommendations per student."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from unilearn.database import get_db
from unilearn.dependencies import get_tutor_service
from unilearn.middleware.auth import get_current_user
from unilearn.models.course import Course
from unilearn.models.enrollment import Enrollment
from unilearn.models.recommendation import AIRecommendation
from unilearn.models.user import User
from unilearn.schemas.recommendation import RecommendationListResponse, RecommendationResponse
from unilearn.services.tutor import TutorService

router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


def _recommendation_to_response(rec: AIRecommendation) -> RecommendationResponse:
    return RecommendationResponse(
        id=rec.id,
        title=rec.title,
        description=rec.description,
        type=rec.type,
        is_read=rec.is_read,
        created_at=rec.created_at.isoformat(),
    )


@router.get("", response_model=RecommendationListResponse)
def list_recommendations(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    recs = (
        db.query(AIRecommendation)
        .filter(AIRecommendation.user_id == current_user.id)
        .order_by(AIRecommendation.created_at.desc())
        .all()
    )
    return RecommendationListResponse(recommendations=[_recommendation_to_response(r) for r in recs])


@router.post("/generate", response_model=RecommendationListResponse, status_code=201)
async def generate_recommendations(
    db: Session = Depends(get_db),
    tutor: TutorService = Depends(get_tutor_service),
    current_user: User = Depends(get_current_user),
):
    """Ask the study advisor for recommendations based on the caller's course progress."""
    rows = (
        db.query(Course.title, Enrollment.progress)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .filter(Enrollment.user_id == current_user.id)
        .all()
    )
    courses = [{"title": title, "progress": progress or 0.0} for title, progress in rows]

    created = []
    for text in await tutor.study_recommendations(courses):
        rec = AIRecommendation(
            id=str(uuid.uuid4()),
            user_id=current_user.id,
            title=text[:255],
            description=text,
            type="study",
        )
        db.add(rec)
        created.append(rec)
    db.commit()
    for rec in created:
        db.refresh(rec)

    return RecommendationListResponse(recommendations=[_recommendation_to_response(r) for r in created])


@router.patch("/{recommendation_id}/read", response_model=RecommendationResponse)
def mark_read(
    recommendation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rec = db.query(AIRecommendation).filter(
        AIRecommendation.id == recommendation_id,
        AIRecommendation.user_id == current_user.id,
    ).first()
    if not rec:
        raise HTTPException(status_code=404, detail="Recommendation not found")

    rec.is_read = True
    db.commit()
    db.refresh(rec)
    return _recommendation_to_response(rec)

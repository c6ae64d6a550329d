"""Analytics router — dashboard stats and study-session tracking."""

import math
import uuid
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from unilearn.database import get_db
from unilearn.middleware.auth import get_current_user
from unilearn.models.assignment import Submission
from unilearn.models.chat_message import ChatMessage
from unilearn.models.enrollment import Enrollment
from unilearn.models.study_session import StudySession
from unilearn.models.user import User
from unilearn.schemas.analytics import StatsResponse, StudySessionCreate, StudySessionResponse

router = APIRouter(tags=["analytics"])

STREAK_WINDOW_DAYS = 30


def _session_to_response(session: StudySession) -> StudySessionResponse:
    return StudySessionResponse(
        id=session.id,
        course_id=session.course_id,
        duration=session.duration,
        started_at=session.started_at.isoformat(),
        ended_at=session.ended_at.isoformat() if session.ended_at else None,
    )


@router.get("/api/analytics/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Dashboard counters for the caller."""
    window_start = datetime.now(timezone.utc) - timedelta(days=STREAK_WINDOW_DAYS)

    active_courses = db.query(Enrollment).filter(Enrollment.user_id == current_user.id).count()
    pending_assignments = db.query(Submission).filter(
        Submission.user_id == current_user.id,
        Submission.status == "not_started",
    ).count()
    # Simplified streak: sessions started within the window.
    study_streak = db.query(StudySession).filter(
        StudySession.user_id == current_user.id,
        StudySession.started_at >= window_start,
    ).count()
    ai_interactions = db.query(ChatMessage).filter(
        ChatMessage.user_id == current_user.id,
        ChatMessage.type == "user",
    ).count()

    return StatsResponse(
        active_courses=active_courses,
        pending_assignments=pending_assignments,
        study_streak=study_streak,
        ai_interactions=ai_interactions,
    )


@router.post("/api/study-sessions", response_model=StudySessionResponse, status_code=201)
def start_study_session(
    req: StudySessionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = StudySession(
        id=str(uuid.uuid4()),
        user_id=current_user.id,
        course_id=req.course_id,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return _session_to_response(session)


@router.post("/api/study-sessions/{session_id}/end", response_model=StudySessionResponse)
def end_study_session(
    session_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    session = db.query(StudySession).filter(
        StudySession.id == session_id,
        StudySession.user_id == current_user.id,
    ).first()
    if not session:
        raise HTTPException(status_code=404, detail="Study session not found")
    if session.ended_at is not None:
        raise HTTPException(status_code=409, detail="Study session already ended")

    ended_at = datetime.now(timezone.utc)
    started_at = session.started_at
    if started_at.tzinfo is None:
        # SQLite hands back naive datetimes
        started_at = started_at.replace(tzinfo=timezone.utc)

    session.ended_at = ended_at
    session.duration = math.ceil((ended_at - started_at).total_seconds() / 60)
    db.commit()
    db.refresh(session)
    return _session_to_response(session)

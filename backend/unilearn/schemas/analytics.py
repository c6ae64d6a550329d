"""Dashboard analytics and study-session schemas."""

from typing import Optional

from unilearn.schemas.common import APIModel


class StatsResponse(APIModel):
    active_courses: int
    pending_assignments: int
    study_streak: int
    ai_interactions: int


class StudySessionCreate(APIModel):
    course_id: Optional[str] = None


class StudySessionResponse(APIModel):
    id: str
    course_id: Optional[str] = None
    duration: Optional[int] = None
    started_at: str
    ended_at: Optional[str] = None

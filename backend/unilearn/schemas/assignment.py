"""Assignment and submission schemas."""

from datetime import datetime
from typing import Optional
from pydantic import Field

from unilearn.schemas.common import APIModel


class AssignmentCreate(APIModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    course_id: str
    due_date: Optional[datetime] = None
    max_points: int = Field(default=100, ge=1)


class CourseSummary(APIModel):
    id: str
    title: str


class AssignmentResponse(APIModel):
    id: str
    title: str
    description: Optional[str]
    course_id: str
    due_date: Optional[str] = None
    max_points: int
    created_at: str
    status: Optional[str] = None  # the caller's submission status
    course: Optional[CourseSummary] = None


class AssignmentListResponse(APIModel):
    assignments: list[AssignmentResponse]
    total: int


class SubmissionCreate(APIModel):
    content: str = Field(min_length=1)


class SubmissionResponse(APIModel):
    id: str
    assignment_id: str
    user_id: str
    content: Optional[str]
    status: str
    score: Optional[int] = None
    submitted_at: Optional[str] = None


class GradeRequest(APIModel):
    score: int = Field(ge=0)

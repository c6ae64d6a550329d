"""Course and enrollment request/response schemas."""

from typing import Optional
from pydantic import Field

from unilearn.schemas.common import APIModel


class CourseCreate(APIModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None


class CourseUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class CourseResponse(APIModel):
    id: str
    title: str
    description: Optional[str]
    instructor_id: str
    image_url: Optional[str] = None
    is_active: bool
    created_at: str
    progress: Optional[float] = None  # only for the caller's own enrollments


class CourseListResponse(APIModel):
    courses: list[CourseResponse]
    total: int


class EnrollmentResponse(APIModel):
    id: str
    user_id: str
    course_id: str
    progress: float
    enrolled_at: str


class ProgressUpdate(APIModel):
    progress: float = Field(ge=0, le=100)

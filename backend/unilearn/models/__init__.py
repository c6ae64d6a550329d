"""SQLAlchemy ORM models."""

from unilearn.models.user import User
from unilearn.models.course import Course
from unilearn.models.enrollment import Enrollment
from unilearn.models.assignment import Assignment, Submission
from unilearn.models.chat_message import ChatMessage
from unilearn.models.recommendation import AIRecommendation
from unilearn.models.study_session import StudySession
from unilearn.models.course_document import CourseDocument
from unilearn.models.document_chunk import DocumentChunk

__all__ = [
    "User",
    "Course",
    "Enrollment",
    "Assignment",
    "Submission",
    "ChatMessage",
    "AIRecommendation",
    "StudySession",
    "CourseDocument",
    "DocumentChunk",
]

"""Courses router — course management and enrollment."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from unilearn.database import get_db
from unilearn.models.user import User
from unilearn.models.course import Course
from unilearn.models.enrollment import Enrollment
from unilearn.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseListResponse,
    EnrollmentResponse,
    ProgressUpdate,
)
from unilearn.middleware.auth import get_current_user, require_instructor

router = APIRouter(prefix="/api/courses", tags=["courses"])


def _course_to_response(course: Course, progress: float | None = None) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        title=course.title,
        description=course.description,
        instructor_id=course.instructor_id,
        image_url=course.image_url,
        is_active=course.is_active,
        created_at=course.created_at.isoformat(),
        progress=progress,
    )


def _enrollment_to_response(enrollment: Enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        user_id=enrollment.user_id,
        course_id=enrollment.course_id,
        progress=enrollment.progress,
        enrolled_at=enrollment.enrolled_at.isoformat(),
    )


def get_course_or_404(db: Session, course_id: str) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


def ensure_course_owner(course: Course, user: User) -> None:
    """The course's instructor, or any admin."""
    if user.role != "admin" and course.instructor_id != user.id:
        raise HTTPException(status_code=403, detail="Not your course")


def ensure_course_access(db: Session, course: Course, user: User) -> None:
    """Owner, admin, or an enrolled user."""
    if user.role == "admin" or course.instructor_id == user.id:
        return
    enrolled = db.query(Enrollment).filter(
        Enrollment.user_id == user.id,
        Enrollment.course_id == course.id,
    ).first()
    if not enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")


@router.get("", response_model=CourseListResponse)
def list_my_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Courses the caller is enrolled in, with their progress."""
    rows = (
        db.query(Course, Enrollment.progress)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .filter(Enrollment.user_id == current_user.id)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )
    return CourseListResponse(
        courses=[_course_to_response(c, progress or 0.0) for c, progress in rows],
        total=len(rows),
    )


@router.get("/all", response_model=CourseListResponse)
def list_all_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_instructor),
):
    """All active courses (instructors and admins)."""
    courses = (
        db.query(Course)
        .filter(Course.is_active.is_(True))
        .order_by(Course.created_at.desc())
        .all()
    )
    return CourseListResponse(
        courses=[_course_to_response(c) for c in courses],
        total=len(courses),
    )


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    req: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_instructor),
):
    """Create a new course; the caller becomes its instructor."""
    course = Course(
        id=str(uuid.uuid4()),
        title=req.title,
        description=req.description,
        image_url=req.image_url,
        instructor_id=current_user.id,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return _course_to_response(course)


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _course_to_response(get_course_or_404(db, course_id))


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    req: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_instructor),
):
    course = get_course_or_404(db, course_id)
    ensure_course_owner(course, current_user)

    for field, value in req.model_dump(exclude_unset=True).items():
        setattr(course, field, value)
    db.commit()
    db.refresh(course)
    return _course_to_response(course)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse, status_code=201)
def enroll(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    course = get_course_or_404(db, course_id)
    if not course.is_active:
        raise HTTPException(status_code=400, detail="Course is not accepting enrollments")

    existing = db.query(Enrollment).filter(
        Enrollment.user_id == current_user.id,
        Enrollment.course_id == course_id,
    ).first()
    if existing:
        raise HTTPException(status_code=409, detail="Already enrolled in this course")

    enrollment = Enrollment(
        id=str(uuid.uuid4()),
        user_id=current_user.id,
        course_id=course_id,
    )
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return _enrollment_to_response(enrollment)


@router.patch("/{course_id}/progress", response_model=EnrollmentResponse)
def update_progress(
    course_id: str,
    req: ProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    enrollment = db.query(Enrollment).filter(
        Enrollment.user_id == current_user.id,
        Enrollment.course_id == course_id,
    ).first()
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")

    enrollment.progress = req.progress
    db.commit()
    db.refresh(enrollment)
    return _enrollment_to_response(enrollment)

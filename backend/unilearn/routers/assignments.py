"""Assignments router — assignment creation, submission, and grading."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from unilearn.database import get_db
from unilearn.models.user import User
from unilearn.models.course import Course
from unilearn.models.enrollment import Enrollment
from unilearn.models.assignment import Assignment, Submission
from unilearn.schemas.assignment import (
    AssignmentCreate,
    AssignmentResponse,
    AssignmentListResponse,
    CourseSummary,
    GradeRequest,
    SubmissionCreate,
    SubmissionResponse,
)
from unilearn.middleware.auth import get_current_user, require_instructor, require_student
from unilearn.routers.courses import ensure_course_owner, get_course_or_404

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


def _assignment_to_response(
    assignment: Assignment,
    status: str | None = None,
    course: Course | None = None,
) -> AssignmentResponse:
    return AssignmentResponse(
        id=assignment.id,
        title=assignment.title,
        description=assignment.description,
        course_id=assignment.course_id,
        due_date=assignment.due_date.isoformat() if assignment.due_date else None,
        max_points=assignment.max_points,
        created_at=assignment.created_at.isoformat(),
        status=status,
        course=CourseSummary(id=course.id, title=course.title) if course else None,
    )


def _submission_to_response(submission: Submission) -> SubmissionResponse:
    return SubmissionResponse(
        id=submission.id,
        assignment_id=submission.assignment_id,
        user_id=submission.user_id,
        content=submission.content,
        status=submission.status,
        score=submission.score,
        submitted_at=submission.submitted_at.isoformat() if submission.submitted_at else None,
    )


@router.get("", response_model=AssignmentListResponse)
def list_my_assignments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Assignments of every course the caller is enrolled in, with their submission status."""
    rows = (
        db.query(Assignment, Course, Submission.status)
        .join(Course, Assignment.course_id == Course.id)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .outerjoin(
            Submission,
            (Submission.assignment_id == Assignment.id) & (Submission.user_id == current_user.id),
        )
        .filter(Enrollment.user_id == current_user.id)
        .order_by(Assignment.due_date.is_(None), Assignment.due_date.asc(), Assignment.created_at.asc())
        .all()
    )
    return AssignmentListResponse(
        assignments=[
            _assignment_to_response(a, status or "not_started", course)
            for a, course, status in rows
        ],
        total=len(rows),
    )


@router.post("", response_model=AssignmentResponse, status_code=201)
def create_assignment(
    req: AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_instructor),
):
    course = get_course_or_404(db, req.course_id)
    ensure_course_owner(course, current_user)

    assignment = Assignment(
        id=str(uuid.uuid4()),
        title=req.title,
        description=req.description,
        course_id=req.course_id,
        due_date=req.due_date,
        max_points=req.max_points,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return _assignment_to_response(assignment, course=course)


@router.post("/{assignment_id}/submit", response_model=SubmissionResponse)
def submit_assignment(
    assignment_id: str,
    req: SubmissionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_student),
):
    """Create or replace the caller's submission and mark it completed."""
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")

    enrolled = db.query(Enrollment).filter(
        Enrollment.user_id == current_user.id,
        Enrollment.course_id == assignment.course_id,
    ).first()
    if not enrolled:
        raise HTTPException(status_code=403, detail="Not enrolled in this course")

    submission = db.query(Submission).filter(
        Submission.assignment_id == assignment_id,
        Submission.user_id == current_user.id,
    ).first()
    if submission is None:
        submission = Submission(
            id=str(uuid.uuid4()),
            assignment_id=assignment_id,
            user_id=current_user.id,
        )
        db.add(submission)

    submission.content = req.content
    submission.status = "completed"
    submission.submitted_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(submission)
    return _submission_to_response(submission)


@router.patch("/{assignment_id}/submissions/{submission_id}/grade", response_model=SubmissionResponse)
def grade_submission(
    assignment_id: str,
    submission_id: str,
    req: GradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_instructor),
):
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    ensure_course_owner(assignment.course, current_user)

    submission = db.query(Submission).filter(
        Submission.id == submission_id,
        Submission.assignment_id == assignment_id,
    ).first()
    if not submission:
        raise HTTPException(status_code=404, detail="Submission not found")
    if req.score > assignment.max_points:
        raise HTTPException(
            status_code=400,
            detail=f"Score cannot exceed {assignment.max_points} points",
        )

    submission.score = req.score
    db.commit()
    db.refresh(submission)
    return _submission_to_response(submission)

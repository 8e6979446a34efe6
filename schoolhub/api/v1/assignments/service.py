import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.api.v1.classes.service import class_ids_for_student, class_ids_for_teacher, classes_by_ids
from schoolhub.api.v1.courses.service import course_ids_for_teacher, courses_by_ids
from schoolhub.api.v1.users.schemas import ClassSummary, CourseSummary
from schoolhub.core.enums import SubmissionStatus
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import fetch_view, index_by
from schoolhub.core.models import (
    Assignment,
    AssignmentSubmission,
    ClassStudent,
    ClassTeacher,
    Course,
    CourseTeacher,
    SchoolClass,
)

from .schemas import (
    AssignmentCreate,
    AssignmentResponse,
    StudentAssignmentItem,
    SubmissionCreate,
    SubmissionResponse,
    TeacherAssignmentItem,
    TeacherAssignmentsView,
)

logger = logging.getLogger(__name__)


async def assignments_for_classes(db: AsyncSession, class_ids: Sequence[UUID]) -> List[Assignment]:
    result = await db.execute(
        select(Assignment).where(Assignment.class_id.in_(class_ids)).order_by(Assignment.due_date.desc())
    )
    return list(result.scalars().all())


# ----- Teacher -----
async def list_teacher_assignments(db: AsyncSession, teacher_id: UUID) -> TeacherAssignmentsView:
    try:
        result = await db.execute(
            select(Assignment).where(Assignment.teacher_id == teacher_id).order_by(Assignment.due_date.desc())
        )
        assignments = result.scalars().all()

        class_ids = await class_ids_for_teacher(db, teacher_id)
        course_ids = await course_ids_for_teacher(db, teacher_id)
        classes = await classes_by_ids(db, class_ids) if class_ids else []
        courses = await courses_by_ids(db, course_ids) if course_ids else []

        # Assignments may reference a class or course the teacher no longer holds
        referenced_classes = await classes_by_ids(db, list({a.class_id for a in assignments})) if assignments else []
        referenced_courses = await courses_by_ids(db, list({a.course_id for a in assignments})) if assignments else []
    except SQLAlchemyError as e:
        logger.exception("Failed to load assignments for teacher %s", teacher_id)
        raise ServiceError("Failed to load assignments") from e

    class_index = index_by(referenced_classes, lambda c: c.id)
    course_index = index_by(referenced_courses, lambda c: c.id)
    items = []
    for a in assignments:
        class_row = class_index.get(a.class_id)
        course_row = course_index.get(a.course_id)
        items.append(
            TeacherAssignmentItem(
                **AssignmentResponse.model_validate(a).model_dump(),
                class_name=class_row.name if class_row else None,
                course_title=course_row.title if course_row else None,
            )
        )
    return TeacherAssignmentsView(
        assignments=items,
        classes=[ClassSummary.model_validate(c) for c in classes],
        courses=[CourseSummary.model_validate(c) for c in courses],
    )


async def create_assignment(db: AsyncSession, teacher_id: UUID, payload: AssignmentCreate) -> AssignmentResponse:
    title = payload.title.strip()
    if not title:
        raise ServiceError("Title is required", status.HTTP_400_BAD_REQUEST)
    if payload.total_marks <= 0:
        raise ServiceError("Total marks must be greater than zero", status.HTTP_400_BAD_REQUEST)
    if not await db.get(ClassTeacher, (payload.class_id, teacher_id)):
        raise ServiceError("You can only create assignments for your own classes", status.HTTP_403_FORBIDDEN)
    if not await db.get(CourseTeacher, (payload.course_id, teacher_id)):
        raise ServiceError("You can only create assignments for your own courses", status.HTTP_403_FORBIDDEN)

    obj = Assignment(
        title=title,
        description=(payload.description or "").strip() or None,
        class_id=payload.class_id,
        course_id=payload.course_id,
        teacher_id=teacher_id,
        due_date=payload.due_date,
        total_marks=payload.total_marks,
    )
    db.add(obj)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to create assignment %s", title)
        raise ServiceError("Failed to create assignment") from e
    await db.refresh(obj)
    logger.info("Teacher %s created assignment %s", teacher_id, obj.id)
    return AssignmentResponse.model_validate(obj)


# ----- Student -----
async def list_student_assignments(
    db: AsyncSession,
    sessions: async_sessionmaker,
    student_id: UUID,
) -> List[StudentAssignmentItem]:
    async def enrich(a: Assignment) -> StudentAssignmentItem:
        async with sessions() as s:
            class_row = await s.get(SchoolClass, a.class_id)
            course_row = await s.get(Course, a.course_id)
            submission = (
                await s.execute(
                    select(AssignmentSubmission).where(
                        AssignmentSubmission.assignment_id == a.id,
                        AssignmentSubmission.student_id == student_id,
                    )
                )
            ).scalar_one_or_none()
        return StudentAssignmentItem(
            **AssignmentResponse.model_validate(a).model_dump(),
            class_name=class_row.name if class_row else None,
            course_title=course_row.title if course_row else None,
            submission=SubmissionResponse.model_validate(submission) if submission else None,
        )

    return await fetch_view(
        lambda: class_ids_for_student(db, student_id),
        lambda ids: assignments_for_classes(db, ids),
        enrich,
        error_message="Failed to load assignments",
    )


async def _find_submission(db: AsyncSession, assignment_id: UUID, student_id: UUID) -> Optional[AssignmentSubmission]:
    result = await db.execute(
        select(AssignmentSubmission).where(
            AssignmentSubmission.assignment_id == assignment_id,
            AssignmentSubmission.student_id == student_id,
        )
    )
    return result.scalar_one_or_none()


async def submit_assignment(
    db: AsyncSession,
    student_id: UUID,
    assignment_id: UUID,
    payload: SubmissionCreate,
) -> SubmissionResponse:
    """Create-or-update keyed by (assignment, student). Graded submissions are final."""
    text = (payload.submission_text or "").strip() or None
    url = (payload.submission_url or "").strip() or None
    if not text and not url:
        raise ServiceError("Please provide a submission text or URL", status.HTTP_400_BAD_REQUEST)

    assignment = await db.get(Assignment, assignment_id)
    if not assignment:
        raise ServiceError("Assignment not found", status.HTTP_404_NOT_FOUND)
    if not await db.get(ClassStudent, (assignment.class_id, student_id)):
        raise ServiceError("You are not enrolled in this assignment's class", status.HTTP_403_FORBIDDEN)

    submission = await _find_submission(db, assignment_id, student_id)
    if submission is not None and submission.status == SubmissionStatus.GRADED.value:
        raise ServiceError("This submission has already been graded", status.HTTP_409_CONFLICT)

    now = datetime.now(timezone.utc)
    if submission is None:
        submission = AssignmentSubmission(assignment_id=assignment_id, student_id=student_id)
        db.add(submission)
    submission.submission_text = text
    submission.submission_url = url
    submission.status = SubmissionStatus.SUBMITTED.value
    submission.submitted_at = now
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("A submission for this assignment already exists", status.HTTP_409_CONFLICT) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save submission for assignment %s", assignment_id)
        raise ServiceError("Failed to submit assignment") from e
    await db.refresh(submission)
    return SubmissionResponse.model_validate(submission)

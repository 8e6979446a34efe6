"""Dashboard statistics for the three role home pages.

Independent counters are issued concurrently, each on its own session; any
failure fails the whole dashboard.
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.api.v1.assignments.schemas import AssignmentResponse
from schoolhub.api.v1.classes.schemas import ClassResponse
from schoolhub.api.v1.classes.service import class_ids_for_student, class_ids_for_teacher
from schoolhub.auth.models import User
from schoolhub.core.aggregates import count
from schoolhub.core.enums import SubmissionStatus, UserRole
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import fan_out
from schoolhub.core.models import (
    Assignment,
    AssignmentSubmission,
    AttendanceRecord,
    Course,
    CourseTeacher,
    SchoolClass,
)

from .schemas import AdminDashboard, StudentDashboard, TeacherDashboard

logger = logging.getLogger(__name__)

UPCOMING_LIMIT = 5
RECENT_CLASSES_LIMIT = 3


def _count_rows(model, *criteria):
    return select(func.count()).select_from(model).where(*criteria)


async def _scalars(sessions: async_sessionmaker, statements: Sequence) -> List:
    async def run(stmt):
        async with sessions() as s:
            return await s.scalar(stmt)

    return await fan_out(list(statements), run)


async def _upcoming(db: AsyncSession, *criteria) -> List[AssignmentResponse]:
    result = await db.execute(
        select(Assignment)
        .where(Assignment.due_date >= datetime.now(timezone.utc), *criteria)
        .order_by(Assignment.due_date.asc())
        .limit(UPCOMING_LIMIT)
    )
    return [AssignmentResponse.model_validate(a) for a in result.scalars().all()]


async def admin_dashboard(sessions: async_sessionmaker) -> AdminDashboard:
    try:
        students, teachers, classes, courses = await _scalars(
            sessions,
            [
                _count_rows(User, User.role == UserRole.STUDENT.value),
                _count_rows(User, User.role == UserRole.TEACHER.value),
                select(func.count()).select_from(SchoolClass),
                select(func.count()).select_from(Course),
            ],
        )
    except SQLAlchemyError as e:
        logger.exception("Failed to load admin dashboard")
        raise ServiceError("Failed to load dashboard data") from e
    return AdminDashboard(
        total_students=students,
        total_teachers=teachers,
        total_classes=classes,
        total_courses=courses,
    )


async def teacher_dashboard(db: AsyncSession, sessions: async_sessionmaker, teacher_id: UUID) -> TeacherDashboard:
    try:
        class_ids = await class_ids_for_teacher(db, teacher_id)
        courses, assignments, attendance_today = await _scalars(
            sessions,
            [
                _count_rows(CourseTeacher, CourseTeacher.teacher_id == teacher_id),
                _count_rows(Assignment, Assignment.teacher_id == teacher_id),
                _count_rows(
                    AttendanceRecord,
                    AttendanceRecord.marked_by == teacher_id,
                    AttendanceRecord.date == date.today(),
                ),
            ],
        )
        upcoming = await _upcoming(db, Assignment.teacher_id == teacher_id)
        recent_classes = []
        if class_ids:
            recent = await db.execute(
                select(SchoolClass)
                .where(SchoolClass.id.in_(class_ids))
                .order_by(SchoolClass.created_at.desc())
                .limit(RECENT_CLASSES_LIMIT)
            )
            recent_classes = [ClassResponse.model_validate(c) for c in recent.scalars().all()]
    except SQLAlchemyError as e:
        logger.exception("Failed to load teacher dashboard for %s", teacher_id)
        raise ServiceError("Failed to load dashboard data") from e
    return TeacherDashboard(
        total_classes=count(class_ids),
        total_courses=courses,
        total_assignments=assignments,
        total_attendance_today=attendance_today,
        upcoming_assignments=upcoming,
        recent_classes=recent_classes,
    )


async def student_dashboard(db: AsyncSession, student_id: UUID) -> StudentDashboard:
    try:
        class_ids = await class_ids_for_student(db, student_id)
        if not class_ids:
            return StudentDashboard()
        assignment_ids = (
            await db.execute(select(Assignment.id).where(Assignment.class_id.in_(class_ids)))
        ).scalars().all()
        submissions = []
        if assignment_ids:
            submissions = (
                await db.execute(
                    select(AssignmentSubmission).where(
                        AssignmentSubmission.student_id == student_id,
                        AssignmentSubmission.assignment_id.in_(assignment_ids),
                    )
                )
            ).scalars().all()
        upcoming = await _upcoming(db, Assignment.class_id.in_(class_ids))
    except SQLAlchemyError as e:
        logger.exception("Failed to load student dashboard for %s", student_id)
        raise ServiceError("Failed to load dashboard data") from e

    total = count(assignment_ids)
    submitted = count(submissions, lambda s: s.status != SubmissionStatus.PENDING.value)
    return StudentDashboard(
        total_classes=count(class_ids),
        total_assignments=total,
        submitted_assignments=submitted,
        pending_assignments=total - submitted,
        upcoming_assignments=upcoming,
    )

import logging
from typing import List, Sequence
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.core.aggregates import unique_count
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import fetch_view
from schoolhub.core.models import Assignment, ClassCourse, ClassStudent, Course, CourseTeacher

from .schemas import CourseCreate, CourseResponse, TeacherCourseResponse

logger = logging.getLogger(__name__)


async def course_ids_for_teacher(db: AsyncSession, teacher_id: UUID) -> List[UUID]:
    result = await db.execute(select(CourseTeacher.course_id).where(CourseTeacher.teacher_id == teacher_id))
    return list(result.scalars().all())


async def courses_by_ids(db: AsyncSession, course_ids: Sequence[UUID]) -> List[Course]:
    result = await db.execute(select(Course).where(Course.id.in_(course_ids)).order_by(Course.title))
    return list(result.scalars().all())


# ----- Admin -----
async def list_courses(db: AsyncSession) -> List[CourseResponse]:
    result = await db.execute(select(Course).order_by(Course.title))
    return [CourseResponse.model_validate(c) for c in result.scalars().all()]


async def create_course(db: AsyncSession, payload: CourseCreate) -> CourseResponse:
    title = payload.title.strip()
    description = payload.description.strip()
    if not title or not description:
        raise ServiceError("Title and description are required", status.HTTP_400_BAD_REQUEST)
    existing = await db.execute(select(Course.id).where(func.lower(Course.title) == title.lower()))
    if existing.first() is not None:
        raise ServiceError("A course with this title already exists", status.HTTP_409_CONFLICT)
    obj = Course(title=title, description=description)
    db.add(obj)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("A course with this title already exists", status.HTTP_409_CONFLICT) from e
    await db.refresh(obj)
    logger.info("Created course %s", title)
    return CourseResponse.model_validate(obj)


async def delete_course(db: AsyncSession, course_id: UUID) -> bool:
    obj = await db.get(Course, course_id)
    if not obj:
        return False
    linked = await db.scalar(
        select(func.count()).select_from(ClassCourse).where(ClassCourse.course_id == course_id)
    )
    if linked:
        raise ServiceError(
            "Cannot delete a course that is linked to a class. Unlink it first.",
            status.HTTP_400_BAD_REQUEST,
        )
    try:
        await db.delete(obj)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete course %s", course_id)
        raise ServiceError("Failed to delete course") from e
    return True


# ----- Teacher -----
async def list_teacher_courses(
    db: AsyncSession,
    sessions: async_sessionmaker,
    teacher_id: UUID,
) -> List[TeacherCourseResponse]:
    async def enrich(course: Course) -> TeacherCourseResponse:
        async with sessions() as s:
            class_ids = (
                await s.execute(select(ClassCourse.class_id).where(ClassCourse.course_id == course.id))
            ).scalars().all()
            enrollments = []
            if class_ids:
                enrollments = (
                    await s.execute(select(ClassStudent.student_id).where(ClassStudent.class_id.in_(class_ids)))
                ).scalars().all()
            assignment_count = await s.scalar(
                select(func.count())
                .select_from(Assignment)
                .where(Assignment.course_id == course.id, Assignment.teacher_id == teacher_id)
            )
        return TeacherCourseResponse(
            **CourseResponse.model_validate(course).model_dump(),
            class_count=len(class_ids),
            student_count=unique_count(enrollments, lambda student_id: student_id),
            assignment_count=assignment_count,
        )

    return await fetch_view(
        lambda: course_ids_for_teacher(db, teacher_id),
        lambda ids: courses_by_ids(db, ids),
        enrich,
        error_message="Failed to load courses",
    )

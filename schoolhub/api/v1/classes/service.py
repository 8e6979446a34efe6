import logging
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.api.v1.users.schemas import CourseSummary, PersonSummary
from schoolhub.auth.models import User
from schoolhub.core.enums import UserRole
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import fetch_view
from schoolhub.core.models import Assignment, ClassCourse, ClassStudent, ClassTeacher, Course, SchoolClass

from .schemas import (
    AdminClassResponse,
    ClassCreate,
    ClassDetailResponse,
    ClassResponse,
    StudentClassResponse,
    TeacherClassResponse,
)

logger = logging.getLogger(__name__)


# ----- Scoped id lookups shared by the teacher and student views -----
async def class_ids_for_teacher(db: AsyncSession, teacher_id: UUID) -> List[UUID]:
    result = await db.execute(select(ClassTeacher.class_id).where(ClassTeacher.teacher_id == teacher_id))
    return list(result.scalars().all())


async def class_ids_for_student(db: AsyncSession, student_id: UUID) -> List[UUID]:
    result = await db.execute(select(ClassStudent.class_id).where(ClassStudent.student_id == student_id))
    return list(result.scalars().all())


async def classes_by_ids(db: AsyncSession, class_ids: Sequence[UUID]) -> List[SchoolClass]:
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.id.in_(class_ids)).order_by(SchoolClass.name)
    )
    return list(result.scalars().all())


async def student_ids_in_class(db: AsyncSession, class_id: UUID) -> List[UUID]:
    result = await db.execute(select(ClassStudent.student_id).where(ClassStudent.class_id == class_id))
    return list(result.scalars().all())


async def courses_for_class(db: AsyncSession, class_id: UUID) -> List[CourseSummary]:
    result = await db.execute(
        select(Course)
        .join(ClassCourse, ClassCourse.course_id == Course.id)
        .where(ClassCourse.class_id == class_id)
        .order_by(Course.title)
    )
    return [CourseSummary.model_validate(c) for c in result.scalars().all()]


async def _members(db: AsyncSession, join_table, member_column, class_id: UUID) -> List[PersonSummary]:
    result = await db.execute(
        select(User)
        .join(join_table, member_column == User.id)
        .where(join_table.class_id == class_id)
        .order_by(User.last_name, User.first_name)
    )
    return [PersonSummary.model_validate(u) for u in result.scalars().all()]


async def _count_by_class(db: AsyncSession, column) -> Dict[UUID, int]:
    result = await db.execute(select(column, func.count()).group_by(column))
    return {class_id: n for class_id, n in result.all()}


# ----- Admin -----
async def list_classes(db: AsyncSession) -> List[AdminClassResponse]:
    result = await db.execute(select(SchoolClass).order_by(SchoolClass.year.desc(), SchoolClass.name))
    classes = result.scalars().all()
    if not classes:
        return []
    teacher_counts = await _count_by_class(db, ClassTeacher.class_id)
    student_counts = await _count_by_class(db, ClassStudent.class_id)
    course_counts = await _count_by_class(db, ClassCourse.class_id)
    return [
        AdminClassResponse(
            **ClassResponse.model_validate(c).model_dump(),
            teacher_count=teacher_counts.get(c.id, 0),
            student_count=student_counts.get(c.id, 0),
            course_count=course_counts.get(c.id, 0),
        )
        for c in classes
    ]


async def get_class(db: AsyncSession, class_id: UUID) -> Optional[ClassDetailResponse]:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        return None
    return ClassDetailResponse(
        **ClassResponse.model_validate(obj).model_dump(),
        teachers=await _members(db, ClassTeacher, ClassTeacher.teacher_id, class_id),
        students=await _members(db, ClassStudent, ClassStudent.student_id, class_id),
        courses=await courses_for_class(db, class_id),
    )


async def create_class(db: AsyncSession, payload: ClassCreate) -> ClassResponse:
    name = payload.name.strip()
    if not name:
        raise ServiceError("Class name is required", status.HTTP_400_BAD_REQUEST)
    description = (payload.description or "").strip() or None
    obj = SchoolClass(name=name, year=payload.year, description=description)
    db.add(obj)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to create class %s", name)
        raise ServiceError("Failed to create class") from e
    await db.refresh(obj)
    return ClassResponse.model_validate(obj)


async def delete_class(db: AsyncSession, class_id: UUID) -> bool:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        return False
    try:
        # Membership rows go first; SQLite does not enforce ON DELETE CASCADE by default
        for table in (ClassTeacher, ClassStudent, ClassCourse):
            await db.execute(delete(table).where(table.class_id == class_id))
        await db.delete(obj)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete class %s", class_id)
        raise ServiceError("Failed to delete class") from e
    return True


async def _require_class(db: AsyncSession, class_id: UUID) -> SchoolClass:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    return obj


async def _require_user(db: AsyncSession, user_id: UUID, role: UserRole) -> User:
    user = await db.get(User, user_id)
    if not user or user.role != role.value:
        raise ServiceError(f"{role.value.capitalize()} not found", status.HTTP_404_NOT_FOUND)
    return user


async def _add_link(db: AsyncSession, link, conflict_message: str) -> None:
    db.add(link)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError(conflict_message, status.HTTP_409_CONFLICT) from e


async def assign_teacher(db: AsyncSession, class_id: UUID, teacher_id: UUID) -> None:
    await _require_class(db, class_id)
    await _require_user(db, teacher_id, UserRole.TEACHER)
    if await db.get(ClassTeacher, (class_id, teacher_id)):
        raise ServiceError("Teacher is already assigned to this class", status.HTTP_409_CONFLICT)
    await _add_link(
        db,
        ClassTeacher(class_id=class_id, teacher_id=teacher_id),
        "Teacher is already assigned to this class",
    )


async def add_student(db: AsyncSession, class_id: UUID, student_id: UUID) -> None:
    await _require_class(db, class_id)
    await _require_user(db, student_id, UserRole.STUDENT)
    if await db.get(ClassStudent, (class_id, student_id)):
        raise ServiceError("Student is already enrolled in this class", status.HTTP_409_CONFLICT)
    await _add_link(
        db,
        ClassStudent(class_id=class_id, student_id=student_id),
        "Student is already enrolled in this class",
    )


async def link_course(db: AsyncSession, class_id: UUID, course_id: UUID) -> None:
    await _require_class(db, class_id)
    if not await db.get(Course, course_id):
        raise ServiceError("Course not found", status.HTTP_404_NOT_FOUND)
    if await db.get(ClassCourse, (class_id, course_id)):
        raise ServiceError("Course is already linked to this class", status.HTTP_409_CONFLICT)
    await _add_link(
        db,
        ClassCourse(class_id=class_id, course_id=course_id),
        "Course is already linked to this class",
    )


async def remove_member(db: AsyncSession, table, member_column, class_id: UUID, member_id: UUID) -> bool:
    result = await db.execute(delete(table).where(table.class_id == class_id, member_column == member_id))
    await db.commit()
    return result.rowcount > 0


# ----- Teacher -----
async def list_teacher_classes(
    db: AsyncSession,
    sessions: async_sessionmaker,
    teacher_id: UUID,
    q: Optional[str] = None,
) -> List[TeacherClassResponse]:
    async def enrich(c: SchoolClass) -> TeacherClassResponse:
        async with sessions() as s:
            student_count = await s.scalar(
                select(func.count()).select_from(ClassStudent).where(ClassStudent.class_id == c.id)
            )
            assignment_count = await s.scalar(
                select(func.count())
                .select_from(Assignment)
                .where(Assignment.class_id == c.id, Assignment.teacher_id == teacher_id)
            )
            courses = await courses_for_class(s, c.id)
        return TeacherClassResponse(
            **ClassResponse.model_validate(c).model_dump(),
            student_count=student_count,
            assignment_count=assignment_count,
            courses=courses,
        )

    classes = await fetch_view(
        lambda: class_ids_for_teacher(db, teacher_id),
        lambda ids: classes_by_ids(db, ids),
        enrich,
        error_message="Failed to load classes",
    )
    if q and q.strip():
        needle = q.strip().lower()
        classes = [
            c for c in classes
            if needle in c.name.lower() or needle in (c.description or "").lower()
        ]
    return classes


# ----- Student -----
async def list_student_classes(
    db: AsyncSession,
    sessions: async_sessionmaker,
    student_id: UUID,
) -> List[StudentClassResponse]:
    async def enrich(c: SchoolClass) -> StudentClassResponse:
        async with sessions() as s:
            courses = await courses_for_class(s, c.id)
            assignment_count = await s.scalar(
                select(func.count()).select_from(Assignment).where(Assignment.class_id == c.id)
            )
            teachers = await _members(s, ClassTeacher, ClassTeacher.teacher_id, c.id)
        return StudentClassResponse(
            **ClassResponse.model_validate(c).model_dump(),
            assignment_count=assignment_count,
            courses=courses,
            teachers=teachers,
        )

    return await fetch_view(
        lambda: class_ids_for_student(db, student_id),
        lambda ids: classes_by_ids(db, ids),
        enrich,
        error_message="Failed to load classes",
    )

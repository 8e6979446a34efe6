import io
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from openpyxl import Workbook
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.api.v1.settings import service as settings_service
from schoolhub.auth import services as auth_service
from schoolhub.auth.models import User
from schoolhub.auth.schemas import SignUpRequest
from schoolhub.core.enums import UserRole
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import group_by
from schoolhub.core.models import ClassStudent, Course, CourseTeacher, SchoolClass

from .schemas import (
    ClassSummary,
    CourseSummary,
    PersonCreate,
    StudentResponse,
    TeacherResponse,
    UserResponse,
)

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ("First name", "Last name", "Email", "Role", "Created at")


def _escape_like(term: str) -> str:
    """Match % and _ in a search term literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def list_users(
    db: AsyncSession,
    q: Optional[str] = None,
    role: Optional[UserRole] = None,
) -> List[UserResponse]:
    stmt = select(User)
    if q and q.strip():
        pattern = f"%{_escape_like(q.strip())}%"
        stmt = stmt.where(
            or_(
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )
    if role is not None:
        stmt = stmt.where(User.role == role.value)
    stmt = stmt.order_by(User.created_at.desc())
    result = await db.execute(stmt)
    return [UserResponse.model_validate(u) for u in result.scalars().all()]


async def create_user(db: AsyncSession, payload: SignUpRequest) -> UserResponse:
    await settings_service.ensure_registration_open(db, payload.role)
    user = await auth_service.sign_up(db, payload)
    return UserResponse.model_validate(user)


async def create_person(db: AsyncSession, payload: PersonCreate, role: UserRole) -> UserResponse:
    return await create_user(db, SignUpRequest(**payload.model_dump(), role=role))


async def delete_user(db: AsyncSession, user_id: UUID, acting_user_id: UUID) -> bool:
    if user_id == acting_user_id:
        raise ServiceError("You cannot delete your own account", status.HTTP_400_BAD_REQUEST)
    user = await db.get(User, user_id)
    if not user:
        return False
    try:
        await db.delete(user)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to delete user %s", user_id)
        raise ServiceError("Failed to delete user") from e
    logger.info("Deleted user %s", user.email)
    return True


async def export_users(db: AsyncSession) -> bytes:
    """All users as an Excel sheet, newest first."""
    users = await list_users(db)
    wb = Workbook()
    ws = wb.active
    ws.title = "Users"
    ws.append(list(EXPORT_HEADERS))
    for u in users:
        ws.append([u.first_name, u.last_name, u.email, u.role.value, u.created_at.strftime("%Y-%m-%d %H:%M")])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()


# ----- Teachers -----
async def list_teachers(db: AsyncSession) -> List[TeacherResponse]:
    teachers = await list_users(db, role=UserRole.TEACHER)
    if not teachers:
        return []
    result = await db.execute(
        select(CourseTeacher.teacher_id, Course)
        .join(Course, Course.id == CourseTeacher.course_id)
        .where(CourseTeacher.teacher_id.in_([t.id for t in teachers]))
        .order_by(Course.title)
    )
    courses_by_teacher = group_by(result.all(), lambda row: row[0])
    return [
        TeacherResponse(
            **t.model_dump(),
            courses=[CourseSummary.model_validate(row[1]) for row in courses_by_teacher.get(t.id, [])],
        )
        for t in teachers
    ]


async def _get_user_with_role(db: AsyncSession, user_id: UUID, role: UserRole) -> User:
    user = await db.get(User, user_id)
    if not user or user.role != role.value:
        raise ServiceError(f"{role.value.capitalize()} not found", status.HTTP_404_NOT_FOUND)
    return user


async def assign_course_to_teacher(db: AsyncSession, teacher_id: UUID, course_id: UUID) -> None:
    await _get_user_with_role(db, teacher_id, UserRole.TEACHER)
    if not await db.get(Course, course_id):
        raise ServiceError("Course not found", status.HTTP_404_NOT_FOUND)
    existing = await db.execute(
        select(CourseTeacher).where(
            CourseTeacher.teacher_id == teacher_id,
            CourseTeacher.course_id == course_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ServiceError("Course is already assigned to this teacher", status.HTTP_409_CONFLICT)

    current = await settings_service.get_settings(db)
    assigned = await db.scalar(
        select(func.count()).select_from(CourseTeacher).where(CourseTeacher.teacher_id == teacher_id)
    )
    if assigned >= current.max_courses_per_teacher:
        raise ServiceError(
            f"A teacher can be assigned at most {current.max_courses_per_teacher} courses",
            status.HTTP_400_BAD_REQUEST,
        )

    db.add(CourseTeacher(teacher_id=teacher_id, course_id=course_id))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Course is already assigned to this teacher", status.HTTP_409_CONFLICT) from e


async def remove_course_from_teacher(db: AsyncSession, teacher_id: UUID, course_id: UUID) -> bool:
    result = await db.execute(
        delete(CourseTeacher).where(
            CourseTeacher.teacher_id == teacher_id,
            CourseTeacher.course_id == course_id,
        )
    )
    await db.commit()
    return result.rowcount > 0


# ----- Students -----
async def list_students(db: AsyncSession) -> List[StudentResponse]:
    students = await list_users(db, role=UserRole.STUDENT)
    if not students:
        return []
    result = await db.execute(
        select(ClassStudent.student_id, SchoolClass)
        .join(SchoolClass, SchoolClass.id == ClassStudent.class_id)
        .where(ClassStudent.student_id.in_([s.id for s in students]))
        .order_by(SchoolClass.name)
    )
    classes_by_student = group_by(result.all(), lambda row: row[0])
    return [
        StudentResponse(
            **s.model_dump(),
            classes=[ClassSummary.model_validate(row[1]) for row in classes_by_student.get(s.id, [])],
        )
        for s in students
    ]


async def enroll_student(db: AsyncSession, student_id: UUID, class_id: UUID) -> None:
    await _get_user_with_role(db, student_id, UserRole.STUDENT)
    if not await db.get(SchoolClass, class_id):
        raise ServiceError("Class not found", status.HTTP_404_NOT_FOUND)
    existing = await db.execute(
        select(ClassStudent).where(
            ClassStudent.student_id == student_id,
            ClassStudent.class_id == class_id,
        )
    )
    if existing.scalar_one_or_none():
        raise ServiceError("Student is already enrolled in this class", status.HTTP_409_CONFLICT)
    db.add(ClassStudent(student_id=student_id, class_id=class_id))
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("Student is already enrolled in this class", status.HTTP_409_CONFLICT) from e

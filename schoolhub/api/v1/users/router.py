from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.rbac import require_admin
from schoolhub.auth.schemas import Identity
from schoolhub.core.enums import UserRole
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db

from .schemas import (
    ClassEnroll,
    CourseAssign,
    PersonCreate,
    RegisterRequest,
    StudentResponse,
    TeacherResponse,
    UserCreate,
    UserResponse,
)
from . import service

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

users_router = APIRouter(prefix="/admin/users", tags=["admin"])
teachers_router = APIRouter(prefix="/admin/teachers", tags=["admin"], dependencies=[Depends(require_admin)])
students_router = APIRouter(prefix="/admin/students", tags=["admin"], dependencies=[Depends(require_admin)])


@users_router.get("", response_model=List[UserResponse])
async def list_users(
    q: Optional[str] = Query(None, description="Case-insensitive match on first name, last name or email"),
    role: Optional[UserRole] = Query(None),
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
) -> List[UserResponse]:
    return await service.list_users(db, q=q, role=role)


@users_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
) -> UserResponse:
    try:
        return await service.create_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@users_router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
) -> UserResponse:
    """Registration form: students and teachers only."""
    try:
        return await service.create_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@users_router.get("/export")
async def export_users(
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
) -> Response:
    content = await service.export_users(db)
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": "attachment; filename=users.xlsx"},
    )


@users_router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
) -> None:
    try:
        deleted = await service.delete_user(db, user_id, admin.id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# ----- Teachers -----
@teachers_router.get("", response_model=List[TeacherResponse])
async def list_teachers(db: AsyncSession = Depends(get_db)) -> List[TeacherResponse]:
    return await service.list_teachers(db)


@teachers_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher(payload: PersonCreate, db: AsyncSession = Depends(get_db)) -> UserResponse:
    try:
        return await service.create_person(db, payload, UserRole.TEACHER)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@teachers_router.post("/{teacher_id}/courses", status_code=status.HTTP_201_CREATED)
async def assign_course(
    teacher_id: UUID,
    payload: CourseAssign,
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.assign_course_to_teacher(db, teacher_id, payload.course_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"teacher_id": teacher_id, "course_id": payload.course_id}


@teachers_router.delete("/{teacher_id}/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_course(
    teacher_id: UUID,
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    if not await service.remove_course_from_teacher(db, teacher_id, course_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course is not assigned to this teacher")


# ----- Students -----
@students_router.get("", response_model=List[StudentResponse])
async def list_students(db: AsyncSession = Depends(get_db)) -> List[StudentResponse]:
    return await service.list_students(db)


@students_router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_student(payload: PersonCreate, db: AsyncSession = Depends(get_db)) -> UserResponse:
    try:
        return await service.create_person(db, payload, UserRole.STUDENT)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@students_router.post("/{student_id}/classes", status_code=status.HTTP_201_CREATED)
async def enroll_student(
    student_id: UUID,
    payload: ClassEnroll,
    db: AsyncSession = Depends(get_db),
):
    try:
        await service.enroll_student(db, student_id, payload.class_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"student_id": student_id, "class_id": payload.class_id}

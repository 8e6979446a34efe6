from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.auth.rbac import require_admin, require_teacher
from schoolhub.auth.schemas import Identity
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db, get_session_factory

from .schemas import CourseCreate, CourseResponse, TeacherCourseResponse
from . import service

admin_router = APIRouter(prefix="/admin/courses", tags=["admin"], dependencies=[Depends(require_admin)])
teacher_router = APIRouter(prefix="/teacher/courses", tags=["teacher"])


@admin_router.get("", response_model=List[CourseResponse])
async def list_courses(db: AsyncSession = Depends(get_db)) -> List[CourseResponse]:
    return await service.list_courses(db)


@admin_router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(payload: CourseCreate, db: AsyncSession = Depends(get_db)) -> CourseResponse:
    try:
        return await service.create_course(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    try:
        deleted = await service.delete_course(db, course_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@teacher_router.get("", response_model=List[TeacherCourseResponse])
async def list_my_courses(
    db: AsyncSession = Depends(get_db),
    sessions: async_sessionmaker = Depends(get_session_factory),
    teacher: Identity = Depends(require_teacher),
) -> List[TeacherCourseResponse]:
    try:
        return await service.list_teacher_courses(db, sessions, teacher.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

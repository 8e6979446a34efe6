from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.auth.rbac import require_admin, require_student, require_teacher
from schoolhub.auth.schemas import Identity
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.models import ClassCourse, ClassStudent, ClassTeacher
from schoolhub.db.session import get_db, get_session_factory

from .schemas import (
    AdminClassResponse,
    ClassCreate,
    ClassDetailResponse,
    ClassResponse,
    CourseLink,
    StudentAdd,
    StudentClassResponse,
    TeacherAdd,
    TeacherClassResponse,
)
from . import service

admin_router = APIRouter(prefix="/admin/classes", tags=["admin"], dependencies=[Depends(require_admin)])
teacher_router = APIRouter(prefix="/teacher/classes", tags=["teacher"])
student_router = APIRouter(prefix="/student/classes", tags=["student"])


@admin_router.get("", response_model=List[AdminClassResponse])
async def list_classes(db: AsyncSession = Depends(get_db)) -> List[AdminClassResponse]:
    return await service.list_classes(db)


@admin_router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class(payload: ClassCreate, db: AsyncSession = Depends(get_db)) -> ClassResponse:
    try:
        return await service.create_class(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.get("/{class_id}", response_model=ClassDetailResponse)
async def get_class(class_id: UUID, db: AsyncSession = Depends(get_db)) -> ClassDetailResponse:
    obj = await service.get_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return obj


@admin_router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class(class_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    try:
        deleted = await service.delete_class(db, class_id)
        if not deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@admin_router.post("/{class_id}/teachers", status_code=status.HTTP_201_CREATED)
async def assign_teacher(class_id: UUID, payload: TeacherAdd, db: AsyncSession = Depends(get_db)):
    try:
        await service.assign_teacher(db, class_id, payload.teacher_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"class_id": class_id, "teacher_id": payload.teacher_id}


@admin_router.delete("/{class_id}/teachers/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_teacher(class_id: UUID, teacher_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    if not await service.remove_member(db, ClassTeacher, ClassTeacher.teacher_id, class_id, teacher_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher is not assigned to this class")


@admin_router.post("/{class_id}/students", status_code=status.HTTP_201_CREATED)
async def add_student(class_id: UUID, payload: StudentAdd, db: AsyncSession = Depends(get_db)):
    try:
        await service.add_student(db, class_id, payload.student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"class_id": class_id, "student_id": payload.student_id}


@admin_router.delete("/{class_id}/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_student(class_id: UUID, student_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    if not await service.remove_member(db, ClassStudent, ClassStudent.student_id, class_id, student_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student is not enrolled in this class")


@admin_router.post("/{class_id}/courses", status_code=status.HTTP_201_CREATED)
async def link_course(class_id: UUID, payload: CourseLink, db: AsyncSession = Depends(get_db)):
    try:
        await service.link_course(db, class_id, payload.course_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"class_id": class_id, "course_id": payload.course_id}


@admin_router.delete("/{class_id}/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink_course(class_id: UUID, course_id: UUID, db: AsyncSession = Depends(get_db)) -> None:
    if not await service.remove_member(db, ClassCourse, ClassCourse.course_id, class_id, course_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course is not linked to this class")


@teacher_router.get("", response_model=List[TeacherClassResponse])
async def list_my_classes(
    q: Optional[str] = Query(None, description="Filter by name or description"),
    db: AsyncSession = Depends(get_db),
    sessions: async_sessionmaker = Depends(get_session_factory),
    teacher: Identity = Depends(require_teacher),
) -> List[TeacherClassResponse]:
    try:
        return await service.list_teacher_classes(db, sessions, teacher.id, q=q)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.get("", response_model=List[StudentClassResponse])
async def list_enrolled_classes(
    db: AsyncSession = Depends(get_db),
    sessions: async_sessionmaker = Depends(get_session_factory),
    student: Identity = Depends(require_student),
) -> List[StudentClassResponse]:
    try:
        return await service.list_student_classes(db, sessions, student.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.auth.rbac import require_admin, require_student, require_teacher
from schoolhub.auth.schemas import Identity
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db, get_session_factory

from .schemas import AdminDashboard, StudentDashboard, TeacherDashboard
from . import service

admin_router = APIRouter(prefix="/admin", tags=["admin"])
teacher_router = APIRouter(prefix="/teacher", tags=["teacher"])
student_router = APIRouter(prefix="/student", tags=["student"])


@admin_router.get("", response_model=AdminDashboard)
async def admin_home(
    sessions: async_sessionmaker = Depends(get_session_factory),
    admin: Identity = Depends(require_admin),
) -> AdminDashboard:
    try:
        return await service.admin_dashboard(sessions)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@teacher_router.get("", response_model=TeacherDashboard)
async def teacher_home(
    db: AsyncSession = Depends(get_db),
    sessions: async_sessionmaker = Depends(get_session_factory),
    teacher: Identity = Depends(require_teacher),
) -> TeacherDashboard:
    try:
        return await service.teacher_dashboard(db, sessions, teacher.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.get("", response_model=StudentDashboard)
async def student_home(
    db: AsyncSession = Depends(get_db),
    student: Identity = Depends(require_student),
) -> StudentDashboard:
    try:
        return await service.student_dashboard(db, student.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

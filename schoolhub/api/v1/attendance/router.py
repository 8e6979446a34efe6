from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.rbac import require_student, require_teacher
from schoolhub.auth.schemas import Identity
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db

from .schemas import AttendanceBatch, AttendanceSaveResult, RosterResponse, StudentAttendanceView
from . import service

teacher_router = APIRouter(prefix="/teacher/attendance", tags=["teacher"])
student_router = APIRouter(prefix="/student/attendance", tags=["student"])


@teacher_router.get("", response_model=RosterResponse)
async def get_roster(
    class_id: UUID = Query(...),
    att_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    teacher: Identity = Depends(require_teacher),
) -> RosterResponse:
    try:
        return await service.get_roster(db, teacher.id, class_id, att_date or date.today())
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@teacher_router.post("", response_model=AttendanceSaveResult, status_code=status.HTTP_200_OK)
async def save_attendance(
    payload: AttendanceBatch,
    db: AsyncSession = Depends(get_db),
    teacher: Identity = Depends(require_teacher),
) -> AttendanceSaveResult:
    try:
        return await service.save_attendance(db, teacher.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.get("", response_model=StudentAttendanceView)
async def get_my_attendance(
    class_id: str = Query("all", description="A class id, or 'all'"),
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the current month"),
    page: int = Query(1, ge=1),
    db: AsyncSession = Depends(get_db),
    student: Identity = Depends(require_student),
) -> StudentAttendanceView:
    if class_id == "all":
        class_filter = None
    else:
        try:
            class_filter = UUID(class_id)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid class id")
    try:
        return await service.get_student_attendance(db, student.id, class_filter, month, page)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schoolhub.auth.rbac import require_student, require_teacher
from schoolhub.auth.schemas import Identity
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db, get_session_factory

from .schemas import (
    AssignmentCreate,
    AssignmentResponse,
    StudentAssignmentItem,
    SubmissionCreate,
    SubmissionResponse,
    TeacherAssignmentsView,
)
from . import service

teacher_router = APIRouter(prefix="/teacher/assignments", tags=["teacher"])
student_router = APIRouter(prefix="/student/assignments", tags=["student"])


@teacher_router.get("", response_model=TeacherAssignmentsView)
async def list_my_assignments(
    db: AsyncSession = Depends(get_db),
    teacher: Identity = Depends(require_teacher),
) -> TeacherAssignmentsView:
    try:
        return await service.list_teacher_assignments(db, teacher.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@teacher_router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    payload: AssignmentCreate,
    db: AsyncSession = Depends(get_db),
    teacher: Identity = Depends(require_teacher),
) -> AssignmentResponse:
    try:
        return await service.create_assignment(db, teacher.id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.get("", response_model=List[StudentAssignmentItem])
async def list_my_assignments_as_student(
    db: AsyncSession = Depends(get_db),
    sessions: async_sessionmaker = Depends(get_session_factory),
    student: Identity = Depends(require_student),
) -> List[StudentAssignmentItem]:
    try:
        return await service.list_student_assignments(db, sessions, student.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@student_router.post("/{assignment_id}/submission", response_model=SubmissionResponse)
async def submit_assignment(
    assignment_id: UUID,
    payload: SubmissionCreate,
    db: AsyncSession = Depends(get_db),
    student: Identity = Depends(require_student),
) -> SubmissionResponse:
    """Creates the submission on first call; later calls update it in place."""
    try:
        return await service.submit_assignment(db, student.id, assignment_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from schoolhub.api.v1.users.schemas import ClassSummary
from schoolhub.core.aggregates import AttendanceStats
from schoolhub.core.enums import AttendanceStatus

PAGE_SIZE = 10


# ----- Teacher -----
class AttendanceMark(BaseModel):
    student_id: UUID
    status: AttendanceStatus


class AttendanceBatch(BaseModel):
    """One class, one day, one status per student."""

    class_id: UUID
    date: date
    records: List[AttendanceMark] = Field(..., min_length=1)


class AttendanceSaveResult(BaseModel):
    saved: int
    created: int
    updated: int


class RosterEntry(BaseModel):
    student_id: UUID
    first_name: str
    last_name: str
    email: EmailStr
    status: AttendanceStatus = AttendanceStatus.PRESENT
    record_id: Optional[UUID] = None  # set when attendance was already taken


class RosterResponse(BaseModel):
    class_id: UUID
    date: date
    students: List[RosterEntry] = []


# ----- Student -----
class StudentAttendanceRecord(BaseModel):
    id: UUID
    class_id: UUID
    class_name: Optional[str] = None
    date: date
    status: AttendanceStatus


class StudentAttendanceView(BaseModel):
    month: str
    class_id: Optional[UUID] = None  # None means all classes
    records: List[StudentAttendanceRecord] = []
    stats: AttendanceStats
    page: int
    total_pages: int
    total_records: int
    classes: List[ClassSummary] = []

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolhub.api.v1.users.schemas import CourseSummary, PersonSummary


class ClassCreate(BaseModel):
    name: str = Field(..., max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    description: Optional[str] = None


class ClassResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    year: int
    created_at: datetime

    class Config:
        from_attributes = True


class AdminClassResponse(ClassResponse):
    teacher_count: int = 0
    student_count: int = 0
    course_count: int = 0


class ClassDetailResponse(ClassResponse):
    teachers: List[PersonSummary] = []
    students: List[PersonSummary] = []
    courses: List[CourseSummary] = []


class TeacherClassResponse(ClassResponse):
    student_count: int = 0
    assignment_count: int = 0  # this teacher's assignments only
    courses: List[CourseSummary] = []


class StudentClassResponse(ClassResponse):
    assignment_count: int = 0
    courses: List[CourseSummary] = []
    teachers: List[PersonSummary] = []


class TeacherAdd(BaseModel):
    teacher_id: UUID


class StudentAdd(BaseModel):
    student_id: UUID


class CourseLink(BaseModel):
    course_id: UUID

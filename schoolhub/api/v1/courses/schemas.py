from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CourseCreate(BaseModel):
    title: str = Field("", max_length=200)
    description: str = ""


class CourseResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TeacherCourseResponse(CourseResponse):
    class_count: int = 0
    student_count: int = 0  # distinct students across the course's classes
    assignment_count: int = 0

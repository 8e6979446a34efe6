from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SystemSettingsUpdate(BaseModel):
    allow_student_registration: bool = True
    allow_teacher_registration: bool = True
    max_students_per_course: int = Field(30, ge=1)
    max_courses_per_teacher: int = Field(5, ge=1)
    system_name: str = Field("Learning Management System", min_length=1, max_length=255)
    system_email: str = Field("admin@example.com", max_length=255)


class SystemSettingsResponse(SystemSettingsUpdate):
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

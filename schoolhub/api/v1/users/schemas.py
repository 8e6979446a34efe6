from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from schoolhub.auth.schemas import SignUpRequest
from schoolhub.core.enums import UserRole


class UserResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: EmailStr
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True


class UserCreate(SignUpRequest):
    """Admin-side account creation; any role."""


class RegisterRequest(SignUpRequest):
    """Self-service style registration form: only students and teachers."""

    @field_validator("role")
    @classmethod
    def role_must_be_student_or_teacher(cls, v: UserRole) -> UserRole:
        if v not in (UserRole.STUDENT, UserRole.TEACHER):
            raise ValueError("Role must be student or teacher")
        return v


class PersonCreate(BaseModel):
    """Create a teacher or student from its dedicated admin page; role is implied by the page."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)


class PersonSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: EmailStr

    class Config:
        from_attributes = True


class CourseSummary(BaseModel):
    id: UUID
    title: str

    class Config:
        from_attributes = True


class ClassSummary(BaseModel):
    id: UUID
    name: str
    year: int

    class Config:
        from_attributes = True


class TeacherResponse(UserResponse):
    courses: List[CourseSummary] = []


class StudentResponse(UserResponse):
    classes: List[ClassSummary] = []


class CourseAssign(BaseModel):
    course_id: UUID


class ClassEnroll(BaseModel):
    class_id: UUID

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolhub.api.v1.users.schemas import ClassSummary, CourseSummary
from schoolhub.core.enums import SubmissionStatus


class AssignmentCreate(BaseModel):
    title: str = Field("", max_length=255)
    description: Optional[str] = None
    class_id: UUID
    course_id: UUID
    due_date: datetime
    total_marks: int = 100


class AssignmentResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    class_id: UUID
    course_id: UUID
    teacher_id: UUID
    due_date: datetime
    total_marks: int
    created_at: datetime

    class Config:
        from_attributes = True


class TeacherAssignmentItem(AssignmentResponse):
    class_name: Optional[str] = None
    course_title: Optional[str] = None


class TeacherAssignmentsView(BaseModel):
    """Assignment list plus the select options for the create form."""

    assignments: List[TeacherAssignmentItem] = []
    classes: List[ClassSummary] = []
    courses: List[CourseSummary] = []


class SubmissionCreate(BaseModel):
    submission_text: Optional[str] = None
    submission_url: Optional[str] = Field(None, max_length=1000)


class SubmissionResponse(BaseModel):
    id: UUID
    assignment_id: UUID
    student_id: UUID
    submission_text: Optional[str] = None
    submission_url: Optional[str] = None
    status: SubmissionStatus
    marks: Optional[int] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class StudentAssignmentItem(AssignmentResponse):
    class_name: Optional[str] = None
    course_title: Optional[str] = None
    submission: Optional[SubmissionResponse] = None

"""Dashboard cards. Counter names are serialized in the camelCase the dashboard pages read."""

from typing import List

from pydantic import BaseModel, Field

from schoolhub.api.v1.assignments.schemas import AssignmentResponse
from schoolhub.api.v1.classes.schemas import ClassResponse


class AdminDashboard(BaseModel):
    total_students: int = Field(0, serialization_alias="totalStudents")
    total_teachers: int = Field(0, serialization_alias="totalTeachers")
    total_classes: int = Field(0, serialization_alias="totalClasses")
    total_courses: int = Field(0, serialization_alias="totalCourses")


class TeacherDashboard(BaseModel):
    total_classes: int = Field(0, serialization_alias="totalClasses")
    total_courses: int = Field(0, serialization_alias="totalCourses")
    total_assignments: int = Field(0, serialization_alias="totalAssignments")
    total_attendance_today: int = Field(0, serialization_alias="totalAttendanceToday")
    upcoming_assignments: List[AssignmentResponse] = Field([], serialization_alias="upcomingAssignments")
    recent_classes: List[ClassResponse] = Field([], serialization_alias="recentClasses")


class StudentDashboard(BaseModel):
    total_classes: int = Field(0, serialization_alias="totalClasses")
    total_assignments: int = Field(0, serialization_alias="totalAssignments")
    submitted_assignments: int = Field(0, serialization_alias="submittedAssignments")
    pending_assignments: int = Field(0, serialization_alias="pendingAssignments")
    upcoming_assignments: List[AssignmentResponse] = Field([], serialization_alias="upcomingAssignments")

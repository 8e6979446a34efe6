"""Assignments and student submissions."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from schoolhub.db.session import Base


class Assignment(Base):
    """Created by a teacher for exactly one class and one course."""

    __tablename__ = "assignments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    total_marks = Column(Integer, nullable=False, default=100)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class AssignmentSubmission(Base):
    """At most one submission per (assignment, student)."""

    __tablename__ = "assignment_submissions"
    __table_args__ = (
        UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    assignment_id = Column(Uuid(as_uuid=True), ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    submission_text = Column(Text, nullable=True)
    submission_url = Column(String(1000), nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending | submitted | graded
    marks = Column(Integer, nullable=True)  # NULL until graded
    feedback = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

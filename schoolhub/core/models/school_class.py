"""Classes and their membership tables. Model named SchoolClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from schoolhub.db.session import Base


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    year = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassTeacher(Base):
    """Class ↔ teacher assignment."""

    __tablename__ = "class_teachers"

    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    assigned_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassStudent(Base):
    """Class ↔ student enrollment."""

    __tablename__ = "class_students"

    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    enrolled_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ClassCourse(Base):
    """Class ↔ course junction."""

    __tablename__ = "class_courses"

    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True)
    course_id = Column(Uuid(as_uuid=True), ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True)

"""Single-row system settings edited from the admin settings page."""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from schoolhub.db.session import Base

SETTINGS_ROW_ID = 1


class SystemSettings(Base):
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, default=SETTINGS_ROW_ID)
    allow_student_registration = Column(Boolean, nullable=False, default=True)
    allow_teacher_registration = Column(Boolean, nullable=False, default=True)
    max_students_per_course = Column(Integer, nullable=False, default=30)
    max_courses_per_teacher = Column(Integer, nullable=False, default=5)
    system_name = Column(String(255), nullable=False, default="Learning Management System")
    system_email = Column(String(255), nullable=False, default="admin@example.com")
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

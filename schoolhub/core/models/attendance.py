import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid

from schoolhub.db.session import Base


class AttendanceRecord(Base):
    """Student attendance: one per student per class per day."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("student_id", "class_id", "date", name="uq_attendance_student_class_date"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)  # present | absent | late
    marked_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

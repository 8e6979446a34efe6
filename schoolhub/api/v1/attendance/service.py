"""Attendance taking for teachers and the monthly attendance report for students."""

import calendar
import logging
import math
from datetime import date
from typing import Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.api.v1.classes.service import class_ids_for_student, classes_by_ids, student_ids_in_class
from schoolhub.api.v1.users.schemas import ClassSummary
from schoolhub.auth.models import User
from schoolhub.core.aggregates import summarize_attendance
from schoolhub.core.enums import AttendanceStatus
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.fetcher import index_by
from schoolhub.core.models import AttendanceRecord, ClassStudent, ClassTeacher

from .schemas import (
    PAGE_SIZE,
    AttendanceBatch,
    AttendanceMark,
    AttendanceSaveResult,
    RosterEntry,
    RosterResponse,
    StudentAttendanceRecord,
    StudentAttendanceView,
)

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Could not save attendance records. Please try again."


async def _ensure_teaches(db: AsyncSession, teacher_id: UUID, class_id: UUID) -> None:
    if not await db.get(ClassTeacher, (class_id, teacher_id)):
        raise ServiceError("You can only take attendance for your own classes", status.HTTP_403_FORBIDDEN)


# ----- Teacher -----
async def get_roster(db: AsyncSession, teacher_id: UUID, class_id: UUID, att_date: date) -> RosterResponse:
    await _ensure_teaches(db, teacher_id, class_id)
    result = await db.execute(
        select(User)
        .join(ClassStudent, ClassStudent.student_id == User.id)
        .where(ClassStudent.class_id == class_id)
        .order_by(User.last_name, User.first_name)
    )
    students = result.scalars().all()
    existing = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.class_id == class_id,
            AttendanceRecord.date == att_date,
        )
    )
    records = index_by(existing.scalars().all(), lambda r: r.student_id)
    entries = []
    for s in students:
        record = records.get(s.id)
        entries.append(
            RosterEntry(
                student_id=s.id,
                first_name=s.first_name,
                last_name=s.last_name,
                email=s.email,
                status=record.status if record else AttendanceStatus.PRESENT,
                record_id=record.id if record else None,
            )
        )
    return RosterResponse(class_id=class_id, date=att_date, students=entries)


async def upsert_attendance_record(
    db: AsyncSession,
    teacher_id: UUID,
    class_id: UUID,
    att_date: date,
    mark: AttendanceMark,
) -> bool:
    """Create-or-update the (student, class, date) record and commit it. True when a row was created."""
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.student_id == mark.student_id,
            AttendanceRecord.class_id == class_id,
            AttendanceRecord.date == att_date,
        )
    )
    record = result.scalar_one_or_none()
    created = record is None
    if created:
        record = AttendanceRecord(student_id=mark.student_id, class_id=class_id, date=att_date)
        db.add(record)
    record.status = mark.status.value
    record.marked_by = teacher_id
    await db.commit()
    return created


async def save_attendance(db: AsyncSession, teacher_id: UUID, payload: AttendanceBatch) -> AttendanceSaveResult:
    """
    Save one status per student, one record at a time.

    Each record is committed on its own: a failure part-way leaves the earlier
    records saved and the teacher can simply save again.
    """
    await _ensure_teaches(db, teacher_id, payload.class_id)
    enrolled = set(await student_ids_in_class(db, payload.class_id))
    strangers = [m.student_id for m in payload.records if m.student_id not in enrolled]
    if strangers:
        raise ServiceError("Some students are not enrolled in this class", status.HTTP_400_BAD_REQUEST)

    created = updated = 0
    for mark in payload.records:
        try:
            if await upsert_attendance_record(db, teacher_id, payload.class_id, payload.date, mark):
                created += 1
            else:
                updated += 1
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception(
                "Attendance save stopped at student %s (class %s, %s)",
                mark.student_id,
                payload.class_id,
                payload.date,
            )
            raise ServiceError(SAVE_FAILED_MESSAGE) from e
    logger.info(
        "Teacher %s saved attendance for class %s on %s: %d created, %d updated",
        teacher_id,
        payload.class_id,
        payload.date,
        created,
        updated,
    )
    return AttendanceSaveResult(saved=created + updated, created=created, updated=updated)


# ----- Student -----
def parse_month(month: Optional[str]) -> Tuple[str, date, date]:
    """``YYYY-MM`` (default: this month) to its first and last day."""
    if not month:
        today = date.today()
        month = f"{today.year:04d}-{today.month:02d}"
    try:
        year_str, month_str = month.split("-")
        year, month_no = int(year_str), int(month_str)
        first = date(year, month_no, 1)
    except ValueError as e:
        raise ServiceError("Month must be in YYYY-MM format", status.HTTP_400_BAD_REQUEST) from e
    last = date(year, month_no, calendar.monthrange(year, month_no)[1])
    return month, first, last


async def get_student_attendance(
    db: AsyncSession,
    student_id: UUID,
    class_id: Optional[UUID] = None,
    month: Optional[str] = None,
    page: int = 1,
) -> StudentAttendanceView:
    month, first, last = parse_month(month)
    try:
        class_ids = await class_ids_for_student(db, student_id)
        classes = await classes_by_ids(db, class_ids) if class_ids else []
        stmt = select(AttendanceRecord).where(
            AttendanceRecord.student_id == student_id,
            AttendanceRecord.date >= first,
            AttendanceRecord.date <= last,
        )
        if class_id is not None:
            stmt = stmt.where(AttendanceRecord.class_id == class_id)
        result = await db.execute(stmt.order_by(AttendanceRecord.date.desc()))
        records = result.scalars().all()
        # Records may outlive an enrollment; names still resolve through their class rows
        missing = list({r.class_id for r in records} - set(class_ids))
        named_classes = list(classes)
        if missing:
            named_classes.extend(await classes_by_ids(db, missing))
    except SQLAlchemyError as e:
        logger.exception("Failed to load attendance for student %s", student_id)
        raise ServiceError("Failed to load attendance records") from e

    names = {c.id: c.name for c in named_classes}
    total_pages = math.ceil(len(records) / PAGE_SIZE)
    start = (page - 1) * PAGE_SIZE
    page_rows = records[start:start + PAGE_SIZE]
    return StudentAttendanceView(
        month=month,
        class_id=class_id,
        records=[
            StudentAttendanceRecord(
                id=r.id,
                class_id=r.class_id,
                class_name=names.get(r.class_id),
                date=r.date,
                status=r.status,
            )
            for r in page_rows
        ],
        stats=summarize_attendance(records),
        page=page,
        total_pages=total_pages,
        total_records=len(records),
        classes=[ClassSummary.model_validate(c) for c in classes],
    )

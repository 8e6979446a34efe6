"""Single-row system settings: read with defaults, write as an upsert."""

import logging

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.core.enums import UserRole
from schoolhub.core.exceptions import ServiceError
from schoolhub.core.models import SETTINGS_ROW_ID, SystemSettings

from .schemas import SystemSettingsResponse, SystemSettingsUpdate

logger = logging.getLogger(__name__)


async def get_settings(db: AsyncSession) -> SystemSettingsResponse:
    row = await db.get(SystemSettings, SETTINGS_ROW_ID)
    if row is None:
        return SystemSettingsResponse()
    return SystemSettingsResponse.model_validate(row)


async def save_settings(db: AsyncSession, payload: SystemSettingsUpdate) -> SystemSettingsResponse:
    row = await db.get(SystemSettings, SETTINGS_ROW_ID)
    if row is None:
        row = SystemSettings(id=SETTINGS_ROW_ID)
        db.add(row)
    for field, value in payload.model_dump().items():
        setattr(row, field, value)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to save system settings")
        raise ServiceError("Failed to save settings") from e
    await db.refresh(row)
    logger.info("System settings updated")
    return SystemSettingsResponse.model_validate(row)


async def ensure_registration_open(db: AsyncSession, role: UserRole) -> None:
    """Registration switches only gate students and teachers; admins can always be created."""
    current = await get_settings(db)
    if role == UserRole.STUDENT and not current.allow_student_registration:
        raise ServiceError("Student registration is disabled", status.HTTP_403_FORBIDDEN)
    if role == UserRole.TEACHER and not current.allow_teacher_registration:
        raise ServiceError("Teacher registration is disabled", status.HTTP_403_FORBIDDEN)

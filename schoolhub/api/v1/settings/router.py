from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.rbac import require_admin
from schoolhub.core.exceptions import ServiceError
from schoolhub.db.session import get_db

from .schemas import SystemSettingsResponse, SystemSettingsUpdate
from . import service

router = APIRouter(prefix="/admin/settings", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("", response_model=SystemSettingsResponse)
async def get_settings(db: AsyncSession = Depends(get_db)) -> SystemSettingsResponse:
    return await service.get_settings(db)


@router.put("", response_model=SystemSettingsResponse)
async def update_settings(
    payload: SystemSettingsUpdate,
    db: AsyncSession = Depends(get_db),
) -> SystemSettingsResponse:
    try:
        return await service.save_settings(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

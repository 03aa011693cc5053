"""Device registration API endpoints for push notifications."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user
from ..database import get_db
from ..models import Device, User
from ..schemas.device import (
    DeviceRegisterRequest,
    DeviceUpdateRequest,
    DeviceResponse,
    DeviceEnvelope,
    DeviceListResponse,
    DeviceLookupResponse,
)
from ..services.device_registry import upsert_device
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/device", tags=["device"])


@router.post("", response_model=DeviceEnvelope)
async def register_device(
    request: DeviceRegisterRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Register a device for push notifications.

    If the user already registered this token, the row is updated instead.
    The app should call this on every launch to keep the token current.
    """
    device, created = await upsert_device(
        db,
        user_id=user.id,
        device_token=request.device_token,
        device_name=request.device_name,
        device_model=request.device_model,
        os_version=request.os_version,
        app_version=request.app_version,
    )

    return DeviceEnvelope(
        device=DeviceResponse.model_validate(device),
        message="Device registered successfully" if created else "Device updated successfully",
    )


@router.get("", response_model=DeviceListResponse | DeviceLookupResponse)
async def get_devices(
    device_token: Optional[str] = Query(None, alias="deviceToken"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's devices, or check whether one token is registered."""
    if not device_token:
        result = await db.execute(
            select(Device).where(Device.user_id == user.id).order_by(Device.created_at)
        )
        devices = result.scalars().all()
        return DeviceListResponse(devices=[DeviceResponse.model_validate(d) for d in devices])

    result = await db.execute(
        select(Device).where(
            Device.user_id == user.id,
            Device.device_token == device_token,
        )
    )
    device = result.scalar_one_or_none()

    return DeviceLookupResponse(
        exists=device is not None,
        device=DeviceResponse.model_validate(device) if device else None,
    )


@router.patch("", response_model=DeviceEnvelope)
async def update_device(
    request: DeviceUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a device's metadata and mark it active."""
    result = await db.execute(
        select(Device).where(Device.id == request.device_id, Device.user_id == user.id)
    )
    device = result.scalar_one_or_none()

    if not device:
        raise HTTPException(status_code=404, detail="Device not found")

    if request.device_name:
        device.device_name = request.device_name
    if request.device_model:
        device.device_model = request.device_model
    if request.os_version:
        device.os_version = request.os_version
    if request.app_version:
        device.app_version = request.app_version

    now = datetime.utcnow()
    device.last_active_at = now
    device.updated_at = now

    await retry_on_lock(db.commit)
    await db.refresh(device)

    return DeviceEnvelope(
        device=DeviceResponse.model_validate(device),
        message="Device updated successfully",
    )

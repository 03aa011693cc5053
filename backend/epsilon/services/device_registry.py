"""Device registration: upsert of push tokens per user."""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Device
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_NAME = "Android Device"


def _touch(device: Device, **fields):
    """Overwrite the given non-empty fields and mark the device active."""
    for name, value in fields.items():
        if value:
            setattr(device, name, value)
    now = datetime.utcnow()
    device.last_active_at = now
    device.updated_at = now


async def _find_device(session: AsyncSession, user_id: str, device_token: str) -> Optional[Device]:
    result = await session.execute(
        select(Device).where(
            Device.user_id == user_id,
            Device.device_token == device_token,
        )
    )
    return result.scalar_one_or_none()


async def _refresh_existing(session: AsyncSession, existing: Device, **fields) -> Device:
    _touch(existing, **fields)
    await retry_on_lock(session.commit)
    await session.refresh(existing)
    logger.info(f"Device token updated: {existing.device_token[:16]}...")
    return existing


async def upsert_device(
    session: AsyncSession,
    user_id: str,
    device_token: str,
    device_name: str,
    device_model: Optional[str] = None,
    os_version: Optional[str] = None,
    app_version: Optional[str] = None,
) -> Tuple[Device, bool]:
    """Create or refresh the device row matching ``(user_id, device_token)``.

    Returns the device and whether it was newly created. A concurrent
    insert of the same pair ends up refreshing the row that won.
    """
    fields = dict(
        device_name=device_name,
        device_model=device_model,
        os_version=os_version,
        app_version=app_version,
    )

    existing = await _find_device(session, user_id, device_token)
    if existing:
        return await _refresh_existing(session, existing, **fields), False

    now = datetime.utcnow()
    device = Device(
        user_id=user_id,
        device_token=device_token,
        last_active_at=now,
        created_at=now,
        updated_at=now,
        **fields,
    )
    session.add(device)

    try:
        await retry_on_lock(session.commit)
    except IntegrityError:
        await session.rollback()
        existing = await _find_device(session, user_id, device_token)
        if existing is None:
            raise
        logger.info(f"Device registered concurrently: {device_token[:16]}...")
        return await _refresh_existing(session, existing, **fields), False

    await session.refresh(device)

    logger.info(f"New device registered: {device_token[:16]}...")
    return device, True


async def register_push_token(
    session: AsyncSession,
    user_id: str,
    fcm_token: str,
    device_name: Optional[str] = None,
    device_model: Optional[str] = None,
    os_version: Optional[str] = None,
    app_version: Optional[str] = None,
) -> Device:
    """Store a (possibly rotated) push token for the user's phone.

    A token already on file is refreshed in place. Otherwise the token
    replaces the one on the user's first registered device, since a phone
    gets a new token on reinstall; a user with no devices gets a new row.
    """
    result = await session.execute(
        select(Device)
        .where(Device.user_id == user_id)
        .order_by(Device.created_at.asc())
    )
    devices = result.scalars().all()

    for device in devices:
        if device.device_token == fcm_token:
            _touch(
                device,
                device_name=device_name,
                device_model=device_model,
                os_version=os_version,
                app_version=app_version,
            )
            await retry_on_lock(session.commit)
            return device

    if devices:
        device = devices[0]
        logger.info(f"Rotating push token for device {device.id}")
        _touch(
            device,
            device_token=fcm_token,
            device_name=device_name,
            device_model=device_model,
            os_version=os_version,
            app_version=app_version,
        )
        await retry_on_lock(session.commit)
        return device

    device, _ = await upsert_device(
        session,
        user_id=user_id,
        device_token=fcm_token,
        device_name=device_name or DEFAULT_DEVICE_NAME,
        device_model=device_model,
        os_version=os_version,
        app_version=app_version,
    )
    return device

"""User profile endpoints: emergency contact and push token."""
import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user
from ..database import get_db
from ..models import Device, User
from ..schemas.user import (
    SuccessResponse,
    EmergencyContactUpdate,
    EmergencyContactData,
    EmergencyContactResponse,
    FcmTokenRequest,
    FcmDeviceSummary,
    FcmTokenListResponse,
)
from ..services.device_registry import register_push_token
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])


@router.get("/emergency-contact", response_model=EmergencyContactResponse)
async def get_emergency_contact(user: User = Depends(get_current_user)):
    """Get the user's emergency contact."""
    return EmergencyContactResponse(
        success=True,
        data=EmergencyContactData(
            emergency_contact_name=user.emergency_contact_name or None,
            emergency_contact_phone=user.emergency_contact_phone or None,
        ),
    )


@router.put("/emergency-contact", response_model=SuccessResponse)
async def update_emergency_contact(
    request: EmergencyContactUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Set the user's emergency contact. The phone number is required."""
    user.emergency_contact_name = request.emergency_contact_name or None
    user.emergency_contact_phone = request.emergency_contact_phone
    user.updated_at = datetime.utcnow()

    await retry_on_lock(db.commit)

    logger.info(f"Emergency contact updated for user {user.id}")
    return SuccessResponse(success=True, message="Emergency contact updated successfully")


@router.post("/fcm-token", response_model=SuccessResponse)
async def update_fcm_token(
    request: FcmTokenRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store the push token the phone generated or refreshed."""
    logger.info(f"Push token update for user {user.id}: {request.fcm_token[:20]}...")

    await register_push_token(
        db,
        user_id=user.id,
        fcm_token=request.fcm_token,
        device_name=request.device_name,
        device_model=request.device_model,
        os_version=request.os_version,
        app_version=request.app_version,
    )

    return SuccessResponse(success=True, message="FCM token updated successfully")


@router.get("/fcm-token", response_model=FcmTokenListResponse)
async def list_fcm_tokens(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the push tokens on file for the user."""
    result = await db.execute(
        select(Device).where(Device.user_id == user.id).order_by(Device.created_at)
    )
    devices = result.scalars().all()

    return FcmTokenListResponse(
        success=True,
        devices=[FcmDeviceSummary.model_validate(d) for d in devices],
    )

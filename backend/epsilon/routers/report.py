"""Emergency report endpoint - fans an emergency call out to the user's phones."""
import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import get_current_user
from ..database import get_db
from ..models import Device, User
from ..schemas.report import ReportRequest, ReportResponse
from ..services.push_sender import push_sender_service, EmergencyPushPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/report", tags=["report"])


@router.post("", response_model=ReportResponse)
async def create_report(
    request: Optional[ReportRequest] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Send an EMERGENCY_CALL push to every device registered by the user.

    Partial delivery is reported through the counts and not retried.
    """
    request = request or ReportRequest()

    result = await db.execute(select(Device).where(Device.user_id == user.id))
    devices = list(result.scalars().all())

    if not devices:
        raise HTTPException(status_code=404, detail="No devices registered for this user")

    payload = EmergencyPushPayload(
        user_id=user.id,
        report_id=request.report_id or str(uuid.uuid4()),
        timestamp=datetime.utcnow().isoformat() + "Z",
        latitude=request.latitude,
        longitude=request.longitude,
    )

    success_count, failure_count = await push_sender_service.send_to_devices(devices, payload)

    if success_count == 0:
        logger.error(f"Emergency report {payload.report_id}: no device reached")
        raise HTTPException(
            status_code=500,
            detail="Failed to send emergency notification to any device",
        )

    if failure_count:
        logger.warning(
            f"Emergency report {payload.report_id}: {failure_count} of {len(devices)} devices not reached"
        )

    return ReportResponse(
        success=True,
        message="Emergency call triggered successfully",
        report_id=payload.report_id,
        devices_notified=success_count,
        total_devices=len(devices),
    )

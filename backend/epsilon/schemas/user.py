"""User emergency-contact and push-token schemas."""
from datetime import datetime
from typing import Optional, List
from pydantic import Field

from .base import CamelModel


class SuccessResponse(CamelModel):
    success: bool
    message: str


class EmergencyContactUpdate(CamelModel):
    emergency_contact_phone: str = Field(..., min_length=1)
    emergency_contact_name: Optional[str] = None


class EmergencyContactData(CamelModel):
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None


class EmergencyContactResponse(CamelModel):
    success: bool
    data: EmergencyContactData


class FcmTokenRequest(CamelModel):
    """Push token sent by the phone when it is generated or refreshed."""
    fcm_token: str = Field(..., min_length=1)
    device_name: Optional[str] = None
    device_model: Optional[str] = None
    os_version: Optional[str] = None
    app_version: Optional[str] = None


class FcmDeviceSummary(CamelModel):
    id: str
    device_token: str
    device_name: str
    device_model: Optional[str] = None
    last_active_at: datetime


class FcmTokenListResponse(CamelModel):
    success: bool
    devices: List[FcmDeviceSummary]

"""Device registration schemas for API."""
from datetime import datetime
from typing import Optional, List
from pydantic import Field

from .base import CamelModel


class DeviceRegisterRequest(CamelModel):
    """Request to register a device for push notifications."""
    device_name: str = Field(..., min_length=1)
    device_token: str = Field(..., min_length=1)
    device_model: Optional[str] = None
    os_version: Optional[str] = None
    app_version: Optional[str] = None


class DeviceUpdateRequest(CamelModel):
    """Request to update a registered device's metadata."""
    device_id: str = Field(..., min_length=1)
    device_name: Optional[str] = None
    device_model: Optional[str] = None
    os_version: Optional[str] = None
    app_version: Optional[str] = None


class DeviceResponse(CamelModel):
    id: str
    user_id: str
    device_name: str
    device_token: str
    device_model: Optional[str] = None
    os_version: Optional[str] = None
    app_version: Optional[str] = None
    last_active_at: datetime
    created_at: datetime
    updated_at: datetime


class DeviceEnvelope(CamelModel):
    device: DeviceResponse
    message: str


class DeviceListResponse(CamelModel):
    devices: List[DeviceResponse]


class DeviceLookupResponse(CamelModel):
    exists: bool
    device: Optional[DeviceResponse] = None

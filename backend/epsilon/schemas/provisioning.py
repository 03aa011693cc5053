"""Payloads exchanged with the ESP32 configuration endpoint."""
from typing import Optional
from pydantic import BaseModel, Field


class ConfigureRequest(BaseModel):
    """Body of ``POST /configure`` on the device."""
    token: str
    wifi_ssid: str = Field(..., alias="wifiSSID")
    wifi_password: str = Field(..., alias="wifiPassword")

    class Config:
        populate_by_name = True


class ConfigureResponse(BaseModel):
    """Device reply to a configuration request."""
    success: bool
    message: str
    device_id: Optional[str] = Field(None, alias="deviceId")

    class Config:
        populate_by_name = True
        extra = "ignore"


class DeviceInfo(BaseModel):
    """Device reply to ``GET /``."""
    device_id: str = Field(..., alias="deviceId")
    device_name: str = Field(..., alias="deviceName")
    status: str
    version: str

    class Config:
        populate_by_name = True
        extra = "ignore"

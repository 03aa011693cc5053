"""Emergency report schemas."""
from typing import Optional
from pydantic import Field

from .base import CamelModel


class ReportRequest(CamelModel):
    """Optional context sent with an emergency report."""
    report_id: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ReportResponse(CamelModel):
    success: bool
    message: str
    report_id: str
    devices_notified: int
    total_devices: int

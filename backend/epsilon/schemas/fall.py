"""Fall event schemas."""
from datetime import datetime
from typing import Optional, List
from pydantic import field_validator

from .base import CamelModel, to_naive_utc


class FallCreate(CamelModel):
    """A fall event posted by the wearable."""
    is_fall: bool = True
    detected_at: Optional[datetime] = None

    @field_validator("detected_at")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class FallResponse(CamelModel):
    id: str
    user_id: str
    is_fall: bool
    detected_at: datetime


class FallEnvelope(CamelModel):
    fall: FallResponse
    listeners: int


class FallListResponse(CamelModel):
    falls: List[FallResponse]

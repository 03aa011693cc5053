"""Emergency action schemas for API."""
from datetime import datetime
from typing import Optional, List
from pydantic import Field

from .base import CamelModel

ACTION_TYPE_PATTERN = "^(call|message|alarm)$"


class EmergencyActionCreate(CamelModel):
    """Schema for creating an emergency action."""
    action_type: str = Field(..., pattern=ACTION_TYPE_PATTERN)
    action_data: str = Field(..., min_length=1)
    priority: int = Field(default=1, ge=1)
    is_enabled: bool = True


class EmergencyActionUpdate(CamelModel):
    """Schema for updating an emergency action."""
    action_type: Optional[str] = Field(None, pattern=ACTION_TYPE_PATTERN)
    action_data: Optional[str] = Field(None, min_length=1)
    priority: Optional[int] = Field(None, ge=1)
    is_enabled: Optional[bool] = None


class EmergencyActionResponse(CamelModel):
    id: str
    user_id: str
    action_type: str
    action_data: str
    priority: int
    is_enabled: bool
    created_at: datetime
    updated_at: datetime


class EmergencyActionEnvelope(CamelModel):
    action: EmergencyActionResponse
    message: Optional[str] = None


class EmergencyActionListResponse(CamelModel):
    actions: List[EmergencyActionResponse]

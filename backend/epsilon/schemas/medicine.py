"""Medicine and medicine-log schemas for API."""
from datetime import datetime
from typing import Optional, List
from pydantic import Field, field_validator

from .base import CamelModel, to_naive_utc


class MedicineCreate(CamelModel):
    """Schema for creating a medicine."""
    name: str = Field(..., min_length=1, max_length=255)
    dosage: str = Field(..., min_length=1, max_length=255)
    frequency: str = Field(..., min_length=1, max_length=100)
    time: str = Field(..., min_length=1)  # "08:00,14:00,20:00"
    start_date: datetime
    end_date: Optional[datetime] = None
    notes: Optional[str] = None
    reminder_enabled: bool = True

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class MedicineReplace(MedicineCreate):
    """Schema for replacing every field of a medicine (PUT)."""
    is_active: bool = True


class MedicineUpdate(CamelModel):
    """Schema for partially updating a medicine (PATCH)."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    dosage: Optional[str] = Field(None, min_length=1, max_length=255)
    frequency: Optional[str] = Field(None, min_length=1, max_length=100)
    time: Optional[str] = Field(None, min_length=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    reminder_enabled: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class MedicineResponse(CamelModel):
    """Schema for a medicine in API responses."""
    id: str
    user_id: str
    name: str
    dosage: str
    frequency: str
    time: str
    start_date: datetime
    end_date: Optional[datetime] = None
    notes: Optional[str] = None
    is_active: bool
    reminder_enabled: bool
    created_at: datetime
    updated_at: datetime


class MedicineEnvelope(CamelModel):
    medicine: MedicineResponse
    message: Optional[str] = None


class MedicineListResponse(CamelModel):
    medicines: List[MedicineResponse]


class MedicineLogCreate(CamelModel):
    """Schema for recording a dose."""
    scheduled_for: datetime
    taken_at: Optional[datetime] = None
    status: str = Field(..., min_length=1, max_length=32)  # taken, missed, skipped
    notes: Optional[str] = None

    @field_validator("scheduled_for", "taken_at")
    @classmethod
    def normalize_dates(cls, value):
        return to_naive_utc(value)


class MedicineLogResponse(CamelModel):
    id: str
    medicine_id: str
    user_id: str
    taken_at: datetime
    scheduled_for: datetime
    status: str
    notes: Optional[str] = None
    created_at: datetime


class MedicineLogEnvelope(CamelModel):
    log: MedicineLogResponse
    message: str


class MedicineLogListResponse(CamelModel):
    logs: List[MedicineLogResponse]

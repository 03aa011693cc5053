"""Pydantic schemas for API request/response models."""
from .base import CamelModel
from .medicine import (
    MedicineCreate,
    MedicineReplace,
    MedicineUpdate,
    MedicineResponse,
    MedicineEnvelope,
    MedicineListResponse,
    MedicineLogCreate,
    MedicineLogResponse,
    MedicineLogEnvelope,
    MedicineLogListResponse,
)
from .emergency_action import (
    EmergencyActionCreate,
    EmergencyActionUpdate,
    EmergencyActionResponse,
    EmergencyActionEnvelope,
    EmergencyActionListResponse,
)
from .device import (
    DeviceRegisterRequest,
    DeviceUpdateRequest,
    DeviceResponse,
    DeviceEnvelope,
    DeviceListResponse,
    DeviceLookupResponse,
)
from .user import (
    SuccessResponse,
    EmergencyContactUpdate,
    EmergencyContactData,
    EmergencyContactResponse,
    FcmTokenRequest,
    FcmDeviceSummary,
    FcmTokenListResponse,
)
from .report import ReportRequest, ReportResponse
from .fall import FallCreate, FallResponse, FallEnvelope, FallListResponse
from .provisioning import ConfigureRequest, ConfigureResponse, DeviceInfo

__all__ = [
    "CamelModel",
    "MedicineCreate",
    "MedicineReplace",
    "MedicineUpdate",
    "MedicineResponse",
    "MedicineEnvelope",
    "MedicineListResponse",
    "MedicineLogCreate",
    "MedicineLogResponse",
    "MedicineLogEnvelope",
    "MedicineLogListResponse",
    "EmergencyActionCreate",
    "EmergencyActionUpdate",
    "EmergencyActionResponse",
    "EmergencyActionEnvelope",
    "EmergencyActionListResponse",
    "DeviceRegisterRequest",
    "DeviceUpdateRequest",
    "DeviceResponse",
    "DeviceEnvelope",
    "DeviceListResponse",
    "DeviceLookupResponse",
    "SuccessResponse",
    "EmergencyContactUpdate",
    "EmergencyContactData",
    "EmergencyContactResponse",
    "FcmTokenRequest",
    "FcmDeviceSummary",
    "FcmTokenListResponse",
    "ReportRequest",
    "ReportResponse",
    "FallCreate",
    "FallResponse",
    "FallEnvelope",
    "FallListResponse",
    "ConfigureRequest",
    "ConfigureResponse",
    "DeviceInfo",
]

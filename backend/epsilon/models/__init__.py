"""Database models."""
from .user import User, AuthSession
from .device import Device
from .medicine import Medicine
from .medicine_log import MedicineLog
from .emergency_action import EmergencyAction, ACTION_TYPES
from .fall import Fall

__all__ = [
    "User",
    "AuthSession",
    "Device",
    "Medicine",
    "MedicineLog",
    "EmergencyAction",
    "ACTION_TYPES",
    "Fall",
]

"""Services for push delivery, fall events, provisioning and the companion runtime."""
from .push_sender import PushSenderService
from .realtime import FallChannelManager
from .alarm_scheduler import MedicationAlarmScheduler
from .wifi_provisioner import WiFiProvisioner
from .ble_provisioner import BleProvisioner
from .emergency_caller import EmergencyCallManager
from .companion import CompanionService

__all__ = [
    "PushSenderService",
    "FallChannelManager",
    "MedicationAlarmScheduler",
    "WiFiProvisioner",
    "BleProvisioner",
    "EmergencyCallManager",
    "CompanionService",
]

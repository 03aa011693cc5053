"""Errors raised while provisioning a wearable."""


class ProvisioningError(Exception):
    """Base class for provisioning failures shown to the user."""


class PermissionDenied(ProvisioningError):
    """The platform refused WiFi or Bluetooth access."""


class ScanError(ProvisioningError):
    """Scanning for devices failed or found nothing usable."""


class JoinTimeout(ProvisioningError):
    """The device's access point could not be joined in time."""


class DeviceResponseError(ProvisioningError):
    """The device rejected or failed the configuration request."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class BleWriteError(ProvisioningError):
    """The credentials could not be written over BLE."""

"""Bluetooth LE provisioning - write credentials to the wearable's GATT characteristic."""
import json
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError

from ..exceptions import BleWriteError, PermissionDenied, ScanError

logger = logging.getLogger(__name__)

# Service and characteristic exposed by the wearable firmware
SERVICE_UUID = "4fafc201-1fb5-459e-8fcc-c5c9c331914b"
CHARACTERISTIC_UUID = "beb5483e-36e1-4688-b7f5-ea07361b26a8"

BLE_SCAN_SECONDS = 10.0
ESP32_NAME_MARKER = "ESP32"
ESP32_MAC_PREFIX = "B8"


@dataclass
class BleCandidate:
    """A BLE peripheral that looks like a wearable."""
    address: str
    name: str


def is_esp32_candidate(name: Optional[str], address: str) -> bool:
    """Name mentions ESP32, or the MAC carries the vendor prefix."""
    if name and ESP32_NAME_MARKER in name.upper():
        return True
    return address.upper().startswith(ESP32_MAC_PREFIX)


def filter_ble_devices(devices: Iterable) -> List[BleCandidate]:
    """Keep wearable-looking peripherals, one per address."""
    candidates = []
    seen = set()
    for device in devices:
        address = device.address
        if address in seen or not is_esp32_candidate(device.name, address):
            continue
        seen.add(address)
        candidates.append(BleCandidate(address=address, name=device.name or "Unknown"))
    return candidates


def build_credentials_payload(token: str, ssid: str, password: str) -> bytes:
    """Compact UTF-8 JSON the firmware parses: ``{"token","ssid","password"}``."""
    payload = {"token": token, "ssid": ssid, "password": password}
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class BleProvisioner:
    """Scan for wearables over BLE and hand them credentials."""

    def __init__(
        self,
        scan_seconds: float = BLE_SCAN_SECONDS,
        discover: Optional[Callable] = None,
        client_factory: Optional[Callable] = None,
    ):
        self.scan_seconds = scan_seconds
        self._discover = discover or BleakScanner.discover
        self._client_factory = client_factory or BleakClient

    async def scan(self) -> List[BleCandidate]:
        """Run one timed scan.

        Raises:
            PermissionDenied: the adapter refused access
            ScanError: the scan failed
        """
        try:
            devices = await self._discover(timeout=self.scan_seconds)
        except PermissionError as e:
            raise PermissionDenied(f"Bluetooth permissions not granted: {e}") from e
        except BleakError as e:
            raise ScanError(f"BLE scan failed: {e}") from e

        candidates = filter_ble_devices(devices)
        logger.info(f"BLE scan found {len(candidates)} wearable candidate(s)")
        return candidates

    async def send_credentials(self, address: str, token: str, ssid: str, password: str) -> bool:
        """Connect, locate the config characteristic and write the credentials.

        The write completing is the only confirmation; the device sends no
        acknowledgement.
        """
        payload = build_credentials_payload(token, ssid, password)

        try:
            async with self._client_factory(address) as client:
                service = client.services.get_service(SERVICE_UUID)
                if service is None:
                    raise BleWriteError(f"Service {SERVICE_UUID} not found on {address}")

                characteristic = service.get_characteristic(CHARACTERISTIC_UUID)
                if characteristic is None:
                    raise BleWriteError(f"Characteristic {CHARACTERISTIC_UUID} not found on {address}")

                await client.write_gatt_char(characteristic, payload, response=True)
        except BleakError as e:
            logger.error(f"BLE write to {address} failed: {e}")
            raise BleWriteError(f"Failed to write credentials: {e}") from e

        logger.info(f"Credentials written to {address} ({len(payload)} bytes)")
        return True

"""WiFi provisioning - find the wearable's access point, join it, configure it.

The host's WiFi is driven through NetworkManager's ``nmcli``. Any object
with the same async methods as ``NmcliWifiAdapter`` can stand in for it.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from ..exceptions import JoinTimeout, PermissionDenied, ScanError
from ..schemas.provisioning import ConfigureResponse
from .esp32_client import ESP32Client

logger = logging.getLogger(__name__)

ESP32_SSID_PREFIX = "ESP32"

# Fixed waits; the platform gives no completion event we rely on
SCAN_WAIT_SECONDS = 3
JOIN_WAIT_SECONDS = 5

# Permissions nmcli must report as granted before we touch the radio
REQUIRED_PERMISSIONS = (
    "org.freedesktop.NetworkManager.wifi.scan",
    "org.freedesktop.NetworkManager.network-control",
)


@dataclass
class ScanResult:
    """One access point seen by a scan."""
    ssid: str
    bssid: str = ""
    signal: int = 0
    security: str = ""


@dataclass
class ESP32Device:
    """A wearable advertising its configuration access point."""
    name: str
    ssid: str
    signal_strength: int
    is_connected: bool = False
    bssid: str = ""
    capabilities: str = ""


def filter_esp32_networks(results: Iterable[ScanResult]) -> List[ESP32Device]:
    """Keep access points whose SSID starts with ``ESP32`` (any case), one per SSID."""
    devices = []
    seen = set()
    for result in results:
        if not result.ssid.upper().startswith(ESP32_SSID_PREFIX):
            continue
        if result.ssid in seen:
            continue
        seen.add(result.ssid)
        devices.append(
            ESP32Device(
                name=result.ssid.replace("_", " "),
                ssid=result.ssid,
                signal_strength=result.signal,
                bssid=result.bssid,
                capabilities=result.security,
            )
        )
    return devices


def split_terse_line(line: str) -> List[str]:
    """Split an ``nmcli -t`` line on unescaped colons."""
    fields = []
    current = []
    escaped = False
    for char in line:
        if escaped:
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
    fields.append("".join(current))
    return fields


class NmcliWifiAdapter:
    """Host WiFi control through ``nmcli``."""

    def __init__(self, binary: str = "nmcli"):
        self.binary = binary

    async def _run(self, *args: str) -> Tuple[int, str, str]:
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ScanError(f"{self.binary} not found; NetworkManager is required") from e

        stdout, stderr = await process.communicate()
        return process.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")

    async def has_permissions(self) -> bool:
        code, out, _ = await self._run("-t", "-f", "PERMISSION,VALUE", "general", "permissions")
        if code != 0:
            return False

        granted = {}
        for line in out.splitlines():
            fields = split_terse_line(line)
            if len(fields) >= 2:
                granted[fields[0]] = fields[1]

        return all(granted.get(name) in ("yes", "auth") for name in REQUIRED_PERMISSIONS)

    async def start_scan(self) -> bool:
        code, _, err = await self._run("device", "wifi", "rescan")
        if code != 0:
            logger.error(f"WiFi rescan failed: {err.strip()}")
        return code == 0

    async def scan_results(self) -> List[ScanResult]:
        code, out, err = await self._run(
            "-t", "-f", "SSID,BSSID,SIGNAL,SECURITY", "device", "wifi", "list", "--rescan", "no"
        )
        if code != 0:
            raise ScanError(f"Failed to read scan results: {err.strip()}")

        results = []
        for line in out.splitlines():
            fields = split_terse_line(line)
            if len(fields) < 4 or not fields[0]:
                continue
            try:
                signal = int(fields[2])
            except ValueError:
                signal = 0
            results.append(ScanResult(ssid=fields[0], bssid=fields[1], signal=signal, security=fields[3]))
        return results

    async def connect(self, ssid: str) -> bool:
        """Ask NetworkManager to join an open network without waiting for it."""
        code, _, err = await self._run("--wait", "0", "device", "wifi", "connect", ssid)
        if code != 0:
            logger.error(f"Failed to start joining {ssid}: {err.strip()}")
        return code == 0

    async def current_ssid(self) -> Optional[str]:
        code, out, _ = await self._run("-t", "-f", "ACTIVE,SSID", "device", "wifi")
        if code != 0:
            return None
        for line in out.splitlines():
            fields = split_terse_line(line)
            if len(fields) >= 2 and fields[0] == "yes":
                return fields[1]
        return None

    async def disconnect(self, ssid: str):
        await self._run("connection", "down", "id", ssid)


class WiFiProvisioner:
    """Scan, join and configure a wearable over its soft-AP."""

    def __init__(
        self,
        adapter=None,
        esp32_client: Optional[ESP32Client] = None,
        scan_wait: float = SCAN_WAIT_SECONDS,
        join_wait: float = JOIN_WAIT_SECONDS,
    ):
        self.adapter = adapter or NmcliWifiAdapter()
        self.esp32_client = esp32_client or ESP32Client()
        self.scan_wait = scan_wait
        self.join_wait = join_wait

    async def scan_for_esp32_devices(self) -> List[ESP32Device]:
        """Scan and return the wearables in range.

        Raises:
            PermissionDenied: WiFi control is not permitted
            ScanError: the scan could not be started
        """
        if not await self.adapter.has_permissions():
            raise PermissionDenied("WiFi permissions not granted")

        if not await self.adapter.start_scan():
            raise ScanError("Failed to start WiFi scan")

        await asyncio.sleep(self.scan_wait)

        results = await self.adapter.scan_results()
        devices = filter_esp32_networks(results)
        logger.info(f"Found {len(devices)} ESP32 access point(s) among {len(results)} networks")
        return devices

    async def connect_to_device(self, device: ESP32Device) -> bool:
        """Join the wearable's access point.

        Raises:
            JoinTimeout: the host is not on the device's network after the wait
        """
        if not await self.adapter.connect(device.ssid):
            raise JoinTimeout(f"Failed to connect to {device.ssid}")

        await asyncio.sleep(self.join_wait)

        current = await self.adapter.current_ssid()
        if current != device.ssid:
            raise JoinTimeout(f"Failed to connect to network {device.ssid}")

        device.is_connected = True
        logger.info(f"Joined {device.ssid}")
        return True

    async def provision(
        self,
        device: ESP32Device,
        token: str,
        wifi_ssid: str,
        wifi_password: str,
    ) -> ConfigureResponse:
        """Join the device, hand it the session token and home WiFi, then leave."""
        await self.connect_to_device(device)
        try:
            return await self.esp32_client.send_configuration(token, wifi_ssid, wifi_password)
        finally:
            await self.adapter.disconnect(device.ssid)
            device.is_connected = False

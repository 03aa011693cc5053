"""HTTP client for the wearable's soft-AP configuration server."""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..exceptions import DeviceResponseError
from ..schemas.provisioning import ConfigureRequest, ConfigureResponse, DeviceInfo

logger = logging.getLogger(__name__)


class ESP32Client:
    """Talks to the ESP32 while the host is joined to its access point."""

    def __init__(
        self,
        device_ip: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.device_ip = device_ip or settings.esp32_device_ip
        self.timeout = timeout if timeout is not None else settings.esp32_timeout_seconds
        self._transport = transport

    @property
    def base_url(self) -> str:
        return f"http://{self.device_ip}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def send_configuration(
        self,
        token: str,
        wifi_ssid: str,
        wifi_password: str,
    ) -> ConfigureResponse:
        """POST the session token and home WiFi credentials to ``/configure``.

        Raises:
            DeviceResponseError: the device answered non-2xx, sent an
                unreadable body, or could not be reached
        """
        body = ConfigureRequest(token=token, wifi_ssid=wifi_ssid, wifi_password=wifi_password)

        try:
            async with self._client() as client:
                response = await client.post("/configure", json=body.model_dump(by_alias=True))
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach device at {self.device_ip}: {e}")
            raise DeviceResponseError(f"Could not reach device at {self.device_ip}: {e}") from e

        if not response.is_success:
            logger.error(f"Device configuration failed: {response.status_code} - {response.text}")
            raise DeviceResponseError(
                f"Failed with status: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            result = ConfigureResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DeviceResponseError(f"Unexpected response from device: {e}") from e

        logger.info(f"Device configured: {result.message} (device {result.device_id})")
        return result

    async def get_device_info(self) -> Optional[DeviceInfo]:
        """Read the device's identity from ``GET /``."""
        try:
            async with self._client() as client:
                response = await client.get("/")

            if response.is_success:
                return DeviceInfo.model_validate(response.json())

            logger.error(f"Failed to get device info: {response.status_code}")
            return None

        except Exception as e:
            logger.error(f"Failed to get device info: {e}")
            return None

    async def check_status(self) -> bool:
        """True when ``GET /status`` answers 2xx."""
        try:
            async with self._client() as client:
                response = await client.get("/status")
            return response.is_success
        except httpx.HTTPError as e:
            logger.debug(f"Device status check failed: {e}")
            return False

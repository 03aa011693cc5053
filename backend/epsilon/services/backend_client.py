"""Backend API client used by companion mode."""
import logging
import platform
from typing import List, Optional

import httpx

from ..config import settings
from ..schemas.medicine import MedicineResponse
from ..schemas.user import EmergencyContactData

logger = logging.getLogger(__name__)


class BackendClient:
    """Calls the REST API with the companion's session token."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30,
    ):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self.session_token = session_token if session_token is not None else settings.session_token
        self.timeout = timeout
        self._transport = transport

    @property
    def has_session(self) -> bool:
        return bool(self.session_token)

    def _client(self) -> httpx.AsyncClient:
        headers = {}
        if self.session_token:
            headers["Authorization"] = f"Bearer {self.session_token}"
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def register_fcm_token(
        self,
        fcm_token: str,
        device_name: Optional[str] = None,
        device_model: Optional[str] = None,
        app_version: Optional[str] = None,
    ) -> bool:
        """Send this device's push token to the backend."""
        if not self.has_session:
            logger.warning("No session token configured, skipping push token sync")
            return False

        body = {
            "fcmToken": fcm_token,
            "deviceName": device_name or settings.device_name,
            "deviceModel": device_model or settings.device_model or platform.machine(),
            "osVersion": f"{platform.system()} {platform.release()}",
            "appVersion": app_version or settings.app_version,
        }

        try:
            async with self._client() as client:
                response = await client.post("/api/user/fcm-token", json=body)

            if response.status_code == 200:
                logger.info("Push token registered with backend")
                return True

            logger.error(f"Push token sync failed: {response.status_code} - {response.text}")
            return False

        except Exception as e:
            logger.error(f"Failed to sync push token: {e}")
            return False

    async def get_medicines(self, active_only: bool = True) -> Optional[List[MedicineResponse]]:
        """Fetch the user's medicines.

        Returns:
            The medicines, or None when the backend could not be reached
        """
        try:
            async with self._client() as client:
                response = await client.get(
                    "/api/medicine",
                    params={"activeOnly": "true" if active_only else "false"},
                )

            if response.status_code == 200:
                data = response.json()
                return [MedicineResponse.model_validate(m) for m in data.get("medicines", [])]

            logger.error(f"Failed to get medicines: {response.status_code}")
            return None

        except Exception as e:
            logger.error(f"Failed to get medicines: {e}")
            return None

    async def get_emergency_contact(self) -> Optional[EmergencyContactData]:
        """Fetch the emergency contact stored on the backend."""
        try:
            async with self._client() as client:
                response = await client.get("/api/user/emergency-contact")

            if response.status_code == 200:
                return EmergencyContactData.model_validate(response.json().get("data") or {})

            logger.error(f"Failed to get emergency contact: {response.status_code}")
            return None

        except Exception as e:
            logger.error(f"Failed to get emergency contact: {e}")
            return None

    async def update_emergency_contact(self, phone: str, name: Optional[str] = None) -> bool:
        """Store the emergency contact on the backend."""
        try:
            async with self._client() as client:
                response = await client.put(
                    "/api/user/emergency-contact",
                    json={"emergencyContactPhone": phone, "emergencyContactName": name or ""},
                )

            if response.status_code == 200:
                logger.info("Emergency contact synced to backend")
                return True

            logger.error(f"Failed to sync emergency contact: {response.status_code}")
            return False

        except Exception as e:
            logger.error(f"Failed to sync emergency contact: {e}")
            return False

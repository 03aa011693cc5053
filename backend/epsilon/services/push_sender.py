"""Push notification sender service using Firebase Cloud Messaging."""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Optional, List, Tuple

import firebase_admin
from firebase_admin import credentials, exceptions, messaging

from ..config import settings
from ..models import Device

logger = logging.getLogger(__name__)

EMERGENCY_CALL_TYPE = "EMERGENCY_CALL"

# Named app so we never collide with a default app initialized elsewhere
FIREBASE_APP_NAME = "epsilon"


@dataclass
class PushConfig:
    """Firebase Admin credentials."""
    project_id: Optional[str] = None
    private_key: Optional[str] = None
    client_email: Optional[str] = None
    service_account_json: Optional[str] = None

    @classmethod
    def from_settings(cls) -> "PushConfig":
        return cls(
            project_id=settings.firebase_project_id,
            private_key=settings.firebase_private_key,
            client_email=settings.firebase_client_email,
            service_account_json=settings.firebase_service_account_key,
        )


@dataclass
class EmergencyPushPayload:
    """Data carried by an EMERGENCY_CALL message."""
    user_id: str
    timestamp: str
    report_id: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_data(self) -> dict:
        """FCM data payloads only carry string values."""
        data = {
            "type": EMERGENCY_CALL_TYPE,
            "userId": self.user_id,
            "reportId": self.report_id or "",
            "timestamp": self.timestamp,
        }
        if self.latitude is not None and self.longitude is not None:
            data["latitude"] = str(self.latitude)
            data["longitude"] = str(self.longitude)
        return data


def build_emergency_message(device_token: str, payload: EmergencyPushPayload) -> messaging.Message:
    """Build a high-priority data message so it wakes the phone from doze."""
    data = payload.to_data()
    return messaging.Message(
        token=device_token,
        data=data,
        android=messaging.AndroidConfig(priority="high", data=data),
    )


class PushSenderService:
    """Service for sending push notifications via the Firebase Admin SDK."""

    def __init__(self):
        self._app: Optional[firebase_admin.App] = None
        self._init_error: Optional[str] = None

    @property
    def available(self) -> bool:
        return self._app is not None

    @property
    def init_error(self) -> Optional[str]:
        return self._init_error

    def configure(self, config: PushConfig):
        """Initialize the Firebase app from individual keys or a JSON key."""
        self._app = None
        self._init_error = None

        try:
            if config.project_id and config.private_key and config.client_email:
                cred = credentials.Certificate({
                    "type": "service_account",
                    "project_id": config.project_id,
                    # Keys passed through env vars carry escaped newlines
                    "private_key": config.private_key.replace("\\n", "\n"),
                    "client_email": config.client_email,
                    "token_uri": "https://oauth2.googleapis.com/token",
                })
            elif config.service_account_json:
                trimmed = config.service_account_json.strip()
                if not (trimmed.startswith("{") and trimmed.endswith("}")):
                    self._init_error = "FIREBASE_SERVICE_ACCOUNT_KEY is not a valid JSON object"
                    logger.warning(f"Push notifications disabled: {self._init_error}")
                    return
                cred = credentials.Certificate(json.loads(trimmed))
            else:
                self._init_error = (
                    "Firebase credentials not configured. Set FIREBASE_PROJECT_ID, "
                    "FIREBASE_PRIVATE_KEY and FIREBASE_CLIENT_EMAIL or FIREBASE_SERVICE_ACCOUNT_KEY"
                )
                logger.warning(f"Push notifications disabled: {self._init_error}")
                return

            try:
                existing = firebase_admin.get_app(FIREBASE_APP_NAME)
                firebase_admin.delete_app(existing)
            except ValueError:
                pass

            self._app = firebase_admin.initialize_app(cred, name=FIREBASE_APP_NAME)
            logger.info("Firebase Admin SDK initialized")
        except (ValueError, json.JSONDecodeError) as e:
            self._init_error = f"Failed to initialize Firebase Admin SDK: {e}"
            logger.error(self._init_error)
            self._app = None

    async def send_emergency_call(self, device_token: str, payload: EmergencyPushPayload) -> bool:
        """Send an emergency call trigger to a single device.

        Returns:
            True if FCM accepted the message
        """
        if not self._app:
            logger.error(f"FCM not available: {self._init_error or 'not initialized'}")
            return False

        message = build_emergency_message(device_token, payload)

        try:
            # The Admin SDK is blocking
            message_id = await asyncio.to_thread(messaging.send, message, app=self._app)
            logger.info(f"Emergency push sent to {device_token[:16]}... ({message_id})")
            return True
        except (exceptions.FirebaseError, ValueError) as e:
            logger.warning(f"Emergency push failed for {device_token[:16]}...: {e}")
            return False
        except Exception as e:
            logger.error(f"Error sending emergency push to {device_token[:16]}...: {e}")
            return False

    async def send_to_devices(
        self,
        devices: List[Device],
        payload: EmergencyPushPayload,
    ) -> Tuple[int, int]:
        """Send one message per device concurrently.

        Returns:
            Tuple of (success_count, failure_count)
        """
        if not devices:
            return (0, 0)

        results = await asyncio.gather(*[
            self.send_emergency_call(device.device_token, payload)
            for device in devices
        ])

        success_count = sum(1 for ok in results if ok)
        failure_count = len(results) - success_count

        logger.info(
            f"Emergency pushes sent: {success_count} success, {failure_count} failed"
        )
        return (success_count, failure_count)


# Global instance
push_sender_service = PushSenderService()

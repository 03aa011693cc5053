"""Incoming push messages on the companion."""
import logging
from typing import Mapping, Optional

from .emergency_caller import EmergencyResponder, EmergencyTrigger, TRIGGER_REMOTE
from .push_sender import EMERGENCY_CALL_TYPE

logger = logging.getLogger(__name__)


def _to_float(value: Optional[str]) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_push_message(data: Mapping[str, str]) -> Optional[EmergencyTrigger]:
    """Turn an FCM data payload into a trigger; None for other message types."""
    message_type = data.get("type")
    if message_type != EMERGENCY_CALL_TYPE:
        logger.warning(f"Unknown message type: {message_type}")
        return None

    return EmergencyTrigger(
        emergency_type=TRIGGER_REMOTE,
        user_id=data.get("userId") or "",
        report_id=data.get("reportId") or "",
        timestamp=data.get("timestamp") or "",
        latitude=_to_float(data.get("latitude")),
        longitude=_to_float(data.get("longitude")),
    )


class PushReceiver:
    """Dispatches push data messages to the emergency responder."""

    def __init__(self, responder: EmergencyResponder):
        self.responder = responder

    async def on_message(self, data: Mapping[str, str]) -> bool:
        logger.debug(f"Message data payload: {dict(data)}")
        trigger = parse_push_message(data)
        if trigger is None:
            return False
        logger.info("Emergency call triggered via push")
        return await self.responder.handle_remote_trigger(trigger)

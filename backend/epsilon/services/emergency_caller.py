"""Emergency calling - ring the emergency contact after a fall or a remote trigger."""
import asyncio
import logging
import webbrowser
from dataclasses import dataclass
from typing import Callable, Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client
from twilio.twiml.voice_response import VoiceResponse

from ..config import settings
from .emergency_contact import EmergencyContactStore

logger = logging.getLogger(__name__)

TRIGGER_FALL = "FALL_DETECTED"
TRIGGER_REMOTE = "REMOTE_TRIGGER"


@dataclass
class EmergencyTrigger:
    """Why a call is being placed."""
    emergency_type: str
    user_id: str = ""
    report_id: str = ""
    timestamp: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def build_call_twiml(trigger: Optional[EmergencyTrigger] = None) -> str:
    """Spoken message played to the contact when they pick up."""
    response = VoiceResponse()
    if trigger and trigger.emergency_type == TRIGGER_FALL:
        response.say("This is an Epsilon emergency alert. A fall has been detected. Please check on them immediately.")
    else:
        response.say("This is an Epsilon emergency alert. An emergency call was requested. Please check on them immediately.")
    if trigger and trigger.has_location:
        response.say(f"Last known location: latitude {trigger.latitude}, longitude {trigger.longitude}.")
    return str(response)


def open_dialer(phone_number: str) -> bool:
    """Hand the number to the system ``tel:`` handler."""
    return webbrowser.open(f"tel:{phone_number}")


class EmergencyCallManager:
    """Places calls through Twilio, with the system dialer as the fallback."""

    def __init__(
        self,
        twilio_client: Optional[Client] = None,
        from_number: Optional[str] = None,
        dialer: Optional[Callable[[str], bool]] = None,
    ):
        self.from_number = from_number or settings.twilio_from_number
        self.dialer = dialer or open_dialer
        self._client = twilio_client
        if self._client is None and settings.twilio_account_sid and settings.twilio_auth_token:
            self._client = Client(settings.twilio_account_sid, settings.twilio_auth_token)

    @property
    def can_place_calls(self) -> bool:
        return self._client is not None and bool(self.from_number)

    async def place_emergency_call(self, phone_number: str, trigger: Optional[EmergencyTrigger] = None) -> bool:
        """Ring the number directly. Returns True when the call was queued."""
        if not self.can_place_calls:
            logger.error("Voice calling not configured (TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_FROM_NUMBER)")
            return False

        if not phone_number.strip():
            logger.error("Phone number is blank")
            return False

        logger.info(f"Attempting to place emergency call to: {phone_number}")
        try:
            # The Twilio client is blocking
            call = await asyncio.to_thread(
                self._client.calls.create,
                to=phone_number,
                from_=self.from_number,
                twiml=build_call_twiml(trigger),
            )
            logger.info(f"Emergency call placed: {call.sid}")
            return True
        except TwilioException as e:
            logger.error(f"Error placing emergency call: {e}")
            return False

    def show_dialer_with_number(self, phone_number: str) -> bool:
        try:
            opened = self.dialer(phone_number)
        except Exception as e:
            logger.error(f"Error showing dialer: {e}")
            return False
        if opened:
            logger.info("Dialer opened with emergency number")
        return bool(opened)

    async def call(self, phone_number: str, trigger: Optional[EmergencyTrigger] = None) -> bool:
        """Place the call, falling back to the dialer."""
        if await self.place_emergency_call(phone_number, trigger):
            return True
        logger.warning("Direct call failed, showing dialer")
        return self.show_dialer_with_number(phone_number)


class EmergencyResponder:
    """Looks up the cached contact and calls it."""

    def __init__(self, contacts: EmergencyContactStore, caller: EmergencyCallManager):
        self.contacts = contacts
        self.caller = caller

    async def respond(self, trigger: EmergencyTrigger) -> bool:
        logger.warning(
            f"Emergency - type: {trigger.emergency_type}, user: {trigger.user_id}, report: {trigger.report_id}"
        )

        contact = self.contacts.get()
        if contact is None:
            logger.error("No emergency contact configured")
            return False

        logger.info(f"Placing emergency call to: {contact.name or 'Unknown'} ({contact.phone})")
        return await self.caller.call(contact.phone, trigger)

    async def handle_fall(self, record: dict) -> bool:
        """Respond to a fall row from the live channel."""
        trigger = EmergencyTrigger(
            emergency_type=TRIGGER_FALL,
            user_id=record.get("user_id") or "",
            report_id=record.get("id") or "",
            timestamp=record.get("detected_at") or "",
        )
        return await self.respond(trigger)

    async def handle_remote_trigger(self, trigger: EmergencyTrigger) -> bool:
        """Respond to an EMERGENCY_CALL push."""
        return await self.respond(trigger)

"""Companion service - the caregiver-side runtime of companion mode."""
import logging
from typing import Optional, Set

from apscheduler.triggers.interval import IntervalTrigger

from ..config import settings
from .alarm_scheduler import MedicationAlarmScheduler
from .backend_client import BackendClient
from .emergency_caller import EmergencyCallManager, EmergencyResponder
from .emergency_contact import EmergencyContactStore
from .fall_monitor import FallMonitor
from .push_receiver import PushReceiver

logger = logging.getLogger(__name__)

MEDICINE_SYNC_MINUTES = 30


class CompanionService:
    """Registers the push token, keeps alarms and the contact fresh, and watches for falls."""

    def __init__(
        self,
        backend: Optional[BackendClient] = None,
        contacts: Optional[EmergencyContactStore] = None,
        caller: Optional[EmergencyCallManager] = None,
        alarms: Optional[MedicationAlarmScheduler] = None,
        fall_monitor: Optional[FallMonitor] = None,
    ):
        self.backend = backend or BackendClient()
        self.contacts = contacts or EmergencyContactStore(self.backend)
        self.responder = EmergencyResponder(self.contacts, caller or EmergencyCallManager())
        self.push_receiver = PushReceiver(self.responder)
        self.alarms = alarms or MedicationAlarmScheduler()
        self.fall_monitor = fall_monitor or FallMonitor(self.responder.handle_fall)
        self._known_medicines: Set[str] = set()
        self._running = False

    async def sync_medicines(self) -> Optional[int]:
        """Re-arm alarms from the backend's medicine list.

        Medicines that disappeared since the last sync lose their alarms.
        A failed fetch leaves every armed alarm in place.

        Returns:
            Number of alarms armed, or None when the fetch failed
        """
        medicines = await self.backend.get_medicines(active_only=False)
        if medicines is None:
            logger.warning("Medicine sync skipped, keeping existing alarms")
            return None

        current = {m.id for m in medicines}
        for medicine_id in self._known_medicines - current:
            self.alarms.cancel_alarms_for_medication(medicine_id)

        armed = 0
        for medicine in medicines:
            self.alarms.cancel_alarms_for_medication(medicine.id)
            armed += len(self.alarms.schedule_medication_alarms(medicine))

        self._known_medicines = current
        logger.info(f"Medicine sync: {len(medicines)} medicines, {armed} alarms armed")
        return armed

    async def startup(self):
        """One-time start-up steps before the fall channel opens."""
        if settings.fcm_token:
            await self.backend.register_fcm_token(settings.fcm_token)
        else:
            logger.info("No FCM_TOKEN configured, remote emergency calls disabled")

        contact = await self.contacts.refresh()
        if contact is None:
            logger.warning("No emergency contact configured")

        await self.sync_medicines()

        self.alarms.scheduler.add_job(
            self.sync_medicines,
            trigger=IntervalTrigger(minutes=MEDICINE_SYNC_MINUTES),
            id="sync_medicines",
            replace_existing=True,
            max_instances=1,
        )
        self.alarms.start()

    async def run(self):
        """Main companion loop."""
        self._running = True
        logger.info("Starting companion service")

        if not self.backend.has_session:
            logger.error("SESSION_TOKEN must be configured for companion mode")
            return

        await self.startup()

        # Runs until stopped
        await self.fall_monitor.run()

    def stop(self):
        """Stop the companion."""
        self._running = False
        self.fall_monitor.stop()
        self.alarms.stop()
        logger.info("Companion service stopped")


# Global instance
companion_service = CompanionService()

"""Medication alarm scheduling - one exact alarm per dose time, re-armed daily."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from ..schemas.medicine import MedicineResponse
from ..utils.dose_times import (
    MAX_TIME_SLOTS,
    next_occurrence,
    parse_dose_times,
    parse_hh_mm,
    request_code,
)

logger = logging.getLogger(__name__)

# Late alarms still fire if the process was asleep
ALARM_MISFIRE_GRACE_SECONDS = 3600


@dataclass
class MedicationReminder:
    """What an alarm carries to the notification when it fires."""
    medicine_id: str
    name: str
    dosage: str
    time: str
    time_index: int

    @property
    def title(self) -> str:
        return f"Time to take {self.name}"

    @property
    def body(self) -> str:
        return f"{self.dosage} at {self.time}"


Notifier = Callable[[MedicationReminder], Awaitable[None]]


async def log_notifier(reminder: MedicationReminder):
    """Default notifier: the reminder goes to the log."""
    logger.warning(f"{reminder.title} - {reminder.body}")


class MedicationAlarmScheduler:
    """Keeps alarm jobs keyed by request code on an APScheduler instance."""

    def __init__(
        self,
        notifier: Optional[Notifier] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.notifier = notifier or log_notifier
        self.scheduler = scheduler or AsyncIOScheduler()
        self._running = False

    def start(self):
        """Start firing alarms."""
        if self._running:
            return
        self.scheduler.start()
        self._running = True
        logger.info("Medication alarm scheduler started")

    def stop(self):
        """Stop the scheduler; pending alarms are dropped."""
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Medication alarm scheduler stopped")

    def _remove(self, code: int):
        try:
            self.scheduler.remove_job(str(code))
        except JobLookupError:
            pass

    def _arm(self, reminder: MedicationReminder, run_at: datetime) -> int:
        code = request_code(reminder.medicine_id, reminder.time_index)
        # The same code always replaces the previous alarm
        self._remove(code)
        self.scheduler.add_job(
            self._on_alarm,
            trigger=DateTrigger(run_date=run_at),
            id=str(code),
            kwargs={"reminder": reminder},
            misfire_grace_time=ALARM_MISFIRE_GRACE_SECONDS,
        )
        return code

    def schedule_medication_alarms(
        self,
        medicine: MedicineResponse,
        now: Optional[datetime] = None,
    ) -> List[int]:
        """Arm one alarm per valid dose time of an active, reminding medicine.

        Returns:
            Request codes of the alarms that were armed
        """
        if not medicine.is_active or not medicine.reminder_enabled:
            logger.debug(f"Skipping alarms for inactive or muted medicine: {medicine.name}")
            return []

        codes = []
        for time_index, hour, minute in parse_dose_times(medicine.time):
            reminder = MedicationReminder(
                medicine_id=medicine.id,
                name=medicine.name,
                dosage=medicine.dosage,
                time=f"{hour:02d}:{minute:02d}",
                time_index=time_index,
            )
            run_at = next_occurrence(hour, minute, now)
            code = self._arm(reminder, run_at)
            codes.append(code)
            logger.debug(f"Scheduled alarm for {medicine.name} at {run_at} (request code {code})")

        logger.info(f"Scheduled {len(codes)} alarms for medicine: {medicine.name}")
        return codes

    def schedule_all(self, medicines: Iterable[MedicineResponse], now: Optional[datetime] = None) -> int:
        """Arm alarms for a batch of medicines; returns the number armed."""
        total = 0
        for medicine in medicines:
            total += len(self.schedule_medication_alarms(medicine, now))
        return total

    def cancel_alarms_for_medication(self, medicine_id: str) -> List[int]:
        """Remove the alarms in time slots 0..9 of a medicine.

        Dose times beyond the tenth slot are not reached.
        """
        codes = [request_code(medicine_id, index) for index in range(MAX_TIME_SLOTS)]
        for code in codes:
            self._remove(code)
        logger.info(f"Cancelled alarms for medicine: {medicine_id}")
        return codes

    def reschedule_alarm(
        self,
        reminder: MedicationReminder,
        now: Optional[datetime] = None,
    ) -> Optional[int]:
        """Re-arm a fired alarm for its next dose time, under the same code.

        The next run is the first hour:minute strictly after ``now``, so an
        alarm that fires late past midnight still gets that day's dose.
        """
        hour_minute = parse_hh_mm(reminder.time)
        if hour_minute is None:
            logger.error(f"Cannot reschedule alarm with invalid time: {reminder.time!r}")
            return None

        now = now or datetime.now()
        run_at = now.replace(hour=hour_minute[0], minute=hour_minute[1], second=0, microsecond=0)
        if run_at <= now:
            run_at += timedelta(days=1)

        code = self._arm(reminder, run_at)
        logger.debug(f"Rescheduled alarm for {reminder.medicine_id} at {run_at}")
        return code

    async def _on_alarm(self, reminder: MedicationReminder):
        """Show the reminder, then re-arm for the next day."""
        try:
            await self.notifier(reminder)
        except Exception as e:
            logger.error(f"Medication notification failed for {reminder.name}: {e}")
        self.reschedule_alarm(reminder)

    def pending_codes(self) -> List[int]:
        return sorted(int(job.id) for job in self.scheduler.get_jobs() if job.id.isdigit())

from datetime import datetime

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from epsilon.schemas.medicine import MedicineResponse
from epsilon.services.alarm_scheduler import MedicationAlarmScheduler, MedicationReminder
from epsilon.utils.dose_times import request_code

NOW = datetime(2024, 1, 1, 12, 0)


def make_medicine(**overrides) -> MedicineResponse:
    fields = {
        "id": "med-1",
        "user_id": "user-1",
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "daily",
        "time": "08:00,14:00,bad,20:00",
        "start_date": datetime(2024, 1, 1),
        "is_active": True,
        "reminder_enabled": True,
        "created_at": datetime(2024, 1, 1),
        "updated_at": datetime(2024, 1, 1),
    }
    fields.update(overrides)
    return MedicineResponse(**fields)


@pytest.fixture
def notified():
    return []


@pytest.fixture
def alarms(notified):
    async def notifier(reminder):
        notified.append(reminder)

    # Not started: jobs stay pending and can be inspected
    return MedicationAlarmScheduler(notifier=notifier, scheduler=AsyncIOScheduler())


def run_date(alarms, code):
    job = alarms.scheduler.get_job(str(code))
    assert job is not None, f"no alarm for {code}"
    return job.trigger.run_date.replace(tzinfo=None)


def test_schedules_one_alarm_per_valid_time(alarms):
    codes = alarms.schedule_medication_alarms(make_medicine(), now=NOW)

    assert codes == [request_code("med-1", 0), request_code("med-1", 1), request_code("med-1", 3)]
    assert alarms.pending_codes() == sorted(codes)


def test_alarm_times_roll_to_next_occurrence(alarms):
    alarms.schedule_medication_alarms(make_medicine(), now=NOW)

    assert run_date(alarms, request_code("med-1", 0)) == datetime(2024, 1, 2, 8, 0)
    assert run_date(alarms, request_code("med-1", 1)) == datetime(2024, 1, 1, 14, 0)
    assert run_date(alarms, request_code("med-1", 3)) == datetime(2024, 1, 1, 20, 0)


def test_inactive_or_muted_medicines_are_skipped(alarms):
    assert alarms.schedule_medication_alarms(make_medicine(is_active=False), now=NOW) == []
    assert alarms.schedule_medication_alarms(make_medicine(reminder_enabled=False), now=NOW) == []
    assert alarms.pending_codes() == []


def test_rescheduling_replaces_existing_alarm(alarms):
    alarms.schedule_medication_alarms(make_medicine(time="08:00"), now=NOW)
    alarms.schedule_medication_alarms(make_medicine(time="08:00"), now=NOW)

    assert alarms.pending_codes() == [request_code("med-1", 0)]


def test_cancel_removes_slots_zero_to_nine(alarms):
    times = ",".join(f"{hour:02d}:00" for hour in range(12))
    alarms.schedule_medication_alarms(make_medicine(time=times), now=NOW)
    alarms.schedule_medication_alarms(make_medicine(id="med-2", time="09:00"), now=NOW)

    cancelled = alarms.cancel_alarms_for_medication("med-1")

    assert cancelled == [request_code("med-1", i) for i in range(10)]
    # Slots past the tenth survive cancellation
    assert alarms.pending_codes() == sorted([
        request_code("med-1", 10),
        request_code("med-1", 11),
        request_code("med-2", 0),
    ])


def test_reschedule_alarm_is_next_day_same_code(alarms):
    reminder = MedicationReminder("med-1", "Metformin", "500mg", "14:00", 1)

    code = alarms.reschedule_alarm(reminder, now=datetime(2024, 1, 1, 14, 0, 5))

    assert code == request_code("med-1", 1)
    assert run_date(alarms, code) == datetime(2024, 1, 2, 14, 0)


def test_late_alarm_after_midnight_keeps_that_days_dose(alarms):
    reminder = MedicationReminder("med-1", "Metformin", "500mg", "23:50", 0)

    code = alarms.reschedule_alarm(reminder, now=datetime(2024, 1, 2, 0, 10))

    assert run_date(alarms, code) == datetime(2024, 1, 2, 23, 50)


def test_reschedule_with_invalid_time(alarms):
    reminder = MedicationReminder("med-1", "Metformin", "500mg", "noon", 0)
    assert alarms.reschedule_alarm(reminder) is None
    assert alarms.pending_codes() == []


async def test_fired_alarm_notifies_then_rearms(alarms, notified):
    alarms.schedule_medication_alarms(make_medicine(time="20:00"), now=NOW)
    job = alarms.scheduler.get_job(str(request_code("med-1", 0)))
    reminder = job.kwargs["reminder"]
    assert reminder.time_index == 0

    await alarms._on_alarm(reminder)

    assert notified == [reminder]
    assert notified[0].title == "Time to take Metformin"
    assert notified[0].body == "500mg at 20:00"
    assert alarms.pending_codes() == [request_code("med-1", 0)]


async def test_failed_notification_still_rearms(notified):
    async def broken(reminder):
        raise RuntimeError("no display")

    alarms = MedicationAlarmScheduler(notifier=broken, scheduler=AsyncIOScheduler())
    reminder = MedicationReminder("med-1", "Metformin", "500mg", "08:00", 0)

    await alarms._on_alarm(reminder)

    assert alarms.pending_codes() == [request_code("med-1", 0)]

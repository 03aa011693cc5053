"""Dose time parsing and alarm request codes."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

REQUEST_CODE_BASE = 10000

# Alarm slots per medicine that cancellation covers
MAX_TIME_SLOTS = 10


def java_string_hash(value: str) -> int:
    """Java's ``String.hashCode``: 31-based over UTF-16 code units, signed 32-bit."""
    h = 0
    data = value.encode("utf-16-be")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def request_code(medicine_id: str, time_index: int) -> int:
    """Stable alarm key for one dose slot of a medicine."""
    id_hash = java_string_hash(medicine_id) & 0xFFFFFF
    return REQUEST_CODE_BASE + id_hash * 10 + time_index


def split_dose_times(value: Optional[str]) -> List[str]:
    """Split a comma-joined time field; positions are the time indices."""
    if not value:
        return []
    return [part.strip() for part in value.split(",")]


def parse_hh_mm(value: str) -> Optional[Tuple[int, int]]:
    """Parse ``HH:MM`` into (hour, minute), or None when malformed."""
    parts = value.split(":")
    if len(parts) != 2:
        return None

    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        return None

    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None

    return hour, minute


def parse_dose_times(value: Optional[str]) -> List[Tuple[int, int, int]]:
    """Valid dose times as (time_index, hour, minute).

    Malformed entries are logged and skipped; the indices of later entries
    still count them.
    """
    parsed = []
    for index, entry in enumerate(split_dose_times(value)):
        hour_minute = parse_hh_mm(entry)
        if hour_minute is None:
            logger.error(f"Invalid dose time: {entry!r}")
            continue
        parsed.append((index, hour_minute[0], hour_minute[1]))
    return parsed


def next_occurrence(hour: int, minute: int, now: Optional[datetime] = None) -> datetime:
    """Next wall-clock time at hour:minute; today unless already past."""
    now = now or datetime.now()
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate

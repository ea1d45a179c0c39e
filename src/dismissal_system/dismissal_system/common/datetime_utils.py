from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from ..core.constants import DEFAULT_SCHOOL_TIMEZONE, QUEUE_ID_FORMAT


def now_local(tz_name: str = DEFAULT_SCHOOL_TIMEZONE) -> datetime:
    """Current wall-clock time in the school's timezone, as a naive datetime.

    DATETIME columns store school-local time.
    """
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)


def queue_id_for(day: date) -> str:
    """Canonical daily queue id (YYYYMMDD)."""
    return day.strftime(QUEUE_ID_FORMAT)


def parse_queue_id(value: str) -> date:
    return datetime.strptime(value, QUEUE_ID_FORMAT).date()

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional, Protocol

from ..core.constants import DATE_FORMAT, DATETIME_FORMAT
from ..core.exceptions import ValidationError

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Default clock backed by the local system time."""

    def now(self) -> datetime:
        return now_local()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def parse_display_date(value: str, field_name: str = "date") -> date:
    """Parse DD-MM-YYYY string into date."""
    if not isinstance(value, str):
        raise ValidationError(f'Field "{field_name}" must be a string in DD-MM-YYYY format')
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f'Field "{field_name}" has invalid format. Expected DD-MM-YYYY')


def format_display_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_display_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(DATETIME_FORMAT)


def is_hhmm(value: str) -> bool:
    return bool(value) and HHMM_PATTERN.match(value) is not None


def to_minutes(value: str) -> int:
    """Minutes since midnight for an HH:MM string."""
    match = HHMM_PATTERN.match(value) if isinstance(value, str) else None
    if not match:
        raise ValidationError(f"Time must be in HH:MM format, got {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def duration_minutes(start_time: str, end_time: str) -> int:
    """Same-day span; negative when end_time is not after start_time."""
    return to_minutes(end_time) - to_minutes(start_time)

from __future__ import annotations

from ..common.datetime_utils import MINUTES_PER_DAY, format_minutes, to_minutes
from ..core.constants import SESSION_DURATION_MINUTES
from ..core.exceptions import ValidationError
from .model import SessionSlot


def partition(
    start_time: str,
    end_time: str,
    num_sessions: int,
    *,
    duration: int = SESSION_DURATION_MINUTES,
) -> list[SessionSlot]:
    """Split a class into num_sessions consecutive blocks of `duration` minutes.

    Boundaries are derived from start_time only; callers check beforehand that the
    class span is long enough. end_time is accepted for symmetry with the record
    fields and is not re-checked here.

    Classes are same-day only, so a block running past midnight is rejected.
    """
    if isinstance(num_sessions, bool) or not isinstance(num_sessions, int) or num_sessions < 1:
        raise ValidationError("Number of sessions must be a positive integer")
    if duration < 1:
        raise ValidationError("Session duration must be a positive number of minutes")

    current = to_minutes(start_time)
    slots: list[SessionSlot] = []
    for number in range(1, num_sessions + 1):
        end = current + duration
        if end > MINUTES_PER_DAY:
            raise ValidationError(f"Session {number} would run past midnight")
        slots.append(
            SessionSlot(
                session_number=number,
                start_time=format_minutes(current),
                end_time=format_minutes(end % MINUTES_PER_DAY),
            )
        )
        current = end
    return slots

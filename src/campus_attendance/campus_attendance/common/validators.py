from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError
from .datetime_utils import is_hhmm


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f'Field "{field_name}" is required')
    return str(value).strip()


def require_int_range(value: Any, field_name: str, min_value: int, max_value: int) -> int:
    if isinstance(value, bool):
        raise ValidationError(f'Field "{field_name}" must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'Field "{field_name}" must be an integer')
    if number != value and not isinstance(value, str):
        raise ValidationError(f'Field "{field_name}" must be an integer')
    if number < min_value or number > max_value:
        raise ValidationError(f'Field "{field_name}" must be between {min_value} and {max_value}')
    return number


def require_hhmm(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f'Field "{field_name}" must be in HH:MM format (e.g., 09:00)')
    v = value.strip()
    if not is_hhmm(v):
        raise ValidationError(f'Field "{field_name}" must be in HH:MM format (e.g., 09:00)')
    return v

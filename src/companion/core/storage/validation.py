"""Caller-input checks applied before anything is written."""

from __future__ import annotations

import math
from typing import Any, Iterable


class ValidationError(ValueError):
    """Raised when caller-supplied fields fail required-field or numeric checks."""


def require_text(value: Any, field_name: str) -> str:
    """Return ``value`` stripped, rejecting empty or non-string input."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def parse_number(value: Any, field_name: str) -> float:
    """Parse a finite float from a number or numeric string.

    Booleans are rejected even though Python treats them as ints.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a valid number")
    if isinstance(value, str):
        if not value.strip():
            raise ValidationError(f"{field_name} is required")
        try:
            number = float(value.strip())
        except ValueError as exc:
            raise ValidationError(f"{field_name} must be a valid number") from exc
    elif isinstance(value, (int, float)):
        number = float(value)
    else:
        raise ValidationError(f"{field_name} must be a valid number")

    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be finite")
    return number


def parse_optional_number(value: Any, field_name: str) -> float | None:
    """Like :func:`parse_number` but maps None and blank strings to None."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_number(value, field_name)


def require_choice(value: Any, choices: Iterable[str], field_name: str) -> str:
    options = tuple(choices)
    if value not in options:
        raise ValidationError(f"{field_name} must be one of {', '.join(options)}; got {value!r}")
    return value

"""
Invariant Guards

Small checks shared by the domain models. Each guard either returns the
cleaned value or raises a typed error; none of them mutate anything, so a
method can run all of its guards first and only then assign.

IMPORTANT: Guards NEVER silently fix input beyond trimming whitespace.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

from finance_tracker.exceptions import (
    InvalidArgumentError,
    InvalidDateRangeError,
    OutOfRangeError,
)

HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def require_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> str:
    """Trim ``value`` and require it to be non-blank (and short enough)."""
    if value is None or not value.strip():
        raise InvalidArgumentError(f"{field} cannot be empty", field=field)
    cleaned = value.strip()
    if max_length is not None and len(cleaned) > max_length:
        raise InvalidArgumentError(
            f"{field} cannot exceed {max_length} characters", field=field
        )
    return cleaned


def optional_text(value: Optional[str], field: str, max_length: Optional[int] = None) -> Optional[str]:
    """Trim ``value``; blank becomes None."""
    if value is None or not value.strip():
        return None
    return require_text(value, field, max_length)


def require_user_id(value: Optional[UUID], field: str = "user_id") -> UUID:
    if value is None or value.int == 0:
        raise InvalidArgumentError("User ID cannot be empty", field=field)
    return value


def to_decimal(value: Union[Decimal, int, float, str], field: str) -> Decimal:
    """Convert to Decimal going through ``str`` so floats keep their printed value."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field} must be a number", field=field)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise InvalidArgumentError(f"{field} must be a number", field=field) from e
    if not result.is_finite():
        raise InvalidArgumentError(f"{field} must be a finite number", field=field)
    return result


def require_in_range(
    value: Union[Decimal, int, float, str],
    field: str,
    minimum: Decimal,
    maximum: Decimal,
) -> Decimal:
    number = to_decimal(value, field)
    if number < minimum or number > maximum:
        raise OutOfRangeError(
            f"{field} must be between {minimum} and {maximum}",
            field=field,
            value=str(number),
        )
    return number


def require_date_order(start: date, end: date, strict: bool = True) -> None:
    """``start < end`` (strict) or ``start <= end``."""
    if strict and start >= end:
        raise InvalidDateRangeError(
            "Start date must be before end date",
            field="end_date",
            start=start.isoformat(),
            end=end.isoformat(),
        )
    if not strict and end < start:
        raise InvalidDateRangeError(
            "End date cannot be before start date",
            field="end_date",
            start=start.isoformat(),
            end=end.isoformat(),
        )


def require_hex_color(value: str, field: str = "color") -> str:
    if not value or not HEX_COLOR_PATTERN.match(value.strip()):
        raise InvalidArgumentError(f"{field} must be a hex color like #3B82F6", field=field)
    return value.strip().upper()


def normalize_key(value: Optional[str]) -> str:
    """Case- and whitespace-insensitive lookup key for names and tags."""
    return (value or "").strip().casefold()

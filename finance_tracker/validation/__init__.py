"""Invariant guard package."""

from finance_tracker.validation.guards import (
    normalize_key,
    optional_text,
    require_date_order,
    require_hex_color,
    require_in_range,
    require_text,
    require_user_id,
    to_decimal,
)

__all__ = [
    "normalize_key",
    "optional_text",
    "require_date_order",
    "require_hex_color",
    "require_in_range",
    "require_text",
    "require_user_id",
    "to_decimal",
]

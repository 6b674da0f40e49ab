from __future__ import annotations

"""Placeholder values stored in place of missing mandatory client fields.

These are compared literally by duplicate detection and reporting, so they are
kept as plain strings rather than converted to None.
"""

__all__ = [
    "UNASSIGNED",
    "MOBILE_NOT_AVAILABLE",
    "PAN_NOT_AVAILABLE",
    "is_blank",
]

UNASSIGNED = "unassigned"
MOBILE_NOT_AVAILABLE = "1111111111"
PAN_NOT_AVAILABLE = "PANNOTAVLBL"


def is_blank(value: object) -> bool:
    """True for None and for strings that are empty after stripping."""
    if value is None:
        return True
    return str(value).strip() == ""

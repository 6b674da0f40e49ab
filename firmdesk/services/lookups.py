from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TypeVar

"""Small helpers shared by the import validators."""

__all__ = [
    "EMAIL_RE",
    "is_valid_email",
    "name_index",
    "utc_now_iso",
    "cell",
    "missing_mandatory",
]

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

T = TypeVar("T")


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(value.strip()))


def name_index(items: Iterable[T], key: Callable[[T], str] | None = None) -> dict[str, T]:
    """Map case-folded, stripped names to items. The first item wins on ties."""
    index: dict[str, T] = {}
    for item in items:
        raw = key(item) if key is not None else getattr(item, "name", "")
        name = (raw or "").strip().lower()
        if name and name not in index:
            index[name] = item
    return index


def utc_now_iso() -> str:
    """ISO8601 UTC timestamp with 'Z' suffix, millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def cell(values: dict[str, str], column: str) -> str:
    """Stripped cell value; absent columns read as ''."""
    return (values.get(column) or "").strip()


def missing_mandatory(values: dict[str, str], columns: Iterable[str]) -> list[str]:
    return [c for c in columns if not cell(values, c)]

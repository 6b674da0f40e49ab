from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ..models.client_record import ClientRecord
from ..models.sentinels import MOBILE_NOT_AVAILABLE, PAN_NOT_AVAILABLE

"""Natural-key extraction and duplicate bookkeeping for client imports.

A client is identified by its PAN when one is known, else by the pair
(lower-cased name, mobile number). Both keys are checked: a row matches an
earlier row or a stored record if either key collides.

The mobile half of the name key uses the number the row would be committed
with, so a blank mobile is keyed as the placeholder "1111111111". A file
imported twice therefore resolves to the records the first import wrote.
"""

__all__ = [
    "NaturalKeys",
    "pan_key",
    "name_mobile_key",
    "natural_keys",
    "SeenKeys",
    "ExistingIndex",
]

NameMobile = tuple[str, str]


@dataclass(frozen=True)
class NaturalKeys:
    pan: str | None
    name_mobile: NameMobile | None

    def describe(self, which: str) -> str:
        if which == "pan" and self.pan is not None:
            return f"PAN {self.pan}"
        if which == "name_mobile" and self.name_mobile is not None:
            return f"name + mobile ({self.name_mobile[0]}, {self.name_mobile[1]})"
        raise ValueError(f"no {which} key to describe")


def pan_key(pan: str | None) -> str | None:
    value = (pan or "").strip().upper()
    if not value or value == PAN_NOT_AVAILABLE:
        return None
    return value


def name_mobile_key(name: str | None, mobile: str | None) -> NameMobile | None:
    clean_name = (name or "").strip().lower()
    if not clean_name:
        return None
    return clean_name, (mobile or "").strip() or MOBILE_NOT_AVAILABLE


def natural_keys(values: Mapping[str, str]) -> NaturalKeys:
    """Keys of one normalized upload row (CSV header names)."""
    return NaturalKeys(
        pan=pan_key(values.get("PAN")),
        name_mobile=name_mobile_key(values.get("Name"), values.get("Mobile Number")),
    )


def record_keys(record: ClientRecord) -> NaturalKeys:
    return NaturalKeys(
        pan=pan_key(record.pan),
        name_mobile=name_mobile_key(record.name, record.mobile_number),
    )


@dataclass
class SeenKeys:
    """Keys claimed by earlier rows of the same file (first occurrence wins).

    Also tracks which stored client each earlier row resolved to, so two rows
    reaching the same record through different keys collide.
    """
    _pan: dict[str, int] = field(default_factory=dict)
    _name_mobile: dict[NameMobile, int] = field(default_factory=dict)
    _records: dict[str, int] = field(default_factory=dict)

    def find(self, keys: NaturalKeys, existing_id: str | None = None) -> tuple[str, int] | None:
        """Return ("pan" | "name_mobile" | "record", owning row index) on a collision."""
        if keys.pan is not None and keys.pan in self._pan:
            return "pan", self._pan[keys.pan]
        if keys.name_mobile is not None and keys.name_mobile in self._name_mobile:
            return "name_mobile", self._name_mobile[keys.name_mobile]
        if existing_id is not None and existing_id in self._records:
            return "record", self._records[existing_id]
        return None

    def register(self, keys: NaturalKeys, index: int, existing_id: str | None = None) -> None:
        if keys.pan is not None:
            self._pan.setdefault(keys.pan, index)
        if keys.name_mobile is not None:
            self._name_mobile.setdefault(keys.name_mobile, index)
        if existing_id is not None:
            self._records.setdefault(existing_id, index)


class ExistingIndex:
    """Natural keys of persisted clients -> record id."""

    def __init__(self) -> None:
        self._pan: dict[str, str] = {}
        self._name_mobile: dict[NameMobile, str] = {}

    @classmethod
    def from_records(cls, records: Iterable[ClientRecord]) -> ExistingIndex:
        index = cls()
        for record in records:
            index.add(record)
        return index

    def add(self, record: ClientRecord) -> None:
        keys = record_keys(record)
        if keys.pan is not None:
            self._pan.setdefault(keys.pan, record.id)
        if keys.name_mobile is not None:
            self._name_mobile.setdefault(keys.name_mobile, record.id)

    def lookup(self, keys: NaturalKeys) -> str | None:
        """PAN match first, then name + mobile."""
        if keys.pan is not None and keys.pan in self._pan:
            return self._pan[keys.pan]
        if keys.name_mobile is not None:
            return self._name_mobile.get(keys.name_mobile)
        return None

    def __len__(self) -> int:
        return len(set(self._pan.values()) | set(self._name_mobile.values()))

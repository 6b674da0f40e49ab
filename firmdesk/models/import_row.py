from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

"""ImportRow and classification models shared by every bulk import pipeline.

A row's classification is one of four tagged variants (Create, Update,
Duplicate, Ignore), each carrying its own payload. `RowAction` is the flat
label shown to the operator; FIX_AND_* labels are derived from a Create or
Update whose fix list is non-empty.
"""

__all__ = [
    "RowAction",
    "Create",
    "Update",
    "Duplicate",
    "Ignore",
    "Classification",
    "ImportRow",
    "ValidationResult",
    "CommitMode",
    "CommitResult",
]


class RowAction(Enum):
    """Operator-facing action label for a validated row."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    FIX_AND_CREATE = "FIX_AND_CREATE"
    FIX_AND_UPDATE = "FIX_AND_UPDATE"
    DUPLICATE = "DUPLICATE"
    IGNORE = "IGNORE"

    @property
    def is_create(self) -> bool:
        return self in (RowAction.CREATE, RowAction.FIX_AND_CREATE)

    @property
    def is_update(self) -> bool:
        return self in (RowAction.UPDATE, RowAction.FIX_AND_UPDATE)


@dataclass(frozen=True)
class Create:
    """New record; `fixes` names the fields that receive placeholder values."""
    fixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Update:
    existing_id: str
    fixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Duplicate:
    """Collides with an earlier row of the same file.

    `canonical_index` is the original index of the row that owns the key.
    """
    reason: str
    canonical_index: int | None = None
    existing_id: str | None = None


@dataclass(frozen=True)
class Ignore:
    reason: str


Classification = Union[Create, Update, Duplicate, Ignore]


def action_of(classification: Classification) -> RowAction:
    if isinstance(classification, Ignore):
        return RowAction.IGNORE
    if isinstance(classification, Duplicate):
        return RowAction.DUPLICATE
    if isinstance(classification, Update):
        return RowAction.FIX_AND_UPDATE if classification.fixes else RowAction.UPDATE
    return RowAction.FIX_AND_CREATE if classification.fixes else RowAction.CREATE


@dataclass(frozen=True)
class ImportRow:
    """One validated row of an upload.

    `original_index` is the 0-based position in the uploaded file (the
    operator sees `original_index + 1`). `resolved` holds ids looked up from
    master data (e.g. partnerId, firmId, clientId).
    """
    original_index: int
    values: dict[str, str]
    classification: Classification
    errors: dict[str, str] = field(default_factory=dict)
    resolved: dict[str, Any] = field(default_factory=dict)

    @property
    def action(self) -> RowAction:
        return action_of(self.classification)

    @property
    def existing_record_id(self) -> str | None:
        if isinstance(self.classification, (Update, Duplicate)):
            return self.classification.existing_id
        return None

    @property
    def duplicate_reason(self) -> str | None:
        if isinstance(self.classification, Duplicate):
            return self.classification.reason
        return None

    @property
    def partner_id(self) -> str | None:
        return self.resolved.get("partnerId")

    @property
    def firm_id(self) -> str | None:
        return self.resolved.get("firmId")

    @property
    def has_issues(self) -> bool:
        return self.action not in (RowAction.CREATE, RowAction.UPDATE) or bool(self.errors)

    def error_reason(self) -> str:
        """Single-line description used by the invalid-rows export."""
        parts: list[str] = []
        if isinstance(self.classification, Ignore):
            parts.append(self.classification.reason)
        elif isinstance(self.classification, Duplicate):
            parts.append(self.classification.reason)
        for fld, message in self.errors.items():
            if isinstance(self.classification, Ignore) and message == self.classification.reason:
                continue
            parts.append(f"{fld}: {message}")
        return "; ".join(parts)


@dataclass(frozen=True)
class ValidationResult:
    """Rows of one validation pass plus per-action counts."""
    kind: str
    rows: list[ImportRow]
    columns: list[str]

    @property
    def counts(self) -> dict[RowAction, int]:
        counter = Counter(r.action for r in self.rows)
        return {action: counter.get(action, 0) for action in RowAction}

    @property
    def creates(self) -> int:
        return sum(1 for r in self.rows if r.action.is_create)

    @property
    def updates(self) -> int:
        return sum(1 for r in self.rows if r.action.is_update)

    @property
    def duplicates(self) -> int:
        return self.counts[RowAction.DUPLICATE]

    @property
    def ignores(self) -> int:
        return self.counts[RowAction.IGNORE]

    @property
    def rows_with_issues(self) -> list[ImportRow]:
        return [r for r in self.rows if r.has_issues]


class CommitMode(Enum):
    """Operator choice for rows classified DUPLICATE."""
    SKIP_DUPLICATES = "skip-duplicates"
    OVERWRITE_DUPLICATES = "overwrite-duplicates"


@dataclass(frozen=True)
class CommitResult:
    created: int = 0
    updated: int = 0
    overwritten: int = 0
    skipped: int = 0
    ignored: int = 0
    extra_documents: int = 0  # dependent documents written alongside (e.g. tasks)

    @property
    def written(self) -> int:
        return self.created + self.updated + self.overwritten

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from ..csvio.layouts import RECURRING as KIND
from ..csvio.layouts import get_layout
from ..models.client_record import ClientRecord
from ..models.entities import Employee, EngagementType, RecurringEngagement
from ..models.import_row import CommitMode, CommitResult, Create, Duplicate, Ignore, ImportRow, ValidationResult
from ..store.base import DocumentStore, StoreError
from ..store.repository import CLIENTS, EMPLOYEES, ENGAGEMENT_TYPES, RECURRING_ENGAGEMENTS, Repository
from .batching import commit_batch
from .errors import ValidationFailedError
from .lookups import cell, missing_mandatory, name_index
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

"""Bulk creation of recurring engagements (one per client and type)."""

__all__ = [
    "RecurringSnapshots",
    "validate_recurring",
    "validate_recurring_upload",
    "commit_recurring",
]

MANDATORY_MISSING = "Mandatory field is missing."
INVALID_ROW = "invalid row"


@dataclass(frozen=True)
class RecurringSnapshots:
    clients: list[ClientRecord]
    engagement_types: list[EngagementType]
    employees: list[Employee]
    recurring: list[RecurringEngagement]


def _int_in_range(raw: str, low: int, high: int) -> int | None:
    try:
        value = float(raw)
    except ValueError:
        return None
    if not value.is_integer() or not low <= value <= high:
        return None
    return int(value)


def _fees(raw: str) -> float | None:
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) and value >= 0 else None


class _Indexes:
    def __init__(self, snapshots: RecurringSnapshots) -> None:
        self.clients = name_index(snapshots.clients)
        self.types = name_index(t for t in snapshots.engagement_types if t.is_recurring)
        self.employees = name_index(snapshots.employees)
        self.existing: dict[tuple[str, str], str] = {}
        for rec in snapshots.recurring:
            self.existing.setdefault((rec.client_id, rec.engagement_type_id), rec.id)


def _classify(index: int, values: dict[str, str], ix: _Indexes, seen: dict[tuple[str, str], int]) -> ImportRow:
    errors = {c: MANDATORY_MISSING for c in missing_mandatory(values, get_layout(KIND).mandatory)}
    if errors:
        return ImportRow(index, values, Ignore(INVALID_ROW), errors=errors)

    client = ix.clients.get(cell(values, "Client Name").lower())
    etype = ix.types.get(cell(values, "Engagement Type").lower())
    assignee = ix.employees.get(cell(values, "Assigned To").lower())
    reporter = ix.employees.get(cell(values, "Reported To").lower())
    if client is None:
        errors["Client Name"] = f'Client "{cell(values, "Client Name")}" not found.'
    if etype is None:
        errors["Engagement Type"] = f'Type "{cell(values, "Engagement Type")}" not found or is not recurring.'
    if assignee is None:
        errors["Assigned To"] = f'User "{cell(values, "Assigned To")}" not found.'
    if reporter is None:
        errors["Reported To"] = f'User "{cell(values, "Reported To")}" not found.'

    fees = _fees(cell(values, "Fees"))
    if fees is None:
        errors["Fees"] = "Must be a non-negative number."
    due_day = _int_in_range(cell(values, "Due Day"), 1, 31)
    if due_day is None:
        errors["Due Day"] = "Must be a number between 1 and 31."
    due_month = None
    if cell(values, "Due Month"):
        due_month = _int_in_range(cell(values, "Due Month"), 1, 12)
        if due_month is None:
            errors["Due Month"] = "Must be a number between 1 and 12."

    if errors or client is None or etype is None or assignee is None or reporter is None:
        return ImportRow(index, values, Ignore(INVALID_ROW), errors=errors)

    resolved: dict[str, Any] = {
        "clientId": client.id,
        "engagementTypeId": etype.id,
        "assigneeId": assignee.id,
        "reporterId": reporter.id,
        "fees": fees,
        "dueDateDay": due_day,
        "dueDateMonth": due_month,
    }
    key = (client.id, etype.id)
    existing_id = ix.existing.get(key)
    if key in seen:
        reason = f"This is a duplicate of row {seen[key] + 1} in the same CSV file."
        return ImportRow(index, values, Duplicate(reason, seen[key], existing_id), resolved=resolved)
    seen[key] = index
    if existing_id is not None:
        reason = "A recurring engagement of this type already exists for this client."
        return ImportRow(index, values, Duplicate(reason, existing_id=existing_id), resolved=resolved)
    return ImportRow(index, values, Create(), resolved=resolved)


def validate_recurring(
    rows: Sequence[dict[str, str]],
    snapshots: RecurringSnapshots,
    *,
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    ix = _Indexes(snapshots)
    seen: dict[tuple[str, str], int] = {}
    result_rows = []
    for index, values in enumerate(rows):
        result_rows.append(_classify(index, dict(values), ix, seen))
        if progress is not None:
            progress.advance()
    cols = list(columns) if columns is not None else list(get_layout(KIND).columns)
    return ValidationResult(kind=KIND, rows=result_rows, columns=cols)


def validate_recurring_upload(
    store: DocumentStore,
    rows: Sequence[dict[str, str]],
    *,
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    try:
        snapshots = RecurringSnapshots(
            clients=Repository(store, CLIENTS, ClientRecord.from_document).list(),
            engagement_types=Repository(store, ENGAGEMENT_TYPES, EngagementType.from_document).list(),
            employees=Repository(store, EMPLOYEES, Employee.from_document).list(),
            recurring=Repository(store, RECURRING_ENGAGEMENTS, RecurringEngagement.from_document).list(),
        )
    except StoreError as e:
        raise ValidationFailedError(f"validation failed: could not fetch master data ({e})") from e
    return validate_recurring(rows, snapshots, columns=columns, progress=progress)


def commit_recurring(
    store: DocumentStore,
    result: ValidationResult,
    mode: CommitMode = CommitMode.SKIP_DUPLICATES,
) -> CommitResult:
    """Create recurring engagements in one batch.

    With OVERWRITE_DUPLICATES every duplicate row is written as an additional
    active recurring engagement.

    Raises:
        CommitFailedError: if the batch is rejected.
    """
    batch = store.batch()
    created = overwritten = skipped = ignored = 0
    for row in result.rows:
        cls = row.classification
        if isinstance(cls, Ignore):
            ignored += 1
            continue
        if isinstance(cls, Duplicate) and mode is CommitMode.SKIP_DUPLICATES:
            skipped += 1
            continue
        r = row.resolved
        rec = RecurringEngagement(
            id=store.new_id(),
            client_id=r["clientId"],
            engagement_type_id=r["engagementTypeId"],
            fees=r["fees"],
            assigned_to=(r["assigneeId"],),
            reported_to=r["reporterId"],
            due_date_day=r["dueDateDay"],
            due_date_month=r["dueDateMonth"],
            is_active=True,
        )
        batch.set(RECURRING_ENGAGEMENTS, rec.id, rec.to_document())
        if isinstance(cls, Duplicate):
            overwritten += 1
        else:
            created += 1

    if len(batch):
        logger.info(f"committing recurring engagements: writes={len(batch)} mode={mode.value}")
        commit_batch(batch, KIND)
    return CommitResult(created=created, overwritten=overwritten, skipped=skipped, ignored=ignored)

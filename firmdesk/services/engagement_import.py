from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from ..csvio.layouts import ENGAGEMENTS as KIND
from ..csvio.layouts import get_layout
from ..models.client_record import ClientRecord
from ..models.entities import Employee, Engagement, EngagementType, Task
from ..models.import_row import CommitMode, CommitResult, Create, Duplicate, Ignore, ImportRow, ValidationResult
from ..store.base import DocumentStore, StoreError
from ..store.repository import CLIENTS, EMPLOYEES, ENGAGEMENT_TYPES, ENGAGEMENTS, TASKS, Repository
from .batching import commit_batch
from .errors import ValidationFailedError
from .lookups import cell, missing_mandatory, name_index
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

"""Bulk engagement assignment.

Each row names an engagement type, a client and an employee by name, plus a
due date. Rows are create-only: a row whose (client, type, assignee) triple
is already assigned, either in the store or earlier in the file, is a
DUPLICATE. Committing a row writes the engagement and one Pending task per
sub-task title of its type, in the same batch.
"""

__all__ = [
    "DATE_FORMATS",
    "DEFAULT_SUB_TASKS",
    "EngagementSnapshots",
    "parse_due_date",
    "validate_engagements",
    "validate_engagement_upload",
    "commit_engagements",
]

DATE_FORMATS = ("%d/%m/%Y", "%d-%m-%Y")
DEFAULT_SUB_TASKS = ("Task 1", "Task 2")
MANDATORY_MISSING = "Mandatory field is missing."
INVALID_ROW = "invalid row"


@dataclass(frozen=True)
class EngagementSnapshots:
    clients: list[ClientRecord]
    engagement_types: list[EngagementType]
    employees: list[Employee]
    engagements: list[Engagement]


def parse_due_date(raw: str, timezone: str = "UTC") -> str | None:
    """DD/MM/YYYY or DD-MM-YYYY, midnight in `timezone`, as UTC ISO8601.

    Returns None when the value matches neither format.
    """
    for fmt in DATE_FORMATS:
        try:
            parsed = datetime.strptime(raw.strip(), fmt)
        except ValueError:
            continue
        local = parsed.replace(tzinfo=ZoneInfo(timezone))
        return local.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return None


def _classify(
    index: int,
    values: dict[str, str],
    snapshots: _Indexes,
    seen: dict[tuple[str, str, str], int],
    timezone: str,
) -> ImportRow:
    errors = {c: MANDATORY_MISSING for c in missing_mandatory(values, get_layout(KIND).mandatory)}

    due_raw = cell(values, "Due Date")
    due_date = parse_due_date(due_raw, timezone) if due_raw else None
    if due_raw and due_date is None:
        errors["Due Date"] = "Invalid date format. Use DD/MM/YYYY or DD-MM-YYYY."
    if errors:
        return ImportRow(index, values, Ignore(INVALID_ROW), errors=errors)

    client = snapshots.clients.get(cell(values, "Client Name").lower())
    etype = snapshots.types.get(cell(values, "Engagement Type").lower())
    user = snapshots.employees.get(cell(values, "Allotted User").lower())
    if client is None:
        errors["Client Name"] = f'Client "{cell(values, "Client Name")}" not found in master data.'
    if etype is None:
        errors["Engagement Type"] = f'Type "{cell(values, "Engagement Type")}" not found in master data.'
    if user is None:
        errors["Allotted User"] = f'Employee "{cell(values, "Allotted User")}" not found in master data.'
    if client is None or etype is None or user is None:
        return ImportRow(index, values, Ignore(INVALID_ROW), errors=errors)

    resolved: dict[str, Any] = {
        "clientId": client.id,
        "engagementTypeId": etype.id,
        "typeName": etype.name,
        "assigneeId": user.id,
        "dueDate": due_date,
        "subTaskTitles": list(etype.sub_task_titles or DEFAULT_SUB_TASKS),
    }
    key = (client.id, etype.id, user.id)
    existing_id = snapshots.assigned.get(key)
    if key in seen:
        reason = f"Duplicate within file: same client, type and user as row {seen[key] + 1}."
        return ImportRow(index, values, Duplicate(reason, seen[key], existing_id), resolved=resolved)
    seen[key] = index
    if existing_id is not None:
        reason = "An engagement of this type is already assigned to this user for this client."
        return ImportRow(index, values, Duplicate(reason, existing_id=existing_id), resolved=resolved)
    return ImportRow(index, values, Create(), resolved=resolved)


class _Indexes:
    def __init__(self, snapshots: EngagementSnapshots) -> None:
        self.clients = name_index(snapshots.clients)
        self.types = name_index(snapshots.engagement_types)
        self.employees = name_index(snapshots.employees)
        self.assigned: dict[tuple[str, str, str], str] = {}
        for eng in snapshots.engagements:
            for assignee in eng.assigned_to:
                self.assigned.setdefault((eng.client_id, eng.type, assignee), eng.id)


def validate_engagements(
    rows: Sequence[dict[str, str]],
    snapshots: EngagementSnapshots,
    *,
    timezone: str = "UTC",
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    indexes = _Indexes(snapshots)
    seen: dict[tuple[str, str, str], int] = {}
    result_rows = []
    for index, values in enumerate(rows):
        result_rows.append(_classify(index, dict(values), indexes, seen, timezone))
        if progress is not None:
            progress.advance()
    cols = list(columns) if columns is not None else list(get_layout(KIND).columns)
    return ValidationResult(kind=KIND, rows=result_rows, columns=cols)


def validate_engagement_upload(
    store: DocumentStore,
    rows: Sequence[dict[str, str]],
    *,
    timezone: str = "UTC",
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    try:
        snapshots = EngagementSnapshots(
            clients=Repository(store, CLIENTS, ClientRecord.from_document).list(),
            engagement_types=Repository(store, ENGAGEMENT_TYPES, EngagementType.from_document).list(),
            employees=Repository(store, EMPLOYEES, Employee.from_document).list(),
            engagements=Repository(store, ENGAGEMENTS, Engagement.from_document).list(),
        )
    except StoreError as e:
        raise ValidationFailedError(f"validation failed: could not fetch master data ({e})") from e
    return validate_engagements(rows, snapshots, timezone=timezone, columns=columns, progress=progress)


def _stage(store: DocumentStore, batch: Any, row: ImportRow) -> int:
    """Stage one engagement and its tasks; returns the number of tasks."""
    r = row.resolved
    engagement = Engagement(
        id=store.new_id(),
        client_id=r["clientId"],
        type=r["engagementTypeId"],
        assigned_to=(r["assigneeId"],),
        reported_to="",
        remarks=cell(row.values, "Remarks") or r["typeName"],
        due_date=r["dueDate"],
        status="Pending",
    )
    batch.set(ENGAGEMENTS, engagement.id, engagement.to_document())
    for order, title in enumerate(r["subTaskTitles"], start=1):
        task = Task(
            id=store.new_id(),
            engagement_id=engagement.id,
            title=title,
            order=order,
            assigned_to=r["assigneeId"],
        )
        batch.set(TASKS, task.id, task.to_document())
    return len(r["subTaskTitles"])


def commit_engagements(
    store: DocumentStore,
    result: ValidationResult,
    mode: CommitMode = CommitMode.SKIP_DUPLICATES,
) -> CommitResult:
    """Create engagements with their task checklists in one batch.

    With OVERWRITE_DUPLICATES a duplicate row is created as a further
    engagement; existing engagements are never modified.

    Raises:
        CommitFailedError: if the batch is rejected.
    """
    batch = store.batch()
    created = overwritten = skipped = ignored = tasks = 0
    for row in result.rows:
        cls = row.classification
        if isinstance(cls, Ignore):
            ignored += 1
        elif isinstance(cls, Duplicate):
            if mode is CommitMode.OVERWRITE_DUPLICATES:
                tasks += _stage(store, batch, row)
                overwritten += 1
            else:
                skipped += 1
        elif isinstance(cls, Create):
            tasks += _stage(store, batch, row)
            created += 1

    if len(batch):
        logger.info(f"committing engagements: engagements={created + overwritten} tasks={tasks}")
        commit_batch(batch, KIND)
    return CommitResult(
        created=created,
        overwritten=overwritten,
        skipped=skipped,
        ignored=ignored,
        extra_documents=tasks,
    )

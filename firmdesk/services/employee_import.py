from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..csvio.layouts import EMPLOYEES as KIND
from ..csvio.layouts import get_layout
from ..models.entities import DEFAULT_AVATAR, DEFAULT_LEAVE_ALLOWANCE, Department, Employee
from ..models.import_row import (
    CommitMode,
    CommitResult,
    Create,
    Duplicate,
    Ignore,
    ImportRow,
    Update,
    ValidationResult,
)
from ..store.base import DocumentStore, StoreError
from ..store.repository import DEPARTMENTS, EMPLOYEES, Repository
from .batching import commit_batch
from .errors import ValidationFailedError
from .lookups import cell, is_valid_email, missing_mandatory, name_index
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

"""Bulk employee import: create new employees, update existing ones by email.

Email is the natural key (case-insensitive). A row is ignored when a
mandatory field is missing, the email is malformed, or the role is not the
name of a department. An unparsable Leave Allowance falls back to the
default of 18 days and is reported as a fix.
"""

__all__ = [
    "validate_employees",
    "validate_employee_upload",
    "commit_employees",
]

MANDATORY_MISSING = "Mandatory field is missing."
INVALID_ROW = "invalid row"


def _leave_allowance(raw: str) -> int | None:
    try:
        value = int(float(raw))
    except (ValueError, OverflowError):
        return None
    return value if value >= 0 else None


def _classify(
    index: int,
    values: dict[str, str],
    existing: dict[str, Employee],
    roles: dict[str, Department],
    seen: dict[str, int],
) -> ImportRow:
    layout = get_layout(KIND)
    errors: dict[str, str] = {c: MANDATORY_MISSING for c in missing_mandatory(values, layout.mandatory)}

    email = cell(values, "Email")
    if email and not is_valid_email(email):
        errors["Email"] = "Invalid email format."
    role = cell(values, "Role")
    department = roles.get(role.lower()) if role else None
    if role and department is None:
        errors["Role"] = f"Role '{role}' is not a valid department."

    if errors:
        return ImportRow(index, values, Ignore(INVALID_ROW), errors=errors)

    resolved: dict[str, Any] = {"role": department.name if department else role}
    fixes: tuple[str, ...] = ()
    raw_allowance = cell(values, "Leave Allowance")
    if raw_allowance:
        allowance = _leave_allowance(raw_allowance)
        if allowance is None:
            errors["Leave Allowance"] = (
                f"'{raw_allowance}' is not a valid number of days. It will be set to {DEFAULT_LEAVE_ALLOWANCE}."
            )
            fixes = ("Leave Allowance",)
        else:
            resolved["leaveAllowance"] = allowance

    key = email.lower()
    match = existing.get(key)
    if key in seen:
        reason = f"Duplicate within file: email {email} already used in row {seen[key] + 1}."
        return ImportRow(
            index,
            values,
            Duplicate(reason, canonical_index=seen[key], existing_id=match.id if match else None),
            errors=errors,
            resolved=resolved,
        )
    seen[key] = index
    if match is not None:
        return ImportRow(index, values, Update(match.id, fixes), errors=errors, resolved=resolved)
    return ImportRow(index, values, Create(fixes), errors=errors, resolved=resolved)


def validate_employees(
    rows: Sequence[dict[str, str]],
    employees: Sequence[Employee],
    departments: Sequence[Department],
    *,
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    existing = name_index(employees, key=lambda e: e.email)
    roles = name_index(departments)
    seen: dict[str, int] = {}
    result_rows = []
    for index, values in enumerate(rows):
        result_rows.append(_classify(index, dict(values), existing, roles, seen))
        if progress is not None:
            progress.advance()
    cols = list(columns) if columns is not None else list(get_layout(KIND).columns)
    return ValidationResult(kind=KIND, rows=result_rows, columns=cols)


def validate_employee_upload(
    store: DocumentStore,
    rows: Sequence[dict[str, str]],
    *,
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    try:
        employees = Repository(store, EMPLOYEES, Employee.from_document).list()
        departments = Repository(store, DEPARTMENTS, Department.from_document).list()
    except StoreError as e:
        raise ValidationFailedError(f"validation failed: could not fetch employees ({e})") from e
    return validate_employees(rows, employees, departments, columns=columns, progress=progress)


def _update_fields(row: ImportRow) -> dict[str, Any]:
    doc: dict[str, Any] = {"name": cell(row.values, "Name"), "role": [row.resolved["role"]]}
    designation = cell(row.values, "Designation")
    if designation:
        doc["designation"] = designation
    if "leaveAllowance" in row.resolved:
        doc["leaveAllowance"] = row.resolved["leaveAllowance"]
    return doc


def commit_employees(
    store: DocumentStore,
    result: ValidationResult,
    mode: CommitMode = CommitMode.SKIP_DUPLICATES,
) -> CommitResult:
    """Create/update employees in one batch.

    Raises:
        CommitFailedError: if the batch is rejected.
    """
    batch = store.batch()
    targets: dict[int, str] = {}
    created = updated = overwritten = skipped = ignored = 0
    for row in result.rows:
        cls = row.classification
        if isinstance(cls, Ignore):
            ignored += 1
        elif isinstance(cls, Duplicate):
            target = targets.get(cls.canonical_index) if cls.canonical_index is not None else None
            if mode is CommitMode.OVERWRITE_DUPLICATES and target is not None:
                batch.update(EMPLOYEES, target, _update_fields(row))
                overwritten += 1
            else:
                skipped += 1
        elif isinstance(cls, Update):
            batch.update(EMPLOYEES, cls.existing_id, _update_fields(row))
            targets[row.original_index] = cls.existing_id
            updated += 1
        elif isinstance(cls, Create):
            employee = Employee(
                id=store.new_id(),
                name=cell(row.values, "Name"),
                email=cell(row.values, "Email"),
                roles=(row.resolved["role"],),
                designation=cell(row.values, "Designation"),
                avatar=DEFAULT_AVATAR,
                leave_allowance=row.resolved.get("leaveAllowance", DEFAULT_LEAVE_ALLOWANCE),
                leaves_taken=0,
            )
            batch.set(EMPLOYEES, employee.id, employee.to_document())
            targets[row.original_index] = employee.id
            created += 1

    if len(batch):
        logger.info(f"committing employees: writes={len(batch)} mode={mode.value}")
        commit_batch(batch, KIND)
    return CommitResult(created=created, updated=updated, overwritten=overwritten, skipped=skipped, ignored=ignored)

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..models.client_record import CLIENT_COLUMNS, CLIENT_MANDATORY_COLUMNS, ClientRecord
from ..models.entities import Employee, Firm
from ..models.import_row import Create, Duplicate, Ignore, ImportRow, Update, ValidationResult
from ..models.sentinels import PAN_NOT_AVAILABLE, UNASSIGNED
from ..store.base import DocumentStore, StoreError
from ..store.repository import CLIENTS, EMPLOYEES, FIRMS, Repository
from .errors import ValidationFailedError
from .keys import ExistingIndex, NaturalKeys, SeenKeys, natural_keys
from .lookups import cell, is_valid_email, name_index
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

"""Validation and classification of client upload rows.

Each row is classified independently, in upload order, with a fixed
precedence:

1. missing Name            -> Ignore (the only fatal defect)
2. key seen earlier in file -> Duplicate (defects listed for information)
3. key of a stored client   -> Update
4. otherwise                -> Create

Create/Update rows carry the list of fields that will receive placeholder
values at commit time (missing mandatory fields, malformed Mail ID, unknown
partner or firm, missing PAN on a create); a non-empty list makes them
FIX_AND_CREATE / FIX_AND_UPDATE.
"""

__all__ = [
    "ClientSnapshots",
    "load_client_snapshots",
    "classify_client_row",
    "validate_clients",
    "validate_client_upload",
]

KIND = "clients"

NAME_MISSING = "Name is a mandatory field and cannot be empty. This row will be ignored."
PAN_MISSING = f'PAN is missing. It will be set to "{PAN_NOT_AVAILABLE}" for now. Please update it later.'
INVALID_MAIL = f'Invalid email format. It will be set to "{UNASSIGNED}".'


def _mandatory_missing(column: str) -> str:
    return f"Mandatory field '{column}' is missing. It will be set to a default placeholder value."


@dataclass(frozen=True)
class ClientSnapshots:
    """Master data a validation pass is checked against."""
    clients: list[ClientRecord]
    employees: list[Employee]
    firms: list[Firm]


def load_client_snapshots(store: DocumentStore) -> ClientSnapshots:
    """Fetch clients, employees and firms, one collection after another.

    Raises:
        ValidationFailedError: if any read fails.
    """
    try:
        clients = Repository(store, CLIENTS, ClientRecord.from_document).list()
        employees = Repository(store, EMPLOYEES, Employee.from_document).list()
        firms = Repository(store, FIRMS, Firm.from_document).list()
    except StoreError as e:
        raise ValidationFailedError(f"validation failed: could not fetch existing client data ({e})") from e
    logger.debug(f"snapshots: clients={len(clients)} employees={len(employees)} firms={len(firms)}")
    return ClientSnapshots(clients=clients, employees=employees, firms=firms)


class _Resolver:
    def __init__(self, snapshots: ClientSnapshots, partner_role: str) -> None:
        partners = [e for e in snapshots.employees if e.has_role(partner_role)]
        self.partner_role = partner_role
        self.partners = name_index(partners)
        self.firms = name_index(snapshots.firms)
        self.existing = ExistingIndex.from_records(snapshots.clients)


def _defects(
    values: dict[str, str], resolver: _Resolver, *, is_update: bool
) -> tuple[dict[str, str], dict[str, str]]:
    """Fixable defects of a named row, plus the resolved partner/firm ids."""
    errors: dict[str, str] = {}
    for column in CLIENT_MANDATORY_COLUMNS:
        if column != "Name" and not cell(values, column):
            errors[column] = _mandatory_missing(column)

    mail = cell(values, "Mail ID")
    if mail and not is_valid_email(mail):
        errors["Mail ID"] = INVALID_MAIL

    resolved = {"partnerId": UNASSIGNED, "firmId": UNASSIGNED}
    partner = cell(values, "Partner")
    if partner:
        match = resolver.partners.get(partner.lower())
        if match is None:
            errors["Partner"] = (
                f'Partner "{partner}" not found among {resolver.partner_role} employees. '
                f'It will be set to "{UNASSIGNED}".'
            )
        else:
            resolved["partnerId"] = match.id
    firm = cell(values, "Firm Name")
    if firm:
        match_firm = resolver.firms.get(firm.lower())
        if match_firm is None:
            errors["Firm Name"] = f'Firm "{firm}" not found. It will be set to "{UNASSIGNED}".'
        else:
            resolved["firmId"] = match_firm.id

    if not cell(values, "PAN") and not is_update:
        errors["PAN"] = PAN_MISSING
    return errors, resolved


def _duplicate_reason(keys: NaturalKeys, which: str, canonical_index: int) -> str:
    if which == "record":
        return f"Duplicate within file: matches the same existing client as row {canonical_index + 1}."
    return f"Duplicate within file: {keys.describe(which)} already used in row {canonical_index + 1}."


def classify_client_row(
    index: int, values: dict[str, str], seen: SeenKeys, resolver: _Resolver
) -> ImportRow:
    """Classify one row and, unless it is a duplicate or ignored, claim its keys."""
    if not cell(values, "Name"):
        return ImportRow(index, values, Ignore(NAME_MISSING), errors={"Name": NAME_MISSING})

    keys = natural_keys(values)
    existing_id = resolver.existing.lookup(keys)
    errors, resolved = _defects(values, resolver, is_update=existing_id is not None)

    collision = seen.find(keys, existing_id)
    if collision is not None:
        which, canonical = collision
        classification = Duplicate(
            reason=_duplicate_reason(keys, which, canonical),
            canonical_index=canonical,
            existing_id=existing_id,
        )
        return ImportRow(index, values, classification, errors=errors, resolved=resolved)

    seen.register(keys, index, existing_id)
    fixes = tuple(errors)
    if existing_id is not None:
        return ImportRow(index, values, Update(existing_id, fixes), errors=errors, resolved=resolved)
    return ImportRow(index, values, Create(fixes), errors=errors, resolved=resolved)


def validate_clients(
    rows: Sequence[dict[str, str]],
    snapshots: ClientSnapshots,
    *,
    partner_role: str = "Partner",
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    """Classify every normalized row against the given snapshots. Never raises."""
    resolver = _Resolver(snapshots, partner_role)
    seen = SeenKeys()
    result_rows: list[ImportRow] = []
    for index, values in enumerate(rows):
        result_rows.append(classify_client_row(index, dict(values), seen, resolver))
        if progress is not None:
            progress.advance()
    if columns is None:
        columns = list(rows[0]) if rows else list(CLIENT_COLUMNS)
    return ValidationResult(kind=KIND, rows=result_rows, columns=list(columns))


def validate_client_upload(
    store: DocumentStore,
    rows: Sequence[dict[str, str]],
    *,
    partner_role: str = "Partner",
    columns: Sequence[str] | None = None,
    progress: ProgressTracker | None = None,
) -> ValidationResult:
    """Fetch snapshots from `store`, then classify `rows`.

    Raises:
        ValidationFailedError: if the snapshots cannot be fetched.
    """
    snapshots = load_client_snapshots(store)
    return validate_clients(rows, snapshots, partner_role=partner_role, columns=columns, progress=progress)

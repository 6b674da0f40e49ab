from __future__ import annotations

import logging
from typing import Any

from ..models.client_record import CLIENT_COLUMNS, CLIENT_OPTIONAL_FIELDS
from ..models.import_row import CommitMode, CommitResult, Create, Duplicate, Ignore, ImportRow, Update, ValidationResult
from ..models.sentinels import MOBILE_NOT_AVAILABLE, PAN_NOT_AVAILABLE, UNASSIGNED
from ..store.base import DocumentStore, WriteBatch
from ..store.repository import CLIENTS
from .batching import commit_batch
from .lookups import cell, is_valid_email, utc_now_iso

logger = logging.getLogger(__name__)

"""Commit of validated client rows as one atomic batch.

- IGNORE rows are never written.
- DUPLICATE rows are skipped, or with OVERWRITE_DUPLICATES merged into the
  document their canonical row writes (the stored record for an update, the
  newly allocated id for a create). They are applied after the canonical row,
  so their values win.
- Creates are written with `set` under a new id; updates merge into the
  existing document, so blank optional cells and a blank PAN leave the stored
  values untouched.
"""

__all__ = [
    "build_client_document",
    "parse_linked_ids",
    "commit_clients",
]

KIND = "clients"


def parse_linked_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def build_client_document(row: ImportRow, *, is_update: bool, now: str) -> dict[str, Any]:
    """Document body for one row with placeholders substituted.

    The returned dict carries neither `id` nor `createdAt`; the caller adds
    them for creates.
    """
    values = row.values
    mail = cell(values, "Mail ID")
    doc: dict[str, Any] = {
        "name": cell(values, "Name"),
        "mailId": mail if mail and is_valid_email(mail) else UNASSIGNED,
        "mobileNumber": cell(values, "Mobile Number") or MOBILE_NOT_AVAILABLE,
        "category": cell(values, "Category") or UNASSIGNED,
        "partnerId": row.resolved.get("partnerId") or UNASSIGNED,
        "firmId": row.resolved.get("firmId") or UNASSIGNED,
        "lastUpdated": now,
    }

    pan = cell(values, "PAN").upper()
    if pan:
        doc["pan"] = pan
    elif not is_update:
        doc["pan"] = PAN_NOT_AVAILABLE

    linked = cell(values, "Linked Client IDs")
    if linked or not is_update:
        doc["linkedClientIds"] = parse_linked_ids(linked)

    for column in CLIENT_OPTIONAL_FIELDS:
        value = cell(values, column)
        if value:
            doc[CLIENT_COLUMNS[column]] = value  # type: ignore[index]
    return doc


def _stage_row(batch: WriteBatch, store: DocumentStore, row: ImportRow, now: str) -> str:
    """Stage a Create or Update row; returns the document id it writes."""
    if isinstance(row.classification, Update):
        doc_id = row.classification.existing_id
        batch.update(CLIENTS, doc_id, build_client_document(row, is_update=True, now=now))
        return doc_id
    doc_id = store.new_id()
    doc = build_client_document(row, is_update=False, now=now)
    doc.update({"id": doc_id, "createdAt": now})
    batch.set(CLIENTS, doc_id, doc)
    return doc_id


def commit_clients(
    store: DocumentStore,
    result: ValidationResult,
    mode: CommitMode = CommitMode.SKIP_DUPLICATES,
    *,
    now: str | None = None,
) -> CommitResult:
    """Write every eligible row in a single batch.

    Raises:
        CommitFailedError: if the store rejects the batch (nothing is written).
    """
    now = now or utc_now_iso()
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
                batch.update(CLIENTS, target, build_client_document(row, is_update=True, now=now))
                overwritten += 1
            else:
                skipped += 1
        elif isinstance(cls, (Create, Update)):
            targets[row.original_index] = _stage_row(batch, store, row, now)
            if isinstance(cls, Update):
                updated += 1
            else:
                created += 1

    if len(batch):
        logger.info(f"committing clients: writes={len(batch)} mode={mode.value}")
        commit_batch(batch, KIND)
    else:
        logger.info("no client rows to import")
    return CommitResult(
        created=created,
        updated=updated,
        overwritten=overwritten,
        skipped=skipped,
        ignored=ignored,
    )


from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ..csvio.layouts import CLIENTS, EMPLOYEES, ENGAGEMENTS, RECURRING
from ..csvio.reader import ImportInputError, normalize_header, normalize_rows, read_csv_rows
from ..csvio.templates import export_invalid_rows
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import AppConfig
from ..models.import_row import CommitMode, CommitResult, ValidationResult
from ..models.run_result import RunResult
from ..store.base import DocumentStore
from .client_commit import commit_clients
from .client_validation import validate_client_upload
from .employee_import import commit_employees, validate_employee_upload
from .engagement_import import commit_engagements, validate_engagement_upload
from .errors import CommitFailedError, ValidationFailedError
from .progress import ProgressTracker
from .recurring_import import commit_recurring, validate_recurring_upload

logger = logging.getLogger(__name__)

"""Run orchestration: read -> normalize -> validate -> (commit).

One upload file per run. Row problems are written to the JSON Lines error
log; session-level failures (unreadable file, snapshot fetch, rejected batch)
are logged with row=-1 and re-raised for the CLI to map to an exit code.
"""

__all__ = [
    "Pipeline",
    "PIPELINES",
    "get_pipeline",
    "run_validation",
    "run_import",
]

Committer = Callable[[DocumentStore, ValidationResult, CommitMode], CommitResult]


@dataclass(frozen=True)
class Pipeline:
    kind: str
    validate: Callable[[AppConfig, DocumentStore, Sequence[dict[str, str]], list[str], ProgressTracker], ValidationResult]
    commit: Committer


PIPELINES: dict[str, Pipeline] = {
    CLIENTS: Pipeline(
        CLIENTS,
        lambda cfg, store, rows, cols, progress: validate_client_upload(
            store, rows, partner_role=cfg.partner_role, columns=cols, progress=progress
        ),
        commit_clients,
    ),
    EMPLOYEES: Pipeline(
        EMPLOYEES,
        lambda cfg, store, rows, cols, progress: validate_employee_upload(
            store, rows, columns=cols, progress=progress
        ),
        commit_employees,
    ),
    ENGAGEMENTS: Pipeline(
        ENGAGEMENTS,
        lambda cfg, store, rows, cols, progress: validate_engagement_upload(
            store, rows, timezone=cfg.timezone, columns=cols, progress=progress
        ),
        commit_engagements,
    ),
    RECURRING: Pipeline(
        RECURRING,
        lambda cfg, store, rows, cols, progress: validate_recurring_upload(
            store, rows, columns=cols, progress=progress
        ),
        commit_recurring,
    ),
}


def get_pipeline(kind: str) -> Pipeline:
    try:
        return PIPELINES[kind]
    except KeyError:
        raise ValueError(f"unknown import kind: {kind!r}") from None


def _record_rows(error_log: ErrorLogBuffer, file_name: str, result: ValidationResult) -> None:
    for row in result.rows_with_issues:
        error_log.append(
            ErrorRecord.create(
                file=file_name,
                kind=result.kind,
                row=row.original_index + 1,
                action=row.action.value,
                message=row.error_reason(),
            )
        )


def _validate(
    cfg: AppConfig, store: DocumentStore, pipeline: Pipeline, csv_path: Path, error_log: ErrorLogBuffer
) -> ValidationResult:
    data = read_csv_rows(csv_path)
    rows = normalize_rows(data.rows, cfg.mandatory_marker)
    columns = [normalize_header(c, cfg.mandatory_marker) for c in data.columns]
    logger.info(f"validating {pipeline.kind}: file={csv_path.name} rows={len(rows)}")
    with ProgressTracker(len(rows), description=f"Validating {pipeline.kind}") as progress:
        result = pipeline.validate(cfg, store, rows, columns, progress)
        progress.set_postfix(issues=len(result.rows_with_issues))
    for row in result.rows_with_issues:
        logger.debug(f"row {row.original_index + 1}: {row.action.value} {row.error_reason()}")
    _record_rows(error_log, csv_path.name, result)
    return result


def _run(
    cfg: AppConfig,
    store: DocumentStore,
    kind: str,
    csv_path: Path,
    *,
    mode: CommitMode | None,
    invalid_rows_path: Path | None,
) -> RunResult:
    pipeline = get_pipeline(kind)
    start_time = datetime.now(UTC)
    error_log = ErrorLogBuffer(cfg.logs_directory)
    log_path: Path | None = None
    try:
        result = _validate(cfg, store, pipeline, csv_path, error_log)
        exported: Path | None = None
        if invalid_rows_path is not None:
            count = export_invalid_rows(result, invalid_rows_path)
            logger.info(f"invalid rows exported: {count} -> {invalid_rows_path}")
            exported = invalid_rows_path
        commit: CommitResult | None = None
        if mode is not None:
            commit = pipeline.commit(store, result, mode)
    except (ImportInputError, ValidationFailedError, CommitFailedError) as e:
        error_log.append(
            ErrorRecord.create(file=csv_path.name, kind=kind, row=-1, action=type(e).__name__, message=str(e))
        )
        raise
    finally:
        log_path = error_log.flush()
        if log_path is not None:
            logger.info(f"error log written: {log_path}")

    end_time = datetime.now(UTC)
    return RunResult(
        file_name=csv_path.name,
        validation=result,
        commit=commit,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        error_log_path=log_path,
        invalid_rows_path=exported,
    )


def run_validation(
    cfg: AppConfig, store: DocumentStore, kind: str, csv_path: Path, *, invalid_rows_path: Path | None = None
) -> RunResult:
    """Validate an upload without writing anything to the store."""
    return _run(cfg, store, kind, csv_path, mode=None, invalid_rows_path=invalid_rows_path)


def run_import(
    cfg: AppConfig,
    store: DocumentStore,
    kind: str,
    csv_path: Path,
    mode: CommitMode = CommitMode.SKIP_DUPLICATES,
    *,
    invalid_rows_path: Path | None = None,
) -> RunResult:
    """Validate and commit an upload.

    Raises:
        ImportInputError, ValidationFailedError, CommitFailedError
    """
    return _run(cfg, store, kind, csv_path, mode=mode, invalid_rows_path=invalid_rows_path)

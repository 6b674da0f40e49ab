from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .import_row import CommitResult, ValidationResult

"""Outcome of one CLI validate/import run, used for the SUMMARY line and the
exit code.
"""

__all__ = ["RunResult"]


@dataclass(frozen=True)
class RunResult:
    file_name: str
    validation: ValidationResult
    commit: CommitResult | None  # None for validate-only runs
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    error_log_path: Path | None = None
    invalid_rows_path: Path | None = None

    @property
    def kind(self) -> str:
        return self.validation.kind

    @property
    def is_partial(self) -> bool:
        """Some rows were left out (ignored, or duplicates skipped)."""
        if self.commit is not None:
            return self.commit.ignored > 0 or self.commit.skipped > 0
        return self.validation.ignores > 0 or self.validation.duplicates > 0

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the per-run problem log.

Each record describes one row-level or session-level problem found while
validating or committing an upload. Session-level problems use row=-1 since
no single row can be blamed.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: uploaded file name
        kind: import kind (clients, employees, engagements, recurring)
        row: 1-based row number in the upload, -1 for session-level errors
        action: row action label or an UPPER_SNAKE error type
        message: human readable description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    kind: str
    row: int
    action: str
    message: str

    @staticmethod
    def create(file: str, kind: str, row: int, action: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            kind=kind,
            row=row,
            action=action,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)

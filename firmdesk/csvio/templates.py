from __future__ import annotations

import io
from pathlib import Path

import pandas as pd

from ..models.import_row import ValidationResult
from .layouts import ImportLayout, get_layout

"""Download templates and the invalid-rows export.

Templates mark mandatory headers with the marker character (default '*') and
end with an operator guidance comment line, which the reader drops on
re-import. The invalid-rows export keeps the uploaded columns and appends an
"Error Reason" column.
"""

__all__ = [
    "TEMPLATE_FOOTER",
    "ERROR_REASON_COLUMN",
    "template_headers",
    "build_template",
    "write_template",
    "invalid_rows_frame",
    "export_invalid_rows",
]

TEMPLATE_FOOTER = "# IMPORTANT: Please delete these example rows before entering your own data and uploading the file."
ERROR_REASON_COLUMN = "Error Reason"


def template_headers(layout: ImportLayout, marker: str = "*") -> list[str]:
    return [f"{c}{marker}" if layout.is_mandatory(c) else c for c in layout.columns]


def build_template(kind: str, marker: str = "*") -> str:
    layout = get_layout(kind)
    headers = template_headers(layout, marker)
    data = [[example.get(c, "") for c in layout.columns] for example in layout.examples]
    frame = pd.DataFrame(data, columns=headers)
    buf = io.StringIO()
    frame.to_csv(buf, index=False, lineterminator="\n")
    return buf.getvalue() + "\n" + TEMPLATE_FOOTER + "\n"


def write_template(kind: str, path: Path | None = None, marker: str = "*") -> Path:
    """Write the template for `kind`; defaults to its standard file name."""
    target = Path(path) if path is not None else Path(get_layout(kind).template_name)
    target.write_text(build_template(kind, marker), encoding="utf-8")
    return target


def invalid_rows_frame(result: ValidationResult) -> pd.DataFrame:
    columns = list(result.columns)
    data = []
    for row in result.rows_with_issues:
        record = [row.values.get(c, "") for c in columns]
        record.append(row.error_reason())
        data.append(record)
    return pd.DataFrame(data, columns=columns + [ERROR_REASON_COLUMN])


def export_invalid_rows(result: ValidationResult, path: Path) -> int:
    """Write IGNORE, DUPLICATE and fixed rows to `path`; returns rows written."""
    frame = invalid_rows_frame(result)
    frame.to_csv(path, index=False, lineterminator="\n")
    return len(frame)

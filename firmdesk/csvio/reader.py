from __future__ import annotations

import io
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""CSV reading and header normalization for bulk uploads.

- Header row first; lines starting with '#' are operator comments and dropped
  before parsing (only whole lines, so a '#' inside a value is kept).
- Every cell is read as a string; pandas NA coercion is disabled so values
  such as "NA" or "NULL" reach validation unchanged and empty cells stay "".
- Rows whose cells are all blank are skipped.
- Cells beyond the header (trailing commas from spreadsheet exports) are
  dropped.
- Headers may carry a trailing mandatory marker ("Name*") from the download
  template; normalize_rows strips it.
"""

__all__ = [
    "ImportInputError",
    "CsvData",
    "read_csv_rows",
    "normalize_header",
    "normalize_rows",
]


class ImportInputError(Exception):
    """Raised when an uploaded file cannot be read as CSV."""


@dataclass
class CsvData:
    columns: list[str]
    rows: list[dict[str, str]]  # raw header -> value


def _strip_comment_lines(text: str, comment_char: str) -> str:
    kept = [line for line in text.splitlines() if not line.startswith(comment_char)]
    return "\n".join(kept)


def read_csv_rows(path: Path, comment_char: str = "#") -> CsvData:
    """Parse an uploaded CSV into header-keyed string rows."""
    try:
        text = Path(path).read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise ImportInputError(f"cannot read {path}: {e}") from e

    body = _strip_comment_lines(text, comment_char)
    if not body.strip():
        return CsvData(columns=[], rows=[])
    try:
        header = pd.read_csv(io.StringIO(body), nrows=0, dtype=str).columns
        # index_col=False: a trailing delimiter must not turn the first column
        # into the index. usecols drops cells beyond the header.
        df = pd.read_csv(
            io.StringIO(body),
            dtype=str,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
            index_col=False,
            usecols=list(range(len(header))),
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ImportInputError(f"invalid csv {path}: {e}") from e

    columns = [str(c) for c in df.columns]
    rows: list[dict[str, str]] = []
    for record in df.to_dict(orient="records"):
        values = {str(k): ("" if v is None else str(v)) for k, v in record.items()}
        if all(v.strip() == "" for v in values.values()):
            continue
        rows.append(values)
    return CsvData(columns=columns, rows=rows)


def normalize_header(header: Any, marker: str = "*") -> str:
    name = str(header).strip()
    if marker and name.endswith(marker):
        name = name[: -len(marker)].rstrip()
    return name


def normalize_rows(rows: Iterable[Mapping[Any, Any]], marker: str = "*") -> list[dict[str, str]]:
    """Strip the mandatory marker from every header.

    Pure and total: values are converted to strings (None -> ""), row order
    is preserved.
    """
    normalized: list[dict[str, str]] = []
    for row in rows:
        clean: dict[str, str] = {}
        for key, value in row.items():
            clean[normalize_header(key, marker)] = "" if value is None else str(value)
        normalized.append(clean)
    return normalized

from __future__ import annotations

from ..models.import_row import RowAction
from ..models.run_result import RunResult

"""SUMMARY line rendering.

Format (single line, space separated key=value pairs):

    SUMMARY kind=clients file=clients.csv rows=10 create=4 update=2
    fix_and_create=1 fix_and_update=0 duplicate=2 ignore=1
    [written=7 created=5 updated=2 overwritten=0 skipped=2 ignored=1 extra=0]
    elapsed_sec=0.12

The bracketed part is present only for import runs.
"""

__all__ = ["render_summary_line", "format_seconds"]


def format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    counts = result.validation.counts
    parts = [
        "SUMMARY",
        f"kind={result.kind}",
        f"file={result.file_name}",
        f"rows={len(result.validation.rows)}",
    ]
    parts += [f"{action.value.lower()}={counts[action]}" for action in RowAction]
    if result.commit is not None:
        c = result.commit
        parts += [
            f"written={c.written}",
            f"created={c.created}",
            f"updated={c.updated}",
            f"overwritten={c.overwritten}",
            f"skipped={c.skipped}",
            f"ignored={c.ignored}",
            f"extra={c.extra_documents}",
        ]
    parts.append(f"elapsed_sec={format_seconds(result.elapsed_seconds)}")
    return " ".join(parts)

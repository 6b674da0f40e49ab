from __future__ import annotations

"""Session-level failures raised by the import and billing services.

Row-level problems are never raised; they end up in ImportRow.errors and the
row classification instead.
"""

__all__ = [
    "ValidationFailedError",
    "CommitFailedError",
    "InvoiceInputError",
]


class ValidationFailedError(Exception):
    """Master-data snapshots could not be fetched; the pass was aborted."""


class CommitFailedError(Exception):
    """The atomic batch was rejected; nothing was written."""


class InvoiceInputError(ValueError):
    pass

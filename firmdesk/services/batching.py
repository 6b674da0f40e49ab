from __future__ import annotations

import logging

from ..store.base import StoreError, WriteBatch
from .errors import CommitFailedError

logger = logging.getLogger(__name__)

__all__ = ["commit_batch"]


def commit_batch(batch: WriteBatch, what: str) -> int:
    """Commit `batch` once; no retry.

    Raises:
        CommitFailedError: wrapping the store error. The store guarantees
            nothing from the batch was applied.
    """
    try:
        applied = batch.commit()
    except StoreError as e:
        logger.debug(f"{what}: batch of {len(batch)} rejected: {e}")
        raise CommitFailedError(f"commit failed: could not write {what} ({e})") from e
    logger.debug(f"{what}: batch committed ops={applied}")
    return applied

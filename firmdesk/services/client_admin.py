from __future__ import annotations

import logging

from ..store.base import DocumentStore, StoreError
from ..store.repository import CLIENTS, ENGAGEMENTS
from .batching import commit_batch
from .errors import CommitFailedError

logger = logging.getLogger(__name__)

__all__ = ["delete_client_cascade"]


def delete_client_cascade(store: DocumentStore, client_id: str) -> int:
    """Delete a client and all of its engagements in one batch.

    Returns the number of engagements removed.

    Raises:
        CommitFailedError: if the lookup or the batch fails; nothing is deleted.
    """
    try:
        engagements = store.query(ENGAGEMENTS, "clientId", client_id)
    except StoreError as e:
        raise CommitFailedError(f"delete failed: could not list engagements of {client_id} ({e})") from e
    batch = store.batch()
    for eng in engagements:
        batch.delete(ENGAGEMENTS, str(eng["id"]))
    batch.delete(CLIENTS, client_id)
    commit_batch(batch, "client delete")
    logger.info(f"deleted client {client_id} with {len(engagements)} engagements")
    return len(engagements)

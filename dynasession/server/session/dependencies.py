from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends

from .schemas import StoreOptions
from .store import DynamoDBSessionStore

logger = logging.getLogger(__name__)

_SESSION_STORE: Optional[DynamoDBSessionStore] = None


def initialise_session_store() -> DynamoDBSessionStore:
    """Create session store instance using configuration."""
    global _SESSION_STORE
    if _SESSION_STORE is not None:
        return _SESSION_STORE

    store = DynamoDBSessionStore(StoreOptions.from_env())
    _SESSION_STORE = store
    logger.info("Initialised session store on table %s (region %s)", store.table, store.options.region)
    return store


def set_session_store(store: Optional[DynamoDBSessionStore]) -> None:
    global _SESSION_STORE
    _SESSION_STORE = store


def get_session_store(_: DynamoDBSessionStore = Depends(initialise_session_store)) -> DynamoDBSessionStore:
    if _SESSION_STORE is None:
        raise RuntimeError("Session store has not been initialised")
    return _SESSION_STORE

"""Backend selection.

`create_store` picks the backend from settings: the remote database when a
URL is configured and its engine can be built, the local document store
otherwise. `get_store` caches that choice for the lifetime of the process.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from ..config import Settings, get_settings
from ..errors import BackendUnavailableError
from .base import DataStore
from .local import LocalStore
from .remote import RemoteStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings | None = None) -> DataStore:
    """Build the store the settings call for.

    Falls back to the local store when the remote backend cannot be
    constructed; the failure is logged, never raised to the caller.
    """
    settings = settings or get_settings()

    if settings.remote.configured:
        try:
            return RemoteStore.from_settings(settings.remote)
        except BackendUnavailableError as exc:
            logger.warning(f"Remote backend unavailable, falling back to local store: {exc}")
    else:
        logger.info("No remote database configured")

    return LocalStore.from_settings(settings.local)


@lru_cache(maxsize=1)
def get_store() -> DataStore:
    """Process-wide store, selected on first access."""
    store = create_store()
    logger.info(f"Selected {store.backend} backend")
    return store


def reset_store() -> None:
    """Forget the cached store so the next `get_store` selects again (tests)."""
    get_store.cache_clear()

# src/cache/cache_factory.py — v3
"""Factory for derived-image store instantiation."""

from __future__ import annotations

import logging

from ragcurator.cache.image_store import DerivedImageStore
from ragcurator.cache.store_guard import StoreGuard
from ragcurator.config.settings import Settings

logger = logging.getLogger(__name__)


def create_image_store(settings: Settings | None = None) -> DerivedImageStore | None:
    """Instantiate the derived-image store, or None when caching is unavailable.

    A cache root that cannot be created disables caching for the session
    instead of failing startup.

    Args:
        settings: Application settings. Defaults to ``Settings()``.

    Returns:
        DerivedImageStore, or None if disabled or the root is unusable.
    """
    settings = settings or Settings()
    if not settings.cache_enabled:
        logger.info("Derived-image cache disabled by configuration")
        return None

    try:
        return DerivedImageStore(
            root=settings.cache_root, quality=settings.derivative_quality
        )
    except OSError as e:
        logger.warning(
            "Cache root %s unavailable, caching disabled: %s", settings.cache_root, e
        )
        return None


def create_store_guard(settings: Settings | None = None) -> StoreGuard:
    """Build the process-wide StoreGuard for the configured cache root."""
    settings = settings or Settings()
    return StoreGuard(
        create_image_store(settings), lock_timeout=settings.cache_lock_timeout
    )

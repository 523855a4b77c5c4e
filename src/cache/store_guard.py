# src/cache/store_guard.py — v1
"""Lock-guarded access to the derived-image store.

One ``threading.Lock`` guards one store. Every guarded method is a short
synchronous critical section (stat, write, rename) that returns a plain
value; image encoding happens outside the lock. Coroutines never touch the
lock on the event loop thread: they use the ``_async`` variants, which hand
the whole guarded call to ``asyncio.to_thread``.

Clearing renames directories aside under the lock and deletes them after
release. ``total_size`` takes no lock.

A guard may wrap ``None`` when the store could not be created. The guard
then reports ``enabled == False`` and every store operation raises
``CacheError``; callers are expected to check ``enabled`` and fall back to
uncached serving.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ragcurator.cache.image_store import DerivedImageStore
from ragcurator.cache.models import CacheTier
from ragcurator.core.errors import CacheError

logger = logging.getLogger(__name__)


class StoreGuard:
    """Process-wide owner of a DerivedImageStore and its mutex."""

    def __init__(
        self, store: DerivedImageStore | None, lock_timeout: float = 10.0
    ) -> None:
        self._store = store
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout

    @property
    def enabled(self) -> bool:
        """False when caching is disabled for the session."""
        return self._store is not None

    @contextmanager
    def _locked(self) -> Iterator[DerivedImageStore]:
        store = self._require_store()
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise CacheError(
                f"Timed out after {self._lock_timeout}s waiting for the cache lock"
            )
        try:
            yield store
        finally:
            self._lock.release()

    def _require_store(self) -> DerivedImageStore:
        if self._store is None:
            raise CacheError("Cache manager not initialized")
        return self._store

    # --- Lookups ---

    def lookup(
        self, tier: CacheTier, namespace: str, item_id: int
    ) -> tuple[Path, bool]:
        """Return ``(path, exists)`` for one entry."""
        with self._locked() as store:
            path = store.path_for(tier, namespace, item_id)
            return path, path.exists()

    def partition_cached(
        self, tier: CacheTier, namespace: str, item_ids: Iterable[int]
    ) -> tuple[list[int], list[int]]:
        """Split ids into ``(cached, missing)`` under a single lock hold."""
        cached: list[int] = []
        missing: list[int] = []
        with self._locked() as store:
            for item_id in item_ids:
                if store.exists(tier, namespace, item_id):
                    cached.append(item_id)
                else:
                    missing.append(item_id)
        return cached, missing

    async def lookup_async(
        self, tier: CacheTier, namespace: str, item_id: int
    ) -> tuple[Path, bool]:
        """``lookup`` on a worker thread."""
        return await asyncio.to_thread(self.lookup, tier, namespace, item_id)

    async def partition_cached_async(
        self, tier: CacheTier, namespace: str, item_ids: Iterable[int]
    ) -> tuple[list[int], list[int]]:
        return await asyncio.to_thread(
            self.partition_cached, tier, namespace, list(item_ids)
        )

    # --- Writes ---

    def store_derivative(
        self,
        tier: CacheTier,
        namespace: str,
        item_id: int,
        raw_bytes: bytes,
        max_dimension: int,
    ) -> Path:
        """Encode outside the lock, then write if still absent (first wins)."""
        path, exists = self.lookup(tier, namespace, item_id)
        if exists:
            return path
        payload = self._require_store().encode_derivative(
            raw_bytes, max_dimension, item_id
        )
        with self._locked() as store:
            return store.put(tier, namespace, item_id, payload)

    def store_original(self, namespace: str, item_id: int, raw_bytes: bytes) -> Path:
        path, exists = self.lookup(CacheTier.ORIGINAL, namespace, item_id)
        if exists:
            return path
        payload = self._require_store().encode_original(raw_bytes, item_id)
        with self._locked() as store:
            return store.put(CacheTier.ORIGINAL, namespace, item_id, payload)

    async def store_derivative_async(
        self,
        tier: CacheTier,
        namespace: str,
        item_id: int,
        raw_bytes: bytes,
        max_dimension: int,
    ) -> Path:
        """``store_derivative`` on a worker thread."""
        return await asyncio.to_thread(
            self.store_derivative, tier, namespace, item_id, raw_bytes, max_dimension
        )

    async def store_original_async(
        self, namespace: str, item_id: int, raw_bytes: bytes
    ) -> Path:
        return await asyncio.to_thread(
            self.store_original, namespace, item_id, raw_bytes
        )

    # --- Eviction / accounting ---

    def clear_namespace(self, namespace: str) -> None:
        with self._locked() as store:
            detached = store.detach_namespace(namespace)
        store.purge(detached)
        logger.info("Cleared cache namespace %s", namespace)

    def clear_all(self) -> None:
        with self._locked() as store:
            detached = store.detach_all()
        store.purge(detached)
        logger.info("Cleared all caches under %s", store.root)

    def total_size(self) -> int:
        """Approximate while writes or purges are in flight."""
        return self._require_store().total_size()

# src/api/facade.py — v2
"""Public API facade — the command surface consumed by the UI layer.

Usage:
    from ragcurator.api.facade import ImageService
    service = ImageService(settings)
    service.connect(await create_catalog(settings))
    path = await service.resolve_thumbnail(page_id)

One ImageService owns the process-wide StoreGuard and renderer; the
workspace (catalog + cache namespace) can be swapped with connect() and
disconnect() without touching the cache.
"""

from __future__ import annotations

import asyncio
import logging

from ragcurator.cache.cache_factory import create_store_guard
from ragcurator.cache.namespace import make_namespace
from ragcurator.cache.store_guard import StoreGuard
from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.catalog.models import PageSourceInfo
from ragcurator.config.settings import Settings
from ragcurator.core.errors import CacheError, NotConnectedError
from ragcurator.logging.context import set_request_context, set_workspace_context
from ragcurator.rendering.base_renderer import BasePageRenderer
from ragcurator.rendering.renderer_factory import create_renderer
from ragcurator.resolution.resolver import ImageResolver

logger = logging.getLogger(__name__)


class ImageService:
    """Image commands for the currently open workspace."""

    def __init__(
        self,
        settings: Settings | None = None,
        guard: StoreGuard | None = None,
        renderer: BasePageRenderer | None = None,
    ) -> None:
        """Build the service.

        Args:
            settings: Global settings. Loaded from .env if None.
            guard: Store guard to share. Built from settings if None.
            renderer: Page renderer. Built from settings if None.
        """
        self._settings = settings or Settings()
        self._guard = guard if guard is not None else create_store_guard(self._settings)
        self._renderer = renderer if renderer is not None else create_renderer(self._settings)
        self._catalog: BasePageCatalog | None = None
        self._resolver: ImageResolver | None = None

        if not self._guard.enabled:
            logger.warning("Derived-image cache unavailable; images will be served inline")

    @property
    def is_connected(self) -> bool:
        return self._resolver is not None

    @property
    def namespace(self) -> str | None:
        return self._resolver.namespace if self._resolver else None

    @property
    def cache_enabled(self) -> bool:
        return self._guard.enabled

    # --- Workspace lifecycle ---

    def connect(self, catalog: BasePageCatalog) -> str:
        """Open a workspace; returns its cache namespace."""
        namespace = make_namespace(catalog.identifier)
        self._catalog = catalog
        self._resolver = ImageResolver(
            catalog=catalog,
            guard=self._guard,
            namespace=namespace,
            renderer=self._renderer,
            thumbnail_size=self._settings.thumbnail_size,
            preview_size=self._settings.preview_size,
        )
        set_workspace_context(namespace)
        logger.info("Workspace %s opened (cache namespace %s)", catalog.identifier, namespace)
        return namespace

    async def disconnect(self) -> None:
        """Close the current workspace, if any."""
        catalog = self._catalog
        self._catalog = None
        self._resolver = None
        if catalog is not None:
            await catalog.close()

    def _require_resolver(self) -> ImageResolver:
        if self._resolver is None:
            raise NotConnectedError()
        return self._resolver

    # --- Resolution ---

    async def resolve_full_image(self, page_id: int) -> str:
        return (await self._require_resolver().resolve_full_image(page_id)).uri

    async def resolve_thumbnail(self, page_id: int) -> str:
        return (await self._require_resolver().resolve_thumbnail(page_id)).uri

    async def resolve_preview(self, page_id: int) -> str:
        return (await self._require_resolver().resolve_preview(page_id)).uri

    async def prefetch_thumbnails(self, document_id: int) -> int:
        return await self._require_resolver().prefetch_thumbnails(document_id)

    async def page_image_data_url(self, page_id: int) -> str:
        return await self._require_resolver().page_image_data_url(page_id)

    async def chunk_data_url(self, chunk_id: int) -> str:
        return await self._require_resolver().chunk_data_url(chunk_id)

    async def page_sources(self, document_id: int) -> list[PageSourceInfo]:
        return await self._require_resolver().page_sources(document_id)

    async def document_source_path(self, document_id: int) -> str | None:
        return await self._require_resolver().document_source_path(document_id)

    # --- Cache maintenance ---

    async def clear_all_caches(self) -> bool:
        """Empty every tier for every namespace."""
        set_request_context("clear_all_caches")
        self._require_cache()
        await asyncio.to_thread(self._guard.clear_all)
        return True

    async def clear_namespace_cache(self) -> bool:
        """Empty every tier for the open workspace's namespace."""
        set_request_context("clear_namespace_cache")
        resolver = self._require_resolver()
        self._require_cache()
        await asyncio.to_thread(self._guard.clear_namespace, resolver.namespace)
        return True

    async def cache_size_bytes(self) -> int:
        self._require_cache()
        return await asyncio.to_thread(self._guard.total_size)

    def _require_cache(self) -> None:
        if not self._guard.enabled:
            raise CacheError("Cache manager not initialized")

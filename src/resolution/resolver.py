# src/resolution/resolver.py — v1
"""Resolution orchestrator — tiered acquisition of page and chunk images.

Full-resolution pages are resolved in order:

  1. page metadata (ordinal + origin-file hint, no binary transfer)
  2. directly servable image file → returned as is
  3. original-tier cache entry → returned
  4. fresh render of the page from its document (worker thread)
  5. page binary column from the catalog

and every hit on 4 or 5 is written to the original tier. Thumbnails and
previews are keyed by the page's first chunk id: cache hit first, then the
chunk's bytes from the catalog, re-encoded into the cache.

Failures of 4 (render, decode of the rendered bytes) and cache write errors
only move resolution on to the next tier. Exhausting the chain raises
NotFoundError. When the store is disabled, results are returned inline as
data URIs instead of cache paths.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path

from ragcurator.cache.image_store import PREVIEW_SIZE, THUMBNAIL_SIZE
from ragcurator.cache.models import CacheTier
from ragcurator.cache.store_guard import StoreGuard
from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.catalog.models import DEFAULT_MIMETYPE, ImageBlob, PageSourceInfo
from ragcurator.core.errors import DerivativeError, NotFoundError, RenderError
from ragcurator.logging.context import set_request_context
from ragcurator.rendering.base_renderer import BasePageRenderer
from ragcurator.resolution.classifier import classify_source
from ragcurator.resolution.models import ResolutionSource, ResolvedImage, SourceKind

logger = logging.getLogger(__name__)


def encode_data_uri(contents: bytes, mimetype: str | None = None) -> str:
    """Self-contained ``data:`` URI for raw image bytes."""
    mime = mimetype or DEFAULT_MIMETYPE
    return f"data:{mime};base64,{base64.b64encode(contents).decode('ascii')}"


class ImageResolver:
    """Resolve servable image references for one open workspace."""

    def __init__(
        self,
        catalog: BasePageCatalog,
        guard: StoreGuard,
        namespace: str,
        renderer: BasePageRenderer | None = None,
        thumbnail_size: int = THUMBNAIL_SIZE,
        preview_size: int = PREVIEW_SIZE,
    ) -> None:
        self._catalog = catalog
        self._guard = guard
        self._namespace = namespace
        self._renderer = renderer
        self._sizes = {
            CacheTier.THUMBNAIL: thumbnail_size,
            CacheTier.PREVIEW: preview_size,
        }

    @property
    def namespace(self) -> str:
        return self._namespace

    # --- Full resolution ---

    async def resolve_full_image(self, page_id: int) -> ResolvedImage:
        """Resolve a page at full resolution through the tier chain."""
        set_request_context("full_image", page_id)

        meta = await self._catalog.get_page_metadata(page_id)
        if meta is None:
            raise NotFoundError(f"Page {page_id} not found")

        source = classify_source(meta.source_path)
        if source.kind is SourceKind.DIRECT_IMAGE:
            return ResolvedImage(
                uri=str(source.path),
                source=ResolutionSource.DIRECT_FILE,
                cache_key=page_id,
            )

        if self._guard.enabled:
            path, exists = await self._guard.lookup_async(
                CacheTier.ORIGINAL, self._namespace, page_id
            )
            if exists:
                return ResolvedImage(
                    uri=str(path), source=ResolutionSource.CACHE, cache_key=page_id
                )

        if source.kind is SourceKind.RENDERABLE_DOCUMENT:
            rendered = await self._render(source.path, meta.page_num)
            if rendered is not None:
                try:
                    return await self._persist_original(
                        page_id, rendered, ResolutionSource.RENDERED
                    )
                except DerivativeError as e:
                    logger.warning("Rendered page %s is not a valid image: %s", page_id, e)
        elif source.kind is SourceKind.UNAVAILABLE:
            logger.debug(
                "No usable source file for page %s (hint=%r)", page_id, meta.source_path
            )

        blob = await self._catalog.get_page_image(page_id)
        if blob is None:
            raise NotFoundError(
                f"Page {page_id} has no image contents "
                f"(source file: {meta.source_path or 'none'})"
            )
        return await self._persist_original(
            page_id, blob.contents, ResolutionSource.DATABASE, blob.mimetype
        )

    async def _render(self, document_path: Path | None, page_num: int) -> bytes | None:
        if self._renderer is None or document_path is None:
            return None
        try:
            return await asyncio.to_thread(self._renderer.render, document_path, page_num)
        except RenderError as e:
            logger.warning(
                "%s render of %s page %d failed, falling back: %s",
                self._renderer.name, document_path, page_num, e,
            )
            return None

    async def _persist_original(
        self,
        page_id: int,
        raw_bytes: bytes,
        source: ResolutionSource,
        mimetype: str | None = None,
    ) -> ResolvedImage:
        if not self._guard.enabled:
            return ResolvedImage(
                uri=encode_data_uri(raw_bytes, mimetype), source=source, cache_key=page_id
            )
        try:
            path = await self._guard.store_original_async(
                self._namespace, page_id, raw_bytes
            )
        except OSError as e:
            logger.warning("Could not cache original for page %s: %s", page_id, e)
            return ResolvedImage(
                uri=encode_data_uri(raw_bytes, mimetype), source=source, cache_key=page_id
            )
        return ResolvedImage(uri=str(path), source=source, cache_key=page_id)

    # --- Thumbnails / previews ---

    async def resolve_thumbnail(self, page_id: int) -> ResolvedImage:
        set_request_context("thumbnail", page_id)
        return await self._resolve_derivative(page_id, CacheTier.THUMBNAIL)

    async def resolve_preview(self, page_id: int) -> ResolvedImage:
        set_request_context("preview", page_id)
        return await self._resolve_derivative(page_id, CacheTier.PREVIEW)

    async def _resolve_derivative(self, page_id: int, tier: CacheTier) -> ResolvedImage:
        # Stage 1: chunk id only, no binary transfer
        chunk_id = await self._catalog.get_first_chunk_id(page_id)
        if chunk_id is None:
            raise NotFoundError(f"Page {page_id} has no image chunks")

        if self._guard.enabled:
            path, exists = await self._guard.lookup_async(
                tier, self._namespace, chunk_id
            )
            if exists:
                return ResolvedImage(
                    uri=str(path), source=ResolutionSource.CACHE, cache_key=chunk_id
                )

        # Stage 2: cache miss, fetch the chunk bytes
        blob = await self._catalog.get_chunk_image(chunk_id)
        if blob is None:
            raise NotFoundError(f"Chunk {chunk_id} not found")

        if not self._guard.enabled:
            return self._inline(blob, chunk_id)
        try:
            path = await self._guard.store_derivative_async(
                tier, self._namespace, chunk_id, blob.contents, self._sizes[tier]
            )
        except OSError as e:
            logger.warning("Could not cache %s for chunk %s: %s", tier.value, chunk_id, e)
            return self._inline(blob, chunk_id)
        return ResolvedImage(uri=str(path), source=ResolutionSource.DATABASE, cache_key=chunk_id)

    @staticmethod
    def _inline(blob: ImageBlob, key: int) -> ResolvedImage:
        return ResolvedImage(
            uri=encode_data_uri(blob.contents, blob.mimetype),
            source=ResolutionSource.INLINE,
            cache_key=key,
        )

    # --- Warm-up ---

    async def prefetch_thumbnails(self, document_id: int) -> int:
        """Generate missing thumbnails for every page of a document.

        One metadata query for the first chunk ids, one batch query for the
        contents of the uncached ones. Returns the number newly generated.
        """
        set_request_context("prefetch_thumbnails")
        if not self._guard.enabled:
            return 0

        refs = await self._catalog.list_first_chunks(document_id)
        _, missing = await self._guard.partition_cached_async(
            CacheTier.THUMBNAIL, self._namespace, [ref.chunk_id for ref in refs]
        )
        if not missing:
            return 0

        contents = await self._catalog.get_chunk_contents(missing)
        size = self._sizes[CacheTier.THUMBNAIL]
        generated = 0
        for chunk_id in missing:
            raw = contents.get(chunk_id)
            if raw is None:
                logger.warning("Chunk %s vanished before prefetch", chunk_id)
                continue
            try:
                await self._guard.store_derivative_async(
                    CacheTier.THUMBNAIL, self._namespace, chunk_id, raw, size
                )
            except (DerivativeError, OSError) as e:
                logger.warning("Skipping thumbnail for chunk %s: %s", chunk_id, e)
                continue
            generated += 1

        logger.info(
            "Prefetched %d/%d thumbnails for document %s",
            generated, len(refs), document_id,
        )
        return generated

    # --- Inline (data URI) tier ---

    async def page_image_data_url(self, page_id: int) -> str:
        blob = await self._catalog.get_page_image(page_id)
        if blob is None:
            raise NotFoundError(f"Page {page_id} has no image contents")
        return encode_data_uri(blob.contents, blob.mimetype)

    async def chunk_data_url(self, chunk_id: int) -> str:
        blob = await self._catalog.get_chunk_image(chunk_id)
        if blob is None:
            raise NotFoundError(f"Chunk {chunk_id} not found")
        return encode_data_uri(blob.contents, blob.mimetype)

    async def page_sources(self, document_id: int) -> list[PageSourceInfo]:
        return await self._catalog.list_page_sources(document_id)

    async def document_source_path(self, document_id: int) -> str | None:
        """Path of the file a document was ingested from."""
        return await self._catalog.get_document_source_path(document_id)

# src/catalog/base_catalog.py — v1
"""Abstract page catalog — read-only view of the relational store."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ragcurator.catalog.models import ImageBlob, PageChunkRef, PageMetadata, PageSourceInfo


class BasePageCatalog(ABC):
    """Unified interface for the page/chunk tables the resolver reads."""

    @property
    @abstractmethod
    def identifier(self) -> str:
        """Workspace identifier the cache namespace is derived from."""

    @abstractmethod
    async def get_page_metadata(self, page_id: int) -> PageMetadata | None:
        """Ordinal and origin-file hint of a page. No binary transfer."""

    @abstractmethod
    async def get_first_chunk_id(self, page_id: int) -> int | None:
        """Lowest image chunk id of a page."""

    @abstractmethod
    async def get_page_image(self, page_id: int) -> ImageBlob | None:
        """Page binary column, None if the page or its content is missing."""

    @abstractmethod
    async def get_chunk_image(self, chunk_id: int) -> ImageBlob | None:
        """Chunk binary content, None if the chunk is missing."""

    @abstractmethod
    async def list_first_chunks(self, document_id: int) -> list[PageChunkRef]:
        """First chunk id of every page of a document. No binary transfer."""

    @abstractmethod
    async def get_chunk_contents(self, chunk_ids: Sequence[int]) -> dict[int, bytes]:
        """Binary content of several chunks in one round trip."""

    @abstractmethod
    async def list_page_sources(self, document_id: int) -> list[PageSourceInfo]:
        """Per-page source path and chunk ids, ordered by page number."""

    @abstractmethod
    async def get_document_source_path(self, document_id: int) -> str | None:
        """Path of the file a document was ingested from, None if unknown."""

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""

# src/catalog/postgres_catalog.py — v1
"""PostgreSQL page catalog (CATALOG_BACKEND=postgres) using asyncpg.

Reads the curation schema (file, document, page, image_chunk). The
origin-file hint of a page is ``page_metadata->>'source_path'`` for image
documents, else the path of the document's file row.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from urllib.parse import urlsplit

import asyncpg

from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.catalog.models import (
    DEFAULT_MIMETYPE,
    ImageBlob,
    PageChunkRef,
    PageMetadata,
    PageSourceInfo,
)

logger = logging.getLogger(__name__)

_PAGE_METADATA_SQL = """
SELECT p.id, p.page_num,
       COALESCE(p.page_metadata->>'source_path', f.path) AS source_path
FROM page p
JOIN document d ON p.document_id = d.id
LEFT JOIN file f ON d.path = f.id
WHERE p.id = $1
"""

_FIRST_CHUNK_SQL = (
    "SELECT id FROM image_chunk WHERE parent_page = $1 ORDER BY id ASC LIMIT 1"
)

_FIRST_CHUNKS_FOR_DOCUMENT_SQL = """
SELECT DISTINCT ON (p.id) p.id AS page_id, ic.id AS chunk_id
FROM page p
JOIN image_chunk ic ON ic.parent_page = p.id
WHERE p.document_id = $1
ORDER BY p.id, ic.id ASC
"""

_PAGE_SOURCES_SQL = """
SELECT p.id, p.page_num,
       COALESCE(p.page_metadata->>'source_path', f.path) AS source_path
FROM page p
JOIN document d ON p.document_id = d.id
LEFT JOIN file f ON d.path = f.id
WHERE p.document_id = $1
ORDER BY p.page_num
"""

_DOCUMENT_SOURCE_SQL = (
    "SELECT f.path FROM file f JOIN document d ON d.path = f.id WHERE d.id = $1"
)


def identifier_from_dsn(dsn: str) -> str:
    """``host_port_database`` for a postgres DSN (namespace source)."""
    parts = urlsplit(dsn)
    host = parts.hostname or "localhost"
    port = parts.port or 5432
    database = parts.path.lstrip("/") or "postgres"
    return f"{host}_{port}_{database}"


class PostgresPageCatalog(BasePageCatalog):
    """asyncpg-backed catalog over a connection pool."""

    def __init__(self, pool: asyncpg.Pool, identifier: str) -> None:
        self._pool = pool
        self._identifier = identifier

    @classmethod
    async def connect(cls, dsn: str, pool_size: int = 5) -> PostgresPageCatalog:
        """Open a pool and verify it with a trivial query."""
        pool = await asyncpg.create_pool(dsn=dsn, min_size=1, max_size=pool_size)
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
        identifier = identifier_from_dsn(dsn)
        logger.info("Connected to page catalog %s", identifier)
        return cls(pool, identifier)

    @property
    def identifier(self) -> str:
        return self._identifier

    async def get_page_metadata(self, page_id: int) -> PageMetadata | None:
        row = await self._pool.fetchrow(_PAGE_METADATA_SQL, page_id)
        if row is None:
            return None
        return PageMetadata(
            page_id=row["id"], page_num=row["page_num"], source_path=row["source_path"]
        )

    async def get_first_chunk_id(self, page_id: int) -> int | None:
        return await self._pool.fetchval(_FIRST_CHUNK_SQL, page_id)

    async def get_page_image(self, page_id: int) -> ImageBlob | None:
        row = await self._pool.fetchrow(
            "SELECT image_contents, mimetype FROM page WHERE id = $1", page_id
        )
        if row is None or row["image_contents"] is None:
            return None
        return ImageBlob(
            contents=bytes(row["image_contents"]),
            mimetype=row["mimetype"] or DEFAULT_MIMETYPE,
        )

    async def get_chunk_image(self, chunk_id: int) -> ImageBlob | None:
        row = await self._pool.fetchrow(
            "SELECT contents, mimetype FROM image_chunk WHERE id = $1", chunk_id
        )
        if row is None:
            return None
        return ImageBlob(
            contents=bytes(row["contents"]),
            mimetype=row["mimetype"] or DEFAULT_MIMETYPE,
        )

    async def list_first_chunks(self, document_id: int) -> list[PageChunkRef]:
        rows = await self._pool.fetch(_FIRST_CHUNKS_FOR_DOCUMENT_SQL, document_id)
        return [PageChunkRef(page_id=r["page_id"], chunk_id=r["chunk_id"]) for r in rows]

    async def get_chunk_contents(self, chunk_ids: Sequence[int]) -> dict[int, bytes]:
        if not chunk_ids:
            return {}
        rows = await self._pool.fetch(
            "SELECT id, contents FROM image_chunk WHERE id = ANY($1::bigint[])",
            list(chunk_ids),
        )
        return {r["id"]: bytes(r["contents"]) for r in rows}

    async def list_page_sources(self, document_id: int) -> list[PageSourceInfo]:
        rows = await self._pool.fetch(_PAGE_SOURCES_SQL, document_id)
        result = [
            PageSourceInfo(
                page_id=r["id"], page_num=r["page_num"], source_path=r["source_path"]
            )
            for r in rows
        ]
        if not result:
            return result

        by_page = {info.page_id: info for info in result}
        chunk_rows = await self._pool.fetch(
            "SELECT parent_page, id FROM image_chunk "
            "WHERE parent_page = ANY($1::bigint[]) ORDER BY id",
            list(by_page),
        )
        for r in chunk_rows:
            by_page[r["parent_page"]].chunk_ids.append(r["id"])
        return result

    async def get_document_source_path(self, document_id: int) -> str | None:
        return await self._pool.fetchval(_DOCUMENT_SOURCE_SQL, document_id)

    async def close(self) -> None:
        await self._pool.close()

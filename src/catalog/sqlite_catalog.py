# src/catalog/sqlite_catalog.py — v1
"""SQLite page catalog (CATALOG_BACKEND=sqlite).

Uses stdlib sqlite3, no external dependency. Mirrors the postgres curation
schema for local single-user workspaces; ``page_metadata`` is JSON text.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from pathlib import Path

from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.catalog.models import (
    DEFAULT_MIMETYPE,
    ImageBlob,
    PageChunkRef,
    PageMetadata,
    PageSourceInfo,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS file (
    id INTEGER PRIMARY KEY,
    type TEXT NOT NULL,
    path TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS document (
    id INTEGER PRIMARY KEY,
    path INTEGER REFERENCES file(id),
    filename TEXT,
    author TEXT,
    title TEXT,
    doc_metadata TEXT
);
CREATE TABLE IF NOT EXISTS page (
    id INTEGER PRIMARY KEY,
    page_num INTEGER NOT NULL,
    document_id INTEGER NOT NULL REFERENCES document(id),
    image_contents BLOB,
    mimetype TEXT,
    page_metadata TEXT,
    UNIQUE (document_id, page_num)
);
CREATE TABLE IF NOT EXISTS image_chunk (
    id INTEGER PRIMARY KEY,
    parent_page INTEGER REFERENCES page(id),
    contents BLOB NOT NULL,
    mimetype TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_image_chunk_parent ON image_chunk(parent_page);
"""

_SOURCE_PATH_EXPR = "COALESCE(json_extract(p.page_metadata, '$.source_path'), f.path)"

_PAGE_METADATA_SQL = f"""
SELECT p.id, p.page_num, {_SOURCE_PATH_EXPR}
FROM page p
JOIN document d ON p.document_id = d.id
LEFT JOIN file f ON d.path = f.id
WHERE p.id = ?
"""

_PAGE_SOURCES_SQL = f"""
SELECT p.id, p.page_num, {_SOURCE_PATH_EXPR}
FROM page p
JOIN document d ON p.document_id = d.id
LEFT JOIN file f ON d.path = f.id
WHERE p.document_id = ?
ORDER BY p.page_num
"""

_DOCUMENT_SOURCE_SQL = (
    "SELECT f.path FROM file f JOIN document d ON d.path = f.id WHERE d.id = ?"
)


def _placeholders(count: int) -> str:
    return ", ".join("?" * count)


class SqlitePageCatalog(BasePageCatalog):
    """SQLite-backed catalog for local workspaces."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA)

    @property
    def identifier(self) -> str:
        return self._db_path.stem

    async def get_page_metadata(self, page_id: int) -> PageMetadata | None:
        row = self._conn.execute(_PAGE_METADATA_SQL, (page_id,)).fetchone()
        if row is None:
            return None
        return PageMetadata(page_id=row[0], page_num=row[1], source_path=row[2])

    async def get_first_chunk_id(self, page_id: int) -> int | None:
        row = self._conn.execute(
            "SELECT id FROM image_chunk WHERE parent_page = ? ORDER BY id ASC LIMIT 1",
            (page_id,),
        ).fetchone()
        return row[0] if row else None

    async def get_page_image(self, page_id: int) -> ImageBlob | None:
        row = self._conn.execute(
            "SELECT image_contents, mimetype FROM page WHERE id = ?", (page_id,)
        ).fetchone()
        if row is None or row[0] is None:
            return None
        return ImageBlob(contents=bytes(row[0]), mimetype=row[1] or DEFAULT_MIMETYPE)

    async def get_chunk_image(self, chunk_id: int) -> ImageBlob | None:
        row = self._conn.execute(
            "SELECT contents, mimetype FROM image_chunk WHERE id = ?", (chunk_id,)
        ).fetchone()
        if row is None:
            return None
        return ImageBlob(contents=bytes(row[0]), mimetype=row[1] or DEFAULT_MIMETYPE)

    async def list_first_chunks(self, document_id: int) -> list[PageChunkRef]:
        cursor = self._conn.execute(
            """SELECT p.id, MIN(ic.id)
               FROM page p
               JOIN image_chunk ic ON ic.parent_page = p.id
               WHERE p.document_id = ?
               GROUP BY p.id
               ORDER BY p.id""",
            (document_id,),
        )
        return [PageChunkRef(page_id=r[0], chunk_id=r[1]) for r in cursor.fetchall()]

    async def get_chunk_contents(self, chunk_ids: Sequence[int]) -> dict[int, bytes]:
        ids = list(chunk_ids)
        if not ids:
            return {}
        cursor = self._conn.execute(
            f"SELECT id, contents FROM image_chunk WHERE id IN ({_placeholders(len(ids))})",
            ids,
        )
        return {r[0]: bytes(r[1]) for r in cursor.fetchall()}

    async def list_page_sources(self, document_id: int) -> list[PageSourceInfo]:
        rows = self._conn.execute(_PAGE_SOURCES_SQL, (document_id,)).fetchall()
        result = [
            PageSourceInfo(page_id=r[0], page_num=r[1], source_path=r[2]) for r in rows
        ]
        if not result:
            return result

        by_page = {info.page_id: info for info in result}
        page_ids = list(by_page)
        cursor = self._conn.execute(
            "SELECT parent_page, id FROM image_chunk "
            f"WHERE parent_page IN ({_placeholders(len(page_ids))}) ORDER BY id",
            page_ids,
        )
        for parent_page, chunk_id in cursor.fetchall():
            by_page[parent_page].chunk_ids.append(chunk_id)
        return result

    async def get_document_source_path(self, document_id: int) -> str | None:
        row = self._conn.execute(_DOCUMENT_SOURCE_SQL, (document_id,)).fetchone()
        return row[0] if row else None

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

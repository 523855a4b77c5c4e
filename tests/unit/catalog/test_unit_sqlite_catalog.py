# tests/unit/catalog/test_unit_sqlite_catalog.py — v1
"""Tests for catalog/sqlite_catalog.py — full functional tests (stdlib sqlite3)."""

from __future__ import annotations

import json
import sqlite3

import pytest

from ragcurator.catalog.sqlite_catalog import SqlitePageCatalog


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "workspace.db"


@pytest.fixture
def catalog_db(db_path):
    """Catalog with two documents: a PDF and an image-per-page document."""
    cat = SqlitePageCatalog(db_path)
    conn = sqlite3.connect(db_path)
    conn.executescript(
        """
        INSERT INTO file (id, type, path) VALUES (1, 'pdf', '/data/report.pdf');
        INSERT INTO document (id, path, filename) VALUES (1, 1, 'report.pdf');
        INSERT INTO document (id, path, filename) VALUES (2, NULL, 'scans');
        """
    )
    conn.executemany(
        "INSERT INTO page (id, page_num, document_id, image_contents, mimetype, page_metadata)"
        " VALUES (?, ?, ?, ?, ?, ?)",
        [
            (10, 2, 1, b"page-two", "image/png", None),
            (11, 1, 1, b"page-one", None, None),
            (20, 1, 2, None, None, json.dumps({"source_path": "/scans/p1.jpg"})),
        ],
    )
    conn.executemany(
        "INSERT INTO image_chunk (id, parent_page, contents, mimetype) VALUES (?, ?, ?, ?)",
        [
            (101, 10, b"chunk-101", "image/png"),
            (100, 10, b"chunk-100", "image/jpeg"),
            (110, 11, b"chunk-110", "image/png"),
        ],
    )
    conn.commit()
    conn.close()
    yield cat
    cat._conn.close()


class TestSqlitePageCatalog:
    def test_identifier_is_file_stem(self, db_path):
        assert SqlitePageCatalog(db_path).identifier == "workspace"

    def test_creates_parent_directory(self, tmp_path):
        SqlitePageCatalog(tmp_path / "nested" / "dir" / "ws.db")
        assert (tmp_path / "nested" / "dir" / "ws.db").exists()

    @pytest.mark.asyncio
    async def test_page_metadata_file_path(self, catalog_db):
        meta = await catalog_db.get_page_metadata(10)
        assert meta.page_num == 2
        assert meta.source_path == "/data/report.pdf"

    @pytest.mark.asyncio
    async def test_page_metadata_prefers_page_source(self, catalog_db):
        meta = await catalog_db.get_page_metadata(20)
        assert meta.source_path == "/scans/p1.jpg"

    @pytest.mark.asyncio
    async def test_page_metadata_missing(self, catalog_db):
        assert await catalog_db.get_page_metadata(999) is None

    @pytest.mark.asyncio
    async def test_first_chunk_id(self, catalog_db):
        assert await catalog_db.get_first_chunk_id(10) == 100
        assert await catalog_db.get_first_chunk_id(20) is None

    @pytest.mark.asyncio
    async def test_page_image(self, catalog_db):
        blob = await catalog_db.get_page_image(10)
        assert blob.contents == b"page-two"
        assert blob.mimetype == "image/png"

    @pytest.mark.asyncio
    async def test_page_image_default_mimetype(self, catalog_db):
        assert (await catalog_db.get_page_image(11)).mimetype == "image/png"

    @pytest.mark.asyncio
    async def test_page_image_absent(self, catalog_db):
        assert await catalog_db.get_page_image(20) is None
        assert await catalog_db.get_page_image(999) is None

    @pytest.mark.asyncio
    async def test_chunk_image(self, catalog_db):
        blob = await catalog_db.get_chunk_image(100)
        assert blob.contents == b"chunk-100"
        assert blob.mimetype == "image/jpeg"
        assert await catalog_db.get_chunk_image(999) is None

    @pytest.mark.asyncio
    async def test_list_first_chunks(self, catalog_db):
        refs = await catalog_db.list_first_chunks(1)
        assert [(r.page_id, r.chunk_id) for r in refs] == [(10, 100), (11, 110)]
        assert await catalog_db.list_first_chunks(2) == []

    @pytest.mark.asyncio
    async def test_chunk_contents_batch(self, catalog_db):
        contents = await catalog_db.get_chunk_contents([100, 110, 999])
        assert contents == {100: b"chunk-100", 110: b"chunk-110"}
        assert await catalog_db.get_chunk_contents([]) == {}

    @pytest.mark.asyncio
    async def test_page_sources(self, catalog_db):
        sources = await catalog_db.list_page_sources(1)
        assert [(s.page_id, s.page_num) for s in sources] == [(11, 1), (10, 2)]
        assert sources[0].chunk_ids == [110]
        assert sources[1].chunk_ids == [100, 101]
        assert sources[1].source_path == "/data/report.pdf"

    @pytest.mark.asyncio
    async def test_page_sources_empty(self, catalog_db):
        assert await catalog_db.list_page_sources(42) == []

    @pytest.mark.asyncio
    async def test_document_source_path(self, catalog_db):
        assert await catalog_db.get_document_source_path(1) == "/data/report.pdf"

    @pytest.mark.asyncio
    async def test_document_source_path_without_file(self, catalog_db):
        assert await catalog_db.get_document_source_path(2) is None
        assert await catalog_db.get_document_source_path(999) is None

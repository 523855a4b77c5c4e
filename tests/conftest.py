# tests/conftest.py — v2
"""Shared test fixtures for all unit tests.

Provides generated images, an in-memory page catalog with call counters,
a scripted renderer, and temp-dir backed cache stores.
No external services: the catalog and renderer are test doubles.
"""

from __future__ import annotations

import io
from collections import Counter
from collections.abc import Callable, Sequence
from pathlib import Path

import pytest
from PIL import Image

from ragcurator.cache.image_store import DerivedImageStore
from ragcurator.cache.store_guard import StoreGuard
from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.catalog.models import ImageBlob, PageChunkRef, PageMetadata, PageSourceInfo
from ragcurator.rendering.base_renderer import BasePageRenderer


# === Images ===


def _image_bytes(
    width: int = 640,
    height: int = 480,
    color: tuple[int, ...] = (200, 30, 30),
    fmt: str = "PNG",
    mode: str = "RGB",
) -> bytes:
    buf = io.BytesIO()
    Image.new(mode, (width, height), color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for encoded images: make_image(width, height, color, fmt, mode)."""
    return _image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes(1600, 1200)


# === Test doubles ===


class FakePageCatalog(BasePageCatalog):
    """In-memory catalog recording how often each query runs."""

    def __init__(self, identifier: str = "test_db") -> None:
        self._identifier = identifier
        self.pages: dict[int, dict] = {}
        self.chunks: dict[int, dict] = {}
        self.document_paths: dict[int, str] = {}
        self.calls: Counter[str] = Counter()
        self.batch_requests: list[list[int]] = []
        self.closed = False

    @property
    def identifier(self) -> str:
        return self._identifier

    def add_page(
        self,
        page_id: int,
        document_id: int = 1,
        page_num: int = 1,
        source_path: str | None = None,
        image: bytes | None = None,
        mimetype: str = "image/png",
    ) -> None:
        self.pages[page_id] = {
            "document_id": document_id,
            "page_num": page_num,
            "source_path": source_path,
            "image": image,
            "mimetype": mimetype,
        }

    def add_chunk(
        self, chunk_id: int, page_id: int, contents: bytes, mimetype: str = "image/png"
    ) -> None:
        self.chunks[chunk_id] = {
            "page_id": page_id,
            "contents": contents,
            "mimetype": mimetype,
        }

    def add_document(self, document_id: int, path: str) -> None:
        self.document_paths[document_id] = path

    async def get_page_metadata(self, page_id: int) -> PageMetadata | None:
        self.calls["get_page_metadata"] += 1
        page = self.pages.get(page_id)
        if page is None:
            return None
        return PageMetadata(
            page_id=page_id, page_num=page["page_num"], source_path=page["source_path"]
        )

    async def get_first_chunk_id(self, page_id: int) -> int | None:
        self.calls["get_first_chunk_id"] += 1
        ids = sorted(cid for cid, c in self.chunks.items() if c["page_id"] == page_id)
        return ids[0] if ids else None

    async def get_page_image(self, page_id: int) -> ImageBlob | None:
        self.calls["get_page_image"] += 1
        page = self.pages.get(page_id)
        if page is None or page["image"] is None:
            return None
        return ImageBlob(contents=page["image"], mimetype=page["mimetype"])

    async def get_chunk_image(self, chunk_id: int) -> ImageBlob | None:
        self.calls["get_chunk_image"] += 1
        chunk = self.chunks.get(chunk_id)
        if chunk is None:
            return None
        return ImageBlob(contents=chunk["contents"], mimetype=chunk["mimetype"])

    async def list_first_chunks(self, document_id: int) -> list[PageChunkRef]:
        self.calls["list_first_chunks"] += 1
        refs = []
        for page_id in sorted(self.pages):
            if self.pages[page_id]["document_id"] != document_id:
                continue
            ids = sorted(cid for cid, c in self.chunks.items() if c["page_id"] == page_id)
            if ids:
                refs.append(PageChunkRef(page_id=page_id, chunk_id=ids[0]))
        return refs

    async def get_chunk_contents(self, chunk_ids: Sequence[int]) -> dict[int, bytes]:
        self.calls["get_chunk_contents"] += 1
        self.batch_requests.append(list(chunk_ids))
        return {cid: self.chunks[cid]["contents"] for cid in chunk_ids if cid in self.chunks}

    async def list_page_sources(self, document_id: int) -> list[PageSourceInfo]:
        self.calls["list_page_sources"] += 1
        pages = sorted(
            (p["page_num"], pid) for pid, p in self.pages.items()
            if p["document_id"] == document_id
        )
        return [
            PageSourceInfo(
                page_id=pid,
                page_num=num,
                source_path=self.pages[pid]["source_path"],
                chunk_ids=sorted(
                    cid for cid, c in self.chunks.items() if c["page_id"] == pid
                ),
            )
            for num, pid in pages
        ]

    async def get_document_source_path(self, document_id: int) -> str | None:
        self.calls["get_document_source_path"] += 1
        return self.document_paths.get(document_id)

    async def close(self) -> None:
        self.closed = True


class FakeRenderer(BasePageRenderer):
    """Renderer returning scripted bytes or raising a scripted error."""

    def __init__(self, result: bytes | Exception) -> None:
        self._result = result
        self.calls: list[tuple[Path, int]] = []

    @property
    def name(self) -> str:
        return "fake"

    def render(self, document_path: Path, page_number: int) -> bytes:
        self.calls.append((document_path, page_number))
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


@pytest.fixture
def catalog() -> FakePageCatalog:
    return FakePageCatalog()


@pytest.fixture
def fake_catalog_cls() -> type[FakePageCatalog]:
    return FakePageCatalog


@pytest.fixture
def fake_renderer_cls() -> type[FakeRenderer]:
    return FakeRenderer


# === Cache ===


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Cache root under the test's temp directory."""
    return tmp_path / "cache"


@pytest.fixture
def store(tmp_cache_dir: Path) -> DerivedImageStore:
    return DerivedImageStore(tmp_cache_dir)


@pytest.fixture
def guard(store: DerivedImageStore) -> StoreGuard:
    return StoreGuard(store, lock_timeout=2.0)


@pytest.fixture
def disabled_guard() -> StoreGuard:
    return StoreGuard(None)

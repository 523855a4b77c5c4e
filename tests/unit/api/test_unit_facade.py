# tests/unit/api/test_facade.py — v2
"""Tests for api.facade — ImageService command surface."""

from __future__ import annotations

from pathlib import Path

import pytest

from ragcurator.api.facade import ImageService
from ragcurator.cache.models import CacheTier
from ragcurator.config.settings import Settings
from ragcurator.core.errors import CacheError, NotConnectedError, NotFoundError
from ragcurator.logging.context import clear_context, get_context


@pytest.fixture
def settings(tmp_cache_dir) -> Settings:
    return Settings(_env_file=None, cache_root=tmp_cache_dir, thumbnail_size=64)


@pytest.fixture
def service(settings, guard, fake_renderer_cls, make_image) -> ImageService:
    return ImageService(settings, guard=guard, renderer=fake_renderer_cls(make_image()))


@pytest.fixture
def workspace(catalog, make_image):
    catalog.add_page(1, document_id=1, page_num=1, image=make_image(900, 600))
    catalog.add_page(2, document_id=1, page_num=2, image=make_image(900, 600))
    catalog.add_chunk(10, page_id=1, contents=make_image(900, 600))
    catalog.add_chunk(20, page_id=2, contents=make_image(600, 900))
    return catalog


class TestLifecycle:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_not_connected(self, service):
        assert service.is_connected is False
        assert service.namespace is None
        assert service.cache_enabled is True

    def test_connect_derives_namespace(self, service, fake_catalog_cls):
        ns = service.connect(fake_catalog_cls("db.host_5432_rag"))
        assert ns == "db_host_5432_rag"
        assert service.namespace == ns
        assert service.is_connected
        assert get_context().namespace == ns

    @pytest.mark.asyncio
    async def test_disconnect_closes_catalog(self, service, catalog):
        service.connect(catalog)
        await service.disconnect()
        assert catalog.closed
        assert service.is_connected is False
        with pytest.raises(NotConnectedError):
            await service.resolve_thumbnail(1)

    @pytest.mark.asyncio
    async def test_disconnect_without_workspace(self, service):
        await service.disconnect()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,arg", [
        ("resolve_full_image", 1),
        ("resolve_thumbnail", 1),
        ("resolve_preview", 1),
        ("prefetch_thumbnails", 1),
        ("page_image_data_url", 1),
        ("chunk_data_url", 1),
        ("page_sources", 1),
        ("document_source_path", 1),
    ])
    async def test_requires_workspace(self, service, method, arg):
        with pytest.raises(NotConnectedError, match="Not connected"):
            await getattr(service, method)(arg)

    def test_builds_from_settings(self, settings):
        service = ImageService(settings)
        assert service.cache_enabled
        assert (settings.cache_root / "thumbnails").is_dir()


class TestResolution:
    @pytest.mark.asyncio
    async def test_thumbnail_path(self, service, workspace, store):
        service.connect(workspace)
        uri = await service.resolve_thumbnail(1)
        assert Path(uri) == store.path_for(CacheTier.THUMBNAIL, "test_db", 10)
        assert await service.resolve_thumbnail(1) == uri

    @pytest.mark.asyncio
    async def test_configured_sizes_applied(self, service, workspace):
        from PIL import Image

        service.connect(workspace)
        with Image.open(await service.resolve_thumbnail(2)) as img:
            width, height = img.size
        assert height == 64
        assert abs(width - 43) <= 1

    @pytest.mark.asyncio
    async def test_full_image_and_data_urls(self, service, workspace):
        service.connect(workspace)
        assert Path(await service.resolve_full_image(1)).suffix == ".png"
        assert (await service.page_image_data_url(1)).startswith("data:image/png;base64,")
        assert (await service.chunk_data_url(20)).startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_prefetch(self, service, workspace):
        service.connect(workspace)
        assert await service.prefetch_thumbnails(1) == 2
        assert await service.prefetch_thumbnails(1) == 0

    @pytest.mark.asyncio
    async def test_page_sources(self, service, workspace):
        service.connect(workspace)
        sources = await service.page_sources(1)
        assert [s.chunk_ids for s in sources] == [[10], [20]]

    @pytest.mark.asyncio
    async def test_document_source_path(self, service, workspace):
        workspace.add_document(1, "/data/report.pdf")
        service.connect(workspace)
        assert await service.document_source_path(1) == "/data/report.pdf"
        assert await service.document_source_path(2) is None

    @pytest.mark.asyncio
    async def test_not_found_propagates(self, service, workspace):
        service.connect(workspace)
        with pytest.raises(NotFoundError):
            await service.resolve_preview(99)

    @pytest.mark.asyncio
    async def test_disabled_cache_serves_inline(
        self, settings, disabled_guard, workspace, fake_renderer_cls
    ):
        service = ImageService(settings, guard=disabled_guard, renderer=fake_renderer_cls(b""))
        service.connect(workspace)
        assert service.cache_enabled is False
        assert (await service.resolve_thumbnail(1)).startswith("data:image/png;base64,")
        assert (await service.resolve_full_image(1)).startswith("data:")
        assert await service.prefetch_thumbnails(1) == 0


class TestCacheMaintenance:
    @pytest.mark.asyncio
    async def test_clear_all(self, service, workspace, guard):
        service.connect(workspace)
        await service.prefetch_thumbnails(1)
        assert await service.cache_size_bytes() > 0

        assert await service.clear_all_caches() is True
        assert await service.cache_size_bytes() == 0

    @pytest.mark.asyncio
    async def test_clear_all_without_workspace(self, service):
        assert await service.clear_all_caches() is True

    @pytest.mark.asyncio
    async def test_clear_namespace(self, service, workspace, guard, fake_catalog_cls, make_image):
        other = fake_catalog_cls("other_ws")
        other.add_page(1)
        other.add_chunk(10, page_id=1, contents=make_image())

        service.connect(other)
        other_uri = await service.resolve_thumbnail(1)
        service.connect(workspace)
        mine = await service.resolve_thumbnail(1)

        assert await service.clear_namespace_cache() is True
        assert not Path(mine).exists()
        assert Path(other_uri).exists()

    @pytest.mark.asyncio
    async def test_clear_namespace_requires_workspace(self, service):
        with pytest.raises(NotConnectedError):
            await service.clear_namespace_cache()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", [
        "clear_all_caches", "clear_namespace_cache", "cache_size_bytes",
    ])
    async def test_disabled_cache_raises(
        self, settings, disabled_guard, catalog, fake_renderer_cls, method
    ):
        service = ImageService(settings, guard=disabled_guard, renderer=fake_renderer_cls(b""))
        service.connect(catalog)
        with pytest.raises(CacheError, match="not initialized"):
            await getattr(service, method)()


# src/catalog/catalog_factory.py — v1
"""Factory: open the configured page catalog."""

from __future__ import annotations

from ragcurator.catalog.base_catalog import BasePageCatalog
from ragcurator.config.settings import Settings


async def create_catalog(settings: Settings | None = None) -> BasePageCatalog:
    """Open the catalog selected by CATALOG_BACKEND.

    Args:
        settings: Application settings. Defaults to ``Settings()``.

    Returns:
        Connected BasePageCatalog implementation.

    Raises:
        ValueError: If the backend is unsupported or DATABASE_URL is missing.
    """
    settings = settings or Settings()

    if settings.catalog_backend == "sqlite":
        from ragcurator.catalog.sqlite_catalog import SqlitePageCatalog
        return SqlitePageCatalog(db_path=settings.sqlite_path)

    if settings.catalog_backend == "postgres":
        if not settings.database_url:
            raise ValueError(
                "DATABASE_URL must be set when CATALOG_BACKEND=postgres"
            )
        from ragcurator.catalog.postgres_catalog import PostgresPageCatalog
        return await PostgresPageCatalog.connect(
            settings.database_url, pool_size=settings.database_pool_size
        )

    raise ValueError(f"Unsupported catalog backend: {settings.catalog_backend!r}")

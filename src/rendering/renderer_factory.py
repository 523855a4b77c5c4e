# src/rendering/renderer_factory.py — v1
"""Factory: instantiate the page renderer from configuration."""

from __future__ import annotations

from ragcurator.config.settings import Settings
from ragcurator.rendering.base_renderer import BasePageRenderer
from ragcurator.rendering.pdftoppm_renderer import PdftoppmRenderer


def create_renderer(settings: Settings | None = None) -> BasePageRenderer:
    """Create the renderer selected by RENDERER_BACKEND.

    Raises:
        ValueError: If the backend is not supported.
    """
    settings = settings or Settings()

    if settings.renderer_backend == "pdftoppm":
        return PdftoppmRenderer(
            binary=settings.pdftoppm_path,
            dpi=settings.render_dpi,
            timeout=settings.render_timeout,
        )

    if settings.renderer_backend == "pymupdf":
        from ragcurator.rendering.pymupdf_renderer import PymupdfRenderer
        return PymupdfRenderer(dpi=settings.render_dpi)

    raise ValueError(f"Unsupported renderer backend: {settings.renderer_backend!r}")

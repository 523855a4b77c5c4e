# src/rendering/pymupdf_renderer.py — v1
"""PDF page renderer using PyMuPDF (fitz).

In-process alternative to pdftoppm; requires the 'pymupdf' package.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ragcurator.core.errors import RenderError
from ragcurator.rendering.base_renderer import BasePageRenderer

logger = logging.getLogger(__name__)


class PymupdfRenderer(BasePageRenderer):
    """Rasterize one page with ``Page.get_pixmap``."""

    def __init__(self, dpi: int = 150) -> None:
        self._dpi = dpi

    @property
    def name(self) -> str:
        return "pymupdf"

    def render(self, document_path: Path, page_number: int) -> bytes:
        try:
            import fitz  # PyMuPDF
        except ImportError as e:
            raise RenderError(
                "pymupdf package required for RENDERER_BACKEND=pymupdf: pip install pymupdf"
            ) from e

        try:
            doc = fitz.open(str(document_path))
        except Exception as e:
            raise RenderError(f"Cannot open {document_path}: {e}") from e

        try:
            if not 1 <= page_number <= doc.page_count:
                raise RenderError(
                    f"Page {page_number} out of range for {document_path} "
                    f"({doc.page_count} pages)"
                )
            pixmap = doc[page_number - 1].get_pixmap(dpi=self._dpi)
            return pixmap.tobytes("png")
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(
                f"PyMuPDF failed on page {page_number} of {document_path}: {e}"
            ) from e
        finally:
            doc.close()

# src/rendering/base_renderer.py — v1
"""Abstract page renderer interface.

Renderers are synchronous and may block for seconds (CPU work or an
external process); async callers dispatch them with ``asyncio.to_thread``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class BasePageRenderer(ABC):
    """Render a single page of a document to PNG bytes."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name for logs."""

    @abstractmethod
    def render(self, document_path: Path, page_number: int) -> bytes:
        """Render 1-based ``page_number`` of ``document_path`` as PNG.

        Raises:
            RenderError: Missing tool, unreadable document or page out of range.
        """

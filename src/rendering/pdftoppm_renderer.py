# src/rendering/pdftoppm_renderer.py — v1
"""PDF page renderer using poppler's ``pdftoppm`` command.

Each call renders into its own temporary directory, so concurrent renders
of the same document never share an output file.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path

from ragcurator.core.errors import RenderError
from ragcurator.rendering.base_renderer import BasePageRenderer

logger = logging.getLogger(__name__)

_OUTPUT_STEM = "page"


class PdftoppmRenderer(BasePageRenderer):
    """Shell out to ``pdftoppm -png -singlefile`` for one page."""

    def __init__(
        self, binary: str = "pdftoppm", dpi: int = 150, timeout: float = 60.0
    ) -> None:
        self._binary = binary
        self._dpi = dpi
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "pdftoppm"

    def build_command(self, document_path: Path, page_number: int, output_prefix: Path) -> list[str]:
        page = str(page_number)
        return [
            self._binary,
            "-png",
            "-r", str(self._dpi),
            "-f", page,
            "-l", page,
            "-singlefile",
            str(document_path),
            str(output_prefix),
        ]

    def render(self, document_path: Path, page_number: int) -> bytes:
        if page_number < 1:
            raise RenderError(f"Invalid page number {page_number} for {document_path}")

        with tempfile.TemporaryDirectory(prefix="ragcurator_render_") as tmp:
            prefix = Path(tmp) / _OUTPUT_STEM
            cmd = self.build_command(document_path, page_number, prefix)
            logger.debug("Running %s", " ".join(cmd))
            try:
                proc = subprocess.run(
                    cmd, capture_output=True, timeout=self._timeout, check=False
                )
            except FileNotFoundError as e:
                raise RenderError(
                    f"Failed to run {self._binary}: {e}. Is poppler installed?"
                ) from e
            except subprocess.TimeoutExpired as e:
                raise RenderError(
                    f"{self._binary} timed out after {self._timeout}s on page {page_number}"
                ) from e

            if proc.returncode != 0:
                stderr = proc.stderr.decode("utf-8", errors="replace").strip()
                raise RenderError(
                    f"{self._binary} failed on page {page_number}: {stderr}"
                )

            output_file = prefix.with_suffix(".png")
            try:
                png_bytes = output_file.read_bytes()
            except OSError as e:
                raise RenderError(
                    f"Failed to read rendered page {page_number}: {e}"
                ) from e

        if not png_bytes:
            raise RenderError(f"{self._binary} produced empty output for page {page_number}")
        return png_bytes

# src/catalog/models.py — v1
"""Catalog records read by the resolver. Metadata and binary content are
separate types so that metadata queries never drag image bytes along."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_MIMETYPE = "image/png"


class PageMetadata(BaseModel):
    """Ordinal position and origin-file hint of a page."""

    page_id: int
    page_num: int
    source_path: str | None = None


class ImageBlob(BaseModel):
    """Binary image content stored in the database."""

    contents: bytes
    mimetype: str = DEFAULT_MIMETYPE


class PageChunkRef(BaseModel):
    """First image chunk of a page."""

    page_id: int
    chunk_id: int


class PageSourceInfo(BaseModel):
    """Per-page source info for the UI."""

    page_id: int
    page_num: int
    chunk_ids: list[int] = Field(default_factory=list)
    source_path: str | None = None

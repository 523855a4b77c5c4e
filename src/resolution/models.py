# src/resolution/models.py — v1
"""Resolution models: source classification and resolved image references."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class SourceKind(str, Enum):
    """Where a page's pixels can come from, as seen at resolution time."""

    DIRECT_IMAGE = "direct_image"
    RENDERABLE_DOCUMENT = "renderable_document"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class ClassifiedSource:
    """Transient classification of an origin-file hint. Never persisted."""

    kind: SourceKind
    path: Path | None = None


class ResolutionSource(str, Enum):
    """Tier that satisfied a resolution request."""

    DIRECT_FILE = "direct_file"
    CACHE = "cache"
    RENDERED = "rendered"
    DATABASE = "database"
    INLINE = "inline"


class ResolvedImage(BaseModel):
    """Servable reference to a page or chunk image."""

    uri: str
    source: ResolutionSource
    cache_key: int

    @property
    def is_data_uri(self) -> bool:
        return self.uri.startswith("data:")

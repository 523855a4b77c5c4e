# src/cache/models.py — v2
"""Cache domain models: CacheTier and its on-disk policy."""

from __future__ import annotations

from enum import Enum


class CacheTier(str, Enum):
    """Fixed derivative kinds held by the derived-image store."""

    THUMBNAIL = "thumbnail"
    PREVIEW = "preview"
    ORIGINAL = "original"

    @property
    def directory(self) -> str:
        """Top-level directory name under the cache root."""
        return _TIER_DIRECTORIES[self]

    @property
    def extension(self) -> str:
        """File extension of entries in this tier."""
        return _TIER_EXTENSIONS[self]

    @property
    def is_resized(self) -> bool:
        """Whether entries are re-encoded at a bounded size."""
        return self is not CacheTier.ORIGINAL


_TIER_DIRECTORIES: dict[CacheTier, str] = {
    CacheTier.THUMBNAIL: "thumbnails",
    CacheTier.PREVIEW: "previews",
    CacheTier.ORIGINAL: "originals",
}

# Bit-stable on-disk contract; changing these orphans existing caches.
_TIER_EXTENSIONS: dict[CacheTier, str] = {
    CacheTier.THUMBNAIL: "webp",
    CacheTier.PREVIEW: "webp",
    CacheTier.ORIGINAL: "png",
}

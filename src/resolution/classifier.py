# src/resolution/classifier.py — v1
"""Source classifier — decide how a page's pixels are acquired.

Only a single existence check is performed. The result is recomputed on
every call because the origin file may appear or vanish between requests
(removable media, files moved by the user).
"""

from __future__ import annotations

from pathlib import Path

from ragcurator.resolution.models import ClassifiedSource, SourceKind

# Raster formats ingested as images and served straight from disk.
DIRECT_IMAGE_EXTENSIONS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg", ".webp"})

# Page-addressable document formats that need per-page rendering.
RENDERABLE_EXTENSIONS: frozenset[str] = frozenset({".pdf"})

_UNAVAILABLE = ClassifiedSource(kind=SourceKind.UNAVAILABLE)


def classify_source(hint: str | Path | None) -> ClassifiedSource:
    """Classify an origin-file hint.

    Args:
        hint: Filesystem path recorded at ingest time; may be None, empty
            or stale.

    Returns:
        DIRECT_IMAGE or RENDERABLE_DOCUMENT with the path when the file
        exists and has a known extension, UNAVAILABLE otherwise.
    """
    if hint is None or not str(hint).strip():
        return _UNAVAILABLE

    path = Path(hint)
    suffix = path.suffix.lower()
    if suffix in DIRECT_IMAGE_EXTENSIONS:
        kind = SourceKind.DIRECT_IMAGE
    elif suffix in RENDERABLE_EXTENSIONS:
        kind = SourceKind.RENDERABLE_DOCUMENT
    else:
        return _UNAVAILABLE

    try:
        if not path.is_file():
            return _UNAVAILABLE
    except OSError:
        # e.g. permission denied on an unmounted volume
        return _UNAVAILABLE
    return ClassifiedSource(kind=kind, path=path)

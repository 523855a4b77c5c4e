# src/cache/image_store.py — v1
"""Derived-image store: content-addressed thumbnails, previews and originals.

Layout under the cache root::

    thumbnails/<namespace>/<id>.webp
    previews/<namespace>/<id>.webp
    originals/<namespace>/<id>.png

The existence of a file is the cache-hit signal; there is no index. Entries
are written once (temp file + ``os.replace``) and never rewritten while they
exist, so a half-written file can never be mistaken for a hit.

The store itself is synchronous and not thread-safe; concurrent callers go
through ``StoreGuard``.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from ragcurator.cache.models import CacheTier
from ragcurator.cache.namespace import make_namespace
from ragcurator.core.errors import DerivativeError

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = 200
PREVIEW_SIZE = 1200

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

_TRASH_PREFIX = ".trash-"

_DECODE_ERRORS = (
    UnidentifiedImageError,
    OSError,
    ValueError,
    SyntaxError,
    Image.DecompressionBombError,
)


class DerivedImageStore:
    """Filesystem-backed store of resized / re-encoded image derivatives."""

    def __init__(self, root: Path | str, quality: int = 85) -> None:
        """Create the root and every tier directory.

        Raises:
            OSError: If the directories cannot be created.
        """
        self._root = Path(root).expanduser()
        self._quality = quality
        self._root.mkdir(parents=True, exist_ok=True)
        for tier in CacheTier:
            (self._root / tier.directory).mkdir(exist_ok=True)
        self._sweep_trash()

    @property
    def root(self) -> Path:
        return self._root

    # --- Lookup ---

    def path_for(self, tier: CacheTier, namespace: str, item_id: int) -> Path:
        """Deterministic entry path. No I/O."""
        return (
            self._root
            / tier.directory
            / make_namespace(namespace)
            / f"{item_id}.{tier.extension}"
        )

    def exists(self, tier: CacheTier, namespace: str, item_id: int) -> bool:
        return self.path_for(tier, namespace, item_id).is_file()

    # --- Writes ---

    def store_derivative(
        self,
        tier: CacheTier,
        namespace: str,
        item_id: int,
        raw_bytes: bytes,
        max_dimension: int,
    ) -> Path:
        """Resize ``raw_bytes`` to fit ``max_dimension`` and persist as WebP.

        Idempotent: an existing entry is returned untouched (first writer
        wins), whatever ``raw_bytes`` holds this time.

        Raises:
            ValueError: For the original tier, which is never resized.
            DerivativeError: If ``raw_bytes`` is not a decodable image.
            OSError: If the entry cannot be written.
        """
        if not tier.is_resized:
            raise ValueError(f"Tier {tier.value!r} does not hold resized derivatives")

        target = self.path_for(tier, namespace, item_id)
        if target.exists():
            return target
        payload = self.encode_derivative(raw_bytes, max_dimension, item_id)
        return self.put(tier, namespace, item_id, payload)

    def store_original(self, namespace: str, item_id: int, raw_bytes: bytes) -> Path:
        """Persist a full-resolution page image in the original tier.

        PNG input is written verbatim; any other decodable image is
        transcoded losslessly to PNG. Idempotent like ``store_derivative``.

        Raises:
            DerivativeError: If ``raw_bytes`` is not a decodable image.
            OSError: If the entry cannot be written.
        """
        target = self.path_for(CacheTier.ORIGINAL, namespace, item_id)
        if target.exists():
            return target
        payload = self.encode_original(raw_bytes, item_id)
        return self.put(CacheTier.ORIGINAL, namespace, item_id, payload)

    def put(
        self, tier: CacheTier, namespace: str, item_id: int, payload: bytes
    ) -> Path:
        """Write already-encoded ``payload`` unless the entry exists."""
        target = self.path_for(tier, namespace, item_id)
        if target.exists():
            return target
        target.parent.mkdir(parents=True, exist_ok=True)
        _atomic_write(target, payload)
        logger.debug(
            "Stored %s entry id=%s (%d bytes)", tier.value, item_id, len(payload)
        )
        return target

    # --- Encoding (pure, no filesystem access) ---

    def encode_derivative(
        self, raw_bytes: bytes, max_dimension: int, item_id: int = 0
    ) -> bytes:
        """Decode, downscale with Lanczos and re-encode ``raw_bytes`` as WebP."""
        if max_dimension <= 0:
            raise ValueError(f"max_dimension must be > 0, got {max_dimension}")
        image = _fit_within(_decode(raw_bytes, item_id), max_dimension)
        return _encode(image, "WEBP", item_id, quality=self._quality, method=4)

    def encode_original(self, raw_bytes: bytes, item_id: int = 0) -> bytes:
        """Return PNG bytes for the original tier, verbatim when already PNG."""
        if raw_bytes.startswith(PNG_SIGNATURE):
            _check_header(raw_bytes, item_id)
            return raw_bytes
        return _encode(_decode(raw_bytes, item_id), "PNG", item_id)

    # --- Eviction / accounting ---
    #
    # Clearing is split in two: ``detach_*`` renames directories aside (a few
    # renames, done under the guard's lock) and ``purge`` deletes them (any
    # number of files, done after the lock is released).

    def detach_namespace(self, namespace: str) -> list[Path]:
        """Move one namespace out of every tier. Returns the detached dirs."""
        safe = make_namespace(namespace)
        detached = []
        for tier in CacheTier:
            ns_dir = self._root / tier.directory / safe
            if ns_dir.exists():
                detached.append(self._move_to_trash(ns_dir))
        return detached

    def detach_all(self) -> list[Path]:
        """Move every tier directory aside and recreate it empty."""
        detached = []
        for tier in CacheTier:
            tier_dir = self._root / tier.directory
            if tier_dir.exists():
                detached.append(self._move_to_trash(tier_dir))
            tier_dir.mkdir(parents=True, exist_ok=True)
        return detached

    def purge(self, detached: list[Path]) -> None:
        """Delete directories returned by ``detach_*``."""
        for path in detached:
            shutil.rmtree(path, ignore_errors=True)

    def clear_namespace(self, namespace: str) -> None:
        """Remove one namespace from every tier. Missing namespaces are ignored."""
        self.purge(self.detach_namespace(namespace))
        logger.info("Cleared cache namespace %s", make_namespace(namespace))

    def clear_all(self) -> None:
        """Reset every tier directory to empty."""
        self.purge(self.detach_all())
        logger.info("Cleared all caches under %s", self._root)

    def total_size(self) -> int:
        """Total bytes of every file under the root. Diagnostic use only.

        Safe to call while entries are written or purged; files that vanish
        mid-walk are skipped.
        """
        size = 0
        for dirpath, _, filenames in os.walk(self._root):
            for name in filenames:
                try:
                    size += os.stat(os.path.join(dirpath, name)).st_size
                except FileNotFoundError:
                    continue
        return size

    def _move_to_trash(self, path: Path) -> Path:
        target = self._root / f"{_TRASH_PREFIX}{uuid.uuid4().hex}"
        path.rename(target)
        return target

    def _sweep_trash(self) -> None:
        # leftovers of a purge interrupted by a crash
        for entry in self._root.glob(f"{_TRASH_PREFIX}*"):
            shutil.rmtree(entry, ignore_errors=True)


def _decode(raw_bytes: bytes, item_id: int) -> Image.Image:
    """Decode fully and apply EXIF orientation."""
    try:
        with Image.open(io.BytesIO(raw_bytes)) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except _DECODE_ERRORS as e:
        raise DerivativeError(f"Failed to decode image for id {item_id}: {e}") from e


def _check_header(raw_bytes: bytes, item_id: int) -> None:
    try:
        with Image.open(io.BytesIO(raw_bytes)) as img:
            img.verify()
    except _DECODE_ERRORS as e:
        raise DerivativeError(f"Invalid PNG for id {item_id}: {e}") from e


def _fit_within(image: Image.Image, max_dimension: int) -> Image.Image:
    """Downscale so neither side exceeds ``max_dimension``, keeping aspect."""
    if max(image.size) <= max_dimension:
        return image
    resized = image.copy()
    resized.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return resized


def _webp_compatible(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    if image.mode in ("I", "I;16", "I;16B", "I;16L"):
        # 16-bit greyscale scans
        return image.convert("I").point(lambda v: v * (1 / 256)).convert("L").convert("RGB")
    if image.mode in ("LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    ):
        return image.convert("RGBA")
    return image.convert("RGB")


def _encode(image: Image.Image, fmt: str, item_id: int, **params: object) -> bytes:
    if fmt == "WEBP":
        image = _webp_compatible(image)
    buf = io.BytesIO()
    try:
        image.save(buf, format=fmt, **params)
    except (OSError, ValueError, KeyError) as e:
        raise DerivativeError(f"Failed to encode {fmt} for id {item_id}: {e}") from e
    return buf.getvalue()


def _atomic_write(target: Path, payload: bytes) -> None:
    """Write to a sibling temp file, then rename over ``target``."""
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.stem}.", suffix=".tmp", dir=target.parent
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

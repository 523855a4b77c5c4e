# src/cache/namespace.py — v1
"""Cache namespace derivation.

Every cache path is partitioned by a namespace derived from the open
workspace so that several workspaces can share one cache root.
"""

from __future__ import annotations

import re

DEFAULT_NAMESPACE = "default"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def make_namespace(identifier: str | None) -> str:
    """Return a filesystem-safe namespace for a workspace identifier.

    Every character outside ``[A-Za-z0-9_-]`` becomes ``_``; an empty or
    missing identifier maps to ``default``.
    """
    if not identifier:
        return DEFAULT_NAMESPACE
    return _UNSAFE_CHARS.sub("_", identifier)

# src/core/errors.py — v1
"""Error taxonomy shared by the cache, the resolver and the service facade.

Lower tiers raise these; the resolver converts the soft ones (RenderError,
DerivativeError during warm-up) into "try the next tier" and only lets
NotFoundError or CacheError reach the caller.
"""

from __future__ import annotations


class CuratorError(Exception):
    """Base class for all ragcurator errors."""


class NotConnectedError(CuratorError):
    """Raised when an operation needs an open workspace and none is open."""

    def __init__(self, message: str = "Not connected to a workspace database") -> None:
        super().__init__(message)


class NotFoundError(CuratorError):
    """Raised when no origin data exists anywhere in the tier chain."""


class CacheError(CuratorError):
    """Raised when the derived-image store is unusable for an operation."""


class DerivativeError(CacheError):
    """Raised when raw bytes cannot be decoded or re-encoded."""


class RenderError(CuratorError):
    """Raised when the page renderer fails (missing tool, bad page, ...)."""

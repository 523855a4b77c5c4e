# src/logging/context.py — v2
"""Contextual logging support — attach namespace, page_id, operation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per resolution request.
_namespace: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "namespace", default=None
)
_page_id: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "page_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    namespace: str | None = None
    page_id: int | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        namespace=_namespace.get(),
        page_id=_page_id.get(),
        operation=_operation.get(),
    )


def set_workspace_context(namespace: str) -> None:
    """Set workspace-level context (called when a workspace is opened)."""
    _namespace.set(namespace)


def set_request_context(operation: str, page_id: int | None = None) -> None:
    """Set request-level context (called per resolution request).

    Each asyncio task runs in its own context copy, so concurrent requests
    do not see each other's values.
    """
    _operation.set(operation)
    _page_id.set(page_id)


def clear_context() -> None:
    """Reset all context variables."""
    _namespace.set(None)
    _page_id.set(None)
    _operation.set(None)

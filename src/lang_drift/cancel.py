"""Cooperative cancellation shared by git, cache and history operations."""

from __future__ import annotations

import threading


class OperationCancelledError(Exception):
    """Raised when an operation observes a cancelled token."""

    def __init__(self, operation: str) -> None:
        super().__init__(f"Operation cancelled: {operation}")
        self.operation = operation


class CancelToken:
    """Thread-safe cancellation flag passed down to blocking operations."""

    def __init__(self, event: threading.Event | None = None) -> None:
        self._event = event or threading.Event()

    @property
    def cancelled(self) -> bool:
        """Return True once cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Mark the token as cancelled."""
        self._event.set()

    def wait(self, timeout: float) -> bool:
        """Block up to timeout seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, operation: str) -> None:
        """Raise OperationCancelledError when the token is cancelled."""
        if self._event.is_set():
            raise OperationCancelledError(operation)


def check_cancelled(cancel: CancelToken | None, operation: str) -> None:
    """Raise when an optional token is present and cancelled."""
    if cancel is not None:
        cancel.raise_if_cancelled(operation)

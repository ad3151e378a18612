"""Cooperative cancellation for long-running fix runs."""

from __future__ import annotations

import threading


class OperationCancelledError(Exception):
    """Raised by :meth:`CancellationToken.raise_if_cancelled`."""


class CancellationToken:
    """A thread-safe flag checked at the top of every loop iteration.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.is_cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError("Operation was cancelled")


class _NeverCancelled(CancellationToken):
    def cancel(self) -> None:
        raise RuntimeError("The 'none' cancellation token cannot be cancelled")


NONE = _NeverCancelled()

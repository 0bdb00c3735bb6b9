"""Cooperative cancellation for one generation job.

Responsibilities:
- Expose a set-once, never-unset cancellation signal shared by all job tasks.
- Let in-flight network calls register abort callbacks that fire on cancellation.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from loguru import logger


class CancellationToken:
    """Set-once cancellation signal observed by the dispatcher and the HTTP layer.

    Abort callbacks registered while the token is live run exactly once when the
    token is cancelled; callbacks registered after cancellation run immediately.
    """

    def __init__(self) -> None:
        """Initialize an unset token with no registered abort callbacks."""

        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._next_handle = 0
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        """Return whether cancellation has been requested."""

        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        """Return the reason passed to the first `cancel` call."""

        return self._reason

    def cancel(self, reason: str = "user requested stop") -> bool:
        """Set the token and fire abort callbacks.

        Returns:
            `True` when this call set the token, `False` when it was already set.
        """

        with self._lock:
            if self._event.is_set():
                return False
            self._reason = reason
            self._event.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()

        for callback in callbacks:
            self._run_callback(callback)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or `timeout` elapses; return the token state."""

        return self._event.wait(timeout)

    def register(self, callback: Callable[[], None]) -> int | None:
        """Register an abort callback and return its handle.

        Returns `None` when the token is already cancelled, after running the
        callback immediately.
        """

        with self._lock:
            if not self._event.is_set():
                handle = self._next_handle
                self._next_handle += 1
                self._callbacks[handle] = callback
                return handle

        self._run_callback(callback)
        return None

    def unregister(self, handle: int | None) -> None:
        """Drop a previously registered abort callback."""

        if handle is None:
            return
        with self._lock:
            self._callbacks.pop(handle, None)

    @staticmethod
    def _run_callback(callback: Callable[[], None]) -> None:
        """Run one abort callback; failures are logged so the rest still fire."""

        try:
            callback()
        except Exception as exc:
            logger.warning(f"abort callback failed: {type(exc).__name__}: {exc}")

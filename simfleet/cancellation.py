"""Cooperative cancellation shared by the orchestrator and its shell."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe, one-shot cancellation flag with callbacks.

    Usage:
        token = CancellationToken()
        token.add_callback(lambda: print("cancelled"))
        ...
        token.cancel()   # e.g. from a SIGINT handler

    Callbacks registered after cancellation run immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning("Ignored error in cancellation callback: %r", e)

"""Elapsed-time logging for long orchestration steps."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@contextmanager
def measure(description: str, log: Optional[logging.Logger] = None) -> Iterator[None]:
    """Log ``description`` with the wall-clock seconds spent in the block.

    The duration is logged whether the block returns or raises.
    """
    log = log or logger
    start = time.monotonic()
    try:
        yield
    finally:
        log.info("%s took %.1fs", description, time.monotonic() - start)

"""
One orchestrator per reference simulator.

Clone names are shared host state, so two runs against the same reference
would clone, erase and delete each other's simulators. A PID file under an
exclusive portalocker lock keeps them apart. The file stays in place
between runs; an empty file means nobody holds the simulator.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Optional

import portalocker

from .process_utils import pid_alive, read_pid_file

logger = logging.getLogger(__name__)


class FleetLockError(RuntimeError):
    """Another orchestrator already drives this reference simulator."""

    def __init__(self, udid: str, owner_pid: Optional[int]):
        owner = f"PID {owner_pid}" if owner_pid else "another process"
        super().__init__(f"Simulator {udid} is already in use by {owner}")
        self.udid = udid
        self.owner_pid = owner_pid


def _locks_dir() -> str:
    return os.path.join(os.environ.get("SIMFLEET_RUN_DIR", "/tmp"), "simfleet-locks")


class FleetLock:
    """
    Exclusive lock on one reference simulator udid.

    Usage:
        with FleetLock(reference.device.udid):
            multi_scan.run()
    """

    def __init__(self, udid: str, locks_dir: Optional[str] = None):
        self.udid = udid
        self.path = os.path.join(locks_dir or _locks_dir(), f"{udid}.pid")
        self._file: Optional[IO[str]] = None

    def owner(self) -> Optional[int]:
        """PID of the live holder, or None."""
        pid = read_pid_file(self.path)
        if pid is None or not pid_alive(pid):
            return None
        return pid

    def acquire(self) -> None:
        """
        Raises:
            FleetLockError: the lock is held by another process.
        """
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        f = open(self.path, "a+", encoding="utf-8")
        try:
            portalocker.lock(f, portalocker.LOCK_EX | portalocker.LOCK_NB)
        except portalocker.LockException as e:
            f.close()
            raise FleetLockError(self.udid, self.owner()) from e

        f.seek(0)
        f.truncate()
        f.write(f"{os.getpid()}\n")
        f.flush()
        os.fsync(f.fileno())
        self._file = f
        logger.debug("Acquired fleet lock %s", self.path)

    def release(self) -> None:
        if self._file is None:
            return
        f, self._file = self._file, None
        # The file is emptied, never unlinked: a waiter may already hold it open.
        try:
            f.seek(0)
            f.truncate()
            f.flush()
            portalocker.unlock(f)
        finally:
            f.close()
        logger.debug("Released fleet lock %s", self.path)

    @property
    def is_held(self) -> bool:
        return self._file is not None

    def __enter__(self) -> "FleetLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()

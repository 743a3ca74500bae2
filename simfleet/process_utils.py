"""Shared process-management utilities for simfleet.

Used by RealShell (timeouts and cancellation) and FleetLock (owner liveness).
"""

from __future__ import annotations

import errno
import logging
import os
from pathlib import Path
from typing import Optional, Union

import psutil

logger = logging.getLogger(__name__)


def pid_alive(pid: int) -> bool:
    """Check if a process is alive via ``os.kill(pid, 0)``.

    Returns ``True`` if the process exists (even if we lack permission to
    signal it), ``False`` otherwise.
    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Can't signal it, but it exists.
        return True
    except OSError as exc:
        if getattr(exc, "errno", None) == errno.EPERM:
            return True
        return False


def read_pid_file(path: Union[str, Path]) -> Optional[int]:
    """Read a PID from *path*, returning ``None`` on any error."""
    p = Path(path)
    if not p.exists():
        return None
    try:
        return int(p.read_text().strip().splitlines()[0])
    except (ValueError, IndexError, OSError):
        return None


def kill_process_tree(pid: int, timeout_s: float = 5.0) -> bool:
    """Terminate *pid* and all of its descendants.

    Children are collected before the parent is signalled so that pipeline
    members (``xcodebuild | tee | xcbeautify``) are not orphaned. Sends
    SIGTERM first and SIGKILL to anything still alive after *timeout_s*.

    Returns ``True`` if every process in the tree is gone.
    """
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return True

    try:
        procs = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        procs = []
    procs.append(parent)

    for proc in procs:
        try:
            proc.terminate()
        except psutil.NoSuchProcess:
            pass

    _, alive = psutil.wait_procs(procs, timeout=timeout_s)
    for proc in alive:
        logger.debug("Force-killing PID %d", proc.pid)
        try:
            proc.kill()
        except psutil.NoSuchProcess:
            pass

    if alive:
        _, alive = psutil.wait_procs(alive, timeout=timeout_s)
    return not alive

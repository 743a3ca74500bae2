"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (processes, files, clock)
and implement the abstract interfaces.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import threading
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Union

from .cancellation import CancellationToken
from .interfaces import ClockInterface, FileSystemInterface, ShellInterface, ShellOutput
from .process_utils import kill_process_tree
from .shell_errors import ExecutionTimedOutError, NonZeroExitCodeError, ShellCancelledError

logger = logging.getLogger(__name__)


def join_command(command: Union[str, Sequence[str]]) -> str:
    """Join command parts with single spaces, dropping empty parts."""
    if isinstance(command, str):
        return command
    return " ".join(part for part in command if part)


class RealShell(ShellInterface):
    """
    Runs commands through bash so pipelines (``| tee | xcbeautify``) work.

    Every running cancellable command is tracked; cancelling the token
    kills their whole process trees.
    """

    def __init__(
        self,
        cancel_token: Optional[CancellationToken] = None,
        cwd: Optional[str] = None,
        executable: str = "/bin/bash",
    ):
        self._token = cancel_token or CancellationToken()
        self._cwd = cwd
        self._executable = executable
        self._lock = threading.Lock()
        self._active: set[subprocess.Popen] = set()
        self._token.add_callback(self.terminate_all)

    def terminate_all(self) -> None:
        """Kill every running cancellable command."""
        with self._lock:
            active = list(self._active)
        for proc in active:
            logger.info("Terminating PID %d", proc.pid)
            kill_process_tree(proc.pid)

    def run(
        self,
        command: Union[str, Sequence[str]],
        *,
        timeout: Optional[float] = None,
        stderr_log_path: Optional[str] = None,
        log_prefix: str = "",
        ignore_failure: Optional[Callable[[ShellOutput], bool]] = None,
        cancellable: bool = True,
    ) -> ShellOutput:
        cmd = join_command(command)
        if cancellable and self._token.is_cancelled:
            raise ShellCancelledError(cmd)

        logger.debug("%s$ %s", log_prefix, cmd)
        proc = subprocess.Popen(
            cmd,
            shell=True,
            executable=self._executable,
            cwd=self._cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
        if cancellable:
            with self._lock:
                self._active.add(proc)
            if self._token.is_cancelled:
                kill_process_tree(proc.pid)

        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%sTimed out after %ss, killing: %s", log_prefix, timeout, cmd)
            kill_process_tree(proc.pid)
            stdout, stderr = proc.communicate()
            output = ShellOutput(cmd, stdout or "", stderr or "", proc.returncode)
            self._save_stderr(stderr_log_path, output.stderr)
            raise ExecutionTimedOutError(cmd, timeout or 0.0, output)
        finally:
            if cancellable:
                with self._lock:
                    self._active.discard(proc)

        output = ShellOutput(cmd, stdout or "", stderr or "", proc.returncode)
        self._save_stderr(stderr_log_path, output.stderr)
        for line in output.stdout.splitlines():
            logger.debug("%s%s", log_prefix, line)

        if cancellable and self._token.is_cancelled and output.returncode != 0:
            raise ShellCancelledError(cmd)
        if output.returncode != 0:
            if ignore_failure is not None and ignore_failure(output):
                logger.debug("%sIgnored exit code %d", log_prefix, output.returncode)
                return output
            raise NonZeroExitCodeError(output)
        return output

    @staticmethod
    def _save_stderr(path: Optional[str], text: str) -> None:
        if not path:
            return
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)


class RealFileSystem(FileSystemInterface):
    """
    Real file system implementation.
    """

    def mkdir(self, path: str) -> None:
        os.makedirs(path, exist_ok=True)

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def copy(self, source: str, destination: str) -> None:
        if not os.path.lexists(source):
            raise FileNotFoundError(source)
        if os.path.lexists(destination):
            self.delete(destination)
        parent = os.path.dirname(destination)
        if parent:
            os.makedirs(parent, exist_ok=True)
        if os.path.isdir(source):
            shutil.copytree(source, destination, symlinks=True)
        else:
            shutil.copy2(source, destination)

    def delete(self, path: str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def find(self, root: str) -> List[str]:
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames + filenames:
                found.append(os.path.join(dirpath, name))
        return sorted(found)

    def symlink(self, link_path: str, target: str) -> None:
        if os.path.lexists(link_path):
            self.delete(link_path)
        parent = os.path.dirname(link_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        os.symlink(target, link_path)

    def read_bytes(self, path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def write_bytes(self, path: str, data: bytes) -> None:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)


class RealClock(ClockInterface):
    """
    Real clock implementation using system time.
    """

    def now(self) -> datetime:
        return datetime.now()

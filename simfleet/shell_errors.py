"""Errors raised by ShellInterface implementations."""

from __future__ import annotations

from typing import Optional

from .interfaces import ShellOutput


class ShellError(Exception):
    """Base class for failures of an external command."""

    def __init__(self, command: str, message: str):
        super().__init__(message)
        self.command = command


class NonZeroExitCodeError(ShellError):
    """The command exited with a non-zero status."""

    def __init__(self, output: ShellOutput):
        super().__init__(
            output.command,
            f"Command exited with code {output.returncode}: {output.command}",
        )
        self.output = output

    @property
    def returncode(self) -> int:
        return self.output.returncode

    @property
    def stderr(self) -> str:
        return self.output.stderr


class ExecutionTimedOutError(ShellError):
    """The command did not finish within its timeout and was killed."""

    def __init__(self, command: str, timeout: float, output: Optional[ShellOutput] = None):
        super().__init__(command, f"Command timed out after {timeout:g}s: {command}")
        self.timeout = timeout
        self.output = output


class ShellCancelledError(ShellError):
    """The command was refused or killed because the run was cancelled."""

    def __init__(self, command: str):
        super().__init__(command, f"Command cancelled: {command}")

"""
Interfaces for simfleet

Abstract base classes that define contracts for all pluggable components.
This enables dependency injection and fake-based testing without a macOS
host, Xcode or any booted simulator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from .models import Device, Runtime, TestRunResult, XCTestFunction


@dataclass(frozen=True)
class ShellOutput:
    """Captured output of a finished shell command."""
    command: str
    stdout: str
    stderr: str
    returncode: int = 0


class ShellInterface(ABC):
    """
    Abstract interface for running external tools.

    Implementations:
    - RealShell: runs commands through /bin/bash with timeouts and cancellation
    - MockShell: scripted responses for unit testing
    """

    @abstractmethod
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
        """Run a command and wait for it to exit.

        A sequence command is joined with single spaces, skipping empty parts.

        Raises:
            NonZeroExitCodeError: the command failed and ``ignore_failure``
                did not accept its output.
            ExecutionTimedOutError: ``timeout`` seconds elapsed first.
            ShellCancelledError: the shell's cancellation token fired and the
                command is ``cancellable``.
        """
        pass


class FileSystemInterface(ABC):
    """
    Abstract interface for file system operations.

    Implementations:
    - RealFileSystem: Actual file I/O
    """

    @abstractmethod
    def mkdir(self, path: str) -> None:
        """Create directory and parents if they don't exist."""
        pass

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if a file, directory or symlink exists."""
        pass

    @abstractmethod
    def copy(self, source: str, destination: str) -> None:
        """Copy a file or directory tree, replacing ``destination``."""
        pass

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete a file or directory tree. Raises FileNotFoundError if missing."""
        pass

    @abstractmethod
    def find(self, root: str) -> List[str]:
        """List every file and directory below ``root``, sorted."""
        pass

    @abstractmethod
    def symlink(self, link_path: str, target: str) -> None:
        """Create ``link_path`` pointing to ``target``, replacing an old link."""
        pass

    @abstractmethod
    def read_bytes(self, path: str) -> bytes:
        """Read entire file contents."""
        pass

    @abstractmethod
    def write_bytes(self, path: str, data: bytes) -> None:
        """Write data to file. Creates parent dirs if needed."""
        pass


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic log file names in tests.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get current datetime."""
        pass


class RuntimeCatalogInterface(ABC):
    """
    Enumerates simulator runtimes installed on the host.

    Implementations:
    - RuntimeCatalog: queries ``xcrun simctl``
    - FakeRuntimeCatalog: in-memory
    """

    @abstractmethod
    def list_runtimes(self) -> List["Runtime"]:
        """Return every installed runtime.

        Raises:
            DiscoveryUnavailableError: the query produced no parseable output.
            NoRuntimesFoundError: the query returned zero runtimes.
        """
        pass


class SimulatorProviderInterface(ABC):
    """
    Enumerates instantiated simulators, joined with their runtimes.

    Implementations:
    - SimulatorProvider: queries ``xcrun simctl``
    - FakeSimulatorProvider: in-memory
    """

    @abstractmethod
    def list_devices(self) -> List["SimulatorInterface"]:
        """Return every simulator whose runtime is installed.

        Raises:
            NoDevicesFoundError: no simulator could be joined with a runtime.
        """
        pass

    def find_by_udid(self, udid: str) -> Optional["SimulatorInterface"]:
        """Return the simulator with ``udid``, or None."""
        return next((s for s in self.list_devices() if s.device.udid == udid), None)

    def find_by_name(self, name: str) -> Optional["SimulatorInterface"]:
        """Return the first simulator named ``name``, or None."""
        return next((s for s in self.list_devices() if s.device.name == name), None)

    def find_simulator(self, name: str, os_version: str) -> "SimulatorInterface":
        """Return the first simulator named ``name`` running OS ``os_version``.

        Raises:
            SimulatorNotFoundError: no such simulator.
        """
        from .simulator.errors import SimulatorNotFoundError

        for simulator in self.list_devices():
            if simulator.device.name == name and simulator.runtime.version == os_version:
                return simulator
        raise SimulatorNotFoundError(name, os_version)


class SimulatorInterface(ABC):
    """
    One instantiated simulator and its lifecycle operations.

    Two handles refer to the same simulator iff their device udids are equal.
    """

    @property
    @abstractmethod
    def device(self) -> "Device":
        """The simctl device record."""
        ...

    @property
    @abstractmethod
    def runtime(self) -> "Runtime":
        """The runtime this device is instantiated against."""
        ...

    @property
    def short_description(self) -> str:
        return f"{self.device.name} (os: {self.runtime.name}, udid: {self.device.udid})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimulatorInterface):
            return NotImplemented
        return self.device.udid == other.device.udid

    def __hash__(self) -> int:
        return hash(self.device.udid)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.short_description}>"

    @abstractmethod
    def boot(self) -> None:
        """Boot the simulator."""
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """Shut the simulator down. Already shut down is not an error."""
        pass

    @abstractmethod
    def erase(self) -> None:
        """Shut down, then wipe all content and settings."""
        pass

    @abstractmethod
    def uninstall_app(self, bundle_id: str) -> None:
        """Uninstall an application by bundle identifier."""
        pass

    @abstractmethod
    def disable_slide_to_type(self) -> None:
        """Turn off the keyboard's continuous-path input (iOS 13+ only)."""
        pass

    @abstractmethod
    def clone(self, name: str, erase: bool) -> "SimulatorInterface":
        """Create a copy of this simulator named ``name``.

        Raises:
            CloneError: the copy could not be created or located.
        """
        pass

    @abstractmethod
    def delete(self) -> None:
        """Delete the simulator from the host."""
        pass


class TestsRunnerInterface(ABC):
    """
    Runs a set of tests on one simulator.

    Implementations:
    - TestsRunner: invokes xcodebuild
    - FakeTestsRunner: scripted outcomes
    """

    __test__ = False

    @abstractmethod
    def get_built_tests(self) -> List["XCTestFunction"]:
        """Return the compiled test inventory, or [] when it is not needed."""
        pass

    @abstractmethod
    def run_tests(self, simulator: SimulatorInterface, tests: List["XCTestFunction"]) -> "TestRunResult":
        """Run ``tests`` (everything when empty). Never raises."""
        pass

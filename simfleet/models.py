"""Data models shared by the simulator, xcodebuild and scan layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, NamedTuple, Optional

if TYPE_CHECKING:
    from .interfaces import SimulatorInterface
    from .xcodebuild.errors import XcodebuildError


class DeviceState(Enum):
    """Simulator lifecycle state as reported by simctl (may be stale)."""
    UNKNOWN = "<unknown>"
    CREATING = "Creating"
    BOOTING = "Booting"
    BOOTED = "Booted"
    SHUTTING_DOWN = "ShuttingDown"
    SHUTDOWN = "Shutdown"

    @classmethod
    def parse(cls, raw: Any) -> "DeviceState":
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Runtime:
    """An installed simulator runtime (e.g. iOS 16.4)."""
    identifier: str                # com.apple.CoreSimulator.SimRuntime.iOS-16-4
    name: str                      # "iOS 16.4"
    platform: Optional[str]        # "iOS"
    version: str                   # "16.4"
    build_version: str = ""        # "20E247"
    is_available: bool = True

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "Runtime":
        return cls(
            identifier=raw["identifier"],
            name=raw["name"],
            platform=raw.get("platform") or None,
            version=raw["version"],
            build_version=raw.get("buildversion", ""),
            is_available=bool(raw.get("isAvailable", True)),
        )


@dataclass(frozen=True)
class Device:
    """A simctl device record."""
    udid: str
    name: str
    data_path: str = ""
    log_path: str = ""
    is_available: bool = True
    state: DeviceState = DeviceState.UNKNOWN
    device_type_identifier: Optional[str] = None

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> "Device":
        return cls(
            udid=raw["udid"],
            name=raw["name"],
            data_path=raw.get("dataPath", ""),
            log_path=raw.get("logPath", ""),
            is_available=bool(raw.get("isAvailable", True)),
            state=DeviceState.parse(raw.get("state")),
            device_type_identifier=raw.get("deviceTypeIdentifier"),
        )


@dataclass(frozen=True, order=True)
class XCTestFunction:
    """A compiled test function, ``Module/Class/method``."""
    name: str


class LogsPathPair(NamedTuple):
    stdout: str
    stderr: str


@dataclass(frozen=True)
class TestRunResult:
    """Outcome of one test-engine invocation on one simulator."""
    __test__ = False

    simulator: "SimulatorInterface"
    tests: list[XCTestFunction] = field(default_factory=list)
    xcresult_path: Optional[str] = None
    run_logs: Optional[LogsPathPair] = None
    junit_path: Optional[str] = None
    error: Optional["XcodebuildError"] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

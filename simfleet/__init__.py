"""
simfleet - simulator fleet lifecycle and parallel test orchestration.

Discovers installed runtimes and simulators, clones a fleet from a
reference simulator, builds once, splits the compiled tests across the
fleet and merges every clone's results into one report.
"""

from .cancellation import CancellationToken
from .config import ConfigError, RunTestsConfig, load_config
from .fleet_lock import FleetLock, FleetLockError
from .implementations import RealClock, RealFileSystem, RealShell
from .interfaces import (
    ClockInterface,
    FileSystemInterface,
    RuntimeCatalogInterface,
    ShellInterface,
    ShellOutput,
    SimulatorInterface,
    SimulatorProviderInterface,
    TestsRunnerInterface,
)
from .junit import JUnitError, JUnitService, merge_reports, parse_junit, render_junit
from .models import Device, DeviceState, LogsPathPair, Runtime, TestRunResult, XCTestFunction
from .multi_scan import MultiScan, MultiScanConfig, partition_tests
from .run_tests_task import RunTestsTask, worst_exit_code
from .scan import JUnitReportNotFoundError, Scan, ScanConfig, ScanError, XCResultNotFoundError
from .shell_errors import ExecutionTimedOutError, NonZeroExitCodeError, ShellCancelledError, ShellError

__all__ = [
    "CancellationToken",
    "ConfigError",
    "RunTestsConfig",
    "load_config",
    "FleetLock",
    "FleetLockError",
    "RealClock",
    "RealFileSystem",
    "RealShell",
    "ClockInterface",
    "FileSystemInterface",
    "RuntimeCatalogInterface",
    "ShellInterface",
    "ShellOutput",
    "SimulatorInterface",
    "SimulatorProviderInterface",
    "TestsRunnerInterface",
    "JUnitError",
    "JUnitService",
    "merge_reports",
    "parse_junit",
    "render_junit",
    "Device",
    "DeviceState",
    "LogsPathPair",
    "Runtime",
    "TestRunResult",
    "XCTestFunction",
    "MultiScan",
    "MultiScanConfig",
    "partition_tests",
    "RunTestsTask",
    "worst_exit_code",
    "JUnitReportNotFoundError",
    "Scan",
    "ScanConfig",
    "ScanError",
    "XCResultNotFoundError",
    "ExecutionTimedOutError",
    "NonZeroExitCodeError",
    "ShellCancelledError",
    "ShellError",
]

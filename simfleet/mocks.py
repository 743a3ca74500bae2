"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without macOS, Xcode or a booted simulator.
"""

from __future__ import annotations

import re
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Union

from .implementations import join_command
from .interfaces import (
    ClockInterface,
    RuntimeCatalogInterface,
    ShellInterface,
    ShellOutput,
    SimulatorInterface,
    SimulatorProviderInterface,
    TestsRunnerInterface,
)
from .models import Device, DeviceState, Runtime, TestRunResult, XCTestFunction
from .shell_errors import ExecutionTimedOutError, NonZeroExitCodeError
from .simulator.errors import (
    CloneError,
    ClonedSimulatorNotFoundError,
    NoDevicesFoundError,
    NoRuntimesFoundError,
)
from .xcodebuild.errors import FailureReason, XcodebuildError


@dataclass
class _ShellRule:
    pattern: "re.Pattern[str]"
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0
    timeout: bool = False
    error: Optional[BaseException] = None
    effect: Optional[Callable[[str], None]] = None


class MockShell(ShellInterface):
    """
    Scripted shell for testing.

    Rules are matched by regex search against the joined command, last
    registered rule first. Unmatched commands succeed with empty output.

    Usage:
        shell = MockShell()
        shell.on(r"simctl list runtimes", stdout='{"runtimes": []}')
        shell.on(r"simctl boot", returncode=1, stderr="boom")
        shell.on(r"xcodebuild", effect=lambda cmd: make_bundle())

    An effect is called with the command before the rule's output is
    produced, standing in for files the real tool would write.
    """

    def __init__(self):
        self._rules: List[_ShellRule] = []
        self._lock = threading.Lock()
        self.commands: List[str] = []
        self.calls: List[dict] = []

    def on(
        self,
        pattern: str,
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
        timeout: bool = False,
        error: Optional[BaseException] = None,
        effect: Optional[Callable[[str], None]] = None,
    ) -> "MockShell":
        self._rules.append(_ShellRule(re.compile(pattern), stdout, stderr, returncode, timeout, error, effect))
        return self

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
        with self._lock:
            self.commands.append(cmd)
            self.calls.append(
                {
                    "command": cmd,
                    "timeout": timeout,
                    "stderr_log_path": stderr_log_path,
                    "cancellable": cancellable,
                }
            )
            rule = next((r for r in reversed(self._rules) if r.pattern.search(cmd)), None)

        if rule is None:
            return ShellOutput(cmd, "", "", 0)
        if rule.effect is not None:
            rule.effect(cmd)
        if rule.error is not None:
            raise rule.error
        output = ShellOutput(cmd, rule.stdout, rule.stderr, rule.returncode)
        if rule.timeout:
            raise ExecutionTimedOutError(cmd, timeout or 0.0, output)
        if output.returncode != 0:
            if ignore_failure is not None and ignore_failure(output):
                return output
            raise NonZeroExitCodeError(output)
        return output

    # Test helper methods

    def commands_matching(self, pattern: str) -> List[str]:
        regex = re.compile(pattern)
        return [c for c in self.commands if regex.search(c)]


class MockClock(ClockInterface):
    """
    Controllable clock for testing.

    Time only moves when advanced, so log file names are deterministic.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self._current_time = start_time or datetime(2025, 1, 1, 0, 0, 0)

    def now(self) -> datetime:
        return self._current_time

    def advance(self, seconds: float) -> None:
        self._current_time += timedelta(seconds=seconds)


class FakeSimulatorHost:
    """
    In-memory simctl host state shared by the fake catalog, provider and
    simulators.

    Failures are injected per operation and udid with ``fail(...)``; every
    lifecycle call is recorded in ``calls`` as ``(operation, udid)``.
    """

    def __init__(self):
        self.runtimes: List[Runtime] = []
        self.devices: Dict[str, Device] = {}
        self.device_runtimes: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self._failures: Dict[tuple, BaseException] = {}
        self._lock = threading.Lock()

    def add_runtime(self, version: str, platform: str = "iOS", build_version: str = "") -> Runtime:
        runtime = Runtime(
            identifier=f"com.apple.CoreSimulator.SimRuntime.{platform}-{version.replace('.', '-')}",
            name=f"{platform} {version}",
            platform=platform,
            version=version,
            build_version=build_version,
        )
        self.runtimes.append(runtime)
        return runtime

    def remove_runtime(self, runtime: Runtime) -> None:
        self.runtimes = [r for r in self.runtimes if r.identifier != runtime.identifier]

    def add_device(self, name: str, runtime: Runtime, udid: Optional[str] = None) -> Device:
        udid = udid or str(uuid.uuid4()).upper()
        device = Device(
            udid=udid,
            name=name,
            data_path=f"/fake/Devices/{udid}/data",
            log_path=f"/fake/Logs/{udid}",
            state=DeviceState.SHUTDOWN,
        )
        with self._lock:
            self.devices[udid] = device
            self.device_runtimes[udid] = runtime.identifier
        return device

    def fail(self, operation: str, udid: str, error: BaseException) -> None:
        self._failures[(operation, udid)] = error

    def record(self, operation: str, udid: str) -> None:
        with self._lock:
            self.calls.append((operation, udid))
            error = self._failures.get((operation, udid))
        if error is not None:
            raise error

    def set_state(self, udid: str, state: DeviceState) -> None:
        with self._lock:
            self.devices[udid] = replace(self.devices[udid], state=state)

    def state(self, udid: str) -> DeviceState:
        return self.devices[udid].state

    def delete_device(self, udid: str) -> None:
        with self._lock:
            self.devices.pop(udid, None)
            self.device_runtimes.pop(udid, None)

    def names(self) -> List[str]:
        return [d.name for d in self.devices.values()]

    def operations(self, operation: str) -> List[str]:
        return [udid for op, udid in self.calls if op == operation]


class FakeRuntimeCatalog(RuntimeCatalogInterface):
    def __init__(self, host: FakeSimulatorHost):
        self._host = host

    def list_runtimes(self) -> List[Runtime]:
        if not self._host.runtimes:
            raise NoRuntimesFoundError("No runtimes on fake host")
        return list(self._host.runtimes)


class FakeSimulatorProvider(SimulatorProviderInterface):
    def __init__(self, host: FakeSimulatorHost):
        self._host = host
        self._catalog = FakeRuntimeCatalog(host)

    def list_devices(self) -> List[SimulatorInterface]:
        runtimes = {r.identifier: r for r in self._catalog.list_runtimes()}
        simulators: List[SimulatorInterface] = []
        for udid, device in list(self._host.devices.items()):
            runtime = runtimes.get(self._host.device_runtimes.get(udid, ""))
            if runtime is not None:
                simulators.append(FakeSimulator(self._host, self, device, runtime))
        if not simulators:
            raise NoDevicesFoundError("No devices on fake host")
        return simulators


class FakeSimulator(SimulatorInterface):
    """Simulator backed by FakeSimulatorHost state."""

    def __init__(
        self,
        host: FakeSimulatorHost,
        provider: SimulatorProviderInterface,
        device: Device,
        runtime: Runtime,
    ):
        self._host = host
        self._provider = provider
        self._device = device
        self._runtime = runtime

    @property
    def device(self) -> Device:
        return self._device

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    def boot(self) -> None:
        self._host.record("boot", self._device.udid)
        self._host.set_state(self._device.udid, DeviceState.BOOTED)

    def shutdown(self) -> None:
        self._host.record("shutdown", self._device.udid)
        self._host.set_state(self._device.udid, DeviceState.SHUTDOWN)

    def erase(self) -> None:
        self.shutdown()
        self._host.record("erase", self._device.udid)

    def uninstall_app(self, bundle_id: str) -> None:
        self._host.record("uninstall", self._device.udid)

    def disable_slide_to_type(self) -> None:
        self._host.record("disable_slide_to_type", self._device.udid)

    def clone(self, name: str, erase: bool) -> SimulatorInterface:
        self._host.record("clone", self._device.udid)
        runtime = next(
            (r for r in self._host.runtimes if r.identifier == self._runtime.identifier), None
        )
        if runtime is None:
            raise CloneError(f"Runtime {self._runtime.identifier} is gone")
        device = self._host.add_device(name, runtime)

        clone = self._provider.find_by_udid(device.udid)
        if clone is None:
            raise ClonedSimulatorNotFoundError(device.udid)
        if erase:
            try:
                clone.erase()
            except Exception:
                self._host.delete_device(device.udid)
                raise
        return clone

    def delete(self) -> None:
        self._host.record("delete", self._device.udid)
        self._host.delete_device(self._device.udid)


class FakeTestsRunner(TestsRunnerInterface):
    """
    Scripted test engine.

    Outcomes are keyed by simulator name; ``result_factory`` may build the
    whole result (e.g. writing artifacts to a temp dir).
    """

    def __init__(
        self,
        built_tests: Optional[List[XCTestFunction]] = None,
        failures: Optional[Dict[str, FailureReason]] = None,
        result_factory: Optional[Callable[[SimulatorInterface, List[XCTestFunction]], TestRunResult]] = None,
    ):
        self.built_tests = list(built_tests or [])
        self.failures = dict(failures or {})
        self.result_factory = result_factory
        self.runs: List[tuple] = []
        self._lock = threading.Lock()

    def get_built_tests(self) -> List[XCTestFunction]:
        return list(self.built_tests)

    def run_tests(self, simulator: SimulatorInterface, tests: List[XCTestFunction]) -> TestRunResult:
        with self._lock:
            self.runs.append((simulator.device.name, list(tests)))
        if self.result_factory is not None:
            return self.result_factory(simulator, tests)
        reason = self.failures.get(simulator.device.name)
        return TestRunResult(
            simulator=simulator,
            tests=list(tests),
            error=XcodebuildError(reason) if reason is not None else None,
        )

    def tests_run_on(self, name: str) -> List[XCTestFunction]:
        return [t for n, tests in self.runs if n == name for t in tests]

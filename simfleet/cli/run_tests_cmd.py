"""simfleetctl run-tests - Scan or Multi-Scan from a YAML config."""

from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from simfleet.cancellation import CancellationToken
from simfleet.cli.helpers import (
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    EXIT_USAGE,
    _make_shell,
    _print,
    _result_to_dict,
)
from simfleet.config import ConfigError, RunTestsConfig, load_config
from simfleet.fleet_lock import FleetLock, FleetLockError
from simfleet.implementations import RealClock, RealFileSystem
from simfleet.interfaces import (
    ClockInterface,
    FileSystemInterface,
    ShellInterface,
    SimulatorInterface,
    SimulatorProviderInterface,
)
from simfleet.junit import JUnitService
from simfleet.models import TestRunResult
from simfleet.multi_scan import MultiScan, MultiScanConfig
from simfleet.run_tests_task import RunTestsTask, TestRunPerformer, performer_for
from simfleet.scan import Scan, ScanConfig, ScanError
from simfleet.shell_errors import ShellError
from simfleet.simulator import RuntimeCatalog, SimulatorError, SimulatorProvider
from simfleet.xcodebuild import (
    Builder,
    BuilderConfig,
    LogPathFactory,
    TestsRunner,
    TestsRunnerConfig,
    XCTestDiscoveryError,
    XCTestPlanError,
    XCTestPlanService,
    XCTestService,
)
from simfleet.xcresult import XCResultTool

logger = logging.getLogger(__name__)


def build_strategy(
    config: RunTestsConfig,
    reference: SimulatorInterface,
    provider: SimulatorProviderInterface,
    shell: ShellInterface,
    fs: FileSystemInterface,
    clock: ClockInterface,
):
    """Wire a Scan or MultiScan for ``config`` around ``reference``."""
    log_paths = LogPathFactory(fs, clock)
    builder_config = BuilderConfig(
        project=config.project_file,
        scheme=config.scheme,
        derived_data_path=config.derived_data_dir,
        logs_path=config.logs_dir,
        formatter_command=config.formatter_command,
        use_rosetta=config.use_rosetta,
    )
    runner = TestsRunner(
        TestsRunnerConfig(
            project=config.project_file,
            scheme=config.scheme,
            build_derived_data_path=config.derived_data_dir,
            test_runs_derived_data_path=config.test_runs_derived_data_dir,
            test_runs_logs_path=config.logs_dir,
            test_plan=config.test_plan,
            test_without_building=config.test_without_building,
            formatter_command=config.formatter_command,
            testing_timeout=config.testing_timeout,
            use_rosetta=config.use_rosetta,
        ),
        shell,
        fs,
        log_paths,
        XCTestService.create(shell, fs),
    )

    if config.use_multi_scan:
        return MultiScan(
            MultiScanConfig(
                reference_simulator=reference,
                simulators_count=config.simulators_count,
                project_dir=config.project_dir,
                merged_xcresult_path=config.merged_xcresult,
                merged_junit_path=config.merged_junit,
                test_plan=config.test_plan,
            ),
            Builder(builder_config, shell, fs, log_paths),
            runner,
            provider,
            shell,
            fs,
            log_paths,
            XCTestPlanService.create(fs),
            JUnitService(fs),
            XCResultTool(shell),
        )

    return Scan(
        ScanConfig(
            reference_simulator=reference,
            logs_path=config.logs_dir,
            scheme=config.scheme,
            merged_xcresult_path=config.merged_xcresult,
            merged_junit_path=config.merged_junit,
        ),
        runner,
        shell,
        fs,
        log_paths,
    )


class _RecordingPerformer:
    """Keeps the results so the CLI can print them after the task ran."""

    def __init__(self, performer: TestRunPerformer):
        self._performer = performer
        self.results: list[TestRunResult] = []

    def __call__(self) -> list[TestRunResult]:
        self.results = self._performer()
        return self.results


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``token`` while the block runs."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum, frame):
        logger.warning("Received signal %d, cancelling running commands", signum)
        token.cancel()

    previous = {sig: signal.signal(sig, handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def cmd_run_tests(
    *,
    config_path: Optional[str],
    overrides: dict[str, Any],
    json_mode: bool,
    shell: Optional[ShellInterface] = None,
    fs: Optional[FileSystemInterface] = None,
    clock: Optional[ClockInterface] = None,
    token: Optional[CancellationToken] = None,
    use_lock: bool = True,
) -> int:
    try:
        config = load_config(config_path, overrides)
    except ConfigError as e:
        _print({"error": f"config: {e}"}, json_mode=json_mode)
        return EXIT_USAGE

    token = token or CancellationToken()
    shell = _make_shell(shell, token)
    fs = fs or RealFileSystem()
    clock = clock or RealClock()

    logger.info("Using scheme: %s, test plan: %s", config.scheme, config.test_plan or "<none>")

    lock: Optional[FleetLock] = None
    try:
        provider = SimulatorProvider(RuntimeCatalog(shell), shell)
        reference = provider.find_simulator(config.device_model, config.os_version)
        if use_lock:
            lock = FleetLock(reference.device.udid)
            lock.acquire()

        performer = _RecordingPerformer(
            performer_for(build_strategy(config, reference, provider, shell, fs, clock))
        )
        with cancel_on_signals(token):
            code = RunTestsTask(performer).run()
    except (
        SimulatorError,
        ShellError,
        XCTestDiscoveryError,
        XCTestPlanError,
        ScanError,
        FleetLockError,
    ) as e:
        if token.is_cancelled:
            _print({"error": "interrupted"}, json_mode=json_mode)
            return EXIT_INTERRUPTED
        logger.error("%s: %s", type(e).__name__, e)
        _print({"error": str(e), "type": type(e).__name__}, json_mode=json_mode)
        return EXIT_ERROR
    finally:
        if lock is not None:
            lock.release()

    if token.is_cancelled:
        _print({"error": "interrupted", "results": [_result_to_dict(r) for r in performer.results]},
               json_mode=json_mode)
        return EXIT_INTERRUPTED

    _print(
        {"exit_code": code, "results": [_result_to_dict(r) for r in performer.results]},
        json_mode=json_mode,
    )
    return code

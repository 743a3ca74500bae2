"""Running xcodebuild tests on one simulator."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from ..interfaces import FileSystemInterface, ShellInterface, SimulatorInterface, TestsRunnerInterface
from ..models import TestRunResult, XCTestFunction
from ..timing import measure
from .command import XcodebuildCommand, quote
from .errors import XcodebuildError, XcodebuildErrorParser
from .log_paths import LogPathFactory
from .xctest import XCTestService

logger = logging.getLogger(__name__)

DEFAULT_TESTING_TIMEOUT = 3600.0
XCRESULT_SUFFIX = ".xcresult"


@dataclass
class TestsRunnerConfig:
    __test__ = False

    project: str
    scheme: str
    build_derived_data_path: str
    test_runs_derived_data_path: str
    test_runs_logs_path: str
    test_plan: Optional[str] = None
    test_without_building: bool = False
    formatter_command: str = "xcbeautify"
    testing_timeout: float = DEFAULT_TESTING_TIMEOUT
    use_rosetta: bool = False


class TestsRunner(TestsRunnerInterface):
    """
    Runs ``xcodebuild test`` or ``test-without-building`` on one simulator.

    In test-without-building mode every simulator gets its own derived data
    directory ``<test runs DD>/<scheme>_<udid>`` whose ``Build`` entry is a
    symlink to the shared build products, so parallel runs never write into
    each other's directories. Otherwise the shared derived data is used.

    ``run_tests`` never raises: failures are classified into the result.
    """

    def __init__(
        self,
        config: TestsRunnerConfig,
        shell: ShellInterface,
        fs: FileSystemInterface,
        log_paths: LogPathFactory,
        xctest_service: XCTestService,
        error_parser: Optional[XcodebuildErrorParser] = None,
    ):
        self.config = config
        self._shell = shell
        self._fs = fs
        self._log_paths = log_paths
        self._xctest_service = xctest_service
        self._error_parser = error_parser or XcodebuildErrorParser()

    def get_built_tests(self) -> list[XCTestFunction]:
        if not self.config.test_without_building:
            return []
        return self._xctest_service.parse_tests(self.config.build_derived_data_path)

    def test_run_derived_data_path(self, simulator: SimulatorInterface) -> str:
        if not self.config.test_without_building:
            return self.config.build_derived_data_path
        return os.path.join(
            self.config.test_runs_derived_data_path,
            f"{self.config.scheme}_{simulator.device.udid}",
        )

    def build_command(
        self,
        simulator: SimulatorInterface,
        tests: list[XCTestFunction],
        derived_data_path: str,
        stdout_log: str,
        junit_path: str,
    ) -> list[str]:
        platform = simulator.runtime.platform or "iOS"
        command = (
            XcodebuildCommand(use_rosetta=self.config.use_rosetta)
            .option("-destination", f"platform={platform} Simulator,id={simulator.device.udid}")
            .option("-derivedDataPath", derived_data_path)
            .flag("-disable-concurrent-destination-testing")
            .flag("-enableCodeCoverage", "YES")
            .option("-project", self.config.project)
            .option("-scheme", self.config.scheme)
            .flag("-parallel-testing-enabled", "NO")
        )
        for test in tests:
            command.flag(f"-only-testing:{test.name}")
        command.option("-testPlan", self.config.test_plan)
        command.action("test-without-building" if self.config.test_without_building else "test")

        # The formatter resolves --report-path against its working directory.
        report_dir = os.path.relpath(os.path.dirname(junit_path), os.getcwd())
        return [
            "set -o pipefail &&",
            str(command),
            f"| tee {quote(stdout_log)}",
            f"| {self.config.formatter_command} --is-ci --report junit",
            f"--report-path {quote(report_dir)}",
            f"--junit-report-filename {quote(os.path.basename(junit_path))}",
        ]

    def run_tests(self, simulator: SimulatorInterface, tests: list[XCTestFunction]) -> TestRunResult:
        derived_data_path = self.test_run_derived_data_path(simulator)
        stale_xcresults = set(self._list_xcresults(derived_data_path))
        run_logs = None
        junit_path = None
        error: Optional[XcodebuildError] = None

        try:
            self._fs.mkdir(self.config.test_runs_logs_path)
            self._fs.mkdir(derived_data_path)
            run_logs = self._log_paths.test_logs(
                self.config.test_runs_logs_path, self.config.scheme, simulator.device.name
            )
            junit_path = self._log_paths.junit_path(
                self.config.test_runs_logs_path, self.config.scheme, simulator.device.name
            )

            if self.config.test_without_building:
                self._fs.symlink(
                    os.path.join(derived_data_path, "Build"),
                    os.path.join(self.config.build_derived_data_path, "Build"),
                )

            command = self.build_command(simulator, tests, derived_data_path, run_logs.stdout, junit_path)
            logger.info(
                "Running %s on %s",
                f"{len(tests)} tests" if tests else "all tests",
                simulator.short_description,
            )
            with measure(f"Testing on {simulator.device.name}", logger):
                self._shell.run(
                    command,
                    timeout=self.config.testing_timeout,
                    stderr_log_path=run_logs.stderr,
                    log_prefix=f"<device: {simulator.device.name}> ",
                )
        except Exception as e:
            error = self._error_parser.transform_error(e)
            logger.warning("Test run on %s failed: %s", simulator.device.name, error)

        return TestRunResult(
            simulator=simulator,
            tests=list(tests),
            xcresult_path=self._find_new_xcresult(derived_data_path, stale_xcresults),
            run_logs=run_logs,
            junit_path=junit_path,
            error=error,
        )

    def _list_xcresults(self, derived_data_path: str) -> list[str]:
        if not self._fs.exists(derived_data_path):
            return []
        try:
            paths = self._fs.find(derived_data_path)
        except OSError as e:
            logger.warning("Ignoring unreadable derived data %s: %s", derived_data_path, e)
            return []
        return [p for p in paths if p.endswith(XCRESULT_SUFFIX)]

    def _find_new_xcresult(self, derived_data_path: str, stale: set[str]) -> Optional[str]:
        # Derived data outlives runs on reused simulators; only this run's bundle counts.
        fresh = [p for p in self._list_xcresults(derived_data_path) if p not in stale]
        if len(fresh) > 1:
            logger.warning("Several new result bundles in %s, using %s", derived_data_path, fresh[-1])
        return fresh[-1] if fresh else None

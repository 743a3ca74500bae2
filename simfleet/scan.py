"""Single-simulator test strategy."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .interfaces import FileSystemInterface, ShellInterface, SimulatorInterface, TestsRunnerInterface
from .models import TestRunResult
from .simulator.simulator import shutdown_all_scope
from .timing import measure
from .xcodebuild.errors import FailureReason
from .xcodebuild.log_paths import LogPathFactory

logger = logging.getLogger(__name__)

SYSTEM_LOG_NAME = "system.log"


class ScanError(Exception):
    """Scan could not publish the artifacts of its run."""


class XCResultNotFoundError(ScanError):
    """The run produced no result bundle."""


class JUnitReportNotFoundError(ScanError):
    """The run produced test results but no JUnit report."""


@dataclass
class ScanConfig:
    reference_simulator: SimulatorInterface
    logs_path: str
    scheme: str
    merged_xcresult_path: str
    merged_junit_path: str


def copy_artifact(fs: FileSystemInterface, source: str, destination: str, kind: str) -> bool:
    """Copy one artifact; a failure is logged and reported as False."""
    try:
        fs.copy(source, destination)
    except OSError as e:
        logger.error("Error copying %s %s to %s: %s", kind, source, destination, e)
        return False
    logger.info("Copied %s to %s", kind, destination)
    return True


def collect_system_log(
    fs: FileSystemInterface,
    log_paths: LogPathFactory,
    result: TestRunResult,
    logs_path: str,
    scheme: str,
) -> None:
    """Copy the simulator's system.log next to the run logs. Best effort."""
    device = result.simulator.device
    source = os.path.join(device.log_path, SYSTEM_LOG_NAME)
    try:
        target = log_paths.system_log_path(logs_path, scheme, device.name)
        logger.info("Collecting %s", source)
        fs.copy(source, target)
    except OSError as e:
        logger.warning("Ignoring failed system log collection from %s: %s", source, e)


class Scan:
    """
    Runs the whole suite once on the reference simulator.

    Every simulator on the host is shut down before the run and again on
    every exit path.
    """

    def __init__(
        self,
        config: ScanConfig,
        runner: TestsRunnerInterface,
        shell: ShellInterface,
        fs: FileSystemInterface,
        log_paths: LogPathFactory,
    ):
        self.config = config
        self._runner = runner
        self._shell = shell
        self._fs = fs
        self._log_paths = log_paths

    def run(self) -> TestRunResult:
        """
        Raises:
            XCResultNotFoundError: no result bundle was produced.
            JUnitReportNotFoundError: no JUnit report after a run whose
                tests actually executed.
        """
        simulator = self.config.reference_simulator
        with shutdown_all_scope(self._shell):
            with measure(f"Running tests on {simulator.device.name}", logger):
                result = self._runner.run_tests(simulator, [])

            self._copy_results(result)
            collect_system_log(self._fs, self._log_paths, result, self.config.logs_path, self.config.scheme)

            if result.succeeded:
                logger.info("Scan: testing succeeded")
            return result

    def _copy_results(self, result: TestRunResult) -> None:
        if not result.xcresult_path or not self._fs.exists(result.xcresult_path):
            raise XCResultNotFoundError(f"No result bundle produced on {result.simulator.device.name}")
        copy_artifact(self._fs, result.xcresult_path, self.config.merged_xcresult_path, "result bundle")

        # A tooling failure legitimately leaves no report behind.
        tests_ran = result.error is None or result.error.reason == FailureReason.TESTING_FAILED
        if not tests_ran:
            return
        if not result.junit_path or not self._fs.exists(result.junit_path):
            raise JUnitReportNotFoundError(f"No JUnit report produced on {result.simulator.device.name}")
        copy_artifact(self._fs, result.junit_path, self.config.merged_junit_path, "JUnit report")

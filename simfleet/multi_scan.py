"""
Fleet test strategy: build once, split the inventory across clones, merge.

Steps, in order:
    1. shut every simulator down (again on every exit path)
    2. resolve dependencies and build for testing on the reference
    3. discover the compiled tests, filtered by the test plan
    4. resolve and boot the clones
    5. run one partition per clone in parallel
    6. merge result bundles and JUnit reports by clone index
    7. collect each clone's system log
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence, TypeVar

from .interfaces import (
    FileSystemInterface,
    ShellInterface,
    SimulatorInterface,
    SimulatorProviderInterface,
    TestsRunnerInterface,
)
from .junit import JUnitError, JUnitService, merge_reports, render_junit
from .models import TestRunResult, XCTestFunction
from .scan import collect_system_log, copy_artifact
from .shell_errors import ShellError
from .simulator.cloner import SimulatorCloner
from .simulator.errors import SimulatorError
from .simulator.simulator import shutdown_all_scope
from .timing import measure
from .xcodebuild.builder import Builder
from .xcodebuild.command import BuildDestination
from .xcodebuild.errors import FailureReason, XcodebuildError
from .xcodebuild.log_paths import LogPathFactory
from .xcodebuild.test_plan import XCTestPlanService
from .xcresult import XCResultTool

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition_tests(tests: Sequence[T], chunks_count: int) -> list[list[T]]:
    """Split ``tests`` into contiguous chunks whose sizes differ by at most one.

    Returns ``min(chunks_count, len(tests))`` non-empty chunks in input order,
    or ``[[]]`` (one run of everything) when ``tests`` is empty.
    """
    if chunks_count < 1:
        raise ValueError(f"chunks_count must be >= 1, got {chunks_count}")
    if not tests:
        return [[]]

    count = min(chunks_count, len(tests))
    size, remainder = divmod(len(tests), count)
    chunks: list[list[T]] = []
    start = 0
    for index in range(count):
        end = start + size + (1 if index < remainder else 0)
        chunks.append(list(tests[start:end]))
        start = end
    return chunks


@dataclass
class MultiScanConfig:
    reference_simulator: SimulatorInterface
    simulators_count: int
    project_dir: str
    merged_xcresult_path: str
    merged_junit_path: str
    test_plan: Optional[str] = None


class MultiScan:
    def __init__(
        self,
        config: MultiScanConfig,
        builder: Builder,
        runner: TestsRunnerInterface,
        provider: SimulatorProviderInterface,
        shell: ShellInterface,
        fs: FileSystemInterface,
        log_paths: LogPathFactory,
        test_plan_service: XCTestPlanService,
        junit_service: JUnitService,
        xcresult_tool: XCResultTool,
    ):
        self.config = config
        self.builder = builder
        self.runner = runner
        self._provider = provider
        self._shell = shell
        self._fs = fs
        self._log_paths = log_paths
        self._test_plan_service = test_plan_service
        self._junit_service = junit_service
        self._xcresult_tool = xcresult_tool

    def run(self) -> list[TestRunResult]:
        """Run the suite across the fleet and return per-clone results.

        Raises:
            ShellError: dependency resolution or the build failed.
            XCTestDiscoveryError: the compiled tests could not be listed.
            XCTestPlanError: the configured test plan is missing or invalid.
            SimulatorError: a clone could not be provisioned.
        """
        with shutdown_all_scope(self._shell):
            self._build_for_testing()
            tests = self._tests_to_run()
            clones = self._prepare_clones()

            results = self._run_on_fleet(clones, tests)

            self._merge_results(results)
            for result in results:
                collect_system_log(
                    self._fs,
                    self._log_paths,
                    result,
                    self.builder.config.logs_path,
                    self.builder.config.scheme,
                )

            if all(r.succeeded for r in results):
                logger.info("MultiScan: testing succeeded")
            return results

    def _build_for_testing(self) -> None:
        reference = self.config.reference_simulator
        self.builder.resolve_dependencies()
        self.builder.show_build_settings()
        self.builder.build(for_testing=True, destination=BuildDestination.for_simulator(reference))

    def _tests_to_run(self) -> list[XCTestFunction]:
        # A fleet of one runs everything; no inventory is needed.
        if self.config.simulators_count == 1:
            tests: list[XCTestFunction] = []
        else:
            with measure("Discovering built tests", logger):
                tests = self.runner.get_built_tests()

        if self.config.test_plan:
            plan = self._test_plan_service.get_test_plan(self.config.test_plan, self.config.project_dir)
            tests = self._test_plan_service.filter(tests, plan)
        return tests

    def _prepare_clones(self) -> list[SimulatorInterface]:
        cloner = SimulatorCloner(self.config.reference_simulator, self._provider)
        with measure("Preparing simulators", logger):
            clones = cloner.make_clones(
                self.config.simulators_count,
                preboot=True,
                erase_existing=True,
                erase_newly_cloned=True,
            )
        for clone in clones:
            try:
                clone.disable_slide_to_type()
            except (ShellError, SimulatorError) as e:
                logger.warning("Ignoring failed slide-to-type disabling on %s: %s", clone.device.name, e)
        return clones

    def _run_on_fleet(self, clones: list[SimulatorInterface], tests: list[XCTestFunction]) -> list[TestRunResult]:
        chunks = partition_tests(tests, len(clones))
        used = clones[: len(chunks)]
        if tests:
            logger.info("Going to run %d tests on %d simulators", len(tests), len(used))
        else:
            logger.info("Going to run all available tests on a single simulator")

        with measure("Running tests", logger):
            with ThreadPoolExecutor(max_workers=len(used)) as pool:
                futures = [
                    pool.submit(self._run_chunk, clone, chunk, len(tests))
                    for clone, chunk in zip(used, chunks)
                ]
                # Indexed by clone, not by completion order.
                return [future.result() for future in futures]

    def _run_chunk(self, simulator: SimulatorInterface, chunk: list[XCTestFunction], total: int) -> TestRunResult:
        if chunk:
            logger.info("Running %d/%d tests on %s", len(chunk), total, simulator.device.name)
            for test in chunk:
                logger.debug("\t%s", test.name)
        else:
            logger.info("Running all available tests on %s", simulator.device.name)
        try:
            return self.runner.run_tests(simulator, chunk)
        except Exception as e:
            logger.error("Test runner crashed on %s: %r", simulator.device.name, e)
            return TestRunResult(
                simulator=simulator,
                tests=list(chunk),
                error=XcodebuildError(FailureReason.UNKNOWN, e),
            )

    def _existing(self, path: Optional[str], kind: str, result: TestRunResult) -> Optional[str]:
        if path and self._fs.exists(path):
            return path
        logger.warning("Skipping missing %s of %s", kind, result.simulator.device.name)
        return None

    def _merge_results(self, results: list[TestRunResult]) -> None:
        xcresults: list[str] = []
        junits: list[str] = []
        for result in results:
            xcresult = self._existing(result.xcresult_path, "result bundle", result)
            if xcresult:
                xcresults.append(xcresult)
            junit = self._existing(result.junit_path, "JUnit report", result)
            if junit:
                junits.append(junit)

        if len(results) == 1:
            if xcresults:
                copy_artifact(self._fs, xcresults[0], self.config.merged_xcresult_path, "result bundle")
            if junits:
                copy_artifact(self._fs, junits[0], self.config.merged_junit_path, "JUnit report")
            return

        self._merge_xcresults(xcresults)
        self._merge_junits(junits)

    def _merge_xcresults(self, paths: list[str]) -> None:
        if not paths:
            logger.warning("No result bundles to merge")
            return
        if len(paths) == 1:
            copy_artifact(self._fs, paths[0], self.config.merged_xcresult_path, "result bundle")
            return
        try:
            self._xcresult_tool.merge(paths, self.config.merged_xcresult_path)
        except ShellError as e:
            logger.warning("Ignoring failed result bundle merge: %s", e)

    def _merge_junits(self, paths: list[str]) -> None:
        reports = []
        for path in paths:
            try:
                reports.append(self._junit_service.parse_file(path))
            except JUnitError as e:
                logger.warning("Skipping unreadable JUnit report %s: %s", path, e)
        if not reports:
            logger.warning("No JUnit reports to merge")
            return

        merged = merge_reports(reports)
        try:
            self._fs.write_bytes(self.config.merged_junit_path, render_junit(merged))
        except OSError as e:
            logger.warning("Ignoring failed JUnit write to %s: %s", self.config.merged_junit_path, e)
            return
        logger.info(
            "Produced merged JUnit %s (%d tests, %d failures)",
            self.config.merged_junit_path,
            merged.tests,
            merged.failures,
        )

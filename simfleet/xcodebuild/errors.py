"""Classification of failed ``xcodebuild`` test runs."""

from __future__ import annotations

from enum import IntEnum
from typing import Optional

from ..shell_errors import ExecutionTimedOutError, NonZeroExitCodeError


class FailureReason(IntEnum):
    """
    Why a test run failed. Lower values mean an earlier stage failed.

    The values double as process exit codes; the lowest one present in a
    set of results wins.
    """
    BUILDING_FAILED = 5
    FAILED_TO_INSTALL_OR_LAUNCH_TEST_RUNNER = 6
    TESTING_FAILED = 7
    UNKNOWN = 8
    TIMED_OUT = 9

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    FailureReason.BUILDING_FAILED: "Building failed",
    FailureReason.FAILED_TO_INSTALL_OR_LAUNCH_TEST_RUNNER: "Failed to install or launch the test runner",
    FailureReason.TESTING_FAILED: "Tests failed",
    FailureReason.UNKNOWN: "Unknown xcodebuild failure",
    FailureReason.TIMED_OUT: "Test run timed out",
}

BUILD_FAILED_HINTS = (
    "Testing cancelled because the build failed.",
    "The following build commands failed:",
    "** BUILD FAILED **",
)
TEST_RUNNER_HINTS = ("Failed to install or launch the test runner",)
TESTING_FAILED_HINTS = (
    "Testing failed:",
    "Failing tests:",
    "** TEST FAILED **",
    "** TEST EXECUTE FAILED **",
)


class XcodebuildError(Exception):
    """A classified test-run failure, carried in TestRunResult.error."""

    def __init__(self, reason: FailureReason, underlying: Optional[BaseException] = None):
        message = reason.description
        if underlying is not None:
            message = f"{message}: {underlying}"
        super().__init__(message)
        self.reason = reason
        self.underlying = underlying


class XcodebuildErrorParser:
    """Maps shell failures onto FailureReason using xcodebuild's stderr."""

    def transform_error(self, error: BaseException) -> XcodebuildError:
        if isinstance(error, ExecutionTimedOutError):
            return XcodebuildError(FailureReason.TIMED_OUT, error)
        if isinstance(error, NonZeroExitCodeError):
            return XcodebuildError(self.classify_stderr(error.stderr), error)
        return XcodebuildError(FailureReason.UNKNOWN, error)

    @staticmethod
    def classify_stderr(stderr: str) -> FailureReason:
        if any(hint in stderr for hint in BUILD_FAILED_HINTS):
            return FailureReason.BUILDING_FAILED
        if any(hint in stderr for hint in TEST_RUNNER_HINTS):
            return FailureReason.FAILED_TO_INSTALL_OR_LAUNCH_TEST_RUNNER
        if any(hint in stderr for hint in TESTING_FAILED_HINTS):
            return FailureReason.TESTING_FAILED
        return FailureReason.UNKNOWN

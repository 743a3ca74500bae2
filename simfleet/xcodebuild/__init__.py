"""xcodebuild invocations: building, testing and test inventory discovery."""

from .builder import Builder, BuilderConfig
from .command import BuildDestination, XcodebuildCommand
from .errors import FailureReason, XcodebuildError, XcodebuildErrorParser
from .log_paths import LogPathFactory
from .test_plan import XCTestPlanError, XCTestPlanInfo, XCTestPlanNotFoundError, XCTestPlanService
from .tests_runner import TestsRunner, TestsRunnerConfig
from .xctest import XCTestDiscoveryError, XCTestService

__all__ = [
    "Builder",
    "BuilderConfig",
    "BuildDestination",
    "XcodebuildCommand",
    "FailureReason",
    "XcodebuildError",
    "XcodebuildErrorParser",
    "LogPathFactory",
    "XCTestPlanError",
    "XCTestPlanInfo",
    "XCTestPlanNotFoundError",
    "XCTestPlanService",
    "TestsRunner",
    "TestsRunnerConfig",
    "XCTestDiscoveryError",
    "XCTestService",
]

"""Turning a set of test-run results into one process exit code."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Union

from .models import TestRunResult
from .multi_scan import MultiScan
from .scan import Scan

logger = logging.getLogger(__name__)

TestRunPerformer = Callable[[], "list[TestRunResult]"]


def worst_exit_code(results: Iterable[TestRunResult]) -> int:
    """Return the lowest FailureReason value among ``results``, or 0."""
    codes = [int(r.error.reason) for r in results if r.error is not None]
    return min(codes) if codes else 0


def performer_for(strategy: Union[Scan, MultiScan]) -> TestRunPerformer:
    """Adapt a Scan or MultiScan to a callable returning a result list."""
    if isinstance(strategy, Scan):
        return lambda: [strategy.run()]
    return strategy.run


class RunTestsTask:
    """
    Runs a test strategy and selects the exit code.

    Every classified error is logged; a non-zero code always corresponds to
    at least one of them.
    """

    __test__ = False

    def __init__(self, performer: TestRunPerformer):
        self._performer = performer

    def run(self) -> int:
        results = self._performer()
        for result in results:
            if result.error is not None:
                logger.error(
                    "%s: %s (exit code %d)",
                    result.simulator.device.name,
                    result.error,
                    int(result.error.reason),
                )
        code = worst_exit_code(results)
        if code == 0:
            logger.info("RunTestsTask: success")
        return code

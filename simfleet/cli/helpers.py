"""Shared utilities for simfleetctl CLI commands."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

from simfleet.cancellation import CancellationToken
from simfleet.implementations import RealShell
from simfleet.interfaces import ShellInterface, SimulatorInterface
from simfleet.models import TestRunResult

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _print(obj: Any, *, json_mode: bool) -> None:
    if json_mode:
        print(json.dumps(obj, indent=2, sort_keys=True))
    else:
        if isinstance(obj, str):
            print(obj)
        else:
            print(json.dumps(obj, indent=2, sort_keys=True))


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    if os.environ.get("SIMFLEET_LOG_LEVEL"):
        level = getattr(logging, os.environ["SIMFLEET_LOG_LEVEL"].upper(), level)
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _make_shell(shell: Optional[ShellInterface], token: Optional[CancellationToken] = None) -> ShellInterface:
    return shell if shell is not None else RealShell(cancel_token=token)


def _simulator_to_dict(simulator: SimulatorInterface) -> dict[str, Any]:
    return {
        "name": simulator.device.name,
        "udid": simulator.device.udid,
        "state": simulator.device.state.value,
        "runtime": simulator.runtime.name,
        "os_version": simulator.runtime.version,
    }


def _result_to_dict(result: TestRunResult) -> dict[str, Any]:
    return {
        "simulator": result.simulator.device.name,
        "udid": result.simulator.device.udid,
        "tests": len(result.tests),
        "xcresult": result.xcresult_path,
        "junit": result.junit_path,
        "stdout_log": result.run_logs.stdout if result.run_logs else None,
        "error": result.error.reason.name if result.error is not None else None,
        "exit_code": int(result.error.reason) if result.error is not None else 0,
    }

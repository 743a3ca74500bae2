"""
simfleetctl: CLI for the simulator fleet test orchestrator.

Main commands:
- runtimes / devices: inspect simctl host state
- shutdown-all: shut every simulator down
- clones make|delete: provision or tear down '<name> Clone <i>' simulators
- run-tests: Scan (one simulator) or Multi-Scan (cloned fleet) from YAML
- merge-junit: merge JUnit reports

Entry points:
- simfleetctl: Main CLI entry point (installed via pip)
- Can also be imported and called programmatically via main(argv)
"""

from __future__ import annotations

from simfleet.cli.helpers import _configure_logging, _print
from simfleet.cli.junit_cmd import cmd_merge_junit
from simfleet.cli.run_tests_cmd import cmd_run_tests
from simfleet.cli.simulator_cmds import (
    cmd_clones_delete,
    cmd_clones_make,
    cmd_devices,
    cmd_runtimes,
    cmd_shutdown_all,
)
from simfleet.cli.dispatch import main

__all__ = [
    "main",
    "_print",
    "_configure_logging",
    "cmd_runtimes",
    "cmd_devices",
    "cmd_shutdown_all",
    "cmd_clones_make",
    "cmd_clones_delete",
    "cmd_run_tests",
    "cmd_merge_junit",
]

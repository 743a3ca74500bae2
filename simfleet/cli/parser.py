"""Argument parser for simfleetctl CLI."""

from __future__ import annotations

import argparse

from simfleet.config import MAX_SIMULATORS, MIN_SIMULATORS


def _preprocess_argv(argv: list[str]) -> list[str]:
    """Move global flags (--json, --verbose) before the subcommand.

    argparse subparsers reject global flags placed after the subcommand, so
    ``simfleetctl devices --json`` is reordered to ``--json devices``.
    """
    global_args = [t for t in argv if t in ("--json", "--verbose", "-v")]
    rest = [t for t in argv if t not in ("--json", "--verbose", "-v")]
    return global_args + rest


def _sim_count(raw: str) -> int:
    value = int(raw)
    if not MIN_SIMULATORS <= value <= MAX_SIMULATORS:
        raise argparse.ArgumentTypeError(f"must be in {MIN_SIMULATORS}..{MAX_SIMULATORS}")
    return value


def _add_reference_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--device-model", required=True, help="Reference simulator name, e.g. 'iPhone 14'")
    p.add_argument("--os-version", required=True, help="Reference runtime version, e.g. 16.4")


def _build_parser() -> argparse.ArgumentParser:
    """Build the full argparse parser with all subcommands."""
    parser = argparse.ArgumentParser(prog="simfleetctl", description="Simulator fleet test orchestrator")
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0 (simfleet)",
    )
    parser.add_argument("--json", action="store_true", help="Output machine-parseable JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log shell commands and their output")

    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("runtimes", help="List installed simulator runtimes")
    sub.add_parser("devices", help="List simulators joined with their runtimes")
    sub.add_parser("shutdown-all", help="Shut every simulator down")

    p_clones = sub.add_parser("clones", help="Provision or delete reference clones")
    clones_sub = p_clones.add_subparsers(dest="clones_action", required=True)

    p_make = clones_sub.add_parser("make", help="Create or reuse '<name> Clone <i>' simulators")
    _add_reference_args(p_make)
    p_make.add_argument("--count", type=_sim_count, required=True)
    p_make.add_argument("--preboot", action="store_true", help="Boot every clone after provisioning")
    p_make.add_argument("--erase", action="store_true", help="Erase reused and new clones")

    p_delete = clones_sub.add_parser("delete", help="Delete every simulator named '* Clone *'")
    _add_reference_args(p_delete)

    p_run = sub.add_parser("run-tests", help="Run the test suite on one simulator or a cloned fleet")
    p_run.add_argument("--config", dest="config_path", default=None, help="YAML run configuration")
    p_run.add_argument("--scheme", default=None)
    p_run.add_argument("--device-model", default=None)
    p_run.add_argument("--os-version", default=None)
    p_run.add_argument("--sim-count", type=_sim_count, default=None, dest="simulators_count")
    p_run.add_argument("--test-plan", default=None)
    p_run.add_argument(
        "--multi-scan",
        dest="use_multi_scan",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Build once and split tests across clones",
    )
    p_run.add_argument("--testing-timeout", type=float, default=None, help="Seconds per simulator run")
    p_run.add_argument("--rosetta", dest="use_rosetta", action="store_true", default=None)

    p_merge = sub.add_parser("merge-junit", help="Merge JUnit reports into one file")
    p_merge.add_argument("output")
    p_merge.add_argument("inputs", nargs="+")

    return parser

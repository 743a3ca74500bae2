"""Main entry point and command dispatch for simfleetctl CLI."""

from __future__ import annotations

import sys
from typing import Optional

from simfleet.cli.parser import _build_parser, _preprocess_argv

RUN_TESTS_OVERRIDES = (
    "scheme",
    "device_model",
    "os_version",
    "simulators_count",
    "test_plan",
    "use_multi_scan",
    "testing_timeout",
    "use_rosetta",
)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the ``simfleetctl`` CLI.

    Args:
        argv: Argument list to parse.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 on success, the worst failure reason after failed
        test runs, 1 on other errors, 2 on bad configuration.
    """
    if argv is None:
        argv = sys.argv[1:]

    argv = _preprocess_argv(argv)

    # Late import to allow tests to monkeypatch simfleet.cli.cmd_xxx
    import simfleet.cli as cli

    parser = _build_parser()
    args = parser.parse_args(argv)
    cli._configure_logging(args.verbose)

    if args.cmd == "runtimes":
        return cli.cmd_runtimes(json_mode=args.json)
    if args.cmd == "devices":
        return cli.cmd_devices(json_mode=args.json)
    if args.cmd == "shutdown-all":
        return cli.cmd_shutdown_all(json_mode=args.json)
    if args.cmd == "clones":
        if args.clones_action == "make":
            return cli.cmd_clones_make(
                device_model=args.device_model,
                os_version=args.os_version,
                count=args.count,
                preboot=args.preboot,
                erase=args.erase,
                json_mode=args.json,
            )
        return cli.cmd_clones_delete(
            device_model=args.device_model,
            os_version=args.os_version,
            json_mode=args.json,
        )
    if args.cmd == "run-tests":
        return cli.cmd_run_tests(
            config_path=args.config_path,
            overrides={key: getattr(args, key) for key in RUN_TESTS_OVERRIDES},
            json_mode=args.json,
        )
    if args.cmd == "merge-junit":
        return cli.cmd_merge_junit(output=args.output, inputs=args.inputs, json_mode=args.json)

    parser.error(f"Unknown command: {args.cmd}")
    return 2

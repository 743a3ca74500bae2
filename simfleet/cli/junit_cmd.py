"""simfleetctl merge-junit - merge JUnit reports into one file."""

from __future__ import annotations

from simfleet.cli.helpers import EXIT_ERROR, EXIT_OK, _print
from simfleet.implementations import RealFileSystem
from simfleet.junit import JUnitError, JUnitService


def cmd_merge_junit(*, output: str, inputs: list[str], json_mode: bool) -> int:
    service = JUnitService(RealFileSystem())
    try:
        merged = service.merge_files_into(inputs, output)
    except (JUnitError, OSError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR

    _print(
        {
            "output": output,
            "inputs": len(inputs),
            "tests": merged.tests,
            "failures": merged.failures,
            "testcases": len(merged.testcases),
        },
        json_mode=json_mode,
    )
    return EXIT_OK

"""simfleetctl runtimes / devices / shutdown-all / clones."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Optional

from simfleet.cli.helpers import EXIT_ERROR, EXIT_OK, _make_shell, _print, _simulator_to_dict
from simfleet.interfaces import ShellInterface
from simfleet.shell_errors import ShellError
from simfleet.simulator import (
    RuntimeCatalog,
    Simulator,
    SimulatorCloner,
    SimulatorError,
    SimulatorProvider,
)

logger = logging.getLogger(__name__)


def cmd_runtimes(*, json_mode: bool, shell: Optional[ShellInterface] = None) -> int:
    shell = _make_shell(shell)
    try:
        runtimes = RuntimeCatalog(shell).list_runtimes()
    except (SimulatorError, ShellError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR

    if json_mode:
        _print({"runtimes": [asdict(r) for r in runtimes]}, json_mode=True)
    else:
        for r in runtimes:
            mark = "" if r.is_available else " (unavailable)"
            print(f"{r.name:<16} {r.build_version:<10} {r.identifier}{mark}")
    return EXIT_OK


def cmd_devices(*, json_mode: bool, shell: Optional[ShellInterface] = None) -> int:
    shell = _make_shell(shell)
    try:
        simulators = SimulatorProvider(RuntimeCatalog(shell), shell).list_devices()
    except (SimulatorError, ShellError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR

    if json_mode:
        _print({"devices": [_simulator_to_dict(s) for s in simulators]}, json_mode=True)
    else:
        for s in simulators:
            print(f"{s.device.name:<32} {s.runtime.name:<12} {s.device.state.value:<12} {s.device.udid}")
    return EXIT_OK


def cmd_shutdown_all(*, json_mode: bool, shell: Optional[ShellInterface] = None) -> int:
    shell = _make_shell(shell)
    try:
        Simulator.shutdown_all(shell)
    except ShellError as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR
    _print({"shutdown": "all"} if json_mode else "All simulators shut down", json_mode=json_mode)
    return EXIT_OK


def _cloner(shell: ShellInterface, device_model: str, os_version: str) -> SimulatorCloner:
    provider = SimulatorProvider(RuntimeCatalog(shell), shell)
    reference = provider.find_simulator(device_model, os_version)
    return SimulatorCloner(reference, provider)


def cmd_clones_make(
    *,
    device_model: str,
    os_version: str,
    count: int,
    preboot: bool,
    erase: bool,
    json_mode: bool,
    shell: Optional[ShellInterface] = None,
) -> int:
    shell = _make_shell(shell)
    try:
        clones = _cloner(shell, device_model, os_version).make_clones(
            count,
            preboot=preboot,
            erase_existing=erase,
            erase_newly_cloned=erase,
        )
    except (SimulatorError, ShellError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR

    _print({"clones": [_simulator_to_dict(c) for c in clones]}, json_mode=json_mode)
    return EXIT_OK


def cmd_clones_delete(
    *,
    device_model: str,
    os_version: str,
    json_mode: bool,
    shell: Optional[ShellInterface] = None,
) -> int:
    shell = _make_shell(shell)
    try:
        cloner = _cloner(shell, device_model, os_version)
    except (SimulatorError, ShellError) as e:
        _print({"error": str(e)}, json_mode=json_mode)
        return EXIT_ERROR

    cloner.delete_all_clones()
    _print({"deleted": "all clones"} if json_mode else "All clones deleted", json_mode=json_mode)
    return EXIT_OK

"""Simulator discovery through ``xcrun simctl list devices``."""

from __future__ import annotations

import logging

from ..interfaces import RuntimeCatalogInterface, ShellInterface, SimulatorInterface, SimulatorProviderInterface
from ..models import Device
from .catalog import decode_simctl_document
from .errors import DiscoveryUnavailableError, NoDevicesFoundError
from .simulator import Simulator

logger = logging.getLogger(__name__)

LIST_DEVICES_COMMAND = "xcrun simctl list devices --json"


class SimulatorProvider(SimulatorProviderInterface):
    """
    Lists simulators and joins them with installed runtimes.

    Runtimes are re-queried on every call: both lists are host state and a
    runtime or device may appear or vanish between two calls.
    """

    def __init__(self, catalog: RuntimeCatalogInterface, shell: ShellInterface):
        self._catalog = catalog
        self._shell = shell

    def list_devices(self) -> list[SimulatorInterface]:
        runtimes = {r.identifier: r for r in self._catalog.list_runtimes()}

        output = self._shell.run(LIST_DEVICES_COMMAND)
        devices_by_runtime = decode_simctl_document(output.stdout, "devices")
        if not isinstance(devices_by_runtime, dict):
            raise DiscoveryUnavailableError("simctl 'devices' is not a mapping")

        simulators: list[SimulatorInterface] = []
        for runtime_id, raw_devices in devices_by_runtime.items():
            runtime = runtimes.get(runtime_id)
            if runtime is None:
                # Runtime not installed (or just removed); its devices are unusable.
                continue
            for raw in raw_devices:
                try:
                    device = Device.from_json(raw)
                except (KeyError, TypeError) as e:
                    raise DiscoveryUnavailableError(f"Malformed device record: {e!r}") from e
                simulators.append(Simulator(self, device, runtime, self._shell))

        if not simulators:
            raise NoDevicesFoundError("No simulators found for installed runtimes")
        return simulators

"""Provisioning and teardown of a fleet of named clones."""

from __future__ import annotations

import logging

from ..interfaces import SimulatorInterface, SimulatorProviderInterface
from ..shell_errors import ShellError
from ..timing import measure
from .errors import SimulatorError

logger = logging.getLogger(__name__)

CLONE_MARKER = "Clone"


class SimulatorCloner:
    """
    Creates or reuses ``<reference name> Clone <i>`` simulators.

    Clone names are the only identity carried between runs: a clone on the
    reference's runtime is reused, a clone on any other runtime is deleted
    and recreated.

    Usage:
        cloner = SimulatorCloner(reference, provider)
        clones = cloner.make_clones(4, preboot=True, erase_existing=True,
                                    erase_newly_cloned=True)
    """

    def __init__(self, original: SimulatorInterface, provider: SimulatorProviderInterface):
        self.original = original
        self._provider = provider

    def clone_name(self, index: int) -> str:
        return f"{self.original.device.name} {CLONE_MARKER} {index}"

    def make_clones(
        self,
        count: int,
        preboot: bool,
        erase_existing: bool,
        erase_newly_cloned: bool,
    ) -> list[SimulatorInterface]:
        """Resolve ``count`` clones in index order, then optionally boot them.

        Every clone is resolved before any is booted. A resolution failure
        aborts the whole batch; a boot failure is logged and skipped.

        Raises:
            CloneError: a clone could not be created or located.
            ShellError: deleting or erasing a clone failed.
        """
        clones: list[SimulatorInterface] = []
        with measure(f"Resolving {count} clones", logger):
            for index in range(count):
                clones.append(
                    self._resolve_clone(self.clone_name(index), erase_existing, erase_newly_cloned)
                )

        if preboot:
            with measure(f"Booting {len(clones)} clones", logger):
                for clone in clones:
                    try:
                        clone.boot()
                    except ShellError as e:
                        logger.warning("Ignoring failed boot of %s: %s", clone.short_description, e)
        return clones

    def _resolve_clone(self, name: str, erase_existing: bool, erase_newly_cloned: bool) -> SimulatorInterface:
        existing = self._provider.find_by_name(name)
        if existing is not None:
            if existing.runtime == self.original.runtime:
                logger.info("Reusing %s", existing.short_description)
                if erase_existing:
                    existing.erase()
                return existing
            logger.info(
                "Recreating %s: runtime %s differs from %s",
                name,
                existing.runtime.identifier,
                self.original.runtime.identifier,
            )
            existing.delete()

        return self.original.clone(name, erase_newly_cloned)

    def delete_all_clones(self) -> None:
        """Delete every simulator whose name contains ``Clone``. Best effort."""
        try:
            simulators = self._provider.list_devices()
        except SimulatorError as e:
            logger.warning("Ignoring failed clone listing: %s", e)
            return

        clones = [s for s in simulators if CLONE_MARKER in s.device.name]
        with measure(f"Deleting {len(clones)} clones", logger):
            for clone in clones:
                try:
                    clone.delete()
                except ShellError as e:
                    logger.warning("Ignoring failed delete of %s: %s", clone.short_description, e)

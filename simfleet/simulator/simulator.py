"""Lifecycle operations on one simulator via ``xcrun simctl``."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

from ..interfaces import ShellInterface, ShellOutput, SimulatorInterface, SimulatorProviderInterface
from ..models import Device, Runtime
from ..shell_errors import ShellError
from .errors import (
    CloneDidNotReturnIdentifierError,
    CloneReturnedInvalidIdentifierError,
    ClonedSimulatorNotFoundError,
    SimulatorError,
)

logger = logging.getLogger(__name__)

ALREADY_SHUTDOWN_HINT = "Unable to shutdown device in current state: Shutdown"
SLIDE_TO_TYPE_MIN_VERSION = (13, 0, 0)
CONTINUOUS_PATH_PLIST = "Library/Preferences/com.apple.keyboard.ContinuousPath.plist"


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse ``"16.4"`` / ``"16.4.1"`` into a 3-tuple, padding missing parts.

    Raises:
        SimulatorError: the string is not dot-separated integers.
    """
    parts = version.strip().split(".")
    if not parts or len(parts) > 3:
        raise SimulatorError(f"Unparseable runtime version: {version!r}")
    try:
        numbers = [int(p) for p in parts]
    except ValueError as e:
        raise SimulatorError(f"Unparseable runtime version: {version!r}") from e
    numbers += [0] * (3 - len(numbers))
    return numbers[0], numbers[1], numbers[2]


def _is_already_shutdown(output: ShellOutput) -> bool:
    return ALREADY_SHUTDOWN_HINT in output.stderr


class Simulator(SimulatorInterface):
    """
    A simctl device bound to its runtime.

    Every operation shells out and blocks until simctl exits. The device
    record is a snapshot; ``state`` is not refreshed after boot/shutdown.
    """

    def __init__(
        self,
        provider: SimulatorProviderInterface,
        device: Device,
        runtime: Runtime,
        shell: ShellInterface,
    ):
        self._provider = provider
        self._device = device
        self._runtime = runtime
        self._shell = shell

    @property
    def device(self) -> Device:
        return self._device

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def _log_prefix(self) -> str:
        return f"[{self._device.name}] "

    def _simctl(self, *args: str, **kwargs) -> ShellOutput:
        return self._shell.run(["xcrun simctl", *args], log_prefix=self._log_prefix, **kwargs)

    def boot(self) -> None:
        logger.info("Booting %s", self.short_description)
        self._simctl("boot", self._device.udid)

    def shutdown(self) -> None:
        logger.debug("Shutting down %s", self.short_description)
        self._simctl("shutdown", self._device.udid, ignore_failure=_is_already_shutdown)

    def erase(self) -> None:
        self.shutdown()
        logger.info("Erasing %s", self.short_description)
        self._simctl("erase", self._device.udid)

    def uninstall_app(self, bundle_id: str) -> None:
        self._simctl("uninstall", self._device.udid, bundle_id)

    def disable_slide_to_type(self) -> None:
        if self._runtime.platform != "iOS":
            return
        if parse_version(self._runtime.version) < SLIDE_TO_TYPE_MIN_VERSION:
            return
        plist = f"{self._device.data_path}/{CONTINUOUS_PATH_PLIST}"
        self._shell.run(
            [
                "/usr/libexec/PlistBuddy",
                '-c "Add :KeyboardContinuousPathEnabled bool false"',
                f"'{plist}'",
                ">/dev/null 2>&1",
            ],
            log_prefix=self._log_prefix,
        )

    def clone(self, name: str, erase: bool) -> SimulatorInterface:
        logger.info("Cloning %s as %r", self.short_description, name)
        output = self._simctl("clone", self._device.udid, f'"{name}"')

        raw_udid = output.stdout.strip()
        if not raw_udid:
            raise CloneDidNotReturnIdentifierError(f"simctl clone of {self._device.udid} printed nothing")
        try:
            udid = str(uuid.UUID(raw_udid)).upper()
        except ValueError as e:
            raise CloneReturnedInvalidIdentifierError(raw_udid) from e

        clone = self._provider.find_by_udid(udid)
        if clone is None:
            raise ClonedSimulatorNotFoundError(udid)

        if erase:
            try:
                clone.erase()
            except ShellError:
                # A half-provisioned clone is never handed out or left behind.
                try:
                    clone.delete()
                except ShellError as delete_error:
                    logger.warning("Failed to delete unerased clone %s: %s", udid, delete_error)
                raise
        return clone

    def delete(self) -> None:
        logger.info("Deleting %s", self.short_description)
        self._simctl("delete", self._device.udid)

    @classmethod
    def shutdown_all(cls, shell: ShellInterface) -> None:
        """Shut every simulator on the host down. Not cancellable."""
        shell.run("xcrun simctl shutdown all", cancellable=False)


@contextmanager
def shutdown_all_scope(shell: ShellInterface) -> Iterator[None]:
    """Shut every simulator down on entry and on every exit path.

    Shutdown failures are logged and ignored.
    """
    _shutdown_all_logged(shell)
    try:
        yield
    finally:
        _shutdown_all_logged(shell)


def _shutdown_all_logged(shell: ShellInterface) -> None:
    try:
        Simulator.shutdown_all(shell)
    except ShellError as e:
        logger.warning("Ignoring failed shutdown of all simulators: %s", e)

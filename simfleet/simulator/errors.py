"""Errors raised while discovering, locating and cloning simulators."""

from __future__ import annotations


class SimulatorError(Exception):
    """Base class for simulator discovery and provisioning failures."""


class DiscoveryUnavailableError(SimulatorError):
    """simctl produced no parseable output."""


class NoRuntimesFoundError(SimulatorError):
    """simctl reported zero installed runtimes."""


class NoDevicesFoundError(SimulatorError):
    """No simulator could be matched with an installed runtime."""


class SimulatorNotFoundError(SimulatorError):
    """The requested reference simulator does not exist."""

    def __init__(self, name: str, os_version: str):
        super().__init__(f"Simulator {name!r} with OS {os_version!r} not found")
        self.name = name
        self.os_version = os_version


class CloneError(SimulatorError):
    """A clone could not be created or located."""


class CloneDidNotReturnIdentifierError(CloneError):
    """``simctl clone`` printed nothing."""


class CloneReturnedInvalidIdentifierError(CloneError):
    """``simctl clone`` printed something that is not a UUID."""

    def __init__(self, output: str):
        super().__init__(f"Clone command returned an invalid UDID: {output!r}")
        self.output = output


class ClonedSimulatorNotFoundError(CloneError):
    """The new clone's UDID is missing from the device list."""

    def __init__(self, udid: str):
        super().__init__(f"Cloned simulator {udid} not found in device list")
        self.udid = udid

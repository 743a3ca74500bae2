"""Simulator discovery, lifecycle and fleet cloning."""

from .catalog import RuntimeCatalog
from .cloner import SimulatorCloner
from .errors import (
    CloneDidNotReturnIdentifierError,
    CloneError,
    CloneReturnedInvalidIdentifierError,
    ClonedSimulatorNotFoundError,
    DiscoveryUnavailableError,
    NoDevicesFoundError,
    NoRuntimesFoundError,
    SimulatorError,
    SimulatorNotFoundError,
)
from .provider import SimulatorProvider
from .simulator import Simulator, shutdown_all_scope

__all__ = [
    "RuntimeCatalog",
    "SimulatorProvider",
    "Simulator",
    "SimulatorCloner",
    "shutdown_all_scope",
    "SimulatorError",
    "DiscoveryUnavailableError",
    "NoRuntimesFoundError",
    "NoDevicesFoundError",
    "SimulatorNotFoundError",
    "CloneError",
    "CloneDidNotReturnIdentifierError",
    "CloneReturnedInvalidIdentifierError",
    "ClonedSimulatorNotFoundError",
]

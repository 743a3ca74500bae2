"""Assembly of ``xcodebuild`` command lines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..interfaces import SimulatorInterface

GENERIC_IOS_DESTINATION = "generic/platform=iOS"


def quote(value: str) -> str:
    """Single-quote ``value`` for bash."""
    return "'" + value.replace("'", "'\"'\"'") + "'"


@dataclass(frozen=True)
class BuildDestination:
    """Either a concrete simulator or the generic iOS device marker."""
    simulator: Optional[SimulatorInterface] = None

    @classmethod
    def generic(cls) -> "BuildDestination":
        return cls(None)

    @classmethod
    def for_simulator(cls, simulator: SimulatorInterface) -> "BuildDestination":
        return cls(simulator)

    @property
    def is_generic(self) -> bool:
        return self.simulator is None

    def argument(self) -> str:
        if self.simulator is None:
            return GENERIC_IOS_DESTINATION
        platform = self.simulator.runtime.platform or "iOS"
        return (
            f"platform={platform} Simulator,"
            f"id={self.simulator.device.udid},"
            f"OS={self.simulator.runtime.version}"
        )


class XcodebuildCommand:
    """
    Fluent builder for an ``xcodebuild`` invocation.

    Usage:
        cmd = (XcodebuildCommand(use_rosetta=False)
               .option("-scheme", "App")
               .flag("-parallel-testing-enabled", "NO")
               .action("test"))
        str(cmd)
    """

    def __init__(self, use_rosetta: bool = False):
        self._parts: list[str] = ["env NSUnbufferedIO=YES"]
        if use_rosetta:
            self._parts.append("arch -x86_64")
        self._parts.append("xcodebuild")

    def option(self, name: str, value: Optional[str]) -> "XcodebuildCommand":
        """Append ``name 'value'``; skipped when value is None."""
        if value is not None:
            self._parts.append(f"{name} {quote(value)}")
        return self

    def flag(self, name: str, value: Optional[str] = None) -> "XcodebuildCommand":
        """Append a bare flag, or ``name value`` without quoting."""
        self._parts.append(name if value is None else f"{name} {value}")
        return self

    def action(self, *actions: str) -> "XcodebuildCommand":
        self._parts.extend(actions)
        return self

    def parts(self) -> list[str]:
        return list(self._parts)

    def __str__(self) -> str:
        return " ".join(self._parts)

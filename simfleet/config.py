"""YAML run configuration for ``simfleetctl run-tests``."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

import yaml

from .xcodebuild.tests_runner import DEFAULT_TESTING_TIMEOUT

MIN_SIMULATORS = 1
MAX_SIMULATORS = 10

# Keys holding paths that resolve against project_dir.
PATH_KEYS = (
    "project_file",
    "derived_data_dir",
    "test_runs_derived_data_dir",
    "logs_dir",
    "results_dir",
    "merged_xcresult",
    "merged_junit",
)


class ConfigError(ValueError):
    """The run configuration is missing a key or holds an invalid value."""


@dataclass
class RunTestsConfig:
    """A complete run configuration. Paths are absolute after ``load_config``."""
    scheme: str
    device_model: str
    os_version: str
    simulators_count: int = 1
    use_multi_scan: bool = False
    test_plan: Optional[str] = None
    project_dir: str = "."
    project_file: Optional[str] = None
    derived_data_dir: str = ".build/DerivedData"
    test_runs_derived_data_dir: str = ".build/TestRunsDerivedData"
    logs_dir: str = ".build/logs"
    results_dir: str = ".build/results"
    # Default to results_dir/merged.xcresult and results_dir/merged.junit.
    merged_xcresult: Optional[str] = None
    merged_junit: Optional[str] = None
    formatter_command: str = "xcbeautify"
    testing_timeout: float = DEFAULT_TESTING_TIMEOUT
    use_rosetta: bool = False

    @property
    def test_without_building(self) -> bool:
        # Clones reuse the shared build; a single scan builds and tests.
        return self.use_multi_scan

    def validate(self) -> "RunTestsConfig":
        for key in ("scheme", "device_model", "os_version"):
            value = getattr(self, key)
            if not isinstance(value, str) or not value.strip():
                raise ConfigError(f"{key} is required")
        if isinstance(self.simulators_count, bool) or not isinstance(self.simulators_count, int):
            raise ConfigError(f"simulators_count must be an integer, got {self.simulators_count!r}")
        if not MIN_SIMULATORS <= self.simulators_count <= MAX_SIMULATORS:
            raise ConfigError(
                f"simulators_count must be in {MIN_SIMULATORS}..{MAX_SIMULATORS}, got {self.simulators_count}"
            )
        if isinstance(self.testing_timeout, bool) or not isinstance(self.testing_timeout, (int, float)):
            raise ConfigError(f"testing_timeout must be a number, got {self.testing_timeout!r}")
        if self.testing_timeout <= 0:
            raise ConfigError(f"testing_timeout must be positive, got {self.testing_timeout}")
        if not self.formatter_command:
            raise ConfigError("formatter_command must not be empty")
        return self

    def resolved(self) -> "RunTestsConfig":
        """Return a copy with every path made absolute against project_dir."""
        project_dir = os.path.abspath(os.path.expanduser(self.project_dir))
        changes: dict[str, Any] = {"project_dir": project_dir}
        for key in PATH_KEYS:
            value = getattr(self, key)
            if value is not None:
                changes[key] = os.path.join(project_dir, os.path.expanduser(value))
        if changes.get("project_file") is None:
            changes["project_file"] = os.path.join(project_dir, f"{self.scheme}.xcodeproj")
        for key, name in (("merged_xcresult", "merged.xcresult"), ("merged_junit", "merged.junit")):
            if changes.get(key) is None:
                changes[key] = os.path.join(changes["results_dir"], name)
        return replace(self, **changes)


def config_from_mapping(data: dict[str, Any], overrides: Optional[dict[str, Any]] = None) -> RunTestsConfig:
    """Build a validated, resolved config from a mapping plus non-None overrides."""
    known = {f.name for f in fields(RunTestsConfig)}
    merged = dict(data)
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    unknown = sorted(set(merged) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")
    for key in ("scheme", "device_model", "os_version"):
        if key not in merged:
            raise ConfigError(f"{key} is required")

    # YAML reads 16.4 as a float.
    if isinstance(merged.get("os_version"), (int, float)) and not isinstance(merged["os_version"], bool):
        merged["os_version"] = str(merged["os_version"])

    return RunTestsConfig(**merged).validate().resolved()


def load_config(path: Optional[str], overrides: Optional[dict[str, Any]] = None) -> RunTestsConfig:
    """Load a YAML config file (or none) and apply CLI overrides.

    Raises:
        ConfigError: unreadable file, invalid YAML or invalid values.
    """
    data: Any = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config file (expected mapping): {path}")
    return config_from_mapping(data, overrides)

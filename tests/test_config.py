"""Tests for simfleet/config.py YAML run configuration."""

from __future__ import annotations

import os

import pytest

from simfleet.config import ConfigError, config_from_mapping, load_config

MINIMAL = {"scheme": "App", "device_model": "iPhone 14", "os_version": "16.4"}


class TestConfigFromMapping:
    def test_defaults_resolved_against_project_dir(self, tmp_path):
        config = config_from_mapping(dict(MINIMAL, project_dir=str(tmp_path)))

        assert config.simulators_count == 1
        assert not config.use_multi_scan
        assert not config.test_without_building
        assert config.project_dir == str(tmp_path)
        assert config.project_file == os.path.join(str(tmp_path), "App.xcodeproj")
        assert config.derived_data_dir == os.path.join(str(tmp_path), ".build/DerivedData")
        assert config.merged_junit == os.path.join(str(tmp_path), ".build/results/merged.junit")

    def test_merged_outputs_follow_results_dir(self, tmp_path):
        config = config_from_mapping(dict(MINIMAL, project_dir=str(tmp_path), results_dir="out"))
        assert config.results_dir == os.path.join(str(tmp_path), "out")
        assert config.merged_xcresult == os.path.join(str(tmp_path), "out", "merged.xcresult")
        assert config.merged_junit == os.path.join(str(tmp_path), "out", "merged.junit")

    def test_explicit_merged_output_wins(self, tmp_path):
        config = config_from_mapping(
            dict(MINIMAL, project_dir=str(tmp_path), results_dir="out", merged_junit="reports/all.junit")
        )
        assert config.merged_junit == os.path.join(str(tmp_path), "reports/all.junit")
        assert config.merged_xcresult == os.path.join(str(tmp_path), "out", "merged.xcresult")

    def test_absolute_paths_kept(self, tmp_path):
        config = config_from_mapping(dict(MINIMAL, project_dir=str(tmp_path), logs_dir="/var/log/ci"))
        assert config.logs_dir == "/var/log/ci"

    def test_relative_project_dir_made_absolute(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = config_from_mapping(dict(MINIMAL, project_dir="ios"))
        assert config.project_dir == os.path.join(os.getcwd(), "ios")

    def test_overrides_win_and_none_is_ignored(self):
        config = config_from_mapping(
            dict(MINIMAL, simulators_count=2),
            {"simulators_count": 4, "use_multi_scan": True, "test_plan": None},
        )
        assert config.simulators_count == 4
        assert config.test_without_building
        assert config.test_plan is None

    def test_float_os_version(self):
        assert config_from_mapping(dict(MINIMAL, os_version=17.0)).os_version == "17.0"

    @pytest.mark.parametrize("missing", ["scheme", "device_model", "os_version"])
    def test_required_keys(self, missing):
        data = {k: v for k, v in MINIMAL.items() if k != missing}
        with pytest.raises(ConfigError, match=missing):
            config_from_mapping(data)

    def test_unknown_keys(self):
        with pytest.raises(ConfigError, match="Unknown config keys: colour"):
            config_from_mapping(dict(MINIMAL, colour="blue"))

    @pytest.mark.parametrize(
        "key, value",
        [
            ("simulators_count", 0),
            ("simulators_count", 11),
            ("simulators_count", "3"),
            ("simulators_count", True),
            ("testing_timeout", 0),
            ("testing_timeout", "long"),
            ("formatter_command", ""),
            ("scheme", "  "),
        ],
    )
    def test_invalid_values(self, key, value):
        with pytest.raises(ConfigError):
            config_from_mapping(dict(MINIMAL, **{key: value}))

    def test_bounds_accepted(self):
        assert config_from_mapping(dict(MINIMAL, simulators_count=10)).simulators_count == 10


class TestLoadConfig:
    def test_yaml_file(self, tmp_path):
        path = tmp_path / "simfleet.yaml"
        path.write_text(
            "scheme: App\n"
            "device_model: iPhone 14\n"
            "os_version: 16.4\n"
            "simulators_count: 3\n"
            "use_multi_scan: true\n"
            "test_plan: Smoke\n"
            f"project_dir: {tmp_path}\n"
        )
        config = load_config(str(path))

        assert config.os_version == "16.4"
        assert config.simulators_count == 3
        assert config.use_multi_scan
        assert config.test_plan == "Smoke"

    def test_no_file_uses_overrides(self):
        assert load_config(None, dict(MINIMAL)).scheme == "App"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ConfigError, match="scheme is required"):
            load_config(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Cannot read config"):
            load_config(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("scheme: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="expected mapping"):
            load_config(str(path))

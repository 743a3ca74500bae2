"""
Tests for the simfleetctl CLI (parser, dispatch and command functions).

Commands are exercised with MockShell so no simctl or xcodebuild is needed.
"""

from __future__ import annotations

import json
import os

import pytest

import simfleet.cli as cli
from simfleet.cli.dispatch import main
from simfleet.cli.helpers import EXIT_ERROR, EXIT_OK, EXIT_USAGE, _print
from simfleet.cli.parser import _build_parser, _preprocess_argv
from simfleet.cli.run_tests_cmd import cmd_run_tests
from simfleet.cli.simulator_cmds import cmd_clones_make, cmd_devices, cmd_runtimes, cmd_shutdown_all
from simfleet.fleet_lock import FleetLock

from conftest import FIRST, IOS_16_4, REFERENCE_UDID, SECOND


@pytest.fixture
def simctl_shell(shell, simctl_json):
    shell.on(r"list runtimes", stdout=simctl_json.runtimes(simctl_json.runtime()))
    shell.on(r"list devices", stdout=simctl_json.devices({IOS_16_4: [simctl_json.device()]}))
    return shell


class TestParser:
    def test_global_flags_moved_first(self):
        assert _preprocess_argv(["devices", "--json", "-v"]) == ["--json", "-v", "devices"]

    def test_run_tests_args(self):
        args = _build_parser().parse_args(
            ["run-tests", "--config", "ci.yaml", "--sim-count", "4", "--multi-scan", "--test-plan", "Smoke"]
        )
        assert args.config_path == "ci.yaml"
        assert args.simulators_count == 4
        assert args.use_multi_scan is True
        assert args.test_plan == "Smoke"
        assert args.scheme is None
        assert args.use_rosetta is None

    def test_no_multi_scan(self):
        args = _build_parser().parse_args(["run-tests", "--no-multi-scan"])
        assert args.use_multi_scan is False

    @pytest.mark.parametrize("count", ["0", "11", "many"])
    def test_sim_count_bounds(self, count):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["run-tests", "--sim-count", count])

    def test_clones_make_requires_reference(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["clones", "make", "--count", "2"])

    def test_version(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0


class TestDispatch:
    def test_run_tests_overrides(self, monkeypatch):
        """main() should forward every run-tests flag as a config override."""
        captured = {}

        def fake(**kwargs):
            captured.update(kwargs)
            return 7

        monkeypatch.setattr(cli, "cmd_run_tests", fake)
        monkeypatch.setattr(cli, "_configure_logging", lambda verbose: None)

        code = main(["run-tests", "--scheme", "App", "--os-version", "16.4", "--json"])

        assert code == 7
        assert captured["json_mode"] is True
        assert captured["config_path"] is None
        assert captured["overrides"] == {
            "scheme": "App",
            "device_model": None,
            "os_version": "16.4",
            "simulators_count": None,
            "test_plan": None,
            "use_multi_scan": None,
            "testing_timeout": None,
            "use_rosetta": None,
        }

    def test_clones_dispatch(self, monkeypatch):
        calls = []
        monkeypatch.setattr(cli, "cmd_clones_delete", lambda **kw: calls.append(kw) or 0)
        monkeypatch.setattr(cli, "_configure_logging", lambda verbose: None)

        assert main(["clones", "delete", "--device-model", "iPhone 14", "--os-version", "16.4"]) == 0
        assert calls == [{"device_model": "iPhone 14", "os_version": "16.4", "json_mode": False}]

    def test_verbose_configures_debug_logging(self, monkeypatch):
        levels = []
        monkeypatch.setattr(cli, "cmd_devices", lambda **kw: 0)
        monkeypatch.setattr(cli, "_configure_logging", levels.append)

        main(["devices", "--verbose"])
        assert levels == [True]


class TestPrint:
    def test_json_mode(self, capsys):
        _print({"b": 1, "a": 2}, json_mode=True)
        assert json.loads(capsys.readouterr().out) == {"a": 2, "b": 1}

    def test_plain_string(self, capsys):
        _print("hello", json_mode=False)
        assert capsys.readouterr().out == "hello\n"


class TestSimulatorCommands:
    def test_runtimes_json(self, simctl_shell, capsys):
        assert cmd_runtimes(json_mode=True, shell=simctl_shell) == EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["runtimes"][0]["identifier"] == IOS_16_4

    def test_devices_json(self, simctl_shell, capsys):
        assert cmd_devices(json_mode=True, shell=simctl_shell) == EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["devices"] == [
            {
                "name": "iPhone 14",
                "udid": REFERENCE_UDID,
                "state": "Shutdown",
                "runtime": "iOS 16.4",
                "os_version": "16.4",
            }
        ]

    def test_devices_plain(self, simctl_shell, capsys):
        assert cmd_devices(json_mode=False, shell=simctl_shell) == EXIT_OK
        assert REFERENCE_UDID in capsys.readouterr().out

    def test_discovery_failure(self, shell, capsys):
        shell.on(r"list runtimes", stdout="")
        assert cmd_devices(json_mode=True, shell=shell) == EXIT_ERROR
        assert "no output" in json.loads(capsys.readouterr().out)["error"]

    def test_shutdown_all(self, shell, capsys):
        assert cmd_shutdown_all(json_mode=False, shell=shell) == EXIT_OK
        assert shell.commands == ["xcrun simctl shutdown all"]

    def test_clones_make_unknown_reference(self, simctl_shell, capsys):
        code = cmd_clones_make(
            device_model="iPhone 99",
            os_version="16.4",
            count=2,
            preboot=False,
            erase=False,
            json_mode=True,
            shell=simctl_shell,
        )
        assert code == EXIT_ERROR
        assert "iPhone 99" in json.loads(capsys.readouterr().out)["error"]


class TestMergeJUnit:
    def test_merge(self, tmp_path, capsys):
        a = tmp_path / "a.junit"
        b = tmp_path / "b.junit"
        a.write_bytes(FIRST)
        b.write_bytes(SECOND)
        out = tmp_path / "merged.junit"

        code = main(["merge-junit", str(out), str(a), str(b), "--json"])

        assert code == EXIT_OK
        printed = json.loads(capsys.readouterr().out)
        assert printed["tests"] == 8
        assert printed["failures"] == 1
        assert printed["testcases"] == 8
        assert out.exists()

    def test_bad_input(self, tmp_path, capsys):
        bad = tmp_path / "bad.junit"
        bad.write_text("<nope")
        assert main(["merge-junit", str(tmp_path / "out.junit"), str(bad)]) == EXIT_ERROR


def _write_config(tmp_path, **extra):
    lines = [
        "scheme: App",
        "device_model: iPhone 14",
        "os_version: '16.4'",
        f"project_dir: {tmp_path}",
        "formatter_command: cat",
    ]
    lines += [f"{k}: {v}" for k, v in extra.items()]
    path = tmp_path / "simfleet.yaml"
    path.write_text("\n".join(lines) + "\n")
    return str(path)


def _test_logs_dir(tmp_path):
    return tmp_path / ".build" / "DerivedData" / "Logs" / "Test"


def _stage_scan_artifacts(tmp_path, shell, **rule):
    """Make the xcodebuild call leave behind what xcodebuild and the formatter would."""

    def effect(cmd):
        (_test_logs_dir(tmp_path) / "Run-App-2025.01.01_00-00-00-+0000.xcresult").mkdir(parents=True)
        junit_dir = tmp_path / ".build" / "logs" / "test"
        junit_dir.mkdir(parents=True, exist_ok=True)
        (junit_dir / "App_iPhone_14_01-01-2025_00-00-00.000.junit").write_bytes(FIRST)

    shell.on(r"xcodebuild", effect=effect, **rule)


class TestRunTestsCommand:
    def test_config_error_is_usage(self, tmp_path, capsys):
        code = cmd_run_tests(config_path=str(tmp_path / "missing.yaml"), overrides={}, json_mode=True)
        assert code == EXIT_USAGE
        assert json.loads(capsys.readouterr().out)["error"].startswith("config: ")

    def test_scan_success(self, tmp_path, simctl_shell, fs, clock, capsys):
        _stage_scan_artifacts(tmp_path, simctl_shell)

        code = cmd_run_tests(
            config_path=_write_config(tmp_path),
            overrides={},
            json_mode=True,
            shell=simctl_shell,
            fs=fs,
            clock=clock,
            use_lock=False,
        )

        assert code == EXIT_OK
        out = json.loads(capsys.readouterr().out)
        assert out["exit_code"] == 0
        assert out["results"][0]["udid"] == REFERENCE_UDID
        assert os.path.isdir(tmp_path / ".build" / "results" / "merged.xcresult")
        assert (tmp_path / ".build" / "results" / "merged.junit").read_bytes() == FIRST

    def test_scan_failure_exit_code(self, tmp_path, simctl_shell, fs, clock, capsys):
        _stage_scan_artifacts(tmp_path, simctl_shell, returncode=65, stderr="** TEST FAILED **")

        code = cmd_run_tests(
            config_path=_write_config(tmp_path),
            overrides={},
            json_mode=True,
            shell=simctl_shell,
            fs=fs,
            clock=clock,
            use_lock=False,
        )

        assert code == 7
        assert json.loads(capsys.readouterr().out)["results"][0]["error"] == "TESTING_FAILED"

    def test_missing_result_bundle_is_error(self, tmp_path, simctl_shell, fs, clock, capsys):
        code = cmd_run_tests(
            config_path=_write_config(tmp_path),
            overrides={},
            json_mode=True,
            shell=simctl_shell,
            fs=fs,
            clock=clock,
            use_lock=False,
        )
        assert code == EXIT_ERROR
        assert json.loads(capsys.readouterr().out)["type"] == "XCResultNotFoundError"

    def test_bundle_from_an_earlier_run_is_not_reused(self, tmp_path, simctl_shell, fs, clock, capsys):
        (_test_logs_dir(tmp_path) / "Run-App-2024.01.01_10-00-00-+0000.xcresult").mkdir(parents=True)

        code = cmd_run_tests(
            config_path=_write_config(tmp_path),
            overrides={},
            json_mode=True,
            shell=simctl_shell,
            fs=fs,
            clock=clock,
            use_lock=False,
        )

        assert code == EXIT_ERROR
        assert json.loads(capsys.readouterr().out)["type"] == "XCResultNotFoundError"
        assert not (tmp_path / ".build" / "results" / "merged.xcresult").exists()

    def test_unknown_reference_is_error(self, tmp_path, simctl_shell, fs, clock, capsys):
        code = cmd_run_tests(
            config_path=_write_config(tmp_path),
            overrides={"device_model": "iPad"},
            json_mode=True,
            shell=simctl_shell,
            fs=fs,
            clock=clock,
            use_lock=False,
        )
        assert code == EXIT_ERROR
        assert json.loads(capsys.readouterr().out)["type"] == "SimulatorNotFoundError"

    def test_reference_already_locked(self, tmp_path, simctl_shell, fs, clock, capsys, monkeypatch):
        monkeypatch.setenv("SIMFLEET_RUN_DIR", str(tmp_path / "run"))
        with FleetLock(REFERENCE_UDID):
            code = cmd_run_tests(
                config_path=_write_config(tmp_path),
                overrides={},
                json_mode=True,
                shell=simctl_shell,
                fs=fs,
                clock=clock,
            )
        assert code == EXIT_ERROR
        assert json.loads(capsys.readouterr().out)["type"] == "FleetLockError"
        assert simctl_shell.commands_matching(r"xcodebuild") == []

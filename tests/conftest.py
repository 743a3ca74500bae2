"""Shared pytest configuration for simfleet tests."""

import json

import pytest

from simfleet.implementations import RealFileSystem
from simfleet.mocks import FakeSimulatorHost, FakeSimulatorProvider, MockClock, MockShell
from simfleet.xcodebuild.log_paths import LogPathFactory

IOS_16_4 = "com.apple.CoreSimulator.SimRuntime.iOS-16-4"
IOS_17_0 = "com.apple.CoreSimulator.SimRuntime.iOS-17-0"
REFERENCE_UDID = "11111111-2222-3333-4444-555555555555"


def runtime_json(identifier=IOS_16_4, name="iOS 16.4", version="16.4", platform="iOS"):
    raw = {
        "identifier": identifier,
        "name": name,
        "version": version,
        "buildversion": "20E247",
        "isAvailable": True,
    }
    if platform is not None:
        raw["platform"] = platform
    return raw


def device_json(udid=REFERENCE_UDID, name="iPhone 14", state="Shutdown"):
    return {
        "udid": udid,
        "name": name,
        "state": state,
        "isAvailable": True,
        "dataPath": f"/Devices/{udid}/data",
        "logPath": f"/Logs/{udid}",
        "deviceTypeIdentifier": "com.apple.CoreSimulator.SimDeviceType.iPhone-14",
    }


@pytest.fixture
def simctl_json():
    """Builders for ``simctl list ... --json`` documents."""

    class _Simctl:
        runtime = staticmethod(runtime_json)
        device = staticmethod(device_json)

        @staticmethod
        def runtimes(*runtimes):
            return json.dumps({"runtimes": list(runtimes)})

        @staticmethod
        def devices(mapping):
            return json.dumps({"devices": mapping})

    return _Simctl


@pytest.fixture
def shell():
    return MockShell()


@pytest.fixture
def host():
    """A fake host with iOS 16.4 and one 'iPhone 14' reference simulator."""
    h = FakeSimulatorHost()
    runtime = h.add_runtime("16.4")
    h.add_device("iPhone 14", runtime, udid=REFERENCE_UDID)
    return h


@pytest.fixture
def provider(host):
    return FakeSimulatorProvider(host)


@pytest.fixture
def reference(provider):
    return provider.find_simulator("iPhone 14", "16.4")


@pytest.fixture
def fs():
    return RealFileSystem()


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def log_paths(fs, clock):
    return LogPathFactory(fs, clock)


def junit_xml(name, suites):
    """Build a report: ``suites`` is a list of (suite name, [(case, failure or None)])."""
    total = sum(len(cases) for _, cases in suites)
    failed = sum(1 for _, cases in suites for _, f in cases if f)
    parts = [f'<testsuites name="{name}" tests="{total}" failures="{failed}">']
    for suite_name, cases in suites:
        suite_failed = sum(1 for _, f in cases if f)
        parts.append(f'<testsuite name="{suite_name}" tests="{len(cases)}" failures="{suite_failed}">')
        for case, failure in cases:
            if failure:
                parts.append(
                    f'<testcase classname="{suite_name}" name="{case}" time="0.5">'
                    f'<failure message="{failure}">Tests.swift:12</failure></testcase>'
                )
            else:
                parts.append(f'<testcase classname="{suite_name}" name="{case}" time="0.1"/>')
        parts.append("</testsuite>")
    parts.append("</testsuites>")
    return "".join(parts).encode("utf-8")


FIRST = junit_xml(
    "App-Clone0",
    [
        ("LoginTests", [("testLogin", None), ("testLogout", "XCTAssertTrue failed"), ("testReset", None)]),
        ("CartTests", [("testAdd", None), ("testRemove", None)]),
    ],
)
SECOND = junit_xml(
    "App-Clone1",
    [("FlowTests", [("testFlow", None), ("testLogin", None), ("testOnboarding", None)])],
)

"""Tests for simfleet/xcodebuild/xctest.py test inventory discovery."""

from __future__ import annotations

import plistlib

import pytest

from simfleet.models import XCTestFunction
from simfleet.shell_errors import NonZeroExitCodeError
from simfleet.xcodebuild.xctest import (
    NoXCTestPathsFoundError,
    XCTestBinaryNotFoundError,
    XCTestParser,
    XCTestRunDecodingError,
    XCTestRunFinder,
    XCTestRunNotFoundError,
    XCTestRunParser,
    XCTestService,
)


def _make_bundle(products, name):
    bundle = products / "Debug-iphonesimulator" / f"{name}.xctest"
    bundle.mkdir(parents=True)
    (bundle / name).write_bytes(b"\xcf\xfa\xed\xfe")
    return bundle


def _write_xctestrun_v2(products, *bundles, name="App_iphonesimulator16.4-arm64.xctestrun"):
    document = {
        "TestConfigurations": [
            {
                "Name": "Test Scheme Action",
                "TestTargets": [
                    {
                        "BlueprintName": b,
                        "DependentProductPaths": [
                            "__TESTROOT__/Debug-iphonesimulator/App.app",
                            f"__TESTROOT__/Debug-iphonesimulator/{b}.xctest",
                        ],
                    }
                    for b in bundles
                ],
            }
        ],
        "__xctestrun_metadata__": {"FormatVersion": 2},
    }
    path = products / name
    path.write_bytes(plistlib.dumps(document))
    return path


@pytest.fixture
def products(tmp_path):
    path = tmp_path / "dd" / "Build" / "Products"
    path.mkdir(parents=True)
    return path


class TestXCTestRunFinder:
    def test_finds_first_xctestrun(self, fs, products, tmp_path):
        xctestrun = _write_xctestrun_v2(products, "AppTests")
        assert XCTestRunFinder(fs).find_xctestrun(str(tmp_path / "dd")) == str(xctestrun)

    def test_missing(self, fs, tmp_path):
        with pytest.raises(XCTestRunNotFoundError):
            XCTestRunFinder(fs).find_xctestrun(str(tmp_path))


class TestXCTestRunParser:
    def test_format_2(self, fs, products):
        xctestrun = _write_xctestrun_v2(products, "UITests", "AppTests")
        paths = XCTestRunParser(fs).parse_xctest_paths(str(xctestrun))
        assert paths == [
            str(products / "Debug-iphonesimulator" / "AppTests.xctest"),
            str(products / "Debug-iphonesimulator" / "UITests.xctest"),
        ]

    def test_format_1_skips_metadata(self, fs, products):
        document = {
            "AppTests": {"DependentProductPaths": ["__TESTROOT__/Debug-iphonesimulator/AppTests.xctest"]},
            "__xctestrun_metadata__": {"FormatVersion": 1},
        }
        path = products / "App.xctestrun"
        path.write_bytes(plistlib.dumps(document))

        paths = XCTestRunParser(fs).parse_xctest_paths(str(path))
        assert paths == [str(products / "Debug-iphonesimulator" / "AppTests.xctest")]

    def test_duplicate_bundles_listed_once(self, fs, products):
        xctestrun = _write_xctestrun_v2(products, "AppTests", "AppTests")
        assert len(XCTestRunParser(fs).parse_xctest_paths(str(xctestrun))) == 1

    def test_wrong_extension(self, fs, products):
        with pytest.raises(XCTestRunDecodingError):
            XCTestRunParser(fs).parse_xctest_paths(str(products / "App.plist"))

    def test_not_a_plist(self, fs, products):
        path = products / "App.xctestrun"
        path.write_bytes(b"<<< definitely not a plist")
        with pytest.raises(XCTestRunDecodingError):
            XCTestRunParser(fs).parse_xctest_paths(str(path))

    def test_root_not_a_dictionary(self, fs, products):
        path = products / "App.xctestrun"
        path.write_bytes(plistlib.dumps(["a", "b"]))
        with pytest.raises(XCTestRunDecodingError):
            XCTestRunParser(fs).parse_xctest_paths(str(path))

    def test_no_bundles(self, fs, products):
        path = products / "App.xctestrun"
        path.write_bytes(plistlib.dumps({"TestConfigurations": [{"TestTargets": []}]}))
        with pytest.raises(NoXCTestPathsFoundError):
            XCTestRunParser(fs).parse_xctest_paths(str(path))


NM_OUTPUT = """\
AppTests.LoginTests.testLogin()
AppTests.LoginTests.test_logout()

AppTests.CartTests.testCheckout()
"""


class TestXCTestParser:
    def test_binary_path(self):
        assert XCTestParser.binary_path("/p/AppTests.xctest") == "/p/AppTests.xctest/AppTests"
        assert XCTestParser.binary_path("/p/AppTests.xctest/") == "/p/AppTests.xctest/AppTests"

    def test_parses_demangled_symbols(self, shell, fs, products):
        bundle = _make_bundle(products, "AppTests")
        shell.on(r"^nm -gU", stdout=NM_OUTPUT)

        functions = XCTestParser(shell, fs).parse_compiled_test_functions(str(bundle))

        assert functions == [
            "AppTests/LoginTests/testLogin",
            "AppTests/LoginTests/test_logout",
            "AppTests/CartTests/testCheckout",
        ]
        cmd = shell.commands[0]
        assert cmd.startswith(f"nm -gU '{bundle / 'AppTests'}'")
        assert "xcrun swift-demangle" in cmd

    def test_missing_binary(self, shell, fs, products):
        bundle = products / "Missing.xctest"
        with pytest.raises(XCTestBinaryNotFoundError):
            XCTestParser(shell, fs).parse_compiled_test_functions(str(bundle))
        assert shell.commands == []

    def test_nm_failure_propagates(self, shell, fs, products):
        bundle = _make_bundle(products, "AppTests")
        shell.on(r"^nm", returncode=1)
        with pytest.raises(NonZeroExitCodeError):
            XCTestParser(shell, fs).parse_compiled_test_functions(str(bundle))


class TestXCTestService:
    def test_collects_all_bundles_sorted(self, shell, fs, products, tmp_path):
        _make_bundle(products, "AppTests")
        _make_bundle(products, "UITests")
        _write_xctestrun_v2(products, "AppTests", "UITests")
        shell.on(r"AppTests\.xctest/AppTests'", stdout="AppTests.B.testB()\nAppTests.A.testA()\n")
        shell.on(r"UITests\.xctest/UITests'", stdout="UITests.Flow.testFlow()\n")

        tests = XCTestService.create(shell, fs).parse_tests(str(tmp_path / "dd"))

        assert tests == [
            XCTestFunction("AppTests/A/testA"),
            XCTestFunction("AppTests/B/testB"),
            XCTestFunction("UITests/Flow/testFlow"),
        ]

    def test_no_xctestrun(self, shell, fs, tmp_path):
        with pytest.raises(XCTestRunNotFoundError):
            XCTestService.create(shell, fs).parse_tests(str(tmp_path))

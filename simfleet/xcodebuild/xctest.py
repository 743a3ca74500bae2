"""
Discovery of compiled test functions in a derived data directory.

The pipeline is:
    derived data -> first *.xctestrun -> .xctest bundles -> nm + swift-demangle

Bundles are dumped concurrently; the combined inventory is sorted so that
partitioning is stable across runs.
"""

from __future__ import annotations

import logging
import os
import plistlib
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional
from xml.parsers.expat import ExpatError

from ..interfaces import FileSystemInterface, ShellInterface
from ..models import XCTestFunction
from .command import quote

logger = logging.getLogger(__name__)

XCTESTRUN_SUFFIX = ".xctestrun"
XCTEST_SUFFIX = ".xctest"
TESTROOT_PREFIX = "__TESTROOT__/"
METADATA_KEY = "__xctestrun_metadata__"


class XCTestDiscoveryError(Exception):
    """Base class for test inventory discovery failures."""


class XCTestRunNotFoundError(XCTestDiscoveryError):
    def __init__(self, derived_data_path: str):
        super().__init__(f"No {XCTESTRUN_SUFFIX} file found in {derived_data_path}")
        self.derived_data_path = derived_data_path


class XCTestRunDecodingError(XCTestDiscoveryError):
    """The xctestrun file is not a property list of a known shape."""


class NoXCTestPathsFoundError(XCTestDiscoveryError):
    """The xctestrun file references no .xctest bundle."""


class XCTestBinaryNotFoundError(XCTestDiscoveryError):
    def __init__(self, binary_path: str):
        super().__init__(f"Test binary does not exist: {binary_path}")
        self.binary_path = binary_path


class XCTestRunFinder:
    def __init__(self, fs: FileSystemInterface):
        self._fs = fs

    def find_xctestrun(self, derived_data_path: str) -> str:
        for path in self._fs.find(derived_data_path):
            if path.endswith(XCTESTRUN_SUFFIX):
                return path
        raise XCTestRunNotFoundError(derived_data_path)


class XCTestRunParser:
    """Extracts absolute .xctest bundle paths from an xctestrun plist."""

    def __init__(self, fs: FileSystemInterface):
        self._fs = fs

    @staticmethod
    def _test_targets(document: Any) -> list[dict]:
        if not isinstance(document, dict):
            raise XCTestRunDecodingError("xctestrun root is not a dictionary")

        # Format version 2, written for test-plan enabled schemes.
        configurations = document.get("TestConfigurations")
        if isinstance(configurations, list):
            if not configurations or not isinstance(configurations[0], dict):
                raise XCTestRunDecodingError("xctestrun has no test configuration")
            return list(configurations[0].get("TestTargets") or [])

        # Format version 1: {target name: target, __xctestrun_metadata__: {...}}
        return [v for k, v in document.items() if k != METADATA_KEY and isinstance(v, dict)]

    def parse_xctest_paths(self, xctestrun_path: str) -> list[str]:
        if not xctestrun_path.endswith(XCTESTRUN_SUFFIX):
            raise XCTestRunDecodingError(f"Not an xctestrun file: {xctestrun_path}")

        try:
            document = plistlib.loads(self._fs.read_bytes(xctestrun_path))
        except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
            raise XCTestRunDecodingError(f"Unable to decode {xctestrun_path}: {e}") from e

        base_dir = os.path.dirname(xctestrun_path)
        paths: set[str] = set()
        for target in self._test_targets(document):
            for product in target.get("DependentProductPaths") or []:
                if product.endswith(XCTEST_SUFFIX):
                    relative = product.replace(TESTROOT_PREFIX, "")
                    paths.add(os.path.join(base_dir, relative))

        if not paths:
            raise NoXCTestPathsFoundError(f"No {XCTEST_SUFFIX} bundles referenced by {xctestrun_path}")
        return sorted(paths)


class XCTestParser:
    """Lists test functions compiled into one .xctest bundle."""

    def __init__(self, shell: ShellInterface, fs: FileSystemInterface):
        self._shell = shell
        self._fs = fs

    @staticmethod
    def binary_path(xctest_path: str) -> str:
        name = os.path.basename(xctest_path.rstrip("/"))
        return os.path.join(xctest_path, name[: -len(XCTEST_SUFFIX)])

    def parse_compiled_test_functions(self, xctest_path: str) -> list[str]:
        binary = self.binary_path(xctest_path)
        if not self._fs.exists(binary):
            raise XCTestBinaryNotFoundError(binary)

        # Exported symbols, demangled, keeping only test methods.
        output = self._shell.run(
            [
                f"nm -gU {quote(binary)}",
                "| cut -d' ' -f3",
                "| xargs -s 131072 xcrun swift-demangle",
                "| cut -d' ' -f3",
                "| grep -e '[\\.|_]'test",
            ]
        )
        functions = [
            line.replace("()", "").replace(".", "/")
            for line in output.stdout.splitlines()
            if line.strip()
        ]
        logger.info("Parsed %d built tests in %s", len(functions), binary)
        return functions


class XCTestService:
    def __init__(
        self,
        parser: XCTestParser,
        finder: XCTestRunFinder,
        run_parser: XCTestRunParser,
        max_workers: Optional[int] = None,
    ):
        self._parser = parser
        self._finder = finder
        self._run_parser = run_parser
        self._max_workers = max_workers

    def parse_tests(self, derived_data_path: str) -> list[XCTestFunction]:
        """Return every compiled test function below ``derived_data_path``, sorted.

        Raises:
            XCTestDiscoveryError: no xctestrun, no bundles or a missing binary.
            ShellError: nm or swift-demangle failed.
        """
        xctestrun = self._finder.find_xctestrun(derived_data_path)
        xctest_paths = self._run_parser.parse_xctest_paths(xctestrun)

        with ThreadPoolExecutor(max_workers=self._max_workers or len(xctest_paths)) as pool:
            futures = [pool.submit(self._parser.parse_compiled_test_functions, p) for p in xctest_paths]
            names = [name for future in futures for name in future.result()]

        return [XCTestFunction(name) for name in sorted(names)]

    @classmethod
    def create(cls, shell: ShellInterface, fs: FileSystemInterface) -> "XCTestService":
        return cls(XCTestParser(shell, fs), XCTestRunFinder(fs), XCTestRunParser(fs))

"""
JUnit report parsing and merging.

Merging is plain concatenation: counts are summed and suites are appended
in input order, so cases with equal names from different simulators stay
distinct records.

Only the fields merging needs are kept: suite and report names, the
``tests`` and ``failures`` counts, and per case its classname, name, time and
``<failure>`` elements. Anything else a formatter writes (``<skipped/>``,
``<error>``, ``<system-out>``, suite ``time`` or ``errors`` attributes) is dropped
from the merged report.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .interfaces import FileSystemInterface

logger = logging.getLogger(__name__)

XML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'


class JUnitError(Exception):
    """A JUnit document could not be read or parsed."""


@dataclass(frozen=True)
class JUnitFailure:
    message: str
    file: str = ""


@dataclass(frozen=True)
class JUnitTestCase:
    classname: str
    name: str
    time: Optional[float] = None
    failures: list[JUnitFailure] = field(default_factory=list)


@dataclass(frozen=True)
class JUnitTestSuite:
    name: str
    tests: int
    failures: int
    testcases: list[JUnitTestCase] = field(default_factory=list)


@dataclass(frozen=True)
class JUnitTestSuites:
    name: str
    tests: int
    failures: int
    testsuites: list[JUnitTestSuite] = field(default_factory=list)

    @property
    def testcases(self) -> list[JUnitTestCase]:
        return [case for suite in self.testsuites for case in suite.testcases]


def _int_attr(element: ET.Element, name: str) -> int:
    raw = element.get(name)
    if raw is None:
        raise JUnitError(f"<{element.tag}> has no {name!r} attribute")
    try:
        return int(raw)
    except ValueError as e:
        raise JUnitError(f"<{element.tag}> {name}={raw!r} is not an integer") from e


def _parse_case(element: ET.Element) -> JUnitTestCase:
    raw_time = element.get("time")
    try:
        time = float(raw_time) if raw_time is not None else None
    except ValueError as e:
        raise JUnitError(f"<testcase> time={raw_time!r} is not a number") from e
    failures = [
        JUnitFailure(message=f.get("message", ""), file=(f.text or "").strip())
        for f in element.findall("failure")
    ]
    return JUnitTestCase(
        classname=element.get("classname", ""),
        name=element.get("name", ""),
        time=time,
        failures=failures,
    )


def parse_junit(data: bytes) -> JUnitTestSuites:
    """Parse a ``<testsuites>`` document.

    Raises:
        JUnitError: malformed XML, wrong root element or bad counts.
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise JUnitError(f"Invalid JUnit XML: {e}") from e
    if root.tag != "testsuites":
        raise JUnitError(f"Expected <testsuites> root, got <{root.tag}>")

    suites = [
        JUnitTestSuite(
            name=s.get("name", ""),
            tests=_int_attr(s, "tests"),
            failures=_int_attr(s, "failures"),
            testcases=[_parse_case(c) for c in s.findall("testcase")],
        )
        for s in root.findall("testsuite")
    ]
    return JUnitTestSuites(
        name=root.get("name", ""),
        tests=_int_attr(root, "tests"),
        failures=_int_attr(root, "failures"),
        testsuites=suites,
    )


def merge_reports(reports: Iterable[JUnitTestSuites]) -> JUnitTestSuites:
    """Sum counts and concatenate suites in input order; the last name wins."""
    name = ""
    tests = 0
    failures = 0
    suites: list[JUnitTestSuite] = []
    for report in reports:
        name = report.name
        tests += report.tests
        failures += report.failures
        suites.extend(report.testsuites)
    return JUnitTestSuites(name=name, tests=tests, failures=failures, testsuites=suites)


def render_junit(report: JUnitTestSuites) -> bytes:
    root = ET.Element(
        "testsuites",
        {"name": report.name, "tests": str(report.tests), "failures": str(report.failures)},
    )
    for suite in report.testsuites:
        suite_el = ET.SubElement(
            root,
            "testsuite",
            {"name": suite.name, "tests": str(suite.tests), "failures": str(suite.failures)},
        )
        for case in suite.testcases:
            attrs = {"classname": case.classname, "name": case.name}
            if case.time is not None:
                attrs["time"] = str(case.time)
            case_el = ET.SubElement(suite_el, "testcase", attrs)
            for failure in case.failures:
                failure_el = ET.SubElement(case_el, "failure", {"message": failure.message})
                failure_el.text = failure.file

    ET.indent(root, space="  ")
    return (XML_HEADER + ET.tostring(root, encoding="unicode") + "\n").encode("utf-8")


class JUnitService:
    """Reads, merges and writes JUnit files through the file system interface."""

    def __init__(self, fs: FileSystemInterface):
        self._fs = fs

    def parse_file(self, path: str) -> JUnitTestSuites:
        try:
            data = self._fs.read_bytes(path)
        except OSError as e:
            raise JUnitError(f"Unable to read {path}: {e}") from e
        return parse_junit(data)

    def merge_files(self, paths: list[str]) -> JUnitTestSuites:
        return merge_reports(self.parse_file(p) for p in paths)

    def merge_files_into(self, paths: list[str], output_path: str) -> JUnitTestSuites:
        merged = self.merge_files(paths)
        self._fs.write_bytes(output_path, render_junit(merged))
        logger.info(
            "Merged %d JUnit reports into %s (%d tests, %d failures)",
            len(paths),
            output_path,
            merged.tests,
            merged.failures,
        )
        return merged

"""Layout of build, test, report and system log files."""

from __future__ import annotations

import os

from ..interfaces import ClockInterface, FileSystemInterface
from ..models import LogsPathPair

DATE_FORMAT = "%d-%m-%Y_%H-%M-%S"
STDERR_PREFIX = "stderr_"


class LogPathFactory:
    """
    Builds timestamped log paths below a logs directory.

    Layout:
        <logs>/build/<scheme>_<date>.log        (+ stderr_ twin)
        <logs>/archive/<scheme>_<cfg>_<date>.log (+ stderr_ twin)
        <logs>/test/<scheme>_<device>_<date>.log (+ stderr_ twin)
        <logs>/test/<scheme>_<device>_<date>.junit
        <logs>/system/<scheme>_<device>_<date>.log

    Spaces are replaced by underscores. The parent directory is created.
    """

    def __init__(self, fs: FileSystemInterface, clock: ClockInterface):
        self._fs = fs
        self._clock = clock

    def _date(self) -> str:
        now = self._clock.now()
        return f"{now.strftime(DATE_FORMAT)}.{now.microsecond // 1000:03d}"

    def _path(self, logs_dir: str, subdir: str, stem: str, extension: str) -> str:
        directory = os.path.join(logs_dir, subdir)
        self._fs.mkdir(directory)
        file_name = f"{stem}_{self._date()}.{extension}".replace(" ", "_")
        return os.path.join(directory, file_name)

    @staticmethod
    def _pair(stdout_path: str) -> LogsPathPair:
        directory, name = os.path.split(stdout_path)
        return LogsPathPair(stdout_path, os.path.join(directory, STDERR_PREFIX + name))

    def build_logs(self, logs_dir: str, scheme: str) -> LogsPathPair:
        return self._pair(self._path(logs_dir, "build", scheme, "log"))

    def archive_logs(self, logs_dir: str, scheme: str, configuration: str) -> LogsPathPair:
        return self._pair(self._path(logs_dir, "archive", f"{scheme}_{configuration}", "log"))

    def test_logs(self, logs_dir: str, scheme: str, device_name: str) -> LogsPathPair:
        return self._pair(self._path(logs_dir, "test", f"{scheme}_{device_name}", "log"))

    def junit_path(self, logs_dir: str, scheme: str, device_name: str) -> str:
        return self._path(logs_dir, "test", f"{scheme}_{device_name}", "junit")

    def system_log_path(self, logs_dir: str, scheme: str, device_name: str) -> str:
        return self._path(logs_dir, "system", f"{scheme}_{device_name}", "log")

"""Build, archive and project-maintenance invocations of xcodebuild."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..interfaces import FileSystemInterface, ShellInterface, ShellOutput
from ..models import LogsPathPair
from ..timing import measure
from .command import BuildDestination, XcodebuildCommand, quote
from .log_paths import LogPathFactory

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_CONFIGURATION = "Release"


@dataclass
class BuilderConfig:
    project: str
    scheme: str
    derived_data_path: str
    logs_path: str
    configuration: Optional[str] = None
    formatter_command: str = "xcbeautify"
    use_rosetta: bool = False


class Builder:
    """
    Runs xcodebuild for one project/scheme.

    Failures propagate as ShellError unclassified; the caller decides what a
    failed build means.
    """

    def __init__(
        self,
        config: BuilderConfig,
        shell: ShellInterface,
        fs: FileSystemInterface,
        log_paths: LogPathFactory,
    ):
        self.config = config
        self._shell = shell
        self._fs = fs
        self._log_paths = log_paths

    def _base(self) -> XcodebuildCommand:
        return (
            XcodebuildCommand(use_rosetta=self.config.use_rosetta)
            .option("-scheme", self.config.scheme)
            .option("-project", self.config.project)
            .option("-derivedDataPath", self.config.derived_data_path)
        )

    def _run_logged(self, command: XcodebuildCommand, logs: LogsPathPair) -> ShellOutput:
        pipeline = [
            "set -o pipefail &&",
            str(command),
            f"| tee {quote(logs.stdout)}",
            f"| {self.config.formatter_command}" if self.config.formatter_command else "",
        ]
        return self._shell.run(pipeline, stderr_log_path=logs.stderr)

    def build(self, for_testing: bool, destination: BuildDestination) -> LogsPathPair:
        """Build the scheme, for testing or not.

        Returns:
            The stdout/stderr log paths of the build.
        """
        logs = self._log_paths.build_logs(self.config.logs_path, self.config.scheme)
        command = (
            self._base()
            .option("-destination", destination.argument())
            .option("-configuration", self.config.configuration)
        )
        if for_testing:
            command.flag("-enableCodeCoverage", "YES").action("build-for-testing")
        else:
            command.action("build")

        logger.info("Building %s (logs: %s)", self.config.scheme, logs.stdout)
        with measure(f"Building {self.config.scheme}", logger):
            self._run_logged(command, logs)
        return logs

    def archive(self, archive_path: str) -> LogsPathPair:
        configuration = self.config.configuration or DEFAULT_ARCHIVE_CONFIGURATION
        logs = self._log_paths.archive_logs(self.config.logs_path, self.config.scheme, configuration)
        command = (
            self._base()
            .option("-destination", BuildDestination.generic().argument())
            .option("-configuration", configuration)
            .action("clean", "archive")
            .option("-archivePath", archive_path)
        )

        logger.info("Archiving %s to %s", self.config.scheme, archive_path)
        with measure(f"Archiving {self.config.scheme}", logger):
            self._run_logged(command, logs)
        return logs

    def clean_derived_data(self) -> None:
        """Delete the derived data directory. Best effort."""
        path = self.config.derived_data_path
        try:
            self._fs.delete(path)
        except FileNotFoundError:
            logger.debug("No derived data to clean at %s", path)
        except OSError as e:
            logger.warning("Ignoring failed derived data cleanup of %s: %s", path, e)

    def resolve_dependencies(self) -> None:
        logger.info("Resolving package dependencies")
        self._shell.run(str(self._base().flag("-resolvePackageDependencies")))

    def show_build_settings(self) -> str:
        output = self._shell.run(str(self._base().flag("-showBuildSettings")))
        return output.stdout

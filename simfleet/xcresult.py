"""Merging of ``.xcresult`` bundles with ``xcresulttool``."""

from __future__ import annotations

import logging

from .interfaces import ShellInterface
from .xcodebuild.command import quote

logger = logging.getLogger(__name__)


class XCResultTool:
    def __init__(self, shell: ShellInterface):
        self._shell = shell

    def merge(self, paths: list[str], output_path: str) -> None:
        """Merge result bundles into ``output_path``.

        Raises:
            ValueError: ``paths`` is empty.
            ShellError: xcresulttool failed.
        """
        if not paths:
            raise ValueError("No result bundles to merge")
        self._shell.run(
            ["xcrun xcresulttool merge", *(quote(p) for p in paths), f"--output-path {quote(output_path)}"]
        )
        logger.info("Merged %d result bundles into %s", len(paths), output_path)

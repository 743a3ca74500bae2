"""Runtime discovery through ``xcrun simctl list runtimes``."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any

from ..interfaces import RuntimeCatalogInterface, ShellInterface
from ..models import Runtime
from .errors import DiscoveryUnavailableError, NoRuntimesFoundError

logger = logging.getLogger(__name__)

LIST_RUNTIMES_COMMAND = "xcrun simctl list runtimes --json"


def decode_simctl_document(stdout: str, key: str) -> Any:
    """Decode a ``{"<key>": ...}`` simctl JSON document and return its value.

    Raises:
        DiscoveryUnavailableError: empty output, invalid JSON or missing key.
    """
    if not stdout or not stdout.strip():
        raise DiscoveryUnavailableError(f"simctl returned no output for {key!r}")
    try:
        document = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise DiscoveryUnavailableError(f"simctl returned invalid JSON for {key!r}: {e}") from e
    if not isinstance(document, dict) or key not in document:
        raise DiscoveryUnavailableError(f"simctl output has no {key!r} key")
    return document[key]


def normalize_platform(runtime: Runtime) -> Runtime:
    """Fill a missing platform from the first word of the runtime name.

    simctl sometimes omits ``platform``; the name is ``<platform> <version>``.
    """
    if runtime.platform:
        return runtime
    words = runtime.name.split()
    return replace(runtime, platform=words[0] if words else None)


class RuntimeCatalog(RuntimeCatalogInterface):
    """Lists runtimes installed on the host. Never cached."""

    def __init__(self, shell: ShellInterface):
        self._shell = shell

    def list_runtimes(self) -> list[Runtime]:
        output = self._shell.run(LIST_RUNTIMES_COMMAND)
        raw_runtimes = decode_simctl_document(output.stdout, "runtimes")
        if not isinstance(raw_runtimes, list):
            raise DiscoveryUnavailableError("simctl 'runtimes' is not a list")

        try:
            runtimes = [normalize_platform(Runtime.from_json(r)) for r in raw_runtimes]
        except (KeyError, TypeError) as e:
            raise DiscoveryUnavailableError(f"Malformed runtime record: {e!r}") from e

        if not runtimes:
            raise NoRuntimesFoundError("simctl reported no installed runtimes")

        logger.debug("Found %d runtimes", len(runtimes))
        return runtimes

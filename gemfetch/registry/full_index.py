"""Full registry index download.

Used when the dependency API is unavailable or disabled. The registry
publishes every spec it holds as a gzip-compressed JSON list of
``[name, version, platform]`` triples at ``{registry}specs.json.gz``.
"""

from __future__ import annotations

import gzip
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from gemfetch.core.spec import RUBY_PLATFORM, SpecTuple
from gemfetch.registry.common import file_uri_path, is_file_uri, mask_credentials
from gemfetch.registry.transport import TransportError
from gemfetch.utils.version import GemVersion

if TYPE_CHECKING:
    from gemfetch.registry.transport import HttpTransport

logger = logging.getLogger(__name__)

FULL_INDEX_FILE = "specs.json.gz"

# Takes the registry root URI, returns {uri: spec tuples}
FullIndexSource = Callable[[str], dict[str, list[SpecTuple]]]


class FullIndexError(Exception):
    """The full index could not be downloaded or read."""

    def __init__(self, message: str, uri: str | None = None):
        self.uri = uri
        super().__init__(message)


class FullIndexFetcher:
    """Downloads and decodes a registry's full spec index."""

    def __init__(self, transport: HttpTransport):
        self._transport = transport

    def _read(self, uri: str) -> bytes:
        if is_file_uri(uri):
            return file_uri_path(uri).read_bytes()
        return self._transport.request(uri)

    def __call__(self, remote_uri: str) -> dict[str, list[SpecTuple]]:
        """Fetch every spec the registry lists.

        Args:
            remote_uri: Registry root URI (with trailing slash)

        Returns:
            ``{remote_uri: spec_tuples}`` with ``None`` dependencies

        Raises:
            FullIndexError: If the index cannot be fetched or decoded
        """
        uri = f"{remote_uri}{FULL_INDEX_FILE}"
        logger.debug("Fetching full index from %s", mask_credentials(uri))

        try:
            entries = json.loads(gzip.decompress(self._read(uri)).decode("utf-8"))
        except (TransportError, OSError, EOFError, ValueError) as e:
            raise FullIndexError(f"Could not load {mask_credentials(uri)}: {e}", uri) from e

        if not isinstance(entries, list):
            raise FullIndexError(f"Unexpected index format in {mask_credentials(uri)}", uri)

        specs: list[SpecTuple] = []
        for entry in entries:
            try:
                name, version, platform = entry
                parsed = GemVersion.parse(str(version))
                specs.append((name, parsed, platform or RUBY_PLATFORM, None))
            except (TypeError, ValueError) as e:
                raise FullIndexError(
                    f"Invalid index entry {entry!r} in {mask_credentials(uri)}", uri
                ) from e

        logger.debug("Full index lists %d specs", len(specs))
        return {remote_uri: specs}

"""Spec fetching from a gem registry.

``Fetcher.specs()`` builds an ``Index`` for a set of requested names using
one of two strategies:

1. Incremental: query the dependency API in rounds for the transitive
   closure of the requested names only
2. Full index: download every spec the registry lists

The incremental strategy falls back to the full index once when the API
fails with a network error, a malformed payload, or legacy spec data.
"""

from __future__ import annotations

import contextlib
import json
import logging
import zlib
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from gemfetch.core.closure import fetch_closure
from gemfetch.core.index import Index
from gemfetch.core.spec import (
    RUBY_PLATFORM,
    Dependency,
    EndpointSpec,
    IndexSpec,
    PackageIdentity,
    PackageSpec,
    Specification,
    SpecTuple,
)
from gemfetch.core.spec_cache import SpecCache, get_default_spec_cache
from gemfetch.registry.common import file_uri_path, is_file_uri, mask_credentials, spec_uri
from gemfetch.registry.dependency_api import PayloadError, SpecFormatError, query_dependencies
from gemfetch.registry.full_index import FullIndexError, FullIndexFetcher, FullIndexSource
from gemfetch.registry.transport import (
    HttpTransport,
    SSLVerificationError,
    TransportError,
    get_default_transport,
)
from gemfetch.utils.ui import UI
from gemfetch.utils.version import GemVersion

logger = logging.getLogger(__name__)

# Specs of the tool itself are never put in an index
SELF_NAME = "bundler"

# The only failures of the incremental strategy that trigger the full-index fallback
FALLBACK_ERRORS: tuple[type[Exception], ...] = (TransportError, TypeError, SpecFormatError)


@dataclass
class IncrementalResult:
    """Outcome of the incremental strategy: specs on success, error on fallback."""

    specs: dict[str, list[SpecTuple]] | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Fetcher:
    """Fetches specs from one registry.

    Attributes:
        disable_endpoint: Always use the full index, never the dependency API
    """

    def __init__(
        self,
        remote_uri: str,
        transport: HttpTransport | None = None,
        spec_cache: SpecCache | None = None,
        full_index: FullIndexSource | None = None,
        ui: UI | None = None,
        disable_endpoint: bool = False,
        self_name: str = SELF_NAME,
    ):
        """Initialize the fetcher.

        Args:
            remote_uri: Registry root URI, ending with a slash. May embed
                user and password.
            transport: Transport for HTTP requests (default: process-wide one)
            spec_cache: Cache recording each spec's origin (default: process-wide one)
            full_index: Full-index source (default: download ``specs.json.gz``)
            ui: Progress reporter (default: stderr console)
            disable_endpoint: Skip the dependency API
            self_name: Package name excluded from every index
        """
        self._remote_uri = remote_uri
        self._transport = transport or get_default_transport()
        self._spec_cache = spec_cache if spec_cache is not None else get_default_spec_cache()
        self._full_index = full_index or FullIndexFetcher(self._transport)
        self._ui = ui or UI()
        self._self_name = self_name
        self.disable_endpoint = disable_endpoint
        # set to False once the full index has been fetched from this registry
        self._has_api = True

    @property
    def remote_uri(self) -> str:
        return self._remote_uri

    @property
    def has_api(self) -> bool:
        """Whether this registry has not yet needed the full index."""
        return self._has_api

    @property
    def spec_cache(self) -> SpecCache:
        return self._spec_cache

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    @contextlib.contextmanager
    def _ssl_guidance(self) -> Iterator[None]:
        """Turn certificate failures into an actionable TransportError."""
        try:
            yield
        except SSLVerificationError as e:
            masked = mask_credentials(self._remote_uri)
            raise TransportError(
                f"\nCould not verify the SSL certificate for {masked}.\n"
                "Either you don't have the CA certificates needed to verify it, or\n"
                "you are experiencing a man-in-the-middle attack. To connect without\n"
                "using SSL, change the source from 'https' to 'http'.",
                uri=self._remote_uri,
            ) from e

    def specs(self, names: Iterable[str] | None, source: Any) -> Index:
        """Build an index of specs from this registry.

        Args:
            names: Package names to fetch with their dependencies, or None
                to fetch the full index
            source: Label stored on every spec for the resolver

        Returns:
            Index of every fetched spec except the tool's own

        Raises:
            TransportError: If neither strategy can reach the registry, or
                the SSL certificate cannot be verified
        """
        with self._ssl_guidance():
            spec_tuples = self._fetch_spec_tuples(names)
            return self._build_index(spec_tuples, source)

    def _fetch_spec_tuples(self, names: Iterable[str] | None) -> list[SpecTuple]:
        """Pick a strategy and fetch raw spec tuples."""
        masked = mask_credentials(self._remote_uri)

        if names is None or is_file_uri(self._remote_uri) or self.disable_endpoint:
            logger.info("Using full index for %s", masked)
            self._ui.info(f"Fetching source index from {masked}")
            return self._fetch_full_index()

        self._ui.info(f"Fetching gem metadata from {masked}", newline=self._ui.debug_enabled)
        result = self._fetch_incremental(list(names))
        if not self._ui.debug_enabled:
            # new line now that the dots are over
            self._ui.info("")

        if result.ok:
            assert result.specs is not None
            return result.specs.get(self._remote_uri, [])

        self._report_fallback(result.error)
        self._ui.info(f"Fetching full source index from {masked}")
        return self._fetch_full_index()

    def _fetch_incremental(self, names: list[str]) -> IncrementalResult:
        """Fetch the dependency closure of names through the dependency API.

        Failures listed in FALLBACK_ERRORS are returned as the result's error;
        anything else propagates.
        """
        try:
            specs = fetch_closure(
                self._query,
                names,
                self._remote_uri,
                on_round=self._report_round,
            )
        except FALLBACK_ERRORS as e:
            return IncrementalResult(error=e)
        return IncrementalResult(specs=specs)

    def _query(self, names: list[str]) -> tuple[list[SpecTuple], list[str]]:
        return query_dependencies(self._transport, self._remote_uri, names)

    def _report_round(self, query_list: list[str]) -> None:
        if self._ui.debug_enabled:
            self._ui.debug(f"Query List: {query_list!r}")
        else:
            self._ui.info(".", newline=False)

    def _report_fallback(self, error: Exception | None) -> None:
        if error is None:
            return
        if "rubygems.org" in self._remote_uri:
            self._ui.info(f"Error {type(error).__name__} during request to dependency API")
        logger.debug("Dependency API failed: %s", error, exc_info=error)

    def _fetch_full_index(self) -> list[SpecTuple]:
        """Download the registry's full index."""
        self._has_api = False
        try:
            specs = self._full_index(self._remote_uri)
        except FullIndexError as e:
            logger.debug("Full index failed: %s", e)
            raise TransportError(
                f"Could not reach {mask_credentials(self._remote_uri)}",
                uri=self._remote_uri,
            ) from e
        return specs.get(self._remote_uri, [])

    def _build_index(self, spec_tuples: list[SpecTuple], source: Any) -> Index:
        """Turn spec tuples into an index and record each spec's origin."""
        index = Index()

        for name, version, platform, dependencies in spec_tuples:
            if name == self._self_name:
                continue

            identity = PackageIdentity.of(name, version, platform)
            spec: PackageSpec
            if dependencies is not None:
                spec = EndpointSpec(identity, dependencies, source=source)
            else:
                spec = IndexSpec(identity, self, source=source)

            self._spec_cache.put(spec, self._remote_uri)
            index.add(spec)

        logger.info(
            "Built index with %d specs from %s", len(index), mask_credentials(self._remote_uri)
        )
        return index

    def fetch_spec(self, identity: PackageIdentity) -> Specification:
        """Fetch the full specification for one package.

        Args:
            identity: Package to fetch

        Returns:
            Specification with dependencies and remaining metadata

        Raises:
            TransportError: If the spec file cannot be fetched
            PayloadError: If the spec file cannot be decoded
        """
        uri = spec_uri(self._remote_uri, identity)

        with self._ssl_guidance():
            if is_file_uri(uri):
                try:
                    blob = file_uri_path(uri).read_bytes()
                except OSError as e:
                    path = file_uri_path(uri)
                    raise TransportError(f"Could not read {path}: {e}", uri=uri) from e
            else:
                blob = self._transport.request(uri)

        try:
            data = json.loads(zlib.decompress(blob).decode("utf-8"))
        except (zlib.error, ValueError) as e:
            raise PayloadError(f"Invalid spec file {mask_credentials(uri)}: {e}", uri) from e
        if not isinstance(data, dict):
            raise PayloadError(f"Invalid spec file {mask_credentials(uri)}", uri)

        return _specification_from_data(identity, data)

    def __repr__(self) -> str:
        return f"Fetcher({mask_credentials(self._remote_uri)!r})"


def _specification_from_data(identity: PackageIdentity, data: dict[str, Any]) -> Specification:
    """Build a Specification from a decoded spec file."""
    metadata = dict(data)
    name = metadata.pop("name", identity.name)
    version = metadata.pop("version", str(identity.version))
    platform = metadata.pop("platform", identity.platform) or RUBY_PLATFORM
    pairs = metadata.pop("dependencies", [])

    try:
        dependencies = [Dependency.from_pair(str(dep), str(req)) for dep, req in pairs]
        loaded = PackageIdentity(name, GemVersion.parse(str(version)), platform)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Invalid spec data for {identity.full_name}: {e}") from e

    return Specification(identity=loaded, dependencies=dependencies, metadata=metadata)

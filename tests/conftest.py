"""Shared fixtures for gemfetch tests."""

import gzip
import json
import shutil
import tempfile
import zlib
from collections.abc import Generator
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

from gemfetch.core.spec_cache import SpecCache
from gemfetch.registry.transport import TransportError
from gemfetch.utils.ui import UI

REGISTRY_URI = "https://rubygems.example/"

# name -> list of (version, platform, [(dep_name, requirement), ...])
Graph = dict[str, list[tuple[str, str, list[tuple[str, str]]]]]


class FakeTransport:
    """Transport stub serving canned bodies by URI.

    Values that are exceptions are raised instead of returned. Unknown URIs
    fail like a 404.
    """

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.requests: list[str] = []
        self.closed = False

    def request(self, uri: str) -> bytes:
        self.requests.append(uri)
        if uri not in self.responses:
            raise TransportError(
                f"Don't know how to process 404 for {uri}", uri=uri, status_code=404
            )
        body = self.responses[uri]
        if isinstance(body, Exception):
            raise body
        result: bytes = body
        return result

    def close(self) -> None:
        self.closed = True


class FakeRegistry:
    """Transport stub answering dependency API queries from a graph."""

    def __init__(self, graph: Graph, remote_uri: str = REGISTRY_URI):
        self.graph = graph
        self.remote_uri = remote_uri
        self.queries: list[list[str]] = []
        self.closed = False

    def request(self, uri: str) -> bytes:
        parts = urlsplit(uri)
        if not uri.startswith(f"{self.remote_uri}api/v1/dependencies"):
            raise TransportError(
                f"Don't know how to process 404 for {uri}", uri=uri, status_code=404
            )

        names = parse_qs(parts.query)["gems"][0].split(",")
        self.queries.append(names)
        return dependency_payload(self.graph, names)

    def close(self) -> None:
        self.closed = True


def dependency_records(graph: Graph, names: list[str]) -> list[dict[str, Any]]:
    """Build dependency API records for names present in a graph."""
    records = []
    for name in names:
        for version, platform, deps in graph.get(name, []):
            records.append(
                {
                    "name": name,
                    "number": version,
                    "platform": platform,
                    "dependencies": [[dep, req] for dep, req in deps],
                }
            )
    return records


def dependency_payload(graph: Graph, names: list[str]) -> bytes:
    """Encode a dependency API response body."""
    return json.dumps(dependency_records(graph, names)).encode("utf-8")


def full_index_payload(entries: list[tuple[str, str, str]]) -> bytes:
    """Encode a specs.json.gz body."""
    return gzip.compress(json.dumps([list(e) for e in entries]).encode("utf-8"))


def spec_file_payload(data: dict[str, Any]) -> bytes:
    """Encode a .gemspec.rz body."""
    return zlib.compress(json.dumps(data).encode("utf-8"))


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="gemfetch_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def spec_cache() -> SpecCache:
    """Isolated spec cache."""
    return SpecCache()


@pytest.fixture
def silent_ui() -> UI:
    """UI that prints nothing."""
    return UI.silent()


@pytest.fixture
def sample_graph() -> Graph:
    """Dependency graph three levels deep.

    rails -> actionpack, activesupport
    actionpack -> rack, activesupport
    rack -> (none)
    activesupport -> (none)
    """
    return {
        "rails": [
            ("7.0.0", "ruby", [("actionpack", "= 7.0.0"), ("activesupport", "= 7.0.0")]),
        ],
        "actionpack": [
            ("7.0.0", "ruby", [("rack", "~> 2.2, >= 2.2.0"), ("activesupport", "= 7.0.0")]),
        ],
        "activesupport": [("7.0.0", "ruby", [])],
        "rack": [("2.2.3", "ruby", []), ("2.2.4", "ruby", [])],
    }


@pytest.fixture
def local_registry(temp_dir: Path) -> Path:
    """Create a local registry directory with an index, a spec file and an archive."""
    registry_dir = temp_dir / "registry"
    (registry_dir / "quick" / "Marshal.4.8").mkdir(parents=True)
    (registry_dir / "gems").mkdir()

    (registry_dir / "specs.json.gz").write_bytes(
        full_index_payload(
            [
                ("rack", "2.2.3", "ruby"),
                ("nokogiri", "1.15.0", "x86_64-linux"),
                ("bundler", "2.4.0", "ruby"),
            ]
        )
    )
    (registry_dir / "quick" / "Marshal.4.8" / "rack-2.2.3.gemspec.rz").write_bytes(
        spec_file_payload(
            {
                "name": "rack",
                "version": "2.2.3",
                "platform": "ruby",
                "summary": "A modular Ruby webserver interface",
                "dependencies": [["webrick", ">= 1.0"]],
            }
        )
    )
    (registry_dir / "gems" / "rack-2.2.3.gem").write_bytes(b"rack archive")

    return registry_dir

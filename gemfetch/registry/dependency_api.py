"""Client for the registry dependency API.

The endpoint answers one batch query for many names:

    GET {registry}api/v1/dependencies?gems=rack,rails

with a JSON list of records, one per published version:

    [{"name": "rack", "number": "2.2.3", "platform": "ruby",
      "dependencies": [["webrick", ">= 1.0, < 2"]]}]
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from gemfetch.core.spec import RUBY_PLATFORM, Dependency, SpecTuple
from gemfetch.registry.common import mask_credentials
from gemfetch.utils.version import GemVersion, RequirementError

if TYPE_CHECKING:
    from gemfetch.registry.transport import HttpTransport

logger = logging.getLogger(__name__)

DEPENDENCY_API_PATH = "api/v1/dependencies"

# Left in requirement strings by specs serialized with an old YAML engine
LEGACY_PLACEHOLDER = "#<YAML::Syck::DefaultKey"


class SpecFormatError(Exception):
    """A published spec carries dependency data that cannot be used."""

    def __init__(self, message: str, name: str | None = None, version: str | None = None):
        self.name = name
        self.version = version
        super().__init__(message)


class PayloadError(TypeError):
    """The dependency API returned a body of unexpected shape."""

    def __init__(self, message: str, uri: str | None = None):
        self.uri = uri
        super().__init__(message)


def dependency_api_uri(remote_uri: str, names: list[str]) -> str:
    """Build the batch query URI for a list of names."""
    encoded = quote(",".join(names), safe=",")
    return f"{remote_uri}{DEPENDENCY_API_PATH}?gems={encoded}"


def _decode_records(body: bytes, uri: str) -> list[dict[str, Any]]:
    """Decode the response body into a list of records."""
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadError(f"Invalid dependency data from {mask_credentials(uri)}: {e}", uri) from e

    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise PayloadError(
            f"Expected a list of records from {mask_credentials(uri)}, got {type(data).__name__}",
            uri,
        )
    return data


def _parse_dependency(record: dict[str, Any], pair: Any) -> Dependency:
    """Parse one ``[name, "req, req"]`` pair of a record."""
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise PayloadError(f"Invalid dependency entry {pair!r} for {record['name']}")

    name, requirement = pair
    try:
        return Dependency.from_pair(str(name), str(requirement))
    except RequirementError as e:
        if LEGACY_PLACEHOLDER in str(e):
            raise SpecFormatError(
                f"Unfortunately, the gem {record['name']} ({record['number']}) has an invalid "
                "gemspec.\nPlease ask the gem author to yank the bad version and publish a "
                "corrected release to fix this issue.",
                name=record["name"],
                version=str(record["number"]),
            ) from e
        raise


def _parse_record(record: dict[str, Any]) -> SpecTuple:
    try:
        name = record["name"]
        number = record["number"]
        pairs = record["dependencies"]
    except KeyError as e:
        raise PayloadError(f"Dependency record missing field {e}") from e

    if not isinstance(pairs, list):
        raise PayloadError(f"Dependencies for {name} must be a list, got {type(pairs).__name__}")

    try:
        version = GemVersion.parse(str(number))
    except ValueError as e:
        raise PayloadError(f"Invalid version {number!r} for {name}") from e

    dependencies = [_parse_dependency(record, pair) for pair in pairs]
    return (name, version, record.get("platform") or RUBY_PLATFORM, dependencies)


def query_dependencies(
    transport: HttpTransport,
    remote_uri: str,
    names: list[str],
) -> tuple[list[SpecTuple], list[str]]:
    """Query the dependency API for a batch of names.

    Args:
        transport: Transport to send the request through
        remote_uri: Registry root URI (with trailing slash)
        names: Package names to query in one request

    Returns:
        Spec tuples for every returned version, and the deduplicated names
        of all packages they depend on

    Raises:
        TransportError: If the request fails
        PayloadError: If the body is not a list of dependency records
        SpecFormatError: If a record holds a legacy placeholder requirement
        RequirementError: If a requirement is ill-formed in any other way
    """
    logger.debug("Query dependency API: %s", " ".join(names))
    uri = dependency_api_uri(remote_uri, names)
    records = _decode_records(transport.request(uri), uri)

    spec_list: list[SpecTuple] = []
    dep_names: dict[str, None] = {}
    for record in records:
        spec = _parse_record(record)
        for dep in spec[3] or []:
            dep_names[dep.name] = None
        spec_list.append(spec)

    logger.debug(
        "Dependency API returned %d specs, %d dependency names", len(spec_list), len(dep_names)
    )
    return spec_list, list(dep_names)

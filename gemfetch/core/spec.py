"""Package spec data model.

A spec is one of two variants sharing a ``PackageIdentity``:

- ``EndpointSpec``: came from the dependency API, dependencies known up front
- ``IndexSpec``: came from the full index, dependencies fetched on demand
  from the registry that listed it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from gemfetch.utils.version import GemVersion, Requirement

if TYPE_CHECKING:
    from gemfetch.registry.fetcher import Fetcher

logger = logging.getLogger(__name__)

# The generic platform; omitted from full names and spec file names
RUBY_PLATFORM = "ruby"

SpecKind = Literal["endpoint", "index"]

# (name, version, platform, dependencies or None) as produced by both fetch strategies
SpecTuple = tuple[str, GemVersion, str, "list[Dependency] | None"]


@dataclass(frozen=True)
class PackageIdentity:
    """Name, version and platform of a package."""

    name: str
    version: GemVersion
    platform: str = RUBY_PLATFORM

    @classmethod
    def of(
        cls, name: str, version: GemVersion | str, platform: str | None = None
    ) -> PackageIdentity:
        """Build an identity, normalizing the version and a missing platform."""
        return cls(name, GemVersion.parse(version), platform or RUBY_PLATFORM)

    @property
    def full_name(self) -> str:
        """Cache key: ``name-version`` plus ``-platform`` for non-generic platforms."""
        if self.platform and self.platform != RUBY_PLATFORM:
            return f"{self.name}-{self.version}-{self.platform}"
        return f"{self.name}-{self.version}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class Dependency:
    """A declared dependency on another package."""

    name: str
    requirement: Requirement

    @classmethod
    def from_pair(cls, name: str, requirement: str) -> Dependency:
        """Build a dependency from an API ``[name, "c1, c2"]`` pair.

        Raises:
            RequirementError: If a constraint is ill-formed
        """
        return cls(name, Requirement(requirement.split(", ")))

    def __str__(self) -> str:
        return f"{self.name} ({self.requirement})"


@dataclass
class Specification:
    """Full single-spec record loaded from the registry's spec endpoint."""

    identity: PackageIdentity
    dependencies: list[Dependency] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def full_name(self) -> str:
        return self.identity.full_name


class _IdentityAccessors:
    """Shared read accessors for both spec variants."""

    identity: PackageIdentity

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> GemVersion:
        return self.identity.version

    @property
    def platform(self) -> str:
        return self.identity.platform

    @property
    def full_name(self) -> str:
        return self.identity.full_name


@dataclass(eq=False)
class EndpointSpec(_IdentityAccessors):
    """Spec returned by the dependency API, with its dependencies attached."""

    kind: ClassVar[SpecKind] = "endpoint"

    identity: PackageIdentity
    dependencies: list[Dependency] = field(default_factory=list)
    source: Any = None


@dataclass(eq=False)
class IndexSpec(_IdentityAccessors):
    """Spec listed in the full index.

    Only the identity is known; the full specification (and with it the
    dependency list) is fetched from the origin on first access.
    """

    kind: ClassVar[SpecKind] = "index"

    identity: PackageIdentity
    fetcher: Fetcher = field(repr=False)
    source: Any = None
    _specification: Specification | None = field(default=None, init=False, repr=False)

    def specification(self) -> Specification:
        """Get the full specification, fetching it on first call."""
        if self._specification is None:
            logger.debug("Fetching remote specification for %s", self.full_name)
            self._specification = self.fetcher.fetch_spec(self.identity)
        return self._specification

    @property
    def dependencies(self) -> list[Dependency]:
        return self.specification().dependencies


PackageSpec = EndpointSpec | IndexSpec

"""Queryable collection of package specs."""

from __future__ import annotations

from collections.abc import Iterator

from gemfetch.core.spec import PackageIdentity, PackageSpec
from gemfetch.utils.version import Requirement


class Index:
    """Specs keyed by identity, searchable by name.

    Adding a spec whose identity is already present replaces the earlier one.
    Order carries no meaning.
    """

    def __init__(self, specs: list[PackageSpec] | None = None):
        self._specs: dict[PackageIdentity, PackageSpec] = {}
        self._by_name: dict[str, dict[PackageIdentity, PackageSpec]] = {}
        for spec in specs or []:
            self.add(spec)

    def add(self, spec: PackageSpec) -> None:
        """Add a spec to the index."""
        self._specs[spec.identity] = spec
        self._by_name.setdefault(spec.name, {})[spec.identity] = spec

    def search(self, name: str, requirement: Requirement | None = None) -> list[PackageSpec]:
        """Find all specs with a name.

        Args:
            name: Package name
            requirement: Optional requirement the version must satisfy

        Returns:
            Matching specs, lowest version first
        """
        matches = list(self._by_name.get(name, {}).values())
        if requirement is not None:
            matches = [s for s in matches if requirement.satisfied_by(s.version)]
        return sorted(matches, key=lambda s: (s.version, s.platform))

    def get(self, identity: PackageIdentity) -> PackageSpec | None:
        return self._specs.get(identity)

    def names(self) -> list[str]:
        """Get all package names in the index, sorted."""
        return sorted(self._by_name)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, PackageIdentity):
            return item in self._specs
        if isinstance(item, str):
            return item in self._by_name
        return False

    def __iter__(self) -> Iterator[PackageSpec]:
        return iter(list(self._specs.values()))

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"Index({len(self)} specs)"

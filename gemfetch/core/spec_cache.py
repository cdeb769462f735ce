"""Mapping from spec full names to the registry that served them."""

from __future__ import annotations

import logging
import threading

from gemfetch.core.spec import PackageSpec

logger = logging.getLogger(__name__)


class SpecCache:
    """In-memory ``full_name -> (spec, origin_uri)`` map.

    Entries are overwritten whenever a fetch rediscovers the same full name
    and are never removed. The archive download step looks specs up here to
    find the registry a spec came from.
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[PackageSpec, str]] = {}
        self._lock = threading.Lock()

    def put(self, spec: PackageSpec, origin: str) -> None:
        """Record where a spec came from, replacing any earlier entry."""
        with self._lock:
            if spec.full_name in self._entries:
                logger.debug("Replacing cached origin for %s", spec.full_name)
            self._entries[spec.full_name] = (spec, origin)

    def get(self, full_name: str) -> tuple[PackageSpec, str] | None:
        """Look up a spec and its origin by full name."""
        return self._entries.get(full_name)

    def __contains__(self, full_name: object) -> bool:
        return full_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_default_cache = SpecCache()


def get_default_spec_cache() -> SpecCache:
    """Get the process-wide spec cache."""
    return _default_cache

"""Transitive dependency closure over the dependency API.

Starting from the requested names, each round sends one batch query for
the names not yet queried and collects the dependency names the returned
specs mention. Rounds repeat until no new names appear, so the number of
network round trips follows the depth of the dependency graph rather than
its size.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from gemfetch.core.spec import SpecTuple

logger = logging.getLogger(__name__)

QueryFunction = Callable[[list[str]], tuple[list[SpecTuple], list[str]]]
RoundCallback = Callable[[list[str]], None]


def _unique(names: Iterable[str]) -> list[str]:
    """Deduplicate names, keeping first-seen order."""
    return list(dict.fromkeys(names))


def fetch_closure(
    query: QueryFunction,
    names: Iterable[str],
    origin: str,
    on_round: RoundCallback | None = None,
) -> dict[str, list[SpecTuple]]:
    """Fetch specs for names and everything they transitively depend on.

    Args:
        query: Batch query returning ``(spec_tuples, dependency_names)``
        names: Initially requested package names
        origin: Registry URI the results are keyed by
        on_round: Called with the query list before every round, including
            the final empty one

    Returns:
        ``{origin: spec_tuples}`` with later rounds' specs first
    """
    queried: set[str] = set()
    accumulated: list[SpecTuple] = []
    pending = _unique(names)
    rounds = 0

    while True:
        to_query = [name for name in pending if name not in queried]
        if on_round is not None:
            on_round(to_query)

        if not to_query:
            logger.debug("Closure complete after %d rounds (%d specs)", rounds, len(accumulated))
            return {origin: accumulated}

        rounds += 1
        logger.debug("Closure round %d: querying %d names", rounds, len(to_query))
        spec_list, dep_names = query(to_query)

        # Names with no specs in the response are not asked for again either
        queried.update(to_query)
        queried.update(spec[0] for spec in spec_list)
        accumulated = spec_list + accumulated
        pending = _unique(dep_names)

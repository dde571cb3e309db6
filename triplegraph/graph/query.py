"""Pattern matching and aggregate statistics over triples."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from triplegraph.config import DEFAULT_NAMESPACE, DEFAULT_QUERY_LIMIT
from triplegraph.core.errors import InvalidPatternError
from triplegraph.core.protocols import RelationshipStore
from triplegraph.core.types import Triple, TriplePattern
from triplegraph.store.triples import TripleStore

logger = logging.getLogger(__name__)


@dataclass
class QueryPage:
    """One page of search results plus the total match count."""

    triples: list[Triple]
    total: int
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.triples) < self.total


@dataclass
class GraphStats:
    """Snapshot of graph size and composition.

    role_distribution counts triples per subject id; subjects are usually
    role names, so this reads as "how much each role did".
    """

    triple_count: int
    verb_distribution: dict[str, int] = field(default_factory=dict)
    role_distribution: dict[str, int] = field(default_factory=dict)
    paired: bool = True


class QueryEngine:
    """Triple-pattern queries over a TripleStore."""

    def __init__(
        self,
        triples: TripleStore,
        store: RelationshipStore,
        default_namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        self._triples = triples
        self._store = store
        self._default_namespace = default_namespace

    async def match(self, pattern: TriplePattern, limit: int | None = None) -> list[Triple]:
        """Triples equal to pattern on every pinned field.

        Matching is exact: no prefixes, no case folding.

        Raises:
            InvalidPatternError: No field pinned (full scans are refused)
        """
        if pattern.is_wildcard:
            raise InvalidPatternError(str(pattern), "at least one of subject, predicate, object is required")
        return await self._triples.query(pattern, limit)

    async def search(
        self,
        pattern: TriplePattern,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> QueryPage:
        """Paginated match.

        Args:
            pattern: Pattern with at least one pinned field
            limit: Page size, >= 1
            offset: Matches to skip, >= 0

        Raises:
            InvalidPatternError: Fully-wildcard pattern
            ValueError: limit < 1 or offset < 0
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        matches = await self.match(pattern)
        return QueryPage(triples=matches[offset : offset + limit], total=len(matches), offset=offset)

    async def execute(self, text: str, limit: int | None = None) -> list[Triple]:
        """Run a textual query: "subject predicate object".

        Each term is either a value or a wildcard ("*", "?", "?name").
        Entity terms take "ns:id" or a bare id in the default namespace.

        Example:
            await engine.execute("accountant invoicing ?invoice")

        Raises:
            InvalidPatternError: Not exactly three terms, a malformed
                entity, or all three terms wildcards
        """
        terms = text.split()
        if len(terms) != 3:
            raise InvalidPatternError(text, f"expected 3 terms, got {len(terms)}")
        try:
            pattern = TriplePattern.from_strings(*terms, default_namespace=self._default_namespace)
        except ValueError as e:
            raise InvalidPatternError(text, str(e)) from e
        logger.debug("query_execute text=%r pattern=%s", text, pattern)
        return await self.match(pattern, limit)

    async def stats(self) -> GraphStats:
        """Triple count with per-verb and per-subject breakdowns."""
        store_stats = await self._store.stats()
        verbs = await self._store.type_distribution()
        if not store_stats.paired:
            logger.warning(
                "graph_stats_unpaired outbound=%d inbound=%d",
                store_stats.outbound_count,
                store_stats.inbound_count,
            )
        return GraphStats(
            triple_count=store_stats.outbound_count,
            verb_distribution=verbs,
            role_distribution=dict(store_stats.subject_distribution),
            paired=store_stats.paired,
        )

"""In-memory relationship store for tests and embedding.

Implements RelationshipStore and VocabularyStore. Rows live in insertion
order in one dict, with per-endpoint indexes mirroring what a real store
would index.
"""

from __future__ import annotations

import asyncio
import copy
from collections import Counter, defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable

from triplegraph.core.protocols import StoreStats
from triplegraph.core.schema import EdgeKind, Relationship, RelationshipPattern, RoleDef, VerbDef
from triplegraph.core.types import relationship_id


class InMemoryRelationshipStore:
    """Dict-backed RelationshipStore.

    Transactions snapshot the rows and restore them if the block raises.
    Returned rows are copies; mutating them never touches the store.
    """

    def __init__(self) -> None:
        self._rows: dict[str, Relationship] = {}
        self._by_source: defaultdict[tuple[str, str], dict[str, None]] = defaultdict(dict)
        self._by_target: defaultdict[tuple[str, str], dict[str, None]] = defaultdict(dict)
        self._verbs: dict[str, VerbDef] = {}
        self._roles: dict[str, RoleDef] = {}
        self._tx_lock = asyncio.Lock()

    # -- RelationshipStore -------------------------------------------------

    async def upsert_relationship(
        self,
        from_ns: str,
        from_id: str,
        predicate: str,
        to_ns: str,
        to_id: str,
        properties: dict[str, Any],
        *,
        kind: EdgeKind = EdgeKind.OUTBOUND,
    ) -> str:
        """Insert or replace one row. Returns its id."""
        row_id = relationship_id(kind, from_ns, from_id, predicate, to_ns, to_id)
        row = Relationship(
            id=row_id,
            kind=kind,
            from_ns=from_ns,
            from_id=from_id,
            predicate=predicate,
            to_ns=to_ns,
            to_id=to_id,
            properties=copy.deepcopy(properties),
        )
        self._rows[row_id] = row
        self._index(row)
        return row_id

    async def query_relationships(
        self,
        pattern: RelationshipPattern,
        limit: int | None = None,
    ) -> list[Relationship]:
        """Outbound rows matching pattern, in insertion order."""
        candidates: Iterable[Relationship]
        if pattern.from_ns is not None and pattern.from_id is not None:
            row_ids = self._by_source.get((pattern.from_ns, pattern.from_id), {})
            candidates = [self._rows[row_id] for row_id in row_ids]
        else:
            candidates = self._rows.values()

        results: list[Relationship] = []
        for row in candidates:
            if row.kind is EdgeKind.OUTBOUND and pattern.matches(row):
                results.append(copy.deepcopy(row))
                if limit is not None and len(results) >= limit:
                    break
        return results

    async def get_incoming_relationships(
        self,
        to_ns: str,
        to_id: str,
        predicate: str | None = None,
    ) -> list[Relationship]:
        """Inbound rows pointing at (to_ns, to_id)."""
        row_ids = self._by_target.get((to_ns, to_id), {})
        rows = (self._rows[row_id] for row_id in row_ids)
        return [
            copy.deepcopy(row)
            for row in rows
            if row.kind is EdgeKind.INBOUND and (predicate is None or row.predicate == predicate)
        ]

    async def get_relationship(self, relationship_id: str) -> Relationship | None:
        row = self._rows.get(relationship_id)
        return copy.deepcopy(row) if row is not None else None

    async def list_relationships(self, kind: EdgeKind) -> list[Relationship]:
        return [copy.deepcopy(r) for r in self._rows.values() if r.kind is kind]

    async def delete_relationship(self, relationship_id: str) -> bool:
        row = self._rows.pop(relationship_id, None)
        if row is None:
            return False
        self._by_source[(row.from_ns, row.from_id)].pop(row.id, None)
        self._by_target[(row.to_ns, row.to_id)].pop(row.id, None)
        return True

    async def stats(self) -> StoreStats:
        kinds = Counter(row.kind for row in self._rows.values())
        subjects = Counter(row.from_id for row in self._rows.values() if row.kind is EdgeKind.OUTBOUND)
        return StoreStats(
            outbound_count=kinds[EdgeKind.OUTBOUND],
            inbound_count=kinds[EdgeKind.INBOUND],
            subject_distribution=dict(subjects),
        )

    async def type_distribution(self) -> dict[str, int]:
        return dict(Counter(row.predicate for row in self._rows.values() if row.kind is EdgeKind.OUTBOUND))

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Snapshot rows; restore them if the block raises."""
        async with self._tx_lock:
            snapshot = dict(self._rows)
            try:
                yield
            except BaseException:
                self._rows = snapshot
                self._reindex()
                raise

    async def close(self) -> None:
        """Nothing to release."""

    # -- VocabularyStore ---------------------------------------------------

    async def save_verb(self, verb: VerbDef) -> None:
        self._verbs[verb.id] = verb

    async def load_verbs(self) -> list[VerbDef]:
        return list(self._verbs.values())

    async def save_role(self, role: RoleDef) -> None:
        self._roles[role.id] = role

    async def load_roles(self) -> list[RoleDef]:
        return list(self._roles.values())

    # -- internals ---------------------------------------------------------

    def _index(self, row: Relationship) -> None:
        self._by_source[(row.from_ns, row.from_id)][row.id] = None
        self._by_target[(row.to_ns, row.to_id)][row.id] = None

    def _reindex(self) -> None:
        self._by_source.clear()
        self._by_target.clear()
        for row in self._rows.values():
            self._index(row)

    def __len__(self) -> int:
        return len(self._rows)

"""Engine facade wiring vocabulary, storage, traversal and queries.

All state lives on the TripleGraphEngine instance; two engines in one
process share nothing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from triplegraph.config import (
    DEFAULT_NAMESPACE,
    DEFAULT_PATH_DEPTH,
    DEFAULT_QUERY_LIMIT,
    DEFAULT_TRAVERSAL_DEPTH,
    SEED_ROLES,
    SEED_VERBS,
)
from triplegraph.core.protocols import RelationshipStore, VocabularyStore
from triplegraph.core.schema import Direction, EntityRef, Relationship, RoleDef, VerbDef
from triplegraph.core.types import CapabilityResult, Triple, TripleContext, TripleID, TriplePattern
from triplegraph.graph.query import GraphStats, QueryEngine, QueryPage
from triplegraph.graph.traversal import NodeDegree, Path as GraphPath, TraversalEngine, TraversalResult
from triplegraph.storage.memory import InMemoryRelationshipStore
from triplegraph.store.triples import TripleStore
from triplegraph.vocabulary.capabilities import CapabilityResolver
from triplegraph.vocabulary.loader import load_vocabulary_file
from triplegraph.vocabulary.roles import RoleRegistry
from triplegraph.vocabulary.verbs import VerbRegistry

logger = logging.getLogger(__name__)

EntityLike = EntityRef | str


class TripleGraphEngine:
    """Caller-facing entry point.

    Components are injected where given and built from the seed tables
    otherwise, so tests can swap any store for a fake.
    """

    def __init__(
        self,
        store: RelationshipStore | None = None,
        vocabulary_store: VocabularyStore | None = None,
        verbs: VerbRegistry | None = None,
        roles: RoleRegistry | None = None,
        default_namespace: str = DEFAULT_NAMESPACE,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Relationship store; in-memory when omitted
            vocabulary_store: Where custom verbs and roles are persisted;
                registrations stay in memory only when omitted
            verbs: Verb registry; seeded from SEED_VERBS when omitted
            roles: Role registry; seeded from SEED_ROLES when omitted
            default_namespace: Namespace for bare entity ids
        """
        self._store = store if store is not None else InMemoryRelationshipStore()
        self._vocabulary_store = vocabulary_store
        self._verbs = verbs if verbs is not None else VerbRegistry(SEED_VERBS.values())
        self._roles = roles if roles is not None else RoleRegistry(SEED_ROLES.values())
        self._default_namespace = default_namespace

        self._resolver = CapabilityResolver(self._verbs, self._roles)
        self._triples = TripleStore(self._store, self._resolver)
        self._traversal = TraversalEngine(self._triples)
        self._query = QueryEngine(self._triples, self._store, default_namespace)

    # =========================================================================
    # Triples
    # =========================================================================

    async def create_triple(
        self,
        subject: EntityLike,
        predicate: str,
        obj: EntityLike,
        *,
        created_by: str,
        context: TripleContext | dict[str, Any] | None = None,
        confidence: float = 1.0,
        role: str | None = None,
    ) -> Triple:
        """Validate and store a triple. See TripleStore.create."""
        if not isinstance(context, TripleContext):
            context = TripleContext.from_dict(context)
        return await self._triples.create(
            self._entity(subject),
            predicate,
            self._entity(obj),
            created_by=created_by,
            context=context,
            confidence=confidence,
            role=role,
        )

    async def get_triple(self, triple_id: TripleID | str) -> Triple | None:
        return await self._triples.get(triple_id)

    async def delete_triple(self, triple_id: TripleID | str) -> bool:
        return await self._triples.delete(triple_id)

    async def query_triples(
        self,
        subject: EntityLike | None = None,
        predicate: str | None = None,
        obj: EntityLike | None = None,
        *,
        limit: int = DEFAULT_QUERY_LIMIT,
        offset: int = 0,
    ) -> QueryPage:
        """Paginated pattern query. None (or "*") leaves a field open."""
        return await self._query.search(self._pattern(subject, predicate, obj), limit, offset)

    # =========================================================================
    # Vocabulary
    # =========================================================================

    def resolve_verb(self, verb_id: str) -> VerbDef | None:
        return self._verbs.resolve(verb_id)

    async def register_verb(self, verb: VerbDef) -> VerbDef:
        """Publish a verb, then persist it if a vocabulary store is set.

        The definition is live before the store write, so a failed write
        raises StoreUnavailableError with the verb already usable.
        """
        self._verbs.register(verb)
        if self._vocabulary_store is not None:
            await self._vocabulary_store.save_verb(verb)
        return verb

    def list_verbs(self, category: str | None = None) -> list[VerbDef]:
        return self._verbs.list(category)

    def resolve_role(self, role_id: str) -> RoleDef | None:
        return self._roles.get_role(role_id)

    async def register_role(self, role: RoleDef) -> RoleDef:
        """Publish a role, then persist it if a vocabulary store is set."""
        self._roles.register(role)
        if self._vocabulary_store is not None:
            await self._vocabulary_store.save_role(role)
        return role

    def list_roles(self) -> list[RoleDef]:
        return self._roles.list()

    def get_role_capabilities(self, role_id: str) -> list[str]:
        """Effective capabilities including inherited ones."""
        return self._resolver.role_capabilities(role_id)

    def check_capability(self, role_id: str, verb_id: str) -> CapabilityResult:
        return self._resolver.check(role_id, verb_id)

    async def load_vocabulary(self) -> tuple[int, int]:
        """Register every verb and role held by the vocabulary store.

        Returns:
            (verbs loaded, roles loaded); (0, 0) without a vocabulary store
        """
        if self._vocabulary_store is None:
            return 0, 0
        verbs = await self._vocabulary_store.load_verbs()
        roles = await self._vocabulary_store.load_roles()
        for verb in verbs:
            self._verbs.register(verb)
        for role in roles:
            self._roles.register(role)
        logger.info("vocabulary_loaded verbs=%d roles=%d", len(verbs), len(roles))
        return len(verbs), len(roles)

    async def import_vocabulary(self, path: str | Path) -> tuple[int, int]:
        """Register (and persist) the definitions in a YAML vocabulary file.

        Raises:
            VocabularyError: File unreadable or malformed; nothing registered
        """
        vocab = load_vocabulary_file(path)
        for verb in vocab.verbs:
            await self.register_verb(verb)
        for role in vocab.roles:
            await self.register_role(role)
        logger.info("vocabulary_imported path=%s verbs=%d roles=%d", path, len(vocab.verbs), len(vocab.roles))
        return len(vocab.verbs), len(vocab.roles)

    # =========================================================================
    # Graph
    # =========================================================================

    async def traverse(
        self,
        start: EntityLike,
        depth: int = DEFAULT_TRAVERSAL_DEPTH,
        direction: Direction | str = Direction.FORWARD,
    ) -> TraversalResult:
        return await self._traversal.traverse(self._entity(start), depth, direction)

    async def find_paths(
        self,
        source: EntityLike,
        target: EntityLike,
        max_depth: int = DEFAULT_PATH_DEPTH,
        limit: int | None = None,
    ) -> list[GraphPath]:
        return await self._traversal.find_paths(self._entity(source), self._entity(target), max_depth, limit)

    async def shortest_path(
        self,
        source: EntityLike,
        target: EntityLike,
        max_depth: int = DEFAULT_PATH_DEPTH,
    ) -> GraphPath | None:
        return await self._traversal.shortest_path(self._entity(source), self._entity(target), max_depth)

    async def get_neighbors(
        self,
        entity: EntityLike,
        direction: Direction | str = Direction.BOTH,
    ) -> list[EntityRef]:
        return await self._traversal.get_neighbors(self._entity(entity), direction)

    async def subgraph(self, center: EntityLike, radius: int = 1) -> TraversalResult:
        return await self._traversal.subgraph(self._entity(center), radius)

    async def common_neighbors(self, a: EntityLike, b: EntityLike) -> list[EntityRef]:
        return await self._traversal.common_neighbors(self._entity(a), self._entity(b))

    async def node_degree(self, entity: EntityLike) -> NodeDegree:
        return await self._traversal.node_degree(self._entity(entity))

    # =========================================================================
    # Queries
    # =========================================================================

    async def match(
        self,
        subject: EntityLike | None = None,
        predicate: str | None = None,
        obj: EntityLike | None = None,
    ) -> list[Triple]:
        """Exact pattern match. Raises InvalidPatternError if nothing is pinned."""
        return await self._query.match(self._pattern(subject, predicate, obj))

    async def execute_query(self, text: str, limit: int | None = None) -> list[Triple]:
        return await self._query.execute(text, limit)

    async def stats(self) -> GraphStats:
        return await self._query.stats()

    async def find_unpaired(self) -> list[Relationship]:
        """Rows missing their mirror row. Audit use only."""
        return await self._triples.find_unpaired()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        await self._store.close()

    async def __aenter__(self) -> "TripleGraphEngine":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    def _entity(self, value: EntityLike) -> EntityRef:
        if isinstance(value, EntityRef):
            return value
        return EntityRef.parse(value, default_namespace=self._default_namespace)

    def _pattern(
        self,
        subject: EntityLike | None,
        predicate: str | None,
        obj: EntityLike | None,
    ) -> TriplePattern:
        return TriplePattern.from_strings(
            str(subject) if subject is not None else None,
            predicate,
            str(obj) if obj is not None else None,
            default_namespace=self._default_namespace,
        )

"""Triple store: validated writes of paired edges.

Every triple is two rows in the relationship store: an outbound row keyed
by the subject and an inbound row keyed by the object. Both are written
and deleted inside one store transaction, so a failure on the second row
leaves neither behind.
"""

from __future__ import annotations

import logging

from triplegraph.core.errors import (
    CapabilityDeniedError,
    UnknownRoleError,
    UnknownVerbError,
)
from triplegraph.core.protocols import RelationshipStore
from triplegraph.core.schema import EdgeKind, EntityRef, Relationship, RelationshipPattern
from triplegraph.core.types import Triple, TripleContext, TripleID, TriplePattern, utc_now
from triplegraph.vocabulary.capabilities import (
    REASON_UNKNOWN_ROLE,
    REASON_UNKNOWN_VERB,
    CapabilityResolver,
)

logger = logging.getLogger(__name__)


class TripleStore:
    """CRUD over triples, backed by a RelationshipStore."""

    def __init__(self, store: RelationshipStore, resolver: CapabilityResolver) -> None:
        self._store = store
        self._resolver = resolver

    async def create(
        self,
        subject: EntityRef,
        predicate: str,
        obj: EntityRef,
        *,
        created_by: str,
        context: TripleContext | None = None,
        confidence: float = 1.0,
        role: str | None = None,
    ) -> Triple:
        """Validate and upsert a triple.

        Idempotent on (subject, predicate, object): a second call returns the
        same id, keeps created_at/created_by, and refreshes context,
        confidence and updated_at.

        Args:
            subject: Entity performing the action
            predicate: Verb id
            obj: Entity acted on
            created_by: Identifier of the authenticated caller
            context: Temporal/spatial/causal metadata
            confidence: Certainty in [0, 1]
            role: Acting role for the capability check; defaults to subject.id

        Returns:
            The stored Triple

        Raises:
            UnknownVerbError: predicate is not registered
            UnknownRoleError: acting role is not registered
            CapabilityDeniedError: role may not use predicate
            StoreUnavailableError: store failed; nothing was written
            ValueError: confidence outside [0, 1]
        """
        acting_role = role or subject.id
        check = self._resolver.check(acting_role, predicate)
        if not check.allowed:
            logger.warning(
                "triple_denied role=%s predicate=%s reason=%s",
                acting_role,
                predicate,
                check.reason,
            )
            if check.reason == REASON_UNKNOWN_VERB:
                raise UnknownVerbError(predicate)
            if check.reason == REASON_UNKNOWN_ROLE:
                raise UnknownRoleError(acting_role)
            raise CapabilityDeniedError(acting_role, predicate, check.reason or "denied")

        triple_id = TripleID.from_parts(subject, predicate, obj)
        now = utc_now()
        triple = Triple(
            id=triple_id,
            subject=subject,
            predicate=predicate,
            object=obj,
            context=context or TripleContext(),
            created_at=now,
            updated_at=now,
            created_by=created_by,
            confidence=confidence,
            pending_approval=check.requires_approval,
        )

        async with self._store.transaction():
            existing = await self._store.get_relationship(triple_id.value)
            if existing is not None:
                previous = Triple.from_row(subject, predicate, obj, existing.properties)
                triple.created_at = previous.created_at
                triple.created_by = previous.created_by
            properties = triple.to_properties()
            for kind in (EdgeKind.OUTBOUND, EdgeKind.INBOUND):
                await self._store.upsert_relationship(
                    subject.namespace,
                    subject.id,
                    predicate,
                    obj.namespace,
                    obj.id,
                    properties,
                    kind=kind,
                )

        logger.info(
            "triple_%s id=%s predicate=%s pending_approval=%s",
            "updated" if existing is not None else "created",
            triple_id,
            predicate,
            triple.pending_approval,
        )
        return triple

    async def get(self, triple_id: TripleID | str) -> Triple | None:
        """Fetch a triple by id. None if missing or if the id is malformed."""
        tid = triple_id if isinstance(triple_id, TripleID) else TripleID(triple_id)
        try:
            subject, predicate, obj = tid.parse()
        except ValueError:
            return None
        row = await self._store.get_relationship(tid.value)
        if row is None:
            return None
        return Triple.from_row(subject, predicate, obj, row.properties)

    async def delete(self, triple_id: TripleID | str) -> bool:
        """Remove both rows of a triple.

        Returns:
            True if the triple existed; False otherwise (not an error)

        Raises:
            StoreUnavailableError: store failed; both rows are kept
        """
        tid = triple_id if isinstance(triple_id, TripleID) else TripleID(triple_id)
        try:
            inbound_id = tid.inbound_id
        except ValueError:
            return False
        async with self._store.transaction():
            existed = await self._store.delete_relationship(tid.value)
            mirrored = await self._store.delete_relationship(inbound_id)
        if existed or mirrored:
            logger.info("triple_deleted id=%s", tid)
        if existed != mirrored:
            logger.warning("triple_pair_incomplete id=%s outbound=%s inbound=%s", tid, existed, mirrored)
        return existed

    async def query(self, pattern: TriplePattern, limit: int | None = None) -> list[Triple]:
        """Triples matching pattern.

        Subject- or predicate-anchored patterns use the outbound index; an
        object-only pattern uses the inbound index. A fully-wildcard pattern
        scans the outbound rows; QueryEngine rejects it before it gets here.
        """
        if pattern.subject is None and pattern.object is not None:
            rows = await self._store.get_incoming_relationships(
                pattern.object.namespace,
                pattern.object.id,
                pattern.predicate,
            )
            if limit is not None:
                rows = rows[:limit]
        else:
            rows = await self._store.query_relationships(self._to_store_pattern(pattern), limit)
        return [self._row_to_triple(row) for row in rows]

    async def outgoing(self, entity: EntityRef, predicate: str | None = None) -> list[Triple]:
        """Triples whose subject is entity."""
        return await self.query(TriplePattern(subject=entity, predicate=predicate))

    async def incoming(self, entity: EntityRef, predicate: str | None = None) -> list[Triple]:
        """Triples whose object is entity, read through the inbound index."""
        rows = await self._store.get_incoming_relationships(entity.namespace, entity.id, predicate)
        return [self._row_to_triple(row) for row in rows]

    async def find_unpaired(self) -> list[Relationship]:
        """Rows whose mirror row is missing.

        Audit helper: transactional writes should keep this empty. A full
        scan of the store; not for request paths.
        """
        outbound = await self._store.list_relationships(EdgeKind.OUTBOUND)
        inbound = await self._store.list_relationships(EdgeKind.INBOUND)
        outbound_ids = {row.id for row in outbound}
        inbound_ids = {row.id for row in inbound}

        unpaired = [row for row in outbound if TripleID(row.id).inbound_id not in inbound_ids]
        unpaired.extend(
            row
            for row in inbound
            if TripleID.from_parts(row.source, row.predicate, row.target).value not in outbound_ids
        )
        for row in unpaired:
            logger.warning("relationship_unpaired id=%s kind=%s", row.id, row.kind.value)
        return unpaired

    @staticmethod
    def _to_store_pattern(pattern: TriplePattern) -> RelationshipPattern:
        return RelationshipPattern(
            from_ns=pattern.subject.namespace if pattern.subject else None,
            from_id=pattern.subject.id if pattern.subject else None,
            predicate=pattern.predicate,
            to_ns=pattern.object.namespace if pattern.object else None,
            to_id=pattern.object.id if pattern.object else None,
        )

    @staticmethod
    def _row_to_triple(row: Relationship) -> Triple:
        return Triple.from_row(row.source, row.predicate, row.target, row.properties)

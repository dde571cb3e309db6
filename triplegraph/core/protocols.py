"""Protocol interfaces for the triple engine's collaborators.

Defines the contracts that external stores must follow:
- RelationshipStore: rows backing every triple
- VocabularyStore: persisted custom verbs and roles
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncContextManager, Protocol

if TYPE_CHECKING:
    from triplegraph.core.schema import (
        EdgeKind,
        Relationship,
        RelationshipPattern,
        RoleDef,
        VerbDef,
    )


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class StoreStats:
    """Aggregate row counts from the relationship store."""

    outbound_count: int
    inbound_count: int
    subject_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def paired(self) -> bool:
        """True if every outbound row could have an inbound partner."""
        return self.outbound_count == self.inbound_count


# =============================================================================
# Storage Protocols
# =============================================================================


class RelationshipStore(Protocol):
    """Protocol for the external entity-relationship store.

    Thread Safety: All methods should be safe for concurrent calls.
    Every method may raise StoreUnavailableError.
    """

    async def upsert_relationship(
        self,
        from_ns: str,
        from_id: str,
        predicate: str,
        to_ns: str,
        to_id: str,
        properties: dict[str, Any],
        *,
        kind: EdgeKind = ...,
    ) -> str:
        """Insert or replace one row. Returns its id.

        Upsert Behavior:
            - Row id is derived from (kind, endpoints, predicate)
            - Existing row with that id -> properties replaced
            - Otherwise -> new row

        Args:
            from_ns: Subject namespace
            from_id: Subject id
            predicate: Verb id
            to_ns: Object namespace
            to_id: Object id
            properties: Row payload
            kind: OUTBOUND (keyed by subject) or INBOUND (keyed by object)

        Returns:
            The row id

        Raises:
            StoreUnavailableError: Store backend unavailable
        """
        ...

    async def query_relationships(
        self,
        pattern: RelationshipPattern,
        limit: int | None = None,
    ) -> list[Relationship]:
        """Outbound-indexed lookup.

        Args:
            pattern: Fields to match exactly; None fields match anything
            limit: Maximum rows to return

        Returns:
            Matching OUTBOUND rows. Empty list if none (not an error).

        Raises:
            StoreUnavailableError: Store backend unavailable
        """
        ...

    async def get_incoming_relationships(
        self,
        to_ns: str,
        to_id: str,
        predicate: str | None = None,
    ) -> list[Relationship]:
        """Inbound-indexed lookup: rows pointing at (to_ns, to_id).

        Returns:
            Matching INBOUND rows. Empty list if none (not an error).

        Raises:
            StoreUnavailableError: Store backend unavailable
        """
        ...

    async def get_relationship(self, relationship_id: str) -> Relationship | None:
        """Fetch one row by id. None if missing."""
        ...

    async def list_relationships(self, kind: EdgeKind) -> list[Relationship]:
        """All rows of one kind. Used by audits only, never by queries."""
        ...

    async def delete_relationship(self, relationship_id: str) -> bool:
        """Delete by id. Returns True if the row existed.

        Raises:
            StoreUnavailableError: Store backend unavailable
        """
        ...

    async def stats(self) -> StoreStats:
        """Row counts and subject distribution."""
        ...

    async def type_distribution(self) -> dict[str, int]:
        """Outbound row count per predicate."""
        ...

    def transaction(self) -> AsyncContextManager[None]:
        """Scope in which all writes commit together or not at all.

        Used for the two-row upsert and delete of a triple. Exiting with an
        exception rolls back every write made inside the scope.
        """
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...


class VocabularyStore(Protocol):
    """Protocol for persisting custom verbs and roles."""

    async def save_verb(self, verb: VerbDef) -> None:
        """Insert or replace a verb definition."""
        ...

    async def load_verbs(self) -> list[VerbDef]:
        """All persisted verb definitions."""
        ...

    async def save_role(self, role: RoleDef) -> None:
        """Insert or replace a role definition."""
        ...

    async def load_roles(self) -> list[RoleDef]:
        """All persisted role definitions."""
        ...

"""Entity, vocabulary and relationship schema for the triple graph.

Defines the nodes the engine references, the controlled vocabulary of
predicates and roles, and the physical rows kept in the external
relationship store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class EntityRef:
    """Addressable node in the external store.

    Frozen to be usable as dict key and in sets. Entities are owned by the
    store; the engine only references them.
    """

    namespace: str
    id: str

    @staticmethod
    def parse(text: str, *, default_namespace: str = "default") -> "EntityRef":
        """Build an EntityRef from "ns:id" or a bare "id".

        Only the first colon separates namespace from id, so ids may
        themselves contain colons.

        Args:
            text: Entity reference text
            default_namespace: Namespace used when text has none

        Returns:
            The parsed EntityRef

        Raises:
            ValueError: Empty reference, namespace or id
        """
        text = text.strip()
        if not text:
            raise ValueError("Entity reference is empty")
        namespace, sep, entity_id = text.partition(":")
        if not sep:
            return EntityRef(default_namespace, namespace)
        if not namespace or not entity_id:
            raise ValueError(f"Malformed entity reference: {text!r}")
        return EntityRef(namespace, entity_id)

    def __str__(self) -> str:
        return f"{self.namespace}:{self.id}"


class DangerLevel(Enum):
    """Risk classification of a verb."""

    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Direction(Enum):
    """Which edges a traversal follows from a node."""

    FORWARD = "forward"  # subject -> object
    BACKWARD = "backward"  # object -> subject
    BOTH = "both"


class EdgeKind(Enum):
    """Physical row kind. Every triple is stored as one of each."""

    OUTBOUND = "outbound"  # keyed by subject
    INBOUND = "inbound"  # keyed by object


@dataclass(frozen=True)
class VerbDef:
    """Predicate definition in the controlled vocabulary.

    Immutable: registration replaces the whole definition, so readers
    never see a half-updated verb.
    """

    id: str
    gerund: str
    category: str
    danger_level: DangerLevel = DangerLevel.SAFE
    required_role: frozenset[str] = field(default_factory=frozenset)
    requires_approval: bool = False
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "gerund": self.gerund,
            "category": self.category,
            "danger_level": self.danger_level.value,
            "required_role": sorted(self.required_role),
            "requires_approval": self.requires_approval,
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "VerbDef":
        """Build a VerbDef from its dict form.

        Raises:
            KeyError: "id" missing
            ValueError: danger_level is not a DangerLevel value
        """
        verb_id = data["id"]
        return VerbDef(
            id=verb_id,
            gerund=data.get("gerund") or verb_id,
            category=data.get("category") or "general",
            danger_level=DangerLevel(data.get("danger_level", "safe")),
            required_role=frozenset(data.get("required_role") or ()),
            requires_approval=bool(data.get("requires_approval", False)),
            description=data.get("description", ""),
        )


@dataclass(frozen=True)
class RoleDef:
    """Named capability set a subject may exercise.

    capabilities holds verb ids; "*" grants every registered verb.
    inherits lists parent roles, flattened at resolve time.
    """

    id: str
    capabilities: frozenset[str] = field(default_factory=frozenset)
    inherits: tuple[str, ...] = ()
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "capabilities": sorted(self.capabilities),
            "inherits": list(self.inherits),
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "RoleDef":
        return RoleDef(
            id=data["id"],
            capabilities=frozenset(data.get("capabilities") or ()),
            inherits=tuple(data.get("inherits") or ()),
            description=data.get("description", ""),
        )


@dataclass
class Relationship:
    """One physical row in the external relationship store.

    Both rows of a triple carry the same endpoints, predicate and
    properties; only kind and id differ.
    """

    id: str
    kind: EdgeKind
    from_ns: str
    from_id: str
    predicate: str
    to_ns: str
    to_id: str
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def source(self) -> EntityRef:
        return EntityRef(self.from_ns, self.from_id)

    @property
    def target(self) -> EntityRef:
        return EntityRef(self.to_ns, self.to_id)


@dataclass(frozen=True)
class RelationshipPattern:
    """Fixed-field filter over outbound rows. None matches anything."""

    from_ns: str | None = None
    from_id: str | None = None
    predicate: str | None = None
    to_ns: str | None = None
    to_id: str | None = None

    def matches(self, row: Relationship) -> bool:
        return (
            (self.from_ns is None or row.from_ns == self.from_ns)
            and (self.from_id is None or row.from_id == self.from_id)
            and (self.predicate is None or row.predicate == self.predicate)
            and (self.to_ns is None or row.to_ns == self.to_ns)
            and (self.to_id is None or row.to_id == self.to_id)
        )

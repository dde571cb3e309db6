"""Core data types for the triple engine.

These types flow through the whole engine:
TriplePattern -> TripleStore -> Triple -> TraversalEngine / QueryEngine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from urllib.parse import unquote

from triplegraph.core.schema import EdgeKind, EntityRef

_OUTBOUND_TAG = "rel"
_INBOUND_TAG = "inv"


def _escape(part: str) -> str:
    return part.replace("%", "%25").replace(":", "%3A")


def relationship_id(
    kind: EdgeKind,
    from_ns: str,
    from_id: str,
    predicate: str,
    to_ns: str,
    to_id: str,
) -> str:
    """Persisted id of one physical row.

    Outbound rows are keyed by the subject (fromNs:fromId:rel:...), inbound
    rows by the object (toNs:toId:inv:...).
    """
    if kind is EdgeKind.OUTBOUND:
        parts = [from_ns, from_id, _OUTBOUND_TAG, predicate, to_ns, to_id]
    else:
        parts = [to_ns, to_id, _INBOUND_TAG, predicate, from_ns, from_id]
    return ":".join(_escape(p) for p in parts)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class TripleID:
    """Immutable triple identifier.

    Derived from (subject, predicate, object) only, so writing the same fact
    twice addresses the same rows. The value is the outbound row id:
    fromNs:fromId:rel:predicate:toNs:toId, with ":" and "%" escaped inside
    each component so the encoding stays reversible.
    """

    value: str

    @staticmethod
    def from_parts(subject: EntityRef, predicate: str, obj: EntityRef) -> "TripleID":
        """Create TripleID from the identity key.

        Args:
            subject: Subject entity
            predicate: Verb id
            obj: Object entity

        Returns:
            TripleID encoding the key
        """
        return TripleID(
            relationship_id(EdgeKind.OUTBOUND, subject.namespace, subject.id, predicate, obj.namespace, obj.id)
        )

    def parse(self) -> tuple[EntityRef, str, EntityRef]:
        """Decode the identity key.

        Returns:
            (subject, predicate, object)

        Raises:
            ValueError: value is not a triple id
        """
        parts = self.value.split(":")
        if len(parts) != 6 or parts[2] != _OUTBOUND_TAG or not all(parts):
            raise ValueError(f"Not a triple id: {self.value!r}")
        from_ns, from_id, _, predicate, to_ns, to_id = (unquote(p) for p in parts)
        return EntityRef(from_ns, from_id), predicate, EntityRef(to_ns, to_id)

    @property
    def inbound_id(self) -> str:
        """Id of the mirrored row keyed by the object."""
        subject, predicate, obj = self.parse()
        return relationship_id(EdgeKind.INBOUND, subject.namespace, subject.id, predicate, obj.namespace, obj.id)

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class TemporalContext:
    """When: point in time, duration and recurrence of the fact."""

    timestamp: datetime | None = None
    duration: str | None = None  # ISO-8601 duration, e.g. "P30D"
    recurrence: str | None = None  # e.g. "monthly"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp.isoformat()
        if self.duration is not None:
            data["duration"] = self.duration
        if self.recurrence is not None:
            data["recurrence"] = self.recurrence
        return data


@dataclass(frozen=True)
class SpatialContext:
    """Where: named location and optional (lat, lon)."""

    location: str | None = None
    coordinates: tuple[float, float] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.location is not None:
            data["location"] = self.location
        if self.coordinates is not None:
            data["coordinates"] = list(self.coordinates)
        return data


@dataclass(frozen=True)
class CausalContext:
    """Why and how: reason, triggering event, method used."""

    reason: str | None = None
    trigger: str | None = None
    method: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in (("reason", self.reason), ("trigger", self.trigger), ("method", self.method)) if v is not None}


@dataclass(frozen=True)
class TripleContext:
    """Typed metadata on a triple. Never part of its identity."""

    temporal: TemporalContext | None = None
    spatial: SpatialContext | None = None
    causal: CausalContext | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.temporal is not None:
            data["temporal"] = self.temporal.to_dict()
        if self.spatial is not None:
            data["spatial"] = self.spatial.to_dict()
        if self.causal is not None:
            data["causal"] = self.causal.to_dict()
        return data

    @staticmethod
    def from_dict(data: dict[str, Any] | None) -> "TripleContext":
        """Build context from its nested-map form.

        Raises:
            ValueError: Unknown section or field, or a bad timestamp
        """
        if not data:
            return TripleContext()
        unknown = set(data) - {"temporal", "spatial", "causal"}
        if unknown:
            raise ValueError(f"Unknown context sections: {sorted(unknown)}")

        temporal = spatial = causal = None
        try:
            if data.get("temporal") is not None:
                t = dict(data["temporal"])
                temporal = TemporalContext(
                    timestamp=_parse_timestamp(t.pop("timestamp", None)),
                    duration=t.pop("duration", None),
                    recurrence=t.pop("recurrence", None),
                )
                if t:
                    raise ValueError(f"Unknown temporal fields: {sorted(t)}")
            if data.get("spatial") is not None:
                s = dict(data["spatial"])
                coords = s.pop("coordinates", None)
                spatial = SpatialContext(
                    location=s.pop("location", None),
                    coordinates=(float(coords[0]), float(coords[1])) if coords else None,
                )
                if s:
                    raise ValueError(f"Unknown spatial fields: {sorted(s)}")
            if data.get("causal") is not None:
                causal = CausalContext(**data["causal"])
        except TypeError as e:
            raise ValueError(f"Malformed context: {e}") from e
        return TripleContext(temporal=temporal, spatial=spatial, causal=causal)


# =============================================================================
# Triples
# =============================================================================


@dataclass
class Triple:
    """A semantic fact: subject performs predicate on object.

    Identity is (subject, predicate, object); context, confidence and
    timestamps are payload refreshed on re-create.
    """

    id: TripleID
    subject: EntityRef
    predicate: str
    object: EntityRef
    context: TripleContext = field(default_factory=TripleContext)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    created_by: str = "system"
    confidence: float = 1.0
    pending_approval: bool = False

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")

    def to_properties(self) -> dict[str, Any]:
        """Payload stored on both physical rows."""
        props: dict[str, Any] = {
            "triple_id": self.id.value,
            "context": self.context.to_dict(),
            "confidence": self.confidence,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "created_by": self.created_by,
        }
        if self.pending_approval:
            props["approval"] = "pending"
        return props

    @staticmethod
    def from_row(
        subject: EntityRef,
        predicate: str,
        obj: EntityRef,
        properties: dict[str, Any],
    ) -> "Triple":
        """Rebuild a Triple from a stored row's endpoints and properties."""
        now = utc_now()
        return Triple(
            id=TripleID.from_parts(subject, predicate, obj),
            subject=subject,
            predicate=predicate,
            object=obj,
            context=TripleContext.from_dict(properties.get("context")),
            created_at=_parse_timestamp(properties.get("created_at")) or now,
            updated_at=_parse_timestamp(properties.get("updated_at")) or now,
            created_by=properties.get("created_by", "system"),
            confidence=float(properties.get("confidence", 1.0)),
            pending_approval=properties.get("approval") == "pending",
        )


@dataclass(frozen=True)
class TriplePattern:
    """Fixed-field filter over triples. None is the wildcard.

    A triple matches iff every non-wildcard field equals the triple's field
    exactly.
    """

    subject: EntityRef | None = None
    predicate: str | None = None
    object: EntityRef | None = None

    @property
    def is_wildcard(self) -> bool:
        """True when no field is pinned."""
        return self.subject is None and self.predicate is None and self.object is None

    def matches(self, triple: Triple) -> bool:
        return (
            (self.subject is None or triple.subject == self.subject)
            and (self.predicate is None or triple.predicate == self.predicate)
            and (self.object is None or triple.object == self.object)
        )

    @staticmethod
    def from_strings(
        subject: str | None = None,
        predicate: str | None = None,
        obj: str | None = None,
        *,
        default_namespace: str = "default",
    ) -> "TriplePattern":
        """Build a pattern from caller strings.

        "*", "?", "?name", "" and None all mean wildcard.
        """

        def is_wild(term: str | None) -> bool:
            return term is None or term.strip() in ("", "*") or term.strip().startswith("?")

        return TriplePattern(
            subject=None if is_wild(subject) else EntityRef.parse(subject, default_namespace=default_namespace),  # type: ignore[arg-type]
            predicate=None if is_wild(predicate) else predicate.strip(),  # type: ignore[union-attr]
            object=None if is_wild(obj) else EntityRef.parse(obj, default_namespace=default_namespace),  # type: ignore[arg-type]
        )

    def __str__(self) -> str:
        return " ".join(
            "*" if term is None else str(term) for term in (self.subject, self.predicate, self.object)
        )


@dataclass(frozen=True)
class CapabilityResult:
    """Outcome of a capability check.

    reason is set only on denial and distinguishes "unknown verb",
    "unknown role", "role lacks capability" and
    "verb restricted to other roles".
    """

    allowed: bool
    requires_approval: bool = False
    reason: str | None = None

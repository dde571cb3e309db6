"""Tests for core data types."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from triplegraph.core.schema import DangerLevel, EdgeKind, EntityRef, RoleDef, VerbDef
from triplegraph.core.types import (
    CausalContext,
    TemporalContext,
    Triple,
    TripleContext,
    TripleID,
    TriplePattern,
    relationship_id,
)


class TestEntityRef:
    """Tests for entity reference parsing."""

    def test_parse_bare_id_uses_default_namespace(self) -> None:
        """A bare id lands in the default namespace."""
        assert EntityRef.parse("accountant") == EntityRef("default", "accountant")

    def test_parse_custom_default_namespace(self) -> None:
        """Caller may choose the default namespace."""
        assert EntityRef.parse("x", default_namespace="erp") == EntityRef("erp", "x")

    def test_parse_splits_on_first_colon(self) -> None:
        """Ids may contain colons."""
        ref = EntityRef.parse("erp:invoice:2024:17")
        assert ref.namespace == "erp"
        assert ref.id == "invoice:2024:17"

    @pytest.mark.parametrize("text", ["", "   ", ":x", "erp:"])
    def test_parse_rejects_malformed(self, text: str) -> None:
        """Empty references and empty parts are errors."""
        with pytest.raises(ValueError):
            EntityRef.parse(text)

    def test_str_round_trips(self) -> None:
        """str() gives the ns:id form parse accepts."""
        ref = EntityRef("crm", "client_1")
        assert EntityRef.parse(str(ref)) == ref

    def test_hashable(self) -> None:
        """Equal refs collapse in a set."""
        assert len({EntityRef("a", "b"), EntityRef("a", "b")}) == 1


class TestTripleID:
    """Tests for triple identity encoding."""

    def test_same_key_same_id(self) -> None:
        """Identity depends only on subject, predicate, object."""
        a = TripleID.from_parts(EntityRef("d", "accountant"), "invoicing", EntityRef("d", "invoice_123"))
        b = TripleID.from_parts(EntityRef("d", "accountant"), "invoicing", EntityRef("d", "invoice_123"))
        assert a == b
        assert a.value == "d:accountant:rel:invoicing:d:invoice_123"

    def test_parse_recovers_parts_with_colons(self) -> None:
        """Escaping keeps ids with colons and percent signs reversible."""
        subject = EntityRef("erp", "user:42")
        obj = EntityRef("erp", "invoice%2024:17")
        tid = TripleID.from_parts(subject, "invoicing", obj)
        assert tid.parse() == (subject, "invoicing", obj)

    def test_distinct_keys_never_collide(self) -> None:
        """Colons inside ids cannot fake a different split."""
        a = TripleID.from_parts(EntityRef("a", "b:c"), "p", EntityRef("d", "e"))
        b = TripleID.from_parts(EntityRef("a", "b"), "c", EntityRef("d", "e"))
        assert a != b

    def test_inbound_id_keyed_by_object(self) -> None:
        """The mirrored row id starts with the object."""
        tid = TripleID.from_parts(EntityRef("d", "s"), "p", EntityRef("d", "o"))
        assert tid.inbound_id == "d:o:inv:p:d:s"
        assert tid.inbound_id == relationship_id(EdgeKind.INBOUND, "d", "s", "p", "d", "o")

    @pytest.mark.parametrize("value", ["", "a:b:c", "d:o:inv:p:d:s", "a:b:rel:p:c"])
    def test_parse_rejects_non_triple_ids(self, value: str) -> None:
        """Inbound ids and short strings are not triple ids."""
        with pytest.raises(ValueError):
            TripleID(value).parse()


class TestTripleContext:
    """Tests for context serialization."""

    def test_empty_context_is_empty_dict(self) -> None:
        """No sections, no keys."""
        assert TripleContext().to_dict() == {}
        assert TripleContext.from_dict(None) == TripleContext()

    def test_from_dict_parses_timestamp(self) -> None:
        """ISO timestamps with a Z suffix are accepted."""
        ctx = TripleContext.from_dict({"temporal": {"timestamp": "2024-03-01T10:00:00Z", "recurrence": "monthly"}})
        assert ctx.temporal == TemporalContext(
            timestamp=datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc),
            recurrence="monthly",
        )

    def test_to_dict_from_dict_preserves_sections(self) -> None:
        """Spatial and causal sections survive serialization."""
        data = {
            "spatial": {"location": "Berlin", "coordinates": [52.52, 13.405]},
            "causal": {"reason": "month end", "method": "batch"},
        }
        ctx = TripleContext.from_dict(data)
        assert ctx.causal == CausalContext(reason="month end", method="batch")
        assert ctx.to_dict() == data

    def test_unknown_section_rejected(self) -> None:
        """Only temporal, spatial and causal are allowed."""
        with pytest.raises(ValueError, match="Unknown context sections"):
            TripleContext.from_dict({"mood": {"value": "happy"}})

    def test_unknown_field_rejected(self) -> None:
        """Misspelled fields are errors, not silently dropped."""
        with pytest.raises(ValueError):
            TripleContext.from_dict({"causal": {"reasn": "typo"}})


class TestTriple:
    """Tests for the Triple record."""

    def _triple(self, **kwargs: object) -> Triple:
        subject, obj = EntityRef("d", "accountant"), EntityRef("d", "invoice_123")
        return Triple(
            id=TripleID.from_parts(subject, "invoicing", obj),
            subject=subject,
            predicate="invoicing",
            object=obj,
            **kwargs,  # type: ignore[arg-type]
        )

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_bounds(self, confidence: float) -> None:
        """Confidence outside [0, 1] is rejected."""
        with pytest.raises(ValueError):
            self._triple(confidence=confidence)

    def test_properties_mark_pending_approval(self) -> None:
        """Approval flag is persisted only when set."""
        assert "approval" not in self._triple().to_properties()
        assert self._triple(pending_approval=True).to_properties()["approval"] == "pending"

    def test_from_row_restores_payload(self) -> None:
        """A stored row rebuilds an equal triple."""
        original = self._triple(
            confidence=0.5,
            created_by="alice",
            context=TripleContext(causal=CausalContext(reason="audit")),
        )
        rebuilt = Triple.from_row(original.subject, original.predicate, original.object, original.to_properties())
        assert rebuilt == original


class TestTriplePattern:
    """Tests for pattern construction and matching."""

    @pytest.mark.parametrize("term", [None, "", "*", "?", "?invoice"])
    def test_wildcard_terms(self, term: str | None) -> None:
        """All wildcard spellings leave the field open."""
        assert TriplePattern.from_strings(term, term, term).is_wildcard

    def test_pinned_fields(self) -> None:
        """Values become exact filters."""
        pattern = TriplePattern.from_strings("accountant", "invoicing", "*")
        assert pattern.subject == EntityRef("default", "accountant")
        assert pattern.predicate == "invoicing"
        assert pattern.object is None
        assert str(pattern) == "default:accountant invoicing *"

    def test_matching_is_exact(self) -> None:
        """No prefix or case-insensitive matches."""
        subject, obj = EntityRef("d", "accountant"), EntityRef("d", "invoice_1")
        triple = Triple(TripleID.from_parts(subject, "invoicing", obj), subject, "invoicing", obj)
        assert TriplePattern(predicate="invoicing").matches(triple)
        assert not TriplePattern(predicate="Invoicing").matches(triple)
        assert not TriplePattern(subject=EntityRef("d", "account")).matches(triple)


class TestDefinitions:
    """Tests for VerbDef/RoleDef dict forms."""

    def test_verb_dict_round_trip(self) -> None:
        """Dict form restores the same definition."""
        verb = VerbDef("auditing", "auditing", "compliance", DangerLevel.MEDIUM, frozenset({"auditor"}))
        assert VerbDef.from_dict(verb.to_dict()) == verb

    def test_verb_defaults(self) -> None:
        """Only id is required."""
        verb = VerbDef.from_dict({"id": "expediting"})
        assert verb.gerund == "expediting"
        assert verb.category == "general"
        assert verb.danger_level is DangerLevel.SAFE

    def test_verb_bad_danger_level(self) -> None:
        """Unknown danger levels are rejected."""
        with pytest.raises(ValueError):
            VerbDef.from_dict({"id": "x", "danger_level": "apocalyptic"})

    def test_role_dict_round_trip(self) -> None:
        """Inheritance order survives."""
        role = RoleDef("dispatcher", frozenset({"shipping"}), ("warehouse_clerk", "viewer"))
        assert RoleDef.from_dict(role.to_dict()) == role

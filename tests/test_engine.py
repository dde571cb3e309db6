"""End-to-end tests through the TripleGraphEngine facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from triplegraph import (
    CapabilityDeniedError,
    EntityRef,
    InvalidPatternError,
    RoleDef,
    TripleGraphEngine,
    UnknownVerbError,
    VerbDef,
    VocabularyError,
)
from triplegraph.storage.memory import InMemoryRelationshipStore
from triplegraph.storage.sqlite_store import SQLiteRelationshipStore


@pytest.fixture
def engine() -> TripleGraphEngine:
    return TripleGraphEngine()


async def invoice_chain(engine: TripleGraphEngine) -> None:
    await engine.create_triple("accountant", "invoicing", "invoice_123", created_by="test")
    await engine.create_triple("invoice_123", "relatesTo", "client_1", created_by="test", role="accountant")


class TestScenarios:
    """The reference walkthrough of the engine."""

    def test_restricted_verb(self, engine: TripleGraphEngine) -> None:
        """Accountant cannot audit once auditing is reserved for auditors."""
        result = engine.check_capability("accountant", "auditing")
        assert not result.allowed
        assert result.reason == "verb restricted to other roles"

    @pytest.mark.asyncio
    async def test_idempotent_create_updates_context(self, engine: TripleGraphEngine) -> None:
        """Creating twice keeps the id and refreshes the context."""
        first = await engine.create_triple("accountant", "invoicing", "invoice_123", created_by="test")
        assert first.confidence == 1.0
        second = await engine.create_triple(
            "accountant",
            "invoicing",
            "invoice_123",
            created_by="test",
            context={"temporal": {"timestamp": "2024-06-30T00:00:00+00:00"}},
        )
        assert second.id == first.id
        stored = await engine.get_triple(first.id)
        assert stored is not None
        assert stored.context.to_dict() == {"temporal": {"timestamp": "2024-06-30T00:00:00+00:00"}}

    @pytest.mark.asyncio
    async def test_two_hop_traversal(self, engine: TripleGraphEngine) -> None:
        """Forward traversal of depth 2 covers the whole chain."""
        await invoice_chain(engine)
        result = await engine.traverse("accountant", depth=2)
        assert {n.id for n in result.nodes} == {"accountant", "invoice_123", "client_1"}
        assert len(result.edges) == 2

    @pytest.mark.asyncio
    async def test_path_depth(self, engine: TripleGraphEngine) -> None:
        """The two-hop path needs max_depth 2."""
        await invoice_chain(engine)
        assert await engine.find_paths("accountant", "client_1", max_depth=1) == []
        paths = await engine.find_paths("accountant", "client_1", max_depth=2)
        assert [p.length for p in paths] == [2]

    @pytest.mark.asyncio
    async def test_wildcard_match_rejected(self, engine: TripleGraphEngine) -> None:
        """Matching everything is refused."""
        with pytest.raises(InvalidPatternError):
            await engine.match("*", "*", "*")

    def test_admin_wildcard_needs_registered_verb(self, engine: TripleGraphEngine) -> None:
        """The "*" capability does not invent verbs."""
        result = engine.check_capability("admin", "anything-unregistered")
        assert result.reason == "unknown verb"


class TestTriples:
    """Tests for triple operations on the facade."""

    @pytest.mark.asyncio
    async def test_entity_strings_and_refs_interchangeable(self, engine: TripleGraphEngine) -> None:
        """Prefixed ids, bare ids and EntityRef address the same entity."""
        await engine.create_triple(
            "default:accountant", "invoicing", EntityRef("default", "invoice_123"), created_by="test"
        )
        assert len(await engine.match(subject="accountant")) == 1
        assert len(await engine.match(subject=EntityRef("default", "accountant"))) == 1
        assert len(await engine.match(obj="default:invoice_123")) == 1

    @pytest.mark.asyncio
    async def test_denied_create(self, engine: TripleGraphEngine) -> None:
        """Viewers cannot invoice."""
        with pytest.raises(CapabilityDeniedError):
            await engine.create_triple("viewer", "invoicing", "invoice_123", created_by="test")

    @pytest.mark.asyncio
    async def test_create_requires_author(self, engine: TripleGraphEngine) -> None:
        """Triples cannot be stored without naming who wrote them."""
        with pytest.raises(TypeError):
            await engine.create_triple("accountant", "invoicing", "invoice_123")  # type: ignore[call-arg]
        assert (await engine.query_triples(predicate="invoicing")).total == 0

    @pytest.mark.asyncio
    async def test_author_recorded(self, engine: TripleGraphEngine) -> None:
        """created_by is kept on the stored triple."""
        triple = await engine.create_triple("accountant", "invoicing", "invoice_123", created_by="clerk_7")
        stored = await engine.get_triple(triple.id)
        assert stored is not None
        assert stored.created_by == "clerk_7"

    @pytest.mark.asyncio
    async def test_direction_names(self, engine: TripleGraphEngine) -> None:
        """Traversal and neighbour lookups take direction names; unknown ones raise."""
        await invoice_chain(engine)
        result = await engine.traverse("client_1", depth=2, direction="backward")
        assert {n.id for n in result.nodes} == {"accountant", "invoice_123", "client_1"}
        assert await engine.get_neighbors("invoice_123", "forward") == [EntityRef("default", "client_1")]
        with pytest.raises(ValueError):
            await engine.get_neighbors("invoice_123", "sideways")
        with pytest.raises(ValueError):
            await engine.traverse("accountant", direction="sideways")

    @pytest.mark.asyncio
    async def test_unknown_verb_create(self, engine: TripleGraphEngine) -> None:
        """Unregistered verbs are rejected."""
        with pytest.raises(UnknownVerbError):
            await engine.create_triple("admin", "teleporting", "invoice_123", created_by="test")

    @pytest.mark.asyncio
    async def test_delete_and_query(self, engine: TripleGraphEngine) -> None:
        """Deleted triples leave queries and traversal."""
        await invoice_chain(engine)
        page = await engine.query_triples(predicate="invoicing")
        assert page.total == 1
        assert await engine.delete_triple(page.triples[0].id) is True
        assert (await engine.query_triples(predicate="invoicing")).total == 0
        assert await engine.get_neighbors("invoice_123") == [EntityRef("default", "client_1")]

    @pytest.mark.asyncio
    async def test_execute_query(self, engine: TripleGraphEngine) -> None:
        """Textual queries run through the same matcher."""
        await invoice_chain(engine)
        found = await engine.execute_query("?who invoicing invoice_123")
        assert [t.subject.id for t in found] == ["accountant"]

    @pytest.mark.asyncio
    async def test_stats_and_audit(self, engine: TripleGraphEngine) -> None:
        """Stats count triples; the audit finds nothing unpaired."""
        await invoice_chain(engine)
        stats = await engine.stats()
        assert stats.triple_count == 2
        assert stats.role_distribution == {"accountant": 1, "invoice_123": 1}
        assert await engine.find_unpaired() == []

    @pytest.mark.asyncio
    async def test_graph_helpers(self, engine: TripleGraphEngine) -> None:
        """Shortest path, subgraph, common neighbours and degree."""
        await invoice_chain(engine)
        path = await engine.shortest_path("accountant", "client_1")
        assert path is not None and path.length == 2
        sub = await engine.subgraph("invoice_123")
        assert len(sub.nodes) == 3
        assert await engine.common_neighbors("accountant", "accountant") == [EntityRef("default", "invoice_123")]
        assert (await engine.node_degree("invoice_123")).total == 2


class TestVocabulary:
    """Tests for vocabulary management on the facade."""

    @pytest.mark.asyncio
    async def test_register_verb_and_role(self, engine: TripleGraphEngine) -> None:
        """New verbs and roles are usable immediately."""
        await engine.register_verb(VerbDef("expediting", "expediting", "supply-chain"))
        await engine.register_role(RoleDef("dispatcher", frozenset({"expediting"}), ("warehouse_clerk",)))
        assert engine.resolve_verb("expediting") is not None
        assert engine.resolve_role("dispatcher") is not None
        assert "shipping" in engine.get_role_capabilities("dispatcher")
        triple = await engine.create_triple("dispatcher", "expediting", "order_7", created_by="test")
        assert triple.predicate == "expediting"

    def test_listings(self, engine: TripleGraphEngine) -> None:
        """Verbs filter by category; roles are sorted."""
        assert {v.id for v in engine.list_verbs("people")} == {"hiring", "onboarding"}
        role_ids = [r.id for r in engine.list_roles()]
        assert role_ids == sorted(role_ids)

    @pytest.mark.asyncio
    async def test_vocabulary_persists_across_engines(self) -> None:
        """A second engine over the same vocabulary store reloads custom definitions."""
        vocab = InMemoryRelationshipStore()
        first = TripleGraphEngine(vocabulary_store=vocab)
        await first.register_verb(VerbDef("expediting", "expediting", "supply-chain"))
        await first.register_role(RoleDef("dispatcher", frozenset({"expediting"})))

        second = TripleGraphEngine(vocabulary_store=vocab)
        assert second.resolve_verb("expediting") is None
        assert await second.load_vocabulary() == (1, 1)
        assert second.check_capability("dispatcher", "expediting").allowed

    @pytest.mark.asyncio
    async def test_load_without_store(self, engine: TripleGraphEngine) -> None:
        """Loading with no vocabulary store is a no-op."""
        assert await engine.load_vocabulary() == (0, 0)

    @pytest.mark.asyncio
    async def test_import_yaml(self, engine: TripleGraphEngine, tmp_path: Path) -> None:
        """YAML files register verbs and roles."""
        path = tmp_path / "vocab.yaml"
        path.write_text(
            "verbs:\n  - id: expediting\n    category: supply-chain\n"
            "roles:\n  - id: dispatcher\n    capabilities: [expediting]\n",
            encoding="utf-8",
        )
        assert await engine.import_vocabulary(path) == (1, 1)
        assert engine.check_capability("dispatcher", "expediting").allowed

    @pytest.mark.asyncio
    async def test_import_bad_yaml(self, engine: TripleGraphEngine, tmp_path: Path) -> None:
        """Malformed files register nothing."""
        path = tmp_path / "vocab.yaml"
        path.write_text("verbs:\n  - category: orphan\n", encoding="utf-8")
        before = len(engine.list_verbs())
        with pytest.raises(VocabularyError):
            await engine.import_vocabulary(path)
        assert len(engine.list_verbs()) == before


class TestSQLiteEngine:
    """The engine over a persistent store."""

    @pytest.mark.asyncio
    async def test_triples_survive_restart(self, tmp_path: Path) -> None:
        """Triples and custom verbs reload from disk."""
        db = tmp_path / "graph.db"
        store = SQLiteRelationshipStore(db)
        async with TripleGraphEngine(store=store, vocabulary_store=store) as engine:
            await engine.register_verb(VerbDef("expediting", "expediting", "supply-chain"))
            await invoice_chain(engine)

        store = SQLiteRelationshipStore(db)
        async with TripleGraphEngine(store=store, vocabulary_store=store) as engine:
            await engine.load_vocabulary()
            assert engine.resolve_verb("expediting") is not None
            paths = await engine.find_paths("accountant", "client_1", max_depth=2)
            assert len(paths) == 1

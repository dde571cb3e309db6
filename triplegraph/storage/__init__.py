"""RelationshipStore implementations."""

from triplegraph.storage.memory import InMemoryRelationshipStore
from triplegraph.storage.sqlite_store import SQLiteRelationshipStore

__all__ = ["InMemoryRelationshipStore", "SQLiteRelationshipStore"]

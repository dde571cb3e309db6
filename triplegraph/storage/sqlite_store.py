"""SQLite-backed relationship and vocabulary store.

Implements RelationshipStore and VocabularyStore over a single sqlite3
connection. Every sqlite3.Error surfaces as StoreUnavailableError.
"""

from __future__ import annotations

import asyncio
import contextvars
import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from triplegraph.core.errors import StoreUnavailableError
from triplegraph.core.protocols import StoreStats
from triplegraph.core.schema import EdgeKind, Relationship, RelationshipPattern, RoleDef, VerbDef
from triplegraph.core.types import relationship_id

logger = logging.getLogger(__name__)

_PATTERN_COLUMNS = ("from_ns", "from_id", "predicate", "to_ns", "to_id")

# ids of stores with a transaction open in the current task
_open_transactions: contextvars.ContextVar[frozenset[int]] = contextvars.ContextVar(
    "triplegraph_open_transactions", default=frozenset()
)


class SQLiteRelationshipStore:
    """SQLite-backed RelationshipStore for persistent storage.

    Schema:
        relationships(
            id TEXT PRIMARY KEY,
            kind TEXT NOT NULL,          -- "outbound" | "inbound"
            from_ns, from_id, predicate, to_ns, to_id TEXT NOT NULL,
            properties TEXT NOT NULL     -- JSON
        )
        verbs(id TEXT PRIMARY KEY, definition TEXT NOT NULL)
        roles(id TEXT PRIMARY KEY, definition TEXT NOT NULL)

    Writes outside transaction() commit immediately. Writes inside it
    commit together when the block exits cleanly and roll back otherwise.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        """Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file. Created if doesn't exist.

        Raises:
            StoreUnavailableError: Database cannot be opened
        """
        self._db_path = str(db_path)
        try:
            self._conn = sqlite3.connect(self._db_path)
            self._conn.row_factory = sqlite3.Row
            self._create_tables()
        except sqlite3.Error as e:
            raise StoreUnavailableError("connect", str(e)) from e
        self._write_lock = asyncio.Lock()

    def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS relationships (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                from_ns TEXT NOT NULL,
                from_id TEXT NOT NULL,
                predicate TEXT NOT NULL,
                to_ns TEXT NOT NULL,
                to_id TEXT NOT NULL,
                properties TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_relationships_source
            ON relationships(kind, from_ns, from_id, predicate)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_relationships_target
            ON relationships(kind, to_ns, to_id, predicate)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_relationships_predicate
            ON relationships(kind, predicate)
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS verbs (
                id TEXT PRIMARY KEY,
                definition TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS roles (
                id TEXT PRIMARY KEY,
                definition TEXT NOT NULL
            )
        """)
        self._conn.commit()

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
        await self._write(
            "upsert",
            """
            INSERT INTO relationships (id, kind, from_ns, from_id, predicate, to_ns, to_id, properties)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET properties = excluded.properties
            """,
            (row_id, kind.value, from_ns, from_id, predicate, to_ns, to_id, json.dumps(properties)),
        )
        return row_id

    async def query_relationships(
        self,
        pattern: RelationshipPattern,
        limit: int | None = None,
    ) -> list[Relationship]:
        """Outbound rows matching pattern, in insertion order."""
        clauses = ["kind = ?"]
        params: list[Any] = [EdgeKind.OUTBOUND.value]
        for column in _PATTERN_COLUMNS:
            value = getattr(pattern, column)
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        sql = f"SELECT * FROM relationships WHERE {' AND '.join(clauses)} ORDER BY rowid"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        return self._read("query", sql, params)

    async def get_incoming_relationships(
        self,
        to_ns: str,
        to_id: str,
        predicate: str | None = None,
    ) -> list[Relationship]:
        """Inbound rows pointing at (to_ns, to_id)."""
        sql = "SELECT * FROM relationships WHERE kind = ? AND to_ns = ? AND to_id = ?"
        params: list[Any] = [EdgeKind.INBOUND.value, to_ns, to_id]
        if predicate is not None:
            sql += " AND predicate = ?"
            params.append(predicate)
        return self._read("incoming", sql + " ORDER BY rowid", params)

    async def get_relationship(self, relationship_id: str) -> Relationship | None:
        rows = self._read("get", "SELECT * FROM relationships WHERE id = ?", [relationship_id])
        return rows[0] if rows else None

    async def list_relationships(self, kind: EdgeKind) -> list[Relationship]:
        return self._read("list", "SELECT * FROM relationships WHERE kind = ? ORDER BY rowid", [kind.value])

    async def delete_relationship(self, relationship_id: str) -> bool:
        """Delete by id. Returns True if the row existed."""
        deleted = await self._write("delete", "DELETE FROM relationships WHERE id = ?", (relationship_id,))
        return deleted > 0

    async def stats(self) -> StoreStats:
        try:
            kinds = {
                row["kind"]: row["count"]
                for row in self._conn.execute("SELECT kind, COUNT(*) AS count FROM relationships GROUP BY kind")
            }
            subjects = {
                row["from_id"]: row["count"]
                for row in self._conn.execute(
                    "SELECT from_id, COUNT(*) AS count FROM relationships WHERE kind = ? GROUP BY from_id",
                    (EdgeKind.OUTBOUND.value,),
                )
            }
        except sqlite3.Error as e:
            raise StoreUnavailableError("stats", str(e)) from e
        return StoreStats(
            outbound_count=kinds.get(EdgeKind.OUTBOUND.value, 0),
            inbound_count=kinds.get(EdgeKind.INBOUND.value, 0),
            subject_distribution=subjects,
        )

    async def type_distribution(self) -> dict[str, int]:
        try:
            cursor = self._conn.execute(
                "SELECT predicate, COUNT(*) AS count FROM relationships WHERE kind = ? GROUP BY predicate",
                (EdgeKind.OUTBOUND.value,),
            )
            return {row["predicate"]: row["count"] for row in cursor.fetchall()}
        except sqlite3.Error as e:
            raise StoreUnavailableError("type_distribution", str(e)) from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit every write in the block together, or none of them."""
        async with self._write_lock:
            token = _open_transactions.set(_open_transactions.get() | {id(self)})
            try:
                yield
            except BaseException:
                self._rollback()
                raise
            else:
                try:
                    self._conn.commit()
                except sqlite3.Error as e:
                    self._rollback()
                    raise StoreUnavailableError("commit", str(e)) from e
            finally:
                _open_transactions.reset(token)

    async def close(self) -> None:
        """Close database connection."""
        self._conn.close()

    async def __aenter__(self) -> "SQLiteRelationshipStore":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # -- VocabularyStore ---------------------------------------------------

    async def save_verb(self, verb: VerbDef) -> None:
        await self._write(
            "save_verb",
            "INSERT OR REPLACE INTO verbs (id, definition) VALUES (?, ?)",
            (verb.id, json.dumps(verb.to_dict())),
        )

    async def load_verbs(self) -> list[VerbDef]:
        try:
            cursor = self._conn.execute("SELECT definition FROM verbs ORDER BY id")
            return [VerbDef.from_dict(json.loads(row["definition"])) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreUnavailableError("load_verbs", str(e)) from e

    async def save_role(self, role: RoleDef) -> None:
        await self._write(
            "save_role",
            "INSERT OR REPLACE INTO roles (id, definition) VALUES (?, ?)",
            (role.id, json.dumps(role.to_dict())),
        )

    async def load_roles(self) -> list[RoleDef]:
        try:
            cursor = self._conn.execute("SELECT definition FROM roles ORDER BY id")
            return [RoleDef.from_dict(json.loads(row["definition"])) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreUnavailableError("load_roles", str(e)) from e

    # -- internals ---------------------------------------------------------

    async def _write(self, operation: str, sql: str, params: tuple[Any, ...]) -> int:
        """Execute one write. Commits unless inside transaction()."""
        if id(self) in _open_transactions.get():
            return self._execute(operation, sql, params)
        async with self._write_lock:
            count = self._execute(operation, sql, params)
            try:
                self._conn.commit()
            except sqlite3.Error as e:
                self._rollback()
                raise StoreUnavailableError(operation, str(e)) from e
            return count

    def _execute(self, operation: str, sql: str, params: tuple[Any, ...]) -> int:
        try:
            return self._conn.execute(sql, params).rowcount
        except sqlite3.Error as e:
            raise StoreUnavailableError(operation, str(e)) from e

    def _read(self, operation: str, sql: str, params: list[Any]) -> list[Relationship]:
        try:
            cursor = self._conn.execute(sql, params)
            return [self._row_to_relationship(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise StoreUnavailableError(operation, str(e)) from e

    def _rollback(self) -> None:
        try:
            self._conn.rollback()
        except sqlite3.Error as e:
            logger.error("sqlite_rollback_failed db=%s error=%s", self._db_path, e)

    def _row_to_relationship(self, row: sqlite3.Row) -> Relationship:
        """Convert database row to Relationship."""
        return Relationship(
            id=row["id"],
            kind=EdgeKind(row["kind"]),
            from_ns=row["from_ns"],
            from_id=row["from_id"],
            predicate=row["predicate"],
            to_ns=row["to_ns"],
            to_id=row["to_id"],
            properties=json.loads(row["properties"]),
        )

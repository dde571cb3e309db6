"""Verb registry: the controlled vocabulary of predicates.

Readers never lock. Writers serialize on a lock, build a new mapping and
publish it with a single attribute assignment, so a reader sees either the
old definition or the new one, never a mix.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from triplegraph.core.schema import VerbDef

logger = logging.getLogger(__name__)


class VerbRegistry:
    """Catalog of predicate definitions, keyed by verb id."""

    def __init__(self, seed: Iterable[VerbDef] = ()) -> None:
        """Initialize the registry.

        Args:
            seed: Definitions available from the start, e.g. config.SEED_VERBS
        """
        self._verbs: dict[str, VerbDef] = {v.id: v for v in seed}
        self._write_lock = threading.Lock()

    def resolve(self, verb_id: str) -> VerbDef | None:
        """Look up a verb. None if unknown."""
        return self._verbs.get(verb_id)

    def register(self, verb: VerbDef) -> VerbDef:
        """Add or replace a verb definition.

        Visible to every subsequent resolve as soon as this returns.

        Args:
            verb: The definition to publish

        Returns:
            The published definition
        """
        if not verb.id:
            raise ValueError("Verb id must be non-empty")
        with self._write_lock:
            replaced = verb.id in self._verbs
            self._verbs = {**self._verbs, verb.id: verb}
        logger.info("verb_registered id=%s category=%s replaced=%s", verb.id, verb.category, replaced)
        return verb

    def unregister(self, verb_id: str) -> bool:
        """Remove a verb. Returns True if it existed.

        Triples already using the verb are left in place.
        """
        with self._write_lock:
            if verb_id not in self._verbs:
                return False
            self._verbs = {k: v for k, v in self._verbs.items() if k != verb_id}
        logger.info("verb_unregistered id=%s", verb_id)
        return True

    def list(self, category: str | None = None) -> list[VerbDef]:
        """All verbs sorted by id, optionally filtered by category."""
        verbs = self._verbs.values()
        if category is not None:
            verbs = [v for v in verbs if v.category == category]  # type: ignore[assignment]
        return sorted(verbs, key=lambda v: v.id)

    def categories(self) -> list[str]:
        """Distinct categories, sorted."""
        return sorted({v.category for v in self._verbs.values()})

    def __contains__(self, verb_id: object) -> bool:
        return verb_id in self._verbs

    def __len__(self) -> int:
        return len(self._verbs)

"""Triple CRUD over paired relationship rows."""

from triplegraph.store.triples import TripleStore

__all__ = ["TripleStore"]

"""Traversal and query over the stored triple graph."""

from triplegraph.graph.query import GraphStats, QueryEngine, QueryPage
from triplegraph.graph.traversal import NodeDegree, Path, TraversalEngine, TraversalResult

__all__ = [
    "TraversalEngine",
    "TraversalResult",
    "Path",
    "NodeDegree",
    "QueryEngine",
    "QueryPage",
    "GraphStats",
]

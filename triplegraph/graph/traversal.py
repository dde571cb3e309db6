"""Bounded graph traversal and path finding over stored triples.

Edges are fetched level by level from the triple store; each call owns its
visited set, so concurrent traversals share no state. Path enumeration
fetches the bounded neighbourhood first and then runs networkx locally.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import networkx as nx

from triplegraph.config import MAX_TRAVERSAL_DEPTH
from triplegraph.core.errors import DepthExceededError
from triplegraph.core.schema import Direction, EntityRef
from triplegraph.core.types import Triple
from triplegraph.store.triples import TripleStore

logger = logging.getLogger(__name__)


@dataclass
class Path:
    """Ordered chain of triples from nodes[0] to nodes[-1]."""

    nodes: list[EntityRef]
    edges: list[Triple] = field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.edges)


@dataclass
class TraversalResult:
    """Nodes reached and edges crossed by a bounded traversal."""

    nodes: set[EntityRef]
    edges: list[Triple]
    depth: int

    def to_networkx(self) -> nx.MultiDiGraph:
        """Directed multigraph of the result, edges keyed by triple id.

        Edge attributes: predicate, triple.
        """
        graph = nx.MultiDiGraph()
        graph.add_nodes_from(self.nodes)
        for triple in self.edges:
            graph.add_edge(
                triple.subject,
                triple.object,
                key=triple.id.value,
                predicate=triple.predicate,
                triple=triple,
            )
        return graph


@dataclass(frozen=True)
class NodeDegree:
    """Edge counts around one entity."""

    inbound: int
    outbound: int

    @property
    def total(self) -> int:
        return self.inbound + self.outbound


class TraversalEngine:
    """Bounded BFS, neighbour lookup and path enumeration."""

    def __init__(self, triples: TripleStore, max_depth: int = MAX_TRAVERSAL_DEPTH) -> None:
        """Initialize the engine.

        Args:
            triples: Source of outbound/inbound edges
            max_depth: Safety bound on any requested depth
        """
        self._triples = triples
        self._max_depth = max_depth

    async def traverse(
        self,
        start: EntityRef,
        depth: int,
        direction: Direction | str = Direction.FORWARD,
    ) -> TraversalResult:
        """Breadth-first expansion from start.

        Each node is expanded at most once; expansion stops after depth
        hops. Terminates on any finite graph, cycles included.

        Args:
            start: Starting entity (need not have any triples)
            depth: Hops to expand, 0 <= depth <= max_depth
            direction: FORWARD follows subject->object, BACKWARD the reverse;
                the strings "forward", "backward" and "both" are accepted

        Returns:
            TraversalResult; depth=0 gives just the start node

        Raises:
            DepthExceededError: depth above the safety bound
            ValueError: negative depth or unknown direction
            StoreUnavailableError: store failed mid-traversal (no partial result)
        """
        self._check_depth(depth)
        direction = Direction(direction)

        visited: set[EntityRef] = {start}
        edges: dict[str, Triple] = {}
        frontier: list[EntityRef] = [start]

        for level in range(depth):
            next_frontier: list[EntityRef] = []
            for node in frontier:
                for triple, neighbor in await self._edges(node, direction):
                    edges.setdefault(triple.id.value, triple)
                    if neighbor not in visited:
                        visited.add(neighbor)
                        next_frontier.append(neighbor)
            logger.debug(
                "traversal_level start=%s level=%d expanded=%d discovered=%d",
                start,
                level + 1,
                len(frontier),
                len(next_frontier),
            )
            if not next_frontier:
                break
            frontier = next_frontier

        return TraversalResult(nodes=visited, edges=list(edges.values()), depth=depth)

    async def get_neighbors(
        self,
        entity: EntityRef,
        direction: Direction | str = Direction.BOTH,
    ) -> list[EntityRef]:
        """Entities one hop away, in discovery order, without duplicates.

        Raises:
            ValueError: unknown direction
        """
        direction = Direction(direction)
        neighbors: dict[EntityRef, None] = {}
        for _, neighbor in await self._edges(entity, direction):
            neighbors.setdefault(neighbor, None)
        return list(neighbors)

    async def find_paths(
        self,
        source: EntityRef,
        target: EntityRef,
        max_depth: int,
        limit: int | None = None,
    ) -> list[Path]:
        """All simple forward paths from source to target.

        A node appears at most once within a path, but different paths may
        share nodes. Parallel triples between the same two entities yield
        distinct paths.

        Args:
            source: Path start
            target: Path end
            max_depth: Maximum edges per path
            limit: Maximum paths to return

        Returns:
            Paths sorted shortest first; empty list if none fits the bound.
            source == target gives a single zero-length path.

        Raises:
            DepthExceededError: max_depth above the safety bound
            ValueError: negative max_depth
        """
        self._check_depth(max_depth)
        if source == target:
            return [Path(nodes=[source])]

        graph = await self._neighbourhood(source, max_depth)
        if target not in graph:
            return []

        if limit is None:
            paths = self._paths_up_to(graph, source, target, max_depth)
        else:
            # Grow the cutoff one hop at a time so enumeration stops at the
            # first length that fills the limit.
            try:
                shortest = nx.shortest_path_length(graph, source, target)
            except nx.NetworkXNoPath:
                return []
            paths = []
            for length in range(shortest, max_depth + 1):
                paths.extend(
                    p for p in self._paths_up_to(graph, source, target, length) if p.length == length
                )
                if len(paths) >= limit:
                    break
            paths = paths[:limit]
        logger.debug("paths_found source=%s target=%s count=%d", source, target, len(paths))
        return paths

    async def shortest_path(
        self,
        source: EntityRef,
        target: EntityRef,
        max_depth: int,
    ) -> Path | None:
        """One forward path with the fewest edges, or None."""
        self._check_depth(max_depth)
        if source == target:
            return Path(nodes=[source])

        graph = await self._neighbourhood(source, max_depth)
        if target not in graph:
            return None
        try:
            node_path = nx.shortest_path(graph, source, target)
        except nx.NetworkXNoPath:
            return None

        edges: list[Triple] = []
        for u, v in zip(node_path, node_path[1:]):
            key = min(graph[u][v])
            edges.append(graph[u][v][key]["triple"])
        return Path(nodes=list(node_path), edges=edges)

    async def subgraph(self, center: EntityRef, radius: int = 1) -> TraversalResult:
        """Neighbourhood of center in both directions."""
        return await self.traverse(center, radius, Direction.BOTH)

    async def common_neighbors(self, a: EntityRef, b: EntityRef) -> list[EntityRef]:
        """Entities both a and b point at, or both are pointed at by."""
        shared_targets = set(await self.get_neighbors(a, Direction.FORWARD)) & set(
            await self.get_neighbors(b, Direction.FORWARD)
        )
        shared_sources = set(await self.get_neighbors(a, Direction.BACKWARD)) & set(
            await self.get_neighbors(b, Direction.BACKWARD)
        )
        return sorted(shared_targets | shared_sources, key=str)

    async def node_degree(self, entity: EntityRef) -> NodeDegree:
        """Count of triples leaving and entering entity."""
        outbound = await self._triples.outgoing(entity)
        inbound = await self._triples.incoming(entity)
        return NodeDegree(inbound=len(inbound), outbound=len(outbound))

    async def _edges(
        self,
        node: EntityRef,
        direction: Direction,
    ) -> list[tuple[Triple, EntityRef]]:
        """Triples touching node with the entity on their other end."""
        forward = direction in (Direction.FORWARD, Direction.BOTH)
        backward = direction in (Direction.BACKWARD, Direction.BOTH)
        if not (forward or backward):
            raise ValueError(f"Unknown direction: {direction!r}")
        result: list[tuple[Triple, EntityRef]] = []
        if forward:
            result.extend((t, t.object) for t in await self._triples.outgoing(node))
        if backward:
            result.extend((t, t.subject) for t in await self._triples.incoming(node))
        return result

    async def _neighbourhood(self, source: EntityRef, max_depth: int) -> nx.MultiDiGraph:
        """Forward edges reachable within max_depth hops, as a multigraph."""
        reached = await self.traverse(source, max_depth, Direction.FORWARD)
        return reached.to_networkx()

    def _paths_up_to(
        self,
        graph: nx.MultiDiGraph,
        source: EntityRef,
        target: EntityRef,
        cutoff: int,
    ) -> list[Path]:
        """Simple paths of at most cutoff edges, shortest first."""
        paths = [
            self._edge_path_to_path(graph, source, edge_path)
            for edge_path in nx.all_simple_edge_paths(graph, source, target, cutoff=cutoff)
        ]
        paths.sort(key=lambda p: (p.length, [t.id.value for t in p.edges]))
        return paths

    @staticmethod
    def _edge_path_to_path(
        graph: nx.MultiDiGraph,
        source: EntityRef,
        edge_path: list[tuple[EntityRef, EntityRef, str]],
    ) -> Path:
        nodes = [source]
        edges: list[Triple] = []
        for u, v, key in edge_path:
            edges.append(graph[u][v][key]["triple"])
            nodes.append(v)
        return Path(nodes=nodes, edges=edges)

    def _check_depth(self, depth: int) -> None:
        if depth < 0:
            raise ValueError(f"Depth must be non-negative, got {depth}")
        if depth > self._max_depth:
            raise DepthExceededError(depth, self._max_depth)

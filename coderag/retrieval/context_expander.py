"""Context expansion over the dependency graph.

Walks the graph outward from the primary search results and attaches the
chunks it reaches as related context, labelled with how they connect.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from types import MappingProxyType

from coderag.models.chunk import Chunk
from coderag.models.retrieval import (
    ExcerptEdge,
    ExpandedContext,
    GraphExcerpt,
    RelatedChunk,
    RelationshipType,
    SearchResult,
)
from coderag.providers.base import ChunkLookup, ReadonlyGraph
from coderag.settings import LOOKUP_TIMEOUT, MAX_DEPTH, MAX_RELATED
from coderag.utils.aio import describe_error, maybe_await

logger = logging.getLogger(__name__)

__all__ = ["ContextExpander"]

# Edge type -> (label when walked forward, label when walked backward)
_EDGE_LABELS = MappingProxyType({
    "imports": (RelationshipType.IMPORTS, RelationshipType.IMPORTED_BY),
    "calls": (RelationshipType.CALLS, RelationshipType.CALLED_BY),
    "extends": (RelationshipType.EXTENDS, RelationshipType.EXTENDED_BY),
    "implements": (RelationshipType.IMPLEMENTS, RelationshipType.IMPLEMENTED_BY),
    "references": (RelationshipType.REFERENCES, RelationshipType.REFERENCED_BY),
})


@dataclass(frozen=True)
class _Discovery:
    """A node reached by the BFS, with the primary it was reached from."""

    node_id: str
    distance: int
    relationship: RelationshipType
    origin: SearchResult


def _label(edge_type: str, forward: bool) -> RelationshipType:
    labels = _EDGE_LABELS.get(edge_type)
    if labels is None:
        return RelationshipType.RELATED
    return labels[0] if forward else labels[1]


class ContextExpander:
    """Expand primary results with graph neighbours.

    Attributes:
        graph: Read-only dependency graph
        chunk_lookup: Resolves a graph node id to its chunk (sync or async)
        lookup_timeout: Seconds allowed for each chunk lookup
    """

    def __init__(
        self,
        graph: ReadonlyGraph,
        chunk_lookup: ChunkLookup,
        *,
        lookup_timeout: float = LOOKUP_TIMEOUT,
    ):
        self.graph = graph
        self.chunk_lookup = chunk_lookup
        self.lookup_timeout = lookup_timeout

    async def expand(
        self,
        primary_results: list[SearchResult],
        max_depth: int = MAX_DEPTH,
        max_related: int = MAX_RELATED,
    ) -> ExpandedContext:
        """Expand search results with graph-based context.

        Nodes that cannot be resolved (missing, lookup error, timeout) are
        dropped; a partially connected graph never fails the expansion.

        Args:
            primary_results: Ranked results from hybrid search
            max_depth: Maximum hops from any primary node
            max_related: Maximum number of related chunks returned

        Returns:
            ExpandedContext with primary results unchanged, related chunks
            sorted by distance then originating score, and the induced
            graph excerpt
        """
        primary_nodes: dict[str, SearchResult] = {}
        for result in primary_results:
            node_id = self._node_id(result)
            if node_id and node_id not in primary_nodes:
                primary_nodes[node_id] = result

        if not primary_nodes or max_depth <= 0 or max_related <= 0:
            return ExpandedContext(
                primary_results=list(primary_results),
                graph_excerpt=self._excerpt(list(primary_nodes)),
            )

        discoveries = self._discover(primary_nodes, max_depth)

        resolved = await asyncio.gather(*(self._resolve(d.node_id) for d in discoveries))

        related: list[tuple[_Discovery, Chunk]] = [
            (discovery, chunk)
            for discovery, chunk in zip(discoveries, resolved)
            if chunk is not None
        ]
        dropped = len(discoveries) - len(related)

        # sorted() is stable, so BFS discovery order breaks remaining ties
        related.sort(key=lambda item: (item[0].distance, -item[0].origin.score))
        related = related[:max_related]

        related_chunks = [
            RelatedChunk(
                chunk=SearchResult.from_chunk(chunk, 0.0, discovery.origin.method),
                relationship=discovery.relationship,
                distance=discovery.distance,
            )
            for discovery, chunk in related
        ]

        node_ids = list(primary_nodes) + [discovery.node_id for discovery, _ in related]

        logger.info(
            f"Context expansion: {len(primary_nodes)} primary nodes -> "
            f"{len(discoveries)} discovered, {dropped} unresolved, "
            f"{len(related_chunks)} related kept"
        )

        return ExpandedContext(
            primary_results=list(primary_results),
            related_chunks=related_chunks,
            graph_excerpt=self._excerpt(node_ids),
        )

    def _node_id(self, result: SearchResult) -> str:
        """Graph node for a result: the chunk id if known, else its file."""
        if self.graph.get_node(result.chunk_id) is not None:
            return result.chunk_id
        return result.chunk.file_path

    def _discover(
        self, primary_nodes: dict[str, SearchResult], max_depth: int
    ) -> list[_Discovery]:
        """Multi-source BFS over outgoing and incoming edges.

        The visited set starts with every primary node, so primaries are
        never reported as related and each node is discovered once, at its
        minimum distance from any primary.
        """
        visited = set(primary_nodes)
        queue = deque((node_id, 0, result) for node_id, result in primary_nodes.items())
        discoveries: list[_Discovery] = []

        while queue:
            node_id, depth, origin = queue.popleft()
            if depth >= max_depth:
                continue

            neighbours = [
                (edge.target, _label(edge.type, True)) for edge in self.graph.get_edges(node_id)
            ]
            neighbours += [
                (edge.source, _label(edge.type, False))
                for edge in self.graph.get_incoming_edges(node_id)
            ]

            for neighbour, relationship in neighbours:
                if neighbour in visited:
                    continue
                visited.add(neighbour)
                discoveries.append(_Discovery(neighbour, depth + 1, relationship, origin))
                queue.append((neighbour, depth + 1, origin))

        return discoveries

    async def _resolve(self, node_id: str) -> Chunk | None:
        """Resolve one node to a chunk; any failure yields None."""
        try:
            return await asyncio.wait_for(
                maybe_await(self.chunk_lookup.resolve(node_id)), timeout=self.lookup_timeout
            )
        except asyncio.TimeoutError:
            logger.debug(f"Chunk lookup timed out for node {node_id}")
        except Exception as e:
            logger.debug(f"Chunk lookup failed for node {node_id}: {describe_error(e)}")
        return None

    def _excerpt(self, node_ids: list[str]) -> GraphExcerpt:
        """Subgraph induced on node_ids, edges deduplicated."""
        members = set(node_ids)
        seen: set[tuple[str, str, str]] = set()
        edges: list[ExcerptEdge] = []

        for node_id in node_ids:
            for edge in self.graph.get_edges(node_id):
                key = (edge.source, edge.target, edge.type)
                if edge.target in members and key not in seen:
                    seen.add(key)
                    edges.append(
                        ExcerptEdge(from_node=edge.source, to_node=edge.target, type=edge.type)
                    )

        return GraphExcerpt(nodes=list(node_ids), edges=edges)

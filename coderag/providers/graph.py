"""In-memory dependency graph loaded from the indexer's graph JSON."""

import json
import logging
from collections import deque
from pathlib import Path
from typing import Any

from coderag.models.graph import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

__all__ = ["DependencyGraph"]


class DependencyGraph:
    """Directed graph with outgoing and incoming adjacency lists.

    Edges may reference nodes that were never added; traversal follows them
    anyway and ``get_node`` returns None for such ids.
    """

    def __init__(self):
        self._nodes: dict[str, GraphNode] = {}
        self._outgoing: dict[str, list[GraphEdge]] = {}
        self._incoming: dict[str, list[GraphEdge]] = {}

    def add_node(self, node: GraphNode) -> None:
        self._nodes[node.id] = node

    def add_edge(self, edge: GraphEdge) -> None:
        self._outgoing.setdefault(edge.source, []).append(edge)
        self._incoming.setdefault(edge.target, []).append(edge)

    def get_node(self, node_id: str) -> GraphNode | None:
        return self._nodes.get(node_id)

    def get_edges(self, node_id: str) -> list[GraphEdge]:
        """All edges originating from node_id."""
        return list(self._outgoing.get(node_id, ()))

    def get_incoming_edges(self, node_id: str) -> list[GraphEdge]:
        """All edges pointing to node_id."""
        return list(self._incoming.get(node_id, ()))

    def get_dependencies(self, node_id: str) -> list[str]:
        return [edge.target for edge in self.get_edges(node_id)]

    def get_dependents(self, node_id: str) -> list[str]:
        return [edge.source for edge in self.get_incoming_edges(node_id)]

    def get_related_nodes(self, node_id: str, max_depth: int = 2) -> set[str]:
        """Node ids within max_depth hops in either direction, excluding node_id."""
        visited = {node_id}
        queue = deque([(node_id, 0)])
        while queue:
            current, depth = queue.popleft()
            if depth >= max_depth:
                continue
            for neighbour in self.get_dependencies(current) + self.get_dependents(current):
                if neighbour not in visited:
                    visited.add(neighbour)
                    queue.append((neighbour, depth + 1))
        visited.discard(node_id)
        return visited

    @property
    def nodes(self) -> list[GraphNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[GraphEdge]:
        return [edge for edge_list in self._outgoing.values() for edge in edge_list]

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [node.model_dump(by_alias=True) for node in self.nodes],
            "edges": [edge.model_dump() for edge in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DependencyGraph":
        graph = cls()
        for node in data.get("nodes", []):
            graph.add_node(GraphNode.model_validate(node))
        for edge in data.get("edges", []):
            graph.add_edge(GraphEdge.model_validate(edge))
        return graph

    @classmethod
    def from_json(cls, file_path: Path) -> "DependencyGraph":
        """Load a graph saved as ``{"nodes": [...], "edges": [...]}``."""
        file_path = Path(file_path)
        with open(file_path, encoding="utf-8") as f:
            graph = cls.from_dict(json.load(f))
        logger.info(
            f"Loaded dependency graph from {file_path.name}: "
            f"{len(graph._nodes)} nodes, {len(graph.edges)} edges"
        )
        return graph

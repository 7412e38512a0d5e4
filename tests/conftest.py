"""Shared fixtures for retrieval tests."""

import pytest

from coderag.models.graph import GraphEdge, GraphNode
from coderag.providers.graph import DependencyGraph
from tests.fakes import DictChunkLookup, make_chunk


@pytest.fixture
def sample_chunks():
    """Chunks for a small TypeScript codebase."""
    return [
        make_chunk(
            "parse-config",
            "export function parseConfig(path: string): Config { return load(path); }",
            name="parseConfig",
            file_path="src/config/parse.ts",
        ),
        make_chunk(
            "config-loader",
            "export class ConfigLoader { load(path: string) { return readFile(path); } }",
            name="ConfigLoader",
            file_path="src/config/loader.ts",
            chunk_type="class",
        ),
        make_chunk(
            "read-file",
            "export function readFile(path: string): string { return fs.readFileSync(path); }",
            name="readFile",
            file_path="src/fs/read.ts",
        ),
        make_chunk(
            "auth-session",
            "export class Session { token: string; expiresAt: Date; }",
            name="Session",
            file_path="src/auth/session.ts",
            chunk_type="class",
        ),
    ]


@pytest.fixture
def chunk_lookup(sample_chunks):
    return DictChunkLookup(sample_chunks)


@pytest.fixture
def config_graph():
    """parse-config -> config-loader -> read-file (imports chain)."""
    graph = DependencyGraph()
    for node_id in ("parse-config", "config-loader", "read-file", "auth-session"):
        graph.add_node(GraphNode(id=node_id, file_path=f"src/{node_id}.ts"))
    graph.add_edge(GraphEdge(source="parse-config", target="config-loader", type="imports"))
    graph.add_edge(GraphEdge(source="config-loader", target="read-file", type="calls"))
    return graph

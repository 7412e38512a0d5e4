"""Dependency graph node and edge models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__ = ["GraphNode", "GraphEdge"]


class GraphNode(BaseModel):
    """A file, class or function known to the dependency graph."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    file_path: str = ""
    symbols: list[str] = Field(default_factory=list)
    type: str = "module"


class GraphEdge(BaseModel):
    """Directed dependency from ``source`` to ``target``."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    type: str = "imports"

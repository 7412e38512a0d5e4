"""Pydantic models for indexed code chunks.

Chunks are produced by the indexing side and are read-only here. The JSON
written by the indexer uses camelCase keys (``filePath``, ``nlSummary``), so
every model accepts both the camelCase alias and the snake_case field name.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = ["ChunkType", "ChunkMetadata", "Chunk", "create_chunk_from_dict"]


ChunkType = Literal[
    "function",
    "method",
    "class",
    "module",
    "interface",
    "type_alias",
    "config_block",
    "import_block",
    "doc",
]


class ChunkMetadata(BaseModel):
    """Structural metadata extracted by the chunker."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    chunk_type: ChunkType = Field(..., description="Kind of code construct")
    name: str = Field(default="", description="Symbol name (function, class, ...)")
    parent_name: str | None = Field(default=None, description="Enclosing symbol, if any")
    declarations: list[str] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    doc_title: str | None = Field(default=None, description="Title for doc chunks")


class Chunk(BaseModel):
    """Immutable unit of indexed code.

    Attributes:
        id: Stable, content-derived identifier
        content: Source text of the chunk
        nl_summary: Optional generated natural-language description
        file_path: Path relative to the repository root
        start_line: First line of the chunk in the file
        end_line: Last line of the chunk in the file
        language: Source language (e.g., "typescript", "python")
        metadata: Structural metadata from the chunker
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., min_length=1)
    content: str
    nl_summary: str = ""
    file_path: str = ""
    start_line: int = Field(default=0, ge=0)
    end_line: int = Field(default=0, ge=0)
    language: str = "unknown"
    metadata: ChunkMetadata

    @field_validator("end_line")
    @classmethod
    def validate_line_range(cls, v: int, info) -> int:
        """Ensure end_line >= start_line."""
        start_line = info.data.get("start_line", 0)
        if v < start_line:
            raise ValueError(f"end_line ({v}) must be >= start_line ({start_line})")
        return v

    @property
    def citation(self) -> str:
        """Citation in format ``file_path:start_line-end_line``."""
        return f"{self.file_path}:{self.start_line}-{self.end_line}"


def create_chunk_from_dict(data: dict) -> Chunk:
    """Build a Chunk from an indexer record (camelCase or snake_case keys).

    Args:
        data: Chunk record as stored by the indexer

    Returns:
        Validated Chunk instance

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid
    """
    return Chunk.model_validate(data)

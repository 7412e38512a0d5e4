"""Configuration settings for the coderag retrieval core.

This module provides a unified configuration system with two categories:

1. SYSTEM CONSTANTS: Fixed values that define system behavior (not user-configurable)
   - Chunk types, heuristics, algorithm constants (RRF_K, chars-per-token)

2. USER SETTINGS: Configurable via environment variables (.env file)
   - Fusion weights, expansion limits, token budget
   - Collaborator endpoints, model names and timeouts

The values here are defaults. A validated per-pipeline snapshot is built by
``RetrievalConfig.from_settings()``.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ============================================================================
# SYSTEM CONSTANTS - Not user-configurable
# ============================================================================

# -----------------------------------------------------------------------------
# Schema Definitions
# -----------------------------------------------------------------------------

CHUNK_TYPES: tuple[str, ...] = (
    "function",
    "method",
    "class",
    "module",
    "interface",
    "type_alias",
    "config_block",
    "import_block",
    "doc",
)

FUSION_STRATEGIES: tuple[str, ...] = ("weighted", "rrf")
BUDGET_STRATEGIES: tuple[str, ...] = ("greedy", "prefix")

# -----------------------------------------------------------------------------
# Algorithm Constants
# -----------------------------------------------------------------------------

# RRF (Reciprocal Rank Fusion) - only used when FUSION_STRATEGY=rrf
RRF_K: int = 60

# Vector + lexical stages fetch this many times top_k before fusion
CANDIDATE_MULTIPLIER: int = 2

# Token estimate shared with the indexing side: ceil(len(text) / 4)
CHARS_PER_TOKEN: int = 4

# Default relevance when the Ollama model answers without a number (0-1 scale)
RERANK_DEFAULT_SCORE: float = 0.5


# ============================================================================
# USER SETTINGS - Configurable via environment variables
# ============================================================================

# -----------------------------------------------------------------------------
# Query Analysis
# -----------------------------------------------------------------------------

MAX_QUERY_LENGTH: int = int(os.getenv("MAX_QUERY_LENGTH", "2000"))

# -----------------------------------------------------------------------------
# Hybrid Search
# -----------------------------------------------------------------------------

TOP_K: int = int(os.getenv("TOP_K", "10"))
VECTOR_WEIGHT: float = float(os.getenv("VECTOR_WEIGHT", "0.7"))
BM25_WEIGHT: float = float(os.getenv("BM25_WEIGHT", "0.3"))
FUSION_STRATEGY: str = os.getenv("FUSION_STRATEGY", "weighted")

# -----------------------------------------------------------------------------
# Context Expansion
# -----------------------------------------------------------------------------

MAX_DEPTH: int = int(os.getenv("MAX_DEPTH", "2"))
MAX_RELATED: int = int(os.getenv("MAX_RELATED", "10"))

# -----------------------------------------------------------------------------
# Re-ranking
# -----------------------------------------------------------------------------

RERANK_ENABLED: bool = os.getenv("RERANK_ENABLED", "false").lower() == "true"
RERANK_TOP_N: int = int(os.getenv("RERANK_TOP_N", "20"))
RERANK_BACKEND: str = os.getenv("RERANK_BACKEND", "ollama")
RERANK_MODEL: str = os.getenv("RERANK_MODEL", "qwen2.5-coder:7b")
CROSS_ENCODER_MODEL: str = os.getenv(
    "CROSS_ENCODER_MODEL", "cross-encoder/ms-marco-MiniLM-L-6-v2"
)
OLLAMA_BASE_URL: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

# -----------------------------------------------------------------------------
# Token Budget
# -----------------------------------------------------------------------------

TOKEN_BUDGET: int = int(os.getenv("TOKEN_BUDGET", "8000"))
RESERVE_FOR_ANSWER: int = int(os.getenv("RESERVE_FOR_ANSWER", "2000"))
BUDGET_STRATEGY: str = os.getenv("BUDGET_STRATEGY", "greedy")
PRIMARY_BUDGET_WEIGHT: float = float(os.getenv("PRIMARY_BUDGET_WEIGHT", "0.6"))
RELATED_BUDGET_WEIGHT: float = float(os.getenv("RELATED_BUDGET_WEIGHT", "0.3"))
GRAPH_BUDGET_WEIGHT: float = float(os.getenv("GRAPH_BUDGET_WEIGHT", "0.1"))

# -----------------------------------------------------------------------------
# Collaborator Timeouts (seconds)
# -----------------------------------------------------------------------------

EMBED_TIMEOUT: float = float(os.getenv("EMBED_TIMEOUT", "30"))
STORE_TIMEOUT: float = float(os.getenv("STORE_TIMEOUT", "30"))
LOOKUP_TIMEOUT: float = float(os.getenv("LOOKUP_TIMEOUT", "5"))
RERANK_TIMEOUT: float = float(os.getenv("RERANK_TIMEOUT", "30"))

# -----------------------------------------------------------------------------
# Embedding Model
# -----------------------------------------------------------------------------

EMBEDDING_MODEL: str = os.getenv(
    "EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2"
)
EMBEDDING_DIM: int = int(os.getenv("EMBEDDING_DIM", "384"))

# -----------------------------------------------------------------------------
# BM25 Tokenization
# -----------------------------------------------------------------------------

BM25_MIN_TOKEN_LENGTH: int = int(os.getenv("BM25_MIN_TOKEN_LENGTH", "2"))
BM25_SPLIT_CAMELCASE: bool = os.getenv("BM25_SPLIT_CAMELCASE", "true").lower() == "true"
BM25_SPLIT_SNAKE_CASE: bool = (
    os.getenv("BM25_SPLIT_SNAKE_CASE", "true").lower() == "true"
)

# -----------------------------------------------------------------------------
# Output Settings
# -----------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


# ============================================================================
# VALIDATION
# ============================================================================

if FUSION_STRATEGY not in FUSION_STRATEGIES:
    raise ValueError(
        f"Invalid FUSION_STRATEGY: {FUSION_STRATEGY}. Must be one of {FUSION_STRATEGIES}"
    )

if BUDGET_STRATEGY not in BUDGET_STRATEGIES:
    raise ValueError(
        f"Invalid BUDGET_STRATEGY: {BUDGET_STRATEGY}. Must be one of {BUDGET_STRATEGIES}"
    )

if RERANK_BACKEND not in ("ollama", "cross_encoder"):
    raise ValueError(
        f"Invalid RERANK_BACKEND: {RERANK_BACKEND}. Must be 'ollama' or 'cross_encoder'"
    )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    # === SYSTEM CONSTANTS ===
    "CHUNK_TYPES",
    "FUSION_STRATEGIES",
    "BUDGET_STRATEGIES",
    "RRF_K",
    "CANDIDATE_MULTIPLIER",
    "CHARS_PER_TOKEN",
    "RERANK_DEFAULT_SCORE",
    # === USER SETTINGS ===
    # Query analysis
    "MAX_QUERY_LENGTH",
    # Hybrid search
    "TOP_K",
    "VECTOR_WEIGHT",
    "BM25_WEIGHT",
    "FUSION_STRATEGY",
    # Context expansion
    "MAX_DEPTH",
    "MAX_RELATED",
    # Re-ranking
    "RERANK_ENABLED",
    "RERANK_TOP_N",
    "RERANK_BACKEND",
    "RERANK_MODEL",
    "CROSS_ENCODER_MODEL",
    "OLLAMA_BASE_URL",
    # Token budget
    "TOKEN_BUDGET",
    "RESERVE_FOR_ANSWER",
    "BUDGET_STRATEGY",
    "PRIMARY_BUDGET_WEIGHT",
    "RELATED_BUDGET_WEIGHT",
    "GRAPH_BUDGET_WEIGHT",
    # Timeouts
    "EMBED_TIMEOUT",
    "STORE_TIMEOUT",
    "LOOKUP_TIMEOUT",
    "RERANK_TIMEOUT",
    # Embeddings
    "EMBEDDING_MODEL",
    "EMBEDDING_DIM",
    # BM25
    "BM25_MIN_TOKEN_LENGTH",
    "BM25_SPLIT_CAMELCASE",
    "BM25_SPLIT_SNAKE_CASE",
    # Output
    "LOG_LEVEL",
]

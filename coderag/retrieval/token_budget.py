"""Token budget enforcement for assembled context.

Token counts are estimated as ``ceil(len(text) / 4)``; no tokenizer is
loaded. Selection never reorders the ranked input.
"""

import logging
import math
from collections.abc import Callable, Sequence
from typing import TypeVar

from coderag.models.retrieval import (
    AssembledContext,
    ExpandedContext,
    GraphExcerpt,
    RelatedChunk,
    SearchResult,
)
from coderag.settings import (
    BUDGET_STRATEGIES,
    BUDGET_STRATEGY,
    CHARS_PER_TOKEN,
    GRAPH_BUDGET_WEIGHT,
    PRIMARY_BUDGET_WEIGHT,
    RELATED_BUDGET_WEIGHT,
    RESERVE_FOR_ANSWER,
    TOKEN_BUDGET,
)

logger = logging.getLogger(__name__)

__all__ = ["TokenBudgetOptimizer", "estimate_tokens", "format_primary_chunk", "format_related_chunk"]

T = TypeVar("T")


def estimate_tokens(text: str) -> int:
    """Approximate token count of text."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def format_primary_chunk(result: SearchResult) -> str:
    """Render a primary result as a markdown section."""
    name = result.metadata.name
    header = f"### {name} ({result.metadata.chunk_type})" if name else "### (unnamed chunk)"

    parts = [header]
    if result.chunk.file_path:
        parts.append(
            f"File: {result.chunk.file_path} [L{result.chunk.start_line}-{result.chunk.end_line}]"
        )
    if result.nl_summary:
        parts.append(result.nl_summary)
    parts.extend(["```", result.content, "```"])
    return "\n".join(parts)


def format_related_chunk(related: RelatedChunk) -> str:
    """Render a related chunk as a markdown section."""
    result = related.chunk
    name = result.metadata.name or "unknown"

    parts = [f"### {name} [{related.relationship.value}, distance={related.distance}]"]
    if result.chunk.file_path:
        parts.append(f"File: {result.chunk.file_path}")
    if result.nl_summary:
        parts.append(result.nl_summary)
    parts.extend(["```", result.content, "```"])
    return "\n".join(parts)


def format_graph_excerpt(excerpt: GraphExcerpt) -> str:
    if not excerpt.nodes:
        return ""
    lines = [f"Nodes: {', '.join(excerpt.nodes)}"]
    lines.extend(f"{edge.from_node} --[{edge.type}]--> {edge.to_node}" for edge in excerpt.edges)
    return "\n".join(lines)


class TokenBudgetOptimizer:
    """Select the highest-ranked chunks that fit a token budget.

    Strategies:
        greedy: skip a candidate that does not fit and keep scanning, so a
            smaller lower-ranked chunk can still use the remaining budget
        prefix: stop at the first candidate that does not fit

    Example:
        >>> optimizer = TokenBudgetOptimizer()
        >>> context = optimizer.optimize(ranked_results, budget=4000)
        >>> context.total_tokens <= 4000
        True
    """

    def __init__(
        self,
        strategy: str = BUDGET_STRATEGY,
        *,
        max_tokens: int = TOKEN_BUDGET,
        reserve_for_answer: int = RESERVE_FOR_ANSWER,
        primary_weight: float = PRIMARY_BUDGET_WEIGHT,
        related_weight: float = RELATED_BUDGET_WEIGHT,
        graph_weight: float = GRAPH_BUDGET_WEIGHT,
    ):
        if strategy not in BUDGET_STRATEGIES:
            raise ValueError(f"Unknown budget strategy '{strategy}'. Use one of: {BUDGET_STRATEGIES}")
        self.strategy = strategy
        self.max_tokens = max_tokens
        self.reserve_for_answer = reserve_for_answer
        self.primary_weight = primary_weight
        self.related_weight = related_weight
        self.graph_weight = graph_weight

    def estimate_tokens(self, text: str) -> int:
        return estimate_tokens(text)

    def optimize(self, ranked: list[SearchResult], budget: int) -> AssembledContext:
        """Select chunks from ranked within budget, preserving order.

        Args:
            ranked: Candidates, best first
            budget: Token budget for the selection

        Returns:
            AssembledContext with the selection, its total cost and whether
            any candidate was excluded
        """
        if budget <= 0:
            return AssembledContext(truncated=bool(ranked))

        selected, used = self._fill(ranked, budget, lambda result: result.content)
        truncated = len(selected) < len(ranked)

        logger.debug(
            f"Token budget: selected {len(selected)}/{len(ranked)} chunks, "
            f"{used}/{budget} tokens ({self.strategy})"
        )
        return AssembledContext(selected_chunks=selected, total_tokens=used, truncated=truncated)

    def assemble(self, expanded: ExpandedContext) -> AssembledContext:
        """Assemble an expanded context into a budgeted markdown document.

        The available budget (max_tokens - reserve_for_answer) is split into
        primary, related and graph shares. Primary results are filled by
        score, related chunks by distance, and the graph excerpt is included
        whole or not at all. Costs are measured on the rendered sections.
        """
        available = max(0, self.max_tokens - self.reserve_for_answer)
        primary_budget = math.floor(available * self.primary_weight)
        related_budget = math.floor(available * self.related_weight)
        graph_budget = math.floor(available * self.graph_weight)

        primary = sorted(expanded.primary_results, key=lambda r: r.score, reverse=True)
        included_primary, primary_tokens = self._fill(primary, primary_budget, format_primary_chunk)

        related = sorted(expanded.related_chunks, key=lambda r: r.distance)
        included_related, related_tokens = self._fill(related, related_budget, format_related_chunk)

        graph_text = format_graph_excerpt(expanded.graph_excerpt)
        graph_tokens = estimate_tokens(graph_text)
        include_graph = bool(graph_text) and graph_tokens <= graph_budget

        sections: list[str] = []
        if included_primary:
            sections.append("## Primary Results\n")
            sections.extend(format_primary_chunk(result) for result in included_primary)
        if included_related:
            sections.append("## Related Context\n")
            sections.extend(format_related_chunk(item) for item in included_related)
        if include_graph:
            sections.append("## Dependency Graph\n")
            sections.append(graph_text)

        truncated = (
            len(included_primary) < len(expanded.primary_results)
            or len(included_related) < len(expanded.related_chunks)
            or (bool(graph_text) and not include_graph)
        )

        total_tokens = primary_tokens + related_tokens + (graph_tokens if include_graph else 0)
        logger.info(
            f"Assembled context: {len(included_primary)} primary, {len(included_related)} related, "
            f"graph={'yes' if include_graph else 'no'}, {total_tokens}/{available} tokens"
        )

        return AssembledContext(
            selected_chunks=included_primary,
            total_tokens=total_tokens,
            truncated=truncated,
            related_chunks=included_related,
            content="\n".join(sections),
        )

    def _fill(
        self, items: Sequence[T], budget: int, render: Callable[[T], str]
    ) -> tuple[list[T], int]:
        """Take items in order while they fit, per the configured strategy."""
        included: list[T] = []
        used = 0
        for item in items:
            cost = estimate_tokens(render(item))
            if used + cost > budget:
                if self.strategy == "prefix":
                    break
                continue
            included.append(item)
            used += cost
        return included, used

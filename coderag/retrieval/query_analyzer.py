"""Pattern-based query understanding (no LLM in the loop).

Analyzes a natural-language or identifier-style query to detect intent,
extract entities, suggest filters and expand terms. Every lookup table in
this module is immutable process-wide data, so ``analyze`` is a pure
function of its input.
"""

import logging
import re
from types import MappingProxyType

from coderag.models.query import AnalyzedQuery, QueryEntity, QueryIntent, SearchFilters
from coderag.settings import MAX_QUERY_LENGTH

logger = logging.getLogger(__name__)

__all__ = ["QueryAnalyzer"]

# ============================================================================
# INTENT PATTERNS (evaluated top to bottom, first match wins)
# ============================================================================

_INTENT_RULES: tuple[tuple[QueryIntent, tuple[re.Pattern[str], ...]], ...] = tuple(
    (intent, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
    for intent, patterns in (
        (
            QueryIntent.FIND_DEFINITION,
            (
                r"where\s+is\s+\S+\s+defined",
                r"definition\s+of",
                r"find\s+definition",
                r"define[ds]?\s",
                r"declaration\s+of",
                r"where\s+is\s+\S+\s+declared",
                r"show\s+(me\s+)?(the\s+)?definition",
            ),
        ),
        (
            QueryIntent.FIND_USAGE,
            (
                r"who\s+calls",
                r"usage\s+of",
                r"used\s+by",
                r"references?\s+to",
                r"callers?\s+of",
                r"where\s+is\s+\S+\s+used",
                r"find\s+usages?",
                r"consumers?\s+of",
            ),
        ),
        (
            QueryIntent.UNDERSTAND_MODULE,
            (
                r"how\s+does\s+\S+\s+work",
                r"explain\s",
                r"what\s+does\s+\S+\s+do",
                r"understand\s",
                r"overview\s+of",
                r"describe\s",
                r"how\s+is\s+\S+\s+implemented",
            ),
        ),
        (
            QueryIntent.FIND_SIMILAR,
            (
                r"similar\s+to",
                r"something\s+like",
                r"like\s+\S+",
                r"resembl",
                r"alternatives?\s+(to|for)",
                r"related\s+to",
            ),
        ),
    )
)

# ============================================================================
# STATIC TABLES
# ============================================================================

_TERM_EXPANSIONS = MappingProxyType({
    "test": ("spec", "describe", "it", "expect", "assert"),
    "error": ("exception", "throw", "catch", "fail"),
    "config": ("configuration", "settings", "options", "preferences"),
    "auth": ("authentication", "authorization", "login", "session", "token"),
    "api": ("endpoint", "route", "handler", "controller"),
    "database": ("db", "query", "schema", "migration", "model"),
    "log": ("logger", "logging", "debug", "trace"),
    "import": ("require", "dependency", "module"),
    "export": ("module", "public"),
    "type": ("interface", "typedef", "schema"),
    "async": ("await", "promise", "callback"),
    "render": ("component", "template", "view"),
})

_LANGUAGE_KEYWORDS = MappingProxyType({
    "typescript": "typescript",
    "ts": "typescript",
    "javascript": "javascript",
    "js": "javascript",
    "python": "python",
    "py": "python",
    "rust": "rust",
    "go": "go",
    "golang": "go",
    "java": "java",
    "c#": "csharp",
    "csharp": "csharp",
})

_CHUNK_TYPE_KEYWORDS = MappingProxyType({
    "function": "function",
    "functions": "function",
    "method": "method",
    "methods": "method",
    "class": "class",
    "classes": "class",
    "interface": "interface",
    "interfaces": "interface",
    "type": "type_alias",
    "types": "type_alias",
    "module": "module",
    "modules": "module",
})

# Common English words that match the identifier regex when capitalized
_STOP_WORDS = frozenset({
    "is", "the", "in", "of", "to", "and", "or", "for", "by",
    "it", "be", "do", "an", "as", "at", "if", "on", "no", "a", "i",
    "not", "but", "with", "that", "this", "from", "are", "was",
    "has", "had", "have", "how", "what", "when", "where", "who", "why",
    "which", "all", "can", "will", "one", "its", "into", "been",
    "like", "does", "used", "find", "show", "get", "set", "me", "my",
    "list", "give", "tell", "please", "any", "some", "there", "we",
})

# Words that only signal intent; never entities
_INTENT_TRIGGER_WORDS = frozenset({
    "defined", "define", "defines", "definition", "declared", "declaration",
    "calls", "callers", "caller", "usage", "usages", "references", "reference",
    "consumers", "consumer", "explain", "describe", "overview", "understand",
    "work", "works", "implemented", "similar", "something", "alternatives",
    "alternative", "related", "resembles",
})

# PascalCase (class) or camelCase (function) identifiers
_IDENTIFIER_PATTERN = re.compile(
    r"\b([A-Z][a-zA-Z0-9]*(?:[A-Z][a-z0-9]*)*|[a-z][a-zA-Z0-9]*(?:[A-Z][a-z0-9]*)+)\b"
)

# Path-like tokens: at least one slash and a file extension
_FILE_PATH_PATTERN = re.compile(r"[\w./-]+/[\w.-]+\.\w+")

_WORD_STRIP_CHARS = ".,;:!?()[]{}\"'`"


def _words(query: str) -> list[str]:
    """Lower-cased whitespace tokens with surrounding punctuation removed."""
    words = (w.strip(_WORD_STRIP_CHARS) for w in query.lower().split())
    return [w for w in words if w]


def _dedupe(values: list[str]) -> list[str]:
    """Deduplicate preserving first-seen order."""
    return list(dict.fromkeys(values))


class QueryAnalyzer:
    """Pattern-based query analyzer.

    Holds no state; a single instance can serve any number of concurrent
    queries.

    Example:
        >>> analyzer = QueryAnalyzer()
        >>> result = analyzer.analyze("where is HybridSearch defined")
        >>> result.intent
        <QueryIntent.FIND_DEFINITION: 'find_definition'>
        >>> result.entities[0].value
        'HybridSearch'
    """

    def __init__(self, max_query_length: int = MAX_QUERY_LENGTH):
        """Initialize analyzer.

        Args:
            max_query_length: Longer queries are not analyzed (DoS guard)
        """
        self.max_query_length = max_query_length

    def analyze(self, query: str) -> AnalyzedQuery:
        """Analyze a query. Never raises.

        Args:
            query: Raw user query

        Returns:
            AnalyzedQuery; empty or oversized queries get a ``general``
            analysis with no entities or terms
        """
        trimmed = query.strip()

        if not trimmed or len(trimmed) > self.max_query_length:
            logger.debug(f"Skipping analysis for query of length {len(query)}")
            return AnalyzedQuery(original_query=query)

        entities = self._extract_entities(trimmed)

        return AnalyzedQuery(
            original_query=query,
            intent=self._detect_intent(trimmed),
            entities=entities,
            suggested_filters=self._suggest_filters(trimmed, entities),
            expanded_terms=self._expand_terms(trimmed),
        )

    def _detect_intent(self, query: str) -> QueryIntent:
        """Return the intent of the first matching rule, else GENERAL."""
        for intent, patterns in _INTENT_RULES:
            for pattern in patterns:
                if pattern.search(query):
                    return intent
        return QueryIntent.GENERAL

    def _extract_entities(self, query: str) -> list[QueryEntity]:
        """Extract file paths, classes and functions in order of appearance."""
        entities: list[QueryEntity] = []
        seen: set[tuple[str, str]] = set()

        def add(entity_type: str, value: str) -> None:
            key = (entity_type, value)
            if key not in seen:
                seen.add(key)
                entities.append(QueryEntity(type=entity_type, value=value))

        for match in _FILE_PATH_PATTERN.finditer(query):
            add("file", match.group(0))

        # Identifiers inside a path belong to the path
        remainder = _FILE_PATH_PATTERN.sub(" ", query)

        for match in _IDENTIFIER_PATTERN.finditer(remainder):
            identifier = match.group(0)
            lowered = identifier.lower()
            if lowered in _STOP_WORDS or lowered in _INTENT_TRIGGER_WORDS:
                continue
            add("class" if identifier[0].isupper() else "function", identifier)

        return entities

    def _suggest_filters(self, query: str, entities: list[QueryEntity]) -> SearchFilters:
        """Suggest language, chunk type and path filters."""
        words = _words(query)

        languages = _dedupe([_LANGUAGE_KEYWORDS[w] for w in words if w in _LANGUAGE_KEYWORDS])
        chunk_types = _dedupe(
            [_CHUNK_TYPE_KEYWORDS[w] for w in words if w in _CHUNK_TYPE_KEYWORDS]
        )
        file_paths = [e.value for e in entities if e.type == "file"]

        return SearchFilters(
            languages=languages or None,
            chunk_types=chunk_types or None,
            file_paths=file_paths or None,
        )

    def _expand_terms(self, query: str) -> list[str]:
        """Query tokens with synonyms inserted after each trigger's first occurrence."""
        expanded: list[str] = []
        seen: set[str] = set()
        for word in _words(query):
            for term in (word, *_TERM_EXPANSIONS.get(word, ())):
                if term not in seen:
                    seen.add(term)
                    expanded.append(term)
        return expanded

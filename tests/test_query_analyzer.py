"""Tests for pattern-based query analysis."""

from coderag.models.query import AnalyzedQuery, QueryEntity, QueryIntent
from coderag.retrieval.query_analyzer import QueryAnalyzer

# =============================================================================
# Intent detection
# =============================================================================


class TestIntentDetection:
    """First matching rule wins; no match is general."""

    def test_where_is_defined(self):
        result = QueryAnalyzer().analyze("where is HybridSearch defined")
        assert result.intent == QueryIntent.FIND_DEFINITION

    def test_definition_of(self):
        result = QueryAnalyzer().analyze("show me the definition of parseConfig")
        assert result.intent == QueryIntent.FIND_DEFINITION

    def test_who_calls(self):
        result = QueryAnalyzer().analyze("who calls parseConfig")
        assert result.intent == QueryIntent.FIND_USAGE

    def test_usage_of(self):
        result = QueryAnalyzer().analyze("usage of ConfigLoader in the cli")
        assert result.intent == QueryIntent.FIND_USAGE

    def test_how_does_work(self):
        result = QueryAnalyzer().analyze("how does TokenBudgetOptimizer work")
        assert result.intent == QueryIntent.UNDERSTAND_MODULE

    def test_explain(self):
        result = QueryAnalyzer().analyze("explain the retrieval pipeline")
        assert result.intent == QueryIntent.UNDERSTAND_MODULE

    def test_similar_to(self):
        result = QueryAnalyzer().analyze("code similar to parseConfig")
        assert result.intent == QueryIntent.FIND_SIMILAR

    def test_general_when_nothing_matches(self):
        result = QueryAnalyzer().analyze("token budget")
        assert result.intent == QueryIntent.GENERAL

    def test_case_insensitive(self):
        result = QueryAnalyzer().analyze("WHO CALLS parseConfig")
        assert result.intent == QueryIntent.FIND_USAGE


# =============================================================================
# Entity extraction
# =============================================================================


class TestEntityExtraction:
    def test_pascal_case_is_class(self):
        result = QueryAnalyzer().analyze("where is HybridSearch defined")
        assert result.entities == [QueryEntity(type="class", value="HybridSearch")]

    def test_camel_case_is_function(self):
        result = QueryAnalyzer().analyze("who calls parseConfig")
        assert result.entities == [QueryEntity(type="function", value="parseConfig")]

    def test_capitalized_stop_words_skipped(self):
        """'Where' matches the class pattern but is a stop word."""
        result = QueryAnalyzer().analyze("Where is Session used")
        assert [e.value for e in result.entities] == ["Session"]

    def test_file_path(self):
        result = QueryAnalyzer().analyze("explain src/retrieval/hybrid-search.ts")
        assert result.entities == [QueryEntity(type="file", value="src/retrieval/hybrid-search.ts")]

    def test_identifiers_inside_path_not_extracted(self):
        result = QueryAnalyzer().analyze("explain src/ConfigLoader.ts")
        assert [e.type for e in result.entities] == ["file"]

    def test_entities_deduplicated_in_order(self):
        result = QueryAnalyzer().analyze("ConfigLoader calls readFile and ConfigLoader again")
        assert [e.value for e in result.entities] == ["ConfigLoader", "readFile"]


# =============================================================================
# Filters and term expansion
# =============================================================================


class TestSuggestedFilters:
    def test_language_and_chunk_type(self):
        result = QueryAnalyzer().analyze("python class for sessions")
        assert result.suggested_filters.languages == ["python"]
        assert result.suggested_filters.chunk_types == ["class"]

    def test_language_abbreviation(self):
        result = QueryAnalyzer().analyze("ts functions that read files")
        assert result.suggested_filters.languages == ["typescript"]
        assert result.suggested_filters.chunk_types == ["function"]

    def test_file_entities_become_path_filter(self):
        result = QueryAnalyzer().analyze("explain src/auth/session.ts")
        assert result.suggested_filters.file_paths == ["src/auth/session.ts"]

    def test_no_matches_leave_fields_none(self):
        result = QueryAnalyzer().analyze("token budget")
        filters = result.suggested_filters
        assert filters.languages is None  # no opinion, not "no languages"
        assert filters.chunk_types is None
        assert filters.file_paths is None
        assert filters.is_empty


class TestTermExpansion:
    def test_synonyms_follow_trigger(self):
        result = QueryAnalyzer().analyze("auth flow")
        assert result.expanded_terms == [
            "auth", "authentication", "authorization", "login", "session", "token", "flow",
        ]

    def test_expanded_terms_deduplicated(self):
        result = QueryAnalyzer().analyze("log logger log")
        assert result.expanded_terms == ["log", "logger", "logging", "debug", "trace"]

    def test_punctuation_stripped(self):
        result = QueryAnalyzer().analyze("config?")
        assert result.expanded_terms[0] == "config"
        assert "settings" in result.expanded_terms


# =============================================================================
# Edge cases
# =============================================================================


class TestEdgeCases:
    def test_empty_query(self):
        result = QueryAnalyzer().analyze("")
        assert result == AnalyzedQuery(original_query="")
        assert result.intent == QueryIntent.GENERAL

    def test_whitespace_query_kept_verbatim(self):
        result = QueryAnalyzer().analyze("   ")
        assert result.original_query == "   "
        assert result.entities == []
        assert result.expanded_terms == []

    def test_oversized_query_not_analyzed(self):
        query = "where is HybridSearch defined " + "x" * 2000
        result = QueryAnalyzer().analyze(query)
        assert result.intent == QueryIntent.GENERAL
        assert result.entities == []
        assert result.original_query == query

    def test_custom_length_limit(self):
        result = QueryAnalyzer(max_query_length=10).analyze("who calls parseConfig")
        assert result.intent == QueryIntent.GENERAL

    def test_analyze_is_idempotent(self):
        analyzer = QueryAnalyzer()
        query = "who calls ConfigLoader in src/config/loader.ts python"
        assert analyzer.analyze(query) == analyzer.analyze(query)

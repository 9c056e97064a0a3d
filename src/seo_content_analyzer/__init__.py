"""
SEO Content Analyzer

Scores prose content for SEO quality and locates improvable keywords:
- Deterministic, weighted SEO scoring with recommendations
- AI-assisted analysis with overload backoff and rule-based fallback
- Whole-word keyword localization and highlight management for live documents
"""

__version__ = "1.0.0"
__author__ = "SEO Content Analyzer Team"

from .config import AnalyzerConfig

from .models import (
    AnalysisSource,
    ContentBlock,
    ContentBlockType,
    DocumentValidationError,
    HighlightRange,
    KeywordAnalysis,
    KeywordSuggestion,
    MetricStatus,
    ParsedDocument,
    SEOBreakdown,
    SEOMetric,
    SEOScore,
    TextNode,
)

from .readability import (
    ReadabilityMetrics,
    compute_readability_metrics,
    count_syllables,
    flesch_reading_ease,
    split_sentences,
    unique_word_ratio,
    word_count,
)

from .seo_scorer import (
    METRIC_WEIGHTS,
    calculate_overall,
    describe_improvement,
    generate_recommendations,
    score_document,
)

from .retry import BackoffPolicy, is_overload_error

from .llm_client import (
    LLMClient,
    LLMClientError,
    ModelClient,
    ResponseParseError,
    create_llm_client,
)

from .fallback_keywords import WEAK_WORDS, find_weak_words

from .orchestrator import (
    AnalysisSession,
    InMemoryPriorScoreStore,
    PriorScoreStore,
    SEOAnalysisOrchestrator,
    content_fingerprint,
    document_identity,
    request_fingerprint,
)

from .highlighting import (
    DocumentSnapshot,
    DocumentSurface,
    HighlightManager,
    InMemoryDocument,
    find_whole_word_matches,
    localize,
    text_nodes_from_blocks,
)

__all__ = [
    # Configuration
    "AnalyzerConfig",
    # Models
    "AnalysisSource",
    "ContentBlock",
    "ContentBlockType",
    "DocumentValidationError",
    "HighlightRange",
    "KeywordAnalysis",
    "KeywordSuggestion",
    "MetricStatus",
    "ParsedDocument",
    "SEOBreakdown",
    "SEOMetric",
    "SEOScore",
    "TextNode",
    # Readability
    "ReadabilityMetrics",
    "compute_readability_metrics",
    "count_syllables",
    "flesch_reading_ease",
    "split_sentences",
    "unique_word_ratio",
    "word_count",
    # Scoring
    "METRIC_WEIGHTS",
    "calculate_overall",
    "describe_improvement",
    "generate_recommendations",
    "score_document",
    # Remote model
    "BackoffPolicy",
    "is_overload_error",
    "LLMClient",
    "LLMClientError",
    "ModelClient",
    "ResponseParseError",
    "create_llm_client",
    # Fallback keywords
    "WEAK_WORDS",
    "find_weak_words",
    # Orchestration
    "AnalysisSession",
    "InMemoryPriorScoreStore",
    "PriorScoreStore",
    "SEOAnalysisOrchestrator",
    "content_fingerprint",
    "document_identity",
    "request_fingerprint",
    # Highlighting
    "DocumentSnapshot",
    "DocumentSurface",
    "HighlightManager",
    "InMemoryDocument",
    "find_whole_word_matches",
    "localize",
    "text_nodes_from_blocks",
]

"""
Deterministic SEO scoring.

This module scores a ParsedDocument on five weighted metrics:
- Content quality (length, paragraph/sentence shape, vocabulary)
- Keyword optimization (title, density, headings)
- Readability (Flesch score, sentence length, transitions)
- Structure (title, description, headings, paragraphs)
- Metadata (title and description lengths)

Scoring is pure: the same document and keyword always produce the same
breakdown. It is used directly and as the fallback of the AI orchestrator.
"""

import math
from typing import Optional

from .models import (
    AnalysisSource,
    ParsedDocument,
    SEOBreakdown,
    SEOMetric,
    SEOScore,
)
from .readability import GOOD_FLESCH_SCORE, ReadabilityMetrics, compute_readability_metrics

# Metric weights. They need not sum to 1; the overall score is normalized
# by the computed weight sum.
METRIC_WEIGHTS: dict[str, float] = {
    "content_quality": 0.25,
    "keyword_optimization": 0.30,
    "readability": 0.20,
    "structure": 0.15,
    "meta_data": 0.10,
}

TRANSITION_WORDS = (
    "however",
    "therefore",
    "furthermore",
    "moreover",
    "consequently",
    "additionally",
)

NO_KEYWORD_DETAIL = "No target keyword specified"
DEFAULT_MAX_RECOMMENDATIONS = 5


def score_document(
    document: ParsedDocument,
    target_keyword: Optional[str] = None,
    previous_score: Optional[int] = None,
    max_recommendations: int = DEFAULT_MAX_RECOMMENDATIONS,
) -> SEOScore:
    """
    Calculate the deterministic SEO score of a document.

    Args:
        document: Document snapshot to score.
        target_keyword: Optional keyword the content should rank for.
        previous_score: Optional earlier overall score for comparison.
        max_recommendations: Cap on recommendation strings.

    Returns:
        SEOScore tagged with the fallback source.
    """
    text = document.full_text
    metrics = compute_readability_metrics(text, document.blocks)

    breakdown = SEOBreakdown(
        content_quality=analyze_content_quality(metrics),
        keyword_optimization=analyze_keyword_optimization(text, document, target_keyword, metrics),
        readability=analyze_readability(text, metrics),
        structure=analyze_structure(document),
        meta_data=analyze_meta_data(document),
    )

    overall = calculate_overall(breakdown)

    improvement = None
    if previous_score is not None:
        improvement = describe_improvement(overall, previous_score)

    return SEOScore(
        overall=overall,
        breakdown=breakdown,
        recommendations=tuple(generate_recommendations(breakdown, max_recommendations)),
        previous_score=previous_score,
        improvement=improvement,
        source=AnalysisSource.FALLBACK,
    )


def analyze_content_quality(metrics: ReadabilityMetrics) -> SEOMetric:
    """Score content length, paragraph and sentence shape, and vocabulary."""
    details: list[str] = []
    score = 0

    if metrics.word_count >= 300:
        score += 30
        details.append(f"Good content length: {metrics.word_count} words")
    else:
        details.append(f"Content too short: {metrics.word_count} words (recommended: 300+)")

    avg_paragraph = metrics.average_paragraph_length
    if 50 <= avg_paragraph <= 150:
        score += 25
        details.append("Good paragraph length")
    elif avg_paragraph > 150:
        details.append("Paragraphs too long (break them up)")
    else:
        details.append("Paragraphs too short")

    avg_sentence = metrics.average_words_per_sentence
    if 15 <= avg_sentence <= 25:
        score += 20
        details.append("Good sentence length variety")
    else:
        details.append("Improve sentence length variety")

    if metrics.unique_word_ratio > 0.5:
        score += 25
        details.append("Good vocabulary variety")
    else:
        details.append("Increase vocabulary variety")

    return _metric(score, details, "content_quality")


def analyze_keyword_optimization(
    text: str,
    document: ParsedDocument,
    target_keyword: Optional[str],
    metrics: Optional[ReadabilityMetrics] = None,
) -> SEOMetric:
    """Score keyword placement in title and headings, and keyword density."""
    if not target_keyword or not target_keyword.strip():
        # Sentinel value, not computed
        return _metric(50, [NO_KEYWORD_DETAIL], "keyword_optimization")

    details: list[str] = []
    score = 0
    keyword = target_keyword.strip().lower()

    if keyword in document.title.lower():
        score += 30
        details.append("Keyword found in title")
    else:
        details.append("Add keyword to title")

    density = calculate_keyword_density(text, keyword, metrics)
    if 1 <= density <= 3:
        score += 40
        details.append(f"Good keyword density: {density:.1f}%")
    elif density > 3:
        score += 20
        details.append(f"Keyword density too high: {density:.1f}% (reduce to 1-3%)")
    else:
        details.append(f"Keyword density too low: {density:.1f}% (aim for 1-3%)")

    if any(keyword in h.content.lower() for h in document.headings):
        score += 30
        details.append("Keyword found in headings")
    else:
        details.append("Add keyword to at least one heading")

    return _metric(score, details, "keyword_optimization")


def calculate_keyword_density(
    text: str,
    keyword: str,
    metrics: Optional[ReadabilityMetrics] = None,
) -> float:
    """
    Keyword occurrences per hundred words.

    Occurrences are literal, case-insensitive and non-overlapping. Returns
    0.0 for text without words.
    """
    total_words = metrics.word_count if metrics else len(text.split())
    keyword = keyword.strip().lower()
    if total_words == 0 or not keyword:
        return 0.0
    occurrences = text.lower().count(keyword)
    return occurrences / total_words * 100


def analyze_readability(text: str, metrics: ReadabilityMetrics) -> SEOMetric:
    """Score Flesch reading ease, sentence length and transition words."""
    details: list[str] = []
    score = 0

    flesch = metrics.flesch_reading_ease
    if not metrics.is_empty and flesch >= GOOD_FLESCH_SCORE:
        score += 40
        details.append(f"Good readability score: {round_half_up(flesch)}")
    else:
        details.append(f"Improve readability: {round_half_up(flesch)} (aim for 60+)")

    if metrics.sentence_count == 0:
        details.append("Add complete sentences to measure readability")
    elif metrics.average_words_per_sentence <= 20:
        score += 30
        details.append("Good average sentence length")
    else:
        details.append("Shorten sentences for better readability")

    text_lower = text.lower()
    if any(word in text_lower for word in TRANSITION_WORDS):
        score += 30
        details.append("Good use of transition words")
    else:
        details.append("Add transition words to improve flow")

    return _metric(score, details, "readability")


def analyze_structure(document: ParsedDocument) -> SEOMetric:
    """Score presence of title/description and heading/paragraph counts."""
    details: list[str] = []
    score = 0

    if document.title:
        score += 20
        details.append("Title present")
    else:
        details.append("Add a title")

    if document.description:
        score += 20
        details.append("Description present")
    else:
        details.append("Add a meta description")

    headings = document.headings
    if len(headings) >= 2:
        score += 30
        details.append(f"Good heading structure: {len(headings)} headings")
    else:
        details.append("Add more headings to structure content")

    if len(document.paragraphs) >= 3:
        score += 30
        details.append("Good content organization")
    else:
        details.append("Break content into more paragraphs")

    return _metric(score, details, "structure")


def analyze_meta_data(document: ParsedDocument) -> SEOMetric:
    """Score title and meta description lengths."""
    details: list[str] = []
    score = 0

    title_length = len(document.title)
    if 30 <= title_length <= 60:
        score += 50
        details.append(f"Good title length: {title_length} characters")
    elif title_length > 60:
        details.append(f"Title too long: {title_length} chars (max 60)")
    else:
        details.append(f"Title too short: {title_length} chars (min 30)")

    description = document.description
    if description and 120 <= len(description) <= 160:
        score += 50
        details.append(f"Good description length: {len(description)} characters")
    elif description and len(description) > 160:
        details.append(f"Description too long: {len(description)} chars (max 160)")
    elif description:
        details.append(f"Description too short: {len(description)} chars (min 120)")
    else:
        details.append("Add a meta description")

    return _metric(score, details, "meta_data")


def calculate_overall(breakdown: SEOBreakdown) -> int:
    """Weighted mean of the metric scores, rounded and clamped to 0-100."""
    metrics = [metric for _, metric in breakdown.items()]
    weight_sum = sum(m.weight for m in metrics)
    if weight_sum <= 0:
        return 0
    weighted = sum(m.score * m.weight for m in metrics) / weight_sum
    return clamp_score(round_half_up(weighted))


def generate_recommendations(
    breakdown: SEOBreakdown,
    limit: int = DEFAULT_MAX_RECOMMENDATIONS,
) -> list[str]:
    """
    Collect actionable details from weak metrics.

    Details containing a colon carry figures and are informational only.
    Metric order is preserved.
    """
    recommendations: list[str] = []
    for _, metric in breakdown.items():
        if metric.status.is_actionable:
            recommendations.extend(d for d in metric.details if ":" not in d)
    return recommendations[:limit]


def describe_improvement(overall: int, previous_score: int) -> str:
    """Render the change between two overall scores."""
    delta = overall - previous_score
    if delta > 0:
        return f"+{delta} points better"
    if delta < 0:
        return f"{delta} points worse"
    return "No change"


def clamp_score(value: int) -> int:
    return max(0, min(100, int(value)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _metric(score: int, details: list[str], name: str) -> SEOMetric:
    return SEOMetric(
        score=clamp_score(score),
        details=tuple(details),
        weight=METRIC_WEIGHTS[name],
    )

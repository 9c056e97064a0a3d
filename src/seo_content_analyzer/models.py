"""
Data models for SEO Content Analyzer.

This module defines all the core data structures used throughout the application:
the document snapshot handed over by the editor, the score objects produced by
the scorer and the orchestrator, and the keyword/highlight results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class DocumentValidationError(Exception):
    """Raised when a document payload is structurally invalid."""
    pass


class ContentBlockType(Enum):
    """Types of content blocks."""
    HEADING = "heading"
    SUBHEADING = "subheading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    BLOCKQUOTE = "blockquote"


class MetricStatus(Enum):
    """Quality band of a single metric score."""
    EXCELLENT = "excellent"
    GOOD = "good"
    NEEDS_IMPROVEMENT = "needs-improvement"
    POOR = "poor"

    @classmethod
    def from_score(cls, score: int) -> "MetricStatus":
        """Map a 0-100 score onto its status band."""
        if score >= 90:
            return cls.EXCELLENT
        if score >= 70:
            return cls.GOOD
        if score >= 50:
            return cls.NEEDS_IMPROVEMENT
        return cls.POOR

    @property
    def is_actionable(self) -> bool:
        """Check if metrics in this band should feed recommendations."""
        return self in (MetricStatus.POOR, MetricStatus.NEEDS_IMPROVEMENT)


class AnalysisSource(Enum):
    """Provenance of an analysis result."""
    AI = "ai"
    FALLBACK = "fallback"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ContentBlock:
    """One semantic unit of document content."""
    id: str
    type: ContentBlockType
    content: str
    level: Optional[int] = None  # Heading level (h1=1, h2=2, ...)
    is_edited: bool = False

    @property
    def is_heading(self) -> bool:
        """Check if this block is a heading or subheading."""
        return self.type in (ContentBlockType.HEADING, ContentBlockType.SUBHEADING)

    @classmethod
    def from_dict(cls, data: dict[str, Any], index: int = 0) -> "ContentBlock":
        """
        Build a block from its wire representation.

        Args:
            data: Dict with 'type', 'content' and optionally 'id', 'level', 'isEdited'.
            index: Position of the block, used for the default id.

        Raises:
            DocumentValidationError: If the block is not an object, has an unknown
                type or a non-numeric level.
        """
        if not isinstance(data, dict):
            raise DocumentValidationError(f"Content block {index} must be an object")

        raw_type = data.get("type", ContentBlockType.PARAGRAPH.value)
        try:
            block_type = ContentBlockType(raw_type)
        except ValueError:
            raise DocumentValidationError(
                f"Content block {index} has unknown type: {raw_type!r}"
            )

        level = data.get("level")
        if level is not None:
            try:
                level = int(level)
            except (TypeError, ValueError):
                raise DocumentValidationError(
                    f"Content block {index} has invalid level: {level!r}"
                )

        return cls(
            id=str(data.get("id") or f"block-{index}"),
            type=block_type,
            content=str(data.get("content") or ""),
            level=level,
            is_edited=bool(data.get("isEdited", data.get("is_edited", False))),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "isEdited": self.is_edited,
        }
        if self.level is not None:
            result["level"] = self.level
        return result


@dataclass
class ParsedDocument:
    """
    A structured document snapshot.

    Blocks are kept in reading order. The analyzer only reads documents; the
    editing surface owns and mutates them.
    """
    title: str = "Untitled"
    description: str = ""
    blocks: list[ContentBlock] = field(default_factory=list)
    original_url: str = ""
    author: Optional[str] = None
    publish_date: Optional[str] = None

    def __post_init__(self) -> None:
        """Default a blank title."""
        if not self.title or not self.title.strip():
            self.title = "Untitled"

    @property
    def full_text(self) -> str:
        """All block contents joined in document order."""
        return " ".join(block.content for block in self.blocks)

    @property
    def headings(self) -> list[ContentBlock]:
        return [b for b in self.blocks if b.is_heading]

    @property
    def paragraphs(self) -> list[ContentBlock]:
        return [b for b in self.blocks if b.type == ContentBlockType.PARAGRAPH]

    @classmethod
    def from_dict(cls, data: Any) -> "ParsedDocument":
        """
        Validate and convert a wire payload into a ParsedDocument.

        The payload must be an object with a non-empty 'title' and a list
        under 'content'.

        Raises:
            DocumentValidationError: If the payload shape is invalid.
        """
        if not isinstance(data, dict):
            raise DocumentValidationError("Content is required and must be an object")

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise DocumentValidationError("Invalid content structure: missing title")

        content = data.get("content")
        if not isinstance(content, list):
            raise DocumentValidationError("Invalid content structure: content must be a list")

        blocks = [ContentBlock.from_dict(item, i) for i, item in enumerate(content)]

        return cls(
            title=title,
            description=str(data.get("description") or ""),
            blocks=blocks,
            original_url=str(data.get("originalUrl") or data.get("original_url") or ""),
            author=data.get("author"),
            publish_date=data.get("publishDate"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "content": [b.to_dict() for b in self.blocks],
            "originalUrl": self.original_url,
        }
        if self.author:
            result["author"] = self.author
        if self.publish_date:
            result["publishDate"] = self.publish_date
        return result


@dataclass(frozen=True)
class SEOMetric:
    """
    A single scored metric.

    The status is derived from the score on access, so a metric can never
    carry a status that disagrees with its score.
    """
    score: int
    details: tuple[str, ...] = ()
    weight: float = 1.0

    @property
    def status(self) -> MetricStatus:
        return MetricStatus.from_score(self.score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "status": self.status.value,
            "details": list(self.details),
            "weight": self.weight,
        }


# Wire names of the breakdown, in iteration order.
BREAKDOWN_KEYS: dict[str, str] = {
    "content_quality": "contentQuality",
    "keyword_optimization": "keywordOptimization",
    "readability": "readability",
    "structure": "structure",
    "meta_data": "metaData",
}


@dataclass(frozen=True)
class SEOBreakdown:
    """The five fixed sub-metrics of an SEO score."""
    content_quality: SEOMetric
    keyword_optimization: SEOMetric
    readability: SEOMetric
    structure: SEOMetric
    meta_data: SEOMetric

    def items(self) -> list[tuple[str, SEOMetric]]:
        """Metrics in declaration order."""
        return [(name, getattr(self, name)) for name in BREAKDOWN_KEYS]

    def to_dict(self) -> dict[str, Any]:
        return {BREAKDOWN_KEYS[name]: metric.to_dict() for name, metric in self.items()}


@dataclass(frozen=True)
class SEOScore:
    """Result of one score analysis. Never mutated after construction."""
    overall: int
    breakdown: SEOBreakdown
    recommendations: tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)
    previous_score: Optional[int] = None
    improvement: Optional[str] = None
    source: AnalysisSource = AnalysisSource.FALLBACK
    message: Optional[str] = None
    request_id: Optional[int] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == AnalysisSource.FALLBACK

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "overall": self.overall,
            "breakdown": self.breakdown.to_dict(),
            "recommendations": list(self.recommendations),
            "timestamp": self.timestamp.isoformat(),
            "source": self.source.value,
        }
        if self.previous_score is not None:
            result["previousScore"] = self.previous_score
            result["improvement"] = self.improvement
        if self.message:
            result["message"] = self.message
        return result


@dataclass
class KeywordSuggestion:
    """
    A single weak or improvable term.

    The fallback matcher fills 'suggestions' with several replacements; the
    AI path returns a single 'suggestion'. Either shape is accepted.
    """
    word: str
    reason: str
    suggestion: Optional[str] = None
    suggestions: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.suggestion is None and self.suggestions:
            self.suggestion = self.suggestions[0]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"word": self.word, "reason": self.reason}
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.suggestions:
            result["suggestions"] = list(self.suggestions)
        return result


@dataclass
class KeywordAnalysis:
    """Output of keyword-mode analysis."""
    keywords: list[KeywordSuggestion] = field(default_factory=list)
    source: AnalysisSource = AnalysisSource.FALLBACK
    message: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)
    request_id: Optional[int] = None

    @property
    def fallback(self) -> bool:
        return self.source == AnalysisSource.FALLBACK

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "keywords": [k.to_dict() for k in self.keywords],
            "source": self.source.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.fallback:
            result["fallback"] = True
        if self.message:
            result["message"] = self.message
        return result


@dataclass(frozen=True)
class TextNode:
    """A text-bearing leaf of the live document and its starting offset."""
    text: str
    offset: int


@dataclass(frozen=True)
class HighlightRange:
    """A highlight span in flattened document coordinates."""
    id: str
    from_pos: int
    to_pos: int
    source_word: str
    suggestion: str = ""
    reason: str = ""

    @property
    def length(self) -> int:
        return self.to_pos - self.from_pos

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from": self.from_pos,
            "to": self.to_pos,
            "sourceWord": self.source_word,
            "suggestion": self.suggestion,
            "reason": self.reason,
        }

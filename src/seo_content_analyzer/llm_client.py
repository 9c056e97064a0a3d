"""
LLM client abstraction for content analysis.

This module provides the interface the orchestrator uses to call a
generative model (Claude/Anthropic), the prompt builders for score and
keyword analysis, and the parsing/validation of model output.
"""

import json
import logging
import re
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import BREAKDOWN_KEYS, KeywordSuggestion, ParsedDocument

try:
    import anthropic
except ImportError:
    anthropic = None  # type: ignore

logger = logging.getLogger(__name__)


class LLMClientError(Exception):
    """Raised when LLM operations fail."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponseParseError(LLMClientError):
    """Raised when model output is not usable JSON of the expected shape."""
    pass


@runtime_checkable
class ModelClient(Protocol):
    """A remote generative model: prompt in, text out. May fail."""

    async def generate(self, prompt: str) -> str:
        ...


SYSTEM_PROMPT = (
    "You are an SEO analyst. Evaluate content exactly as instructed and "
    "respond with valid JSON only, without commentary."
)

DEFAULT_KEYWORD_REASON = "Identified as an SEO improvement opportunity"


class LLMClient:
    """
    Client for LLM-based content analysis.

    Supports Anthropic Claude API.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 2048,
        timeout: float = 60.0,
    ):
        """
        Initialize the LLM client.

        Args:
            api_key: API key for the LLM provider.
            model: Model identifier to use.
            max_tokens: Maximum tokens in each response.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens

        if not self.api_key:
            raise LLMClientError(
                "No API key provided. Set ANTHROPIC_API_KEY environment variable "
                "or pass api_key parameter."
            )

        if anthropic is None:
            raise LLMClientError(
                "anthropic package not installed. Run: pip install anthropic"
            )

        import httpx
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=30.0),
            follow_redirects=True,
        )
        # The SDK's own retries are disabled; BackoffPolicy owns retrying.
        self.client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            http_client=http_client,
            max_retries=0,
        )

    async def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the response text.

        Raises:
            LLMClientError: On any API failure, carrying the HTTP status when known.
        """
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIStatusError as e:
            raise LLMClientError(f"LLM API call failed: {e}", status_code=e.status_code) from e
        except Exception as e:
            raise LLMClientError(f"LLM API call failed: {e}") from e

        if not response.content:
            raise LLMClientError("No response from AI service")
        return response.content[0].text

    async def close(self) -> None:
        await self.client.close()


def create_llm_client(
    api_key: Optional[str] = None,
    model: str = "claude-sonnet-4-20250514",
    max_tokens: int = 2048,
    timeout: float = 60.0,
) -> LLMClient:
    """
    Factory function to create an LLM client.

    Args:
        api_key: API key for the provider.
        model: Model to use.
        max_tokens: Maximum tokens per response.
        timeout: Request timeout in seconds.

    Returns:
        Configured LLMClient instance.
    """
    return LLMClient(api_key=api_key, model=model, max_tokens=max_tokens, timeout=timeout)


# ---------------------------------------------------------------------------
# Prompt building
# ---------------------------------------------------------------------------


def truncate_words(text: str, max_words: int) -> str:
    """Keep at most max_words whitespace-separated words."""
    words = text.split()
    if len(words) <= max_words:
        return " ".join(words)
    return " ".join(words[:max_words])


def build_score_prompt(
    document: ParsedDocument,
    target_keyword: Optional[str] = None,
    previous_score: Optional[int] = None,
    max_words: int = 800,
) -> str:
    """
    Build the prompt for AI score analysis.

    Args:
        document: Document to analyze.
        target_keyword: Optional target keyword.
        previous_score: Optional earlier overall score.
        max_words: Word window for the content sample.

    Returns:
        Prompt string requesting a JSON score object.
    """
    text = document.full_text
    sample = truncate_words(text, max_words)

    prior_context = ""
    if previous_score is not None:
        prior_context = f"""
PREVIOUS SCORE: {previous_score}/100
This content may already have been optimized with AI assistance. Score it on
its current merits and explain any change relative to the previous score in
the recommendations.
"""

    return f"""Analyze this content for SEO quality.

TITLE: {document.title}
DESCRIPTION: {document.description or "None"}
TARGET KEYWORD: {target_keyword or "None"}
WORD COUNT: {len(text.split())}
HEADING COUNT: {len(document.headings)}
PARAGRAPH COUNT: {len(document.paragraphs)}
{prior_context}
CONTENT SAMPLE:
{sample}

Score each metric from 0 to 100:
- contentQuality: length, paragraph and sentence shape, vocabulary variety
- keywordOptimization: target keyword in title, density (1-3%), headings
- readability: ease of reading, sentence length, transition words
- structure: title, description, heading hierarchy, paragraph organization
- metaData: title length (30-60 chars), description length (120-160 chars)

Respond with JSON only, in exactly this format:
{{
  "overall": <0-100>,
  "breakdown": {{
    "contentQuality": {{"score": <0-100>, "details": ["..."]}},
    "keywordOptimization": {{"score": <0-100>, "details": ["..."]}},
    "readability": {{"score": <0-100>, "details": ["..."]}},
    "structure": {{"score": <0-100>, "details": ["..."]}},
    "metaData": {{"score": <0-100>, "details": ["..."]}}
  }},
  "recommendations": ["<up to 5 actionable recommendations>"]
}}"""


def build_keyword_prompt(
    document: ParsedDocument,
    target_keyword: Optional[str] = None,
    max_words: int = 500,
    max_keywords: int = 10,
) -> str:
    """
    Build the prompt for AI keyword analysis.

    Args:
        document: Document to analyze.
        target_keyword: Optional target keyword.
        max_words: Word window for the content sample.
        max_keywords: Maximum keywords to request.

    Returns:
        Prompt string requesting a JSON array of weak words/phrases.
    """
    text = document.full_text
    sample = truncate_words(text, max_words)

    return f"""You are an SEO expert. Identify specific words or short phrases (2-4 words max)
in the content below that should be improved for better SEO.

TITLE: {document.title}
TARGET KEYWORD: {target_keyword or "None"}
WORD COUNT: {len(text.split())}
HEADING COUNT: {len(document.headings)}

CONTENT:
{sample}

Focus on:
- Weak or generic words that could be more specific
- Missing important keywords
- Phrases that need better keyword optimization

Each "word" must appear exactly as written in the content. Return at most
{max_keywords} items as a JSON array only:
[{{"word": "<text from content>", "suggestion": "<better alternative>", "reason": "<why>"}}]"""


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?|\n?\s*```", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences (```json ... ```) around a response."""
    return CODE_FENCE_PATTERN.sub("", text).strip()


def parse_json_response(text: str) -> Any:
    """
    Parse a model response as JSON after stripping code fences.

    Raises:
        ResponseParseError: If the text is empty or not valid JSON.
    """
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise ResponseParseError("Empty response from AI service")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Response is not valid JSON: {e}") from e


class AIMetricPayload(BaseModel):
    """One metric as returned by the model."""
    score: float
    details: list[str] = Field(default_factory=list)

    @field_validator("details", mode="before")
    @classmethod
    def _coerce_details(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class AIScorePayload(BaseModel):
    """Score object as returned by the model."""
    overall: float
    breakdown: dict[str, AIMetricPayload]
    recommendations: list[str] = Field(default_factory=list)

    @field_validator("breakdown")
    @classmethod
    def _require_all_metrics(cls, value: dict[str, AIMetricPayload]) -> dict[str, AIMetricPayload]:
        missing = [key for key in BREAKDOWN_KEYS.values() if key not in value]
        if missing:
            raise ValueError(f"breakdown is missing metrics: {', '.join(missing)}")
        return value


class AIKeywordItem(BaseModel):
    """One keyword suggestion as returned by the model."""
    word: str
    suggestion: Optional[str] = None
    reason: Optional[str] = None

    @field_validator("word")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("word must not be blank")
        return value.strip()


def parse_score_response(text: str) -> AIScorePayload:
    """
    Parse and validate a score-mode response.

    Raises:
        ResponseParseError: If the JSON is invalid or misses required fields.
    """
    data = parse_json_response(text)
    try:
        return AIScorePayload.model_validate(data)
    except ValidationError as e:
        raise ResponseParseError(f"Unexpected score response shape: {e}") from e


def parse_keyword_response(text: str, max_keywords: int = 10) -> list[KeywordSuggestion]:
    """
    Parse and validate a keyword-mode response.

    Accepts a JSON array of objects with a 'word' field, an array of plain
    strings, or an object holding such an array under 'keywords'.

    Raises:
        ResponseParseError: If the JSON is invalid or the shape does not match.
    """
    data = parse_json_response(text)
    if isinstance(data, dict) and "keywords" in data:
        data = data["keywords"]
    if not isinstance(data, list):
        raise ResponseParseError("Keyword response must be a JSON array")

    suggestions: list[KeywordSuggestion] = []
    for raw in data[:max_keywords]:
        if isinstance(raw, str):
            raw = {"word": raw}
        try:
            item = AIKeywordItem.model_validate(raw)
        except ValidationError as e:
            raise ResponseParseError(f"Unexpected keyword item shape: {e}") from e
        suggestions.append(KeywordSuggestion(
            word=item.word,
            reason=item.reason or DEFAULT_KEYWORD_REASON,
            suggestion=item.suggestion or "",
        ))
    return suggestions

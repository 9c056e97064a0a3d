"""
AI analysis orchestration.

This module runs score and keyword analysis against a remote model and
degrades to deterministic analysis when the model is unavailable:
- Builds bounded prompts from the document snapshot
- Calls the model under the overload backoff policy
- Validates the model output and normalizes it into result models
- Falls back to the rule-based scorer or the weak-word matcher on any failure

Per-session state (request ids and the last-request cache) lives in an
explicit AnalysisSession owned by the caller.
"""

import dataclasses
import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

from .config import AnalyzerConfig
from .fallback_keywords import find_weak_words
from .llm_client import (
    AIScorePayload,
    LLMClientError,
    ModelClient,
    build_keyword_prompt,
    build_score_prompt,
    create_llm_client,
    parse_keyword_response,
    parse_score_response,
)
from .models import (
    AnalysisSource,
    BREAKDOWN_KEYS,
    DocumentValidationError,
    KeywordAnalysis,
    ParsedDocument,
    SEOBreakdown,
    SEOMetric,
    SEOScore,
)
from .retry import BackoffPolicy
from .seo_scorer import (
    METRIC_WEIGHTS,
    calculate_overall,
    clamp_score,
    describe_improvement,
    generate_recommendations,
    round_half_up,
    score_document,
)

logger = logging.getLogger(__name__)

SCORE_MODE = "score"
KEYWORD_MODE = "keywords"

NO_CLIENT_MESSAGE = "AI analysis unavailable: no model client configured"
SCORE_FALLBACK_MESSAGE = "AI analysis unavailable, showing rule-based SEO score"
KEYWORD_FALLBACK_MESSAGE = "AI keyword analysis unavailable, showing common weak words"

DocumentInput = Union[ParsedDocument, dict]


def content_fingerprint(text: str, *parts: Optional[str]) -> str:
    """Short SHA-256 digest of the whole text plus request parameters."""
    raw = "\x1f".join([text, *(p or "" for p in parts)])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def document_identity(document: ParsedDocument) -> str:
    """Key under which the last score of a document is stored."""
    return f"seo_score_{document.title}_{content_fingerprint(document.full_text)[:10]}"


def request_fingerprint(
    document: ParsedDocument,
    target_keyword: Optional[str],
    mode: str,
    previous_score: Optional[int] = None,
) -> str:
    """
    Identify an analysis request for session deduplication.

    Covers everything that can change the result: title, description, the
    full text, keyword, mode and the previous score.
    """
    return content_fingerprint(
        document.full_text,
        document.title,
        document.description,
        target_keyword,
        mode,
        None if previous_score is None else str(previous_score),
    )


class PriorScoreStore(Protocol):
    """Opaque lookup of the last known overall score of a document."""

    def get(self, key: str) -> Optional[int]:
        ...

    def set(self, key: str, overall: int) -> None:
        ...


class InMemoryPriorScoreStore:
    """
    Dict-backed PriorScoreStore.

    Holds at most max_entries documents; the least recently used entry is
    evicted first.
    """

    def __init__(self, max_entries: int = 1024) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self.max_entries = max_entries
        self._scores: OrderedDict[str, int] = OrderedDict()

    def get(self, key: str) -> Optional[int]:
        overall = self._scores.get(key)
        if overall is not None:
            self._scores.move_to_end(key)
        return overall

    def set(self, key: str, overall: int) -> None:
        self._scores[key] = overall
        self._scores.move_to_end(key)
        while len(self._scores) > self.max_entries:
            self._scores.popitem(last=False)

    def clear(self) -> None:
        self._scores.clear()

    def __len__(self) -> int:
        return len(self._scores)


@dataclass
class AnalysisSession:
    """
    Per-session analysis state owned by the caller.

    Request ids increase monotonically; a result whose id is no longer
    current has been superseded and should be discarded. The last AI result
    of each mode is kept with its fingerprint so that an unchanged request
    does not reach the model again. Fallback results are never kept, so a
    request repeated after an outage tries the model again.
    """

    _request_counter: int = 0
    _last: dict[str, tuple[str, Any]] = field(default_factory=dict)

    def next_request_id(self) -> int:
        self._request_counter += 1
        return self._request_counter

    @property
    def latest_request_id(self) -> int:
        return self._request_counter

    def is_current(self, request_id: Optional[int]) -> bool:
        """Check if a result still belongs to the newest request."""
        return request_id is not None and request_id == self._request_counter

    def cached(self, mode: str, fingerprint: str) -> Optional[Any]:
        entry = self._last.get(mode)
        if entry and entry[0] == fingerprint:
            return entry[1]
        return None

    def remember(self, mode: str, fingerprint: str, result: Any) -> None:
        self._last[mode] = (fingerprint, result)

    def reset(self) -> None:
        self._last.clear()


class SEOAnalysisOrchestrator:
    """
    Runs AI-assisted analysis with deterministic fallback.

    Every public entry point is a coroutine. Remote failures never reach
    the caller; only invalid input raises DocumentValidationError.
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        client: Optional[ModelClient] = None,
        prior_scores: Optional[PriorScoreStore] = None,
        backoff: Optional[BackoffPolicy] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Analysis configuration. Defaults to AnalyzerConfig().
            client: Remote model. None sends every request to the fallback path.
            prior_scores: Optional store of previous overall scores.
            backoff: Retry policy. Defaults to one built from the config.
        """
        self.config = config or AnalyzerConfig()
        self.client = client
        self.prior_scores = prior_scores
        self.backoff = backoff or BackoffPolicy(
            max_attempts=self.config.max_attempts,
            base_delay=self.config.backoff_base_seconds,
            jitter=self.config.backoff_jitter_seconds,
        )

    @classmethod
    def from_config(
        cls,
        config: AnalyzerConfig,
        prior_scores: Optional[PriorScoreStore] = None,
    ) -> "SEOAnalysisOrchestrator":
        """Build an orchestrator, creating an Anthropic client when a key is set."""
        client = None
        if config.has_api_key:
            try:
                client = create_llm_client(
                    api_key=config.api_key,
                    model=config.model,
                    max_tokens=config.max_tokens,
                    timeout=config.request_timeout_seconds,
                )
            except LLMClientError as e:
                logger.warning(f"LLM client unavailable, using fallback analysis only: {e}")
        return cls(config=config, client=client, prior_scores=prior_scores)

    async def aclose(self) -> None:
        close = getattr(self.client, "close", None)
        if close is not None:
            await close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(
        self,
        document: DocumentInput,
        target_keyword: Optional[str] = None,
        previous_score: Optional[int] = None,
        mode: str = SCORE_MODE,
        session: Optional[AnalysisSession] = None,
    ) -> Union[SEOScore, KeywordAnalysis]:
        """Dispatch to score or keyword analysis."""
        if mode == SCORE_MODE:
            return await self.analyze_score(document, target_keyword, previous_score, session)
        if mode == KEYWORD_MODE:
            return await self.analyze_keywords(document, target_keyword, session)
        raise ValueError(f"Unknown analysis mode: {mode!r}")

    async def analyze_score(
        self,
        document: DocumentInput,
        target_keyword: Optional[str] = None,
        previous_score: Optional[int] = None,
        session: Optional[AnalysisSession] = None,
    ) -> SEOScore:
        """
        Score a document, preferring the remote model.

        Args:
            document: ParsedDocument or its wire dict.
            target_keyword: Optional target keyword.
            previous_score: Earlier overall score. Looked up in the prior
                score store when omitted.
            session: Optional session for request ids and deduplication.

        Returns:
            SEOScore tagged 'ai' or 'fallback'.

        Raises:
            DocumentValidationError: If the document is structurally invalid.
        """
        doc = self._coerce_document(document)
        target_keyword = _clean_keyword(target_keyword)

        identity = document_identity(doc)
        if previous_score is None and self.prior_scores is not None:
            previous_score = self.prior_scores.get(identity)

        request_id = session.next_request_id() if session else None
        fingerprint = request_fingerprint(doc, target_keyword, SCORE_MODE, previous_score)
        if session:
            cached = session.cached(SCORE_MODE, fingerprint)
            if cached is not None:
                logger.info("Skipping duplicate SEO score request")
                return dataclasses.replace(cached, request_id=request_id)

        result = await self._score_with_ai(doc, target_keyword, previous_score)
        result = dataclasses.replace(result, request_id=request_id)

        if self.prior_scores is not None:
            self.prior_scores.set(identity, result.overall)
        if session and not result.is_fallback:
            session.remember(SCORE_MODE, fingerprint, result)
        return result

    async def analyze_keywords(
        self,
        document: DocumentInput,
        target_keyword: Optional[str] = None,
        session: Optional[AnalysisSession] = None,
    ) -> KeywordAnalysis:
        """
        Find weak or improvable terms in a document.

        Returns:
            KeywordAnalysis tagged 'ai' or 'fallback'.

        Raises:
            DocumentValidationError: If the document is structurally invalid.
        """
        doc = self._coerce_document(document)
        target_keyword = _clean_keyword(target_keyword)

        request_id = session.next_request_id() if session else None
        fingerprint = request_fingerprint(doc, target_keyword, KEYWORD_MODE)
        if session:
            cached = session.cached(KEYWORD_MODE, fingerprint)
            if cached is not None:
                logger.info("Skipping duplicate keyword analysis request")
                return dataclasses.replace(cached, request_id=request_id)

        result = await self._keywords_with_ai(doc, target_keyword)
        result = dataclasses.replace(result, request_id=request_id)

        if session and not result.fallback:
            session.remember(KEYWORD_MODE, fingerprint, result)
        return result

    # ------------------------------------------------------------------
    # Score mode
    # ------------------------------------------------------------------

    async def _score_with_ai(
        self,
        document: ParsedDocument,
        target_keyword: Optional[str],
        previous_score: Optional[int],
    ) -> SEOScore:
        if self.client is None:
            return self._fallback_score(document, target_keyword, previous_score, NO_CLIENT_MESSAGE)

        prompt = build_score_prompt(
            document,
            target_keyword=target_keyword,
            previous_score=previous_score,
            max_words=self.config.score_word_window,
        )
        client = self.client

        try:
            response = await self.backoff.run(lambda: client.generate(prompt))
            payload = parse_score_response(response)
            return self._score_from_payload(payload, previous_score)
        except LLMClientError as e:
            logger.warning(f"AI score analysis failed, falling back: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during AI score analysis: {e}")

        return self._fallback_score(document, target_keyword, previous_score, SCORE_FALLBACK_MESSAGE)

    def _fallback_score(
        self,
        document: ParsedDocument,
        target_keyword: Optional[str],
        previous_score: Optional[int],
        message: str,
    ) -> SEOScore:
        score = score_document(
            document,
            target_keyword=target_keyword,
            previous_score=previous_score,
            max_recommendations=self.config.max_recommendations,
        )
        return dataclasses.replace(score, source=AnalysisSource.FALLBACK, message=message)

    def _score_from_payload(
        self,
        payload: AIScorePayload,
        previous_score: Optional[int],
    ) -> SEOScore:
        """
        Normalize a validated model score.

        Metric scores are clamped, weights forced to the fixed constants and
        the overall score recomputed from the breakdown.
        """
        metrics: dict[str, SEOMetric] = {}
        for name, wire_name in BREAKDOWN_KEYS.items():
            raw = payload.breakdown[wire_name]
            metrics[name] = SEOMetric(
                score=clamp_score(round_half_up(raw.score)),
                details=tuple(d for d in raw.details if d and d.strip()),
                weight=METRIC_WEIGHTS[name],
            )
        breakdown = SEOBreakdown(**metrics)
        overall = calculate_overall(breakdown)

        if abs(overall - payload.overall) > 1:
            logger.debug(f"Model overall {payload.overall} replaced by weighted overall {overall}")

        recommendations = [r.strip() for r in payload.recommendations if r and r.strip()]
        if not recommendations:
            recommendations = generate_recommendations(breakdown, self.config.max_recommendations)

        improvement = None
        if previous_score is not None:
            improvement = describe_improvement(overall, previous_score)

        return SEOScore(
            overall=overall,
            breakdown=breakdown,
            recommendations=tuple(recommendations[: self.config.max_recommendations]),
            previous_score=previous_score,
            improvement=improvement,
            source=AnalysisSource.AI,
        )

    # ------------------------------------------------------------------
    # Keyword mode
    # ------------------------------------------------------------------

    async def _keywords_with_ai(
        self,
        document: ParsedDocument,
        target_keyword: Optional[str],
    ) -> KeywordAnalysis:
        if self.client is None:
            return self._fallback_keywords(document, NO_CLIENT_MESSAGE)

        prompt = build_keyword_prompt(
            document,
            target_keyword=target_keyword,
            max_words=self.config.keyword_word_window,
            max_keywords=self.config.max_ai_keywords,
        )
        client = self.client

        try:
            response = await self.backoff.run(lambda: client.generate(prompt))
            keywords = parse_keyword_response(response, max_keywords=self.config.max_ai_keywords)
            return KeywordAnalysis(keywords=keywords, source=AnalysisSource.AI)
        except LLMClientError as e:
            logger.warning(f"AI keyword analysis failed, falling back: {e}")
        except Exception as e:
            logger.error(f"Unexpected error during AI keyword analysis: {e}")

        return self._fallback_keywords(document, KEYWORD_FALLBACK_MESSAGE)

    def _fallback_keywords(self, document: ParsedDocument, message: str) -> KeywordAnalysis:
        keywords = find_weak_words(document.full_text, limit=self.config.max_fallback_keywords)
        return KeywordAnalysis(
            keywords=keywords,
            source=AnalysisSource.FALLBACK,
            message=message,
        )

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    def _coerce_document(self, document: DocumentInput) -> ParsedDocument:
        """
        Validate caller input.

        Raises:
            DocumentValidationError: For invalid structure or oversized content.
        """
        if isinstance(document, ParsedDocument):
            doc = document
        else:
            doc = ParsedDocument.from_dict(document)

        length = len(doc.full_text)
        if length > self.config.max_content_chars:
            raise DocumentValidationError(
                f"Content too long: {length} characters (max {self.config.max_content_chars})"
            )
        return doc


def _clean_keyword(keyword: Optional[str]) -> Optional[str]:
    if keyword is None:
        return None
    keyword = keyword.strip()
    return keyword or None

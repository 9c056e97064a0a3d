"""Tests for AI analysis orchestration and fallback."""

import json

import pytest

from seo_content_analyzer.config import AnalyzerConfig
from seo_content_analyzer.llm_client import LLMClientError
from seo_content_analyzer.models import AnalysisSource, DocumentValidationError, MetricStatus
from seo_content_analyzer.orchestrator import (
    KEYWORD_FALLBACK_MESSAGE,
    NO_CLIENT_MESSAGE,
    SCORE_FALLBACK_MESSAGE,
    AnalysisSession,
    InMemoryPriorScoreStore,
    SEOAnalysisOrchestrator,
    content_fingerprint,
    document_identity,
    request_fingerprint,
)
from seo_content_analyzer.seo_scorer import score_document

from conftest import FakeModelClient, make_document, overload_error, valid_score_json


class TestFingerprints:
    """Tests for request and document identity helpers."""

    def test_fingerprint_covers_whole_text(self):
        """Test that text beyond the first 100 characters is significant."""
        base = "x" * 100
        assert content_fingerprint(base + "tail one", "kw") != content_fingerprint(base + "tail two", "kw")

    def test_request_fingerprint_covers_title_and_description(self):
        """Test that metadata changes produce a new request fingerprint."""
        original = make_document("Same body text.", title="First Title")
        retitled = make_document("Same body text.", title="Second Title")
        described = make_document("Same body text.", title="First Title", description="Now described")

        fingerprint = request_fingerprint(original, None, "score")
        assert request_fingerprint(retitled, None, "score") != fingerprint
        assert request_fingerprint(described, None, "score") != fingerprint

    def test_request_fingerprint_covers_previous_score(self):
        """Test that a different previous score is a different request."""
        doc = make_document("Same body text.")
        assert request_fingerprint(doc, None, "score", 10) != request_fingerprint(doc, None, "score")

    def test_fingerprint_includes_parameters(self):
        """Test that keyword and mode change the fingerprint."""
        assert content_fingerprint("text", "a", "score") != content_fingerprint("text", "b", "score")
        assert content_fingerprint("text", "a", "score") != content_fingerprint("text", "a", "keywords")

    def test_document_identity(self, sample_document):
        """Test the stored-score key format."""
        identity = document_identity(sample_document)

        assert identity.startswith(f"seo_score_{sample_document.title}_")
        assert identity == document_identity(sample_document)


class TestSessionState:
    """Tests for AnalysisSession and the in-memory prior score store."""

    def test_request_ids_increase(self):
        """Test that only the newest request id is current."""
        session = AnalysisSession()
        first = session.next_request_id()
        second = session.next_request_id()

        assert second > first
        assert session.latest_request_id == second
        assert session.is_current(second)
        assert not session.is_current(first)
        assert not session.is_current(None)

    def test_cache_keyed_by_mode_and_fingerprint(self):
        """Test that cached results need a matching fingerprint."""
        session = AnalysisSession()
        session.remember("score", "abc", "result")

        assert session.cached("score", "abc") == "result"
        assert session.cached("score", "other") is None
        assert session.cached("keywords", "abc") is None

    def test_store_clear(self):
        """Test that clearing the store forgets scores."""
        store = InMemoryPriorScoreStore()
        store.set("doc", 72)

        assert store.get("doc") == 72
        store.clear()
        assert store.get("doc") is None
        assert len(store) == 0

    def test_store_evicts_least_recently_used(self):
        """Test that the store stays within its size limit."""
        store = InMemoryPriorScoreStore(max_entries=2)
        store.set("a", 1)
        store.set("b", 2)
        store.get("a")
        store.set("c", 3)

        assert len(store) == 2
        assert store.get("a") == 1
        assert store.get("b") is None
        assert store.get("c") == 3

    def test_store_rejects_zero_capacity(self):
        """Test that the store needs room for at least one entry."""
        with pytest.raises(ValueError):
            InMemoryPriorScoreStore(max_entries=0)


@pytest.mark.asyncio
class TestScoreFallback:
    """Tests for deterministic fallback in score mode."""

    async def test_no_client(self, make_orchestrator, sample_document):
        """Test that without a client the rule-based score is returned."""
        result = await make_orchestrator().analyze_score(sample_document)

        assert result.source == AnalysisSource.FALLBACK
        assert result.is_fallback
        assert result.message == NO_CLIENT_MESSAGE
        assert result.breakdown == score_document(sample_document).breakdown

    async def test_invalid_api_key_falls_back_immediately(self, make_orchestrator, sample_document, recording_sleep):
        """Test that an authentication failure is not retried."""
        client = FakeModelClient(LLMClientError("invalid API key", status_code=401))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert client.calls == 1
        assert recording_sleep.delays == []
        assert result.source == AnalysisSource.FALLBACK
        assert result.message == SCORE_FALLBACK_MESSAGE
        assert 0 <= result.overall <= 100

    async def test_overload_exhausted(self, make_orchestrator, sample_document, recording_sleep):
        """Test that persistent overload falls back after three attempts."""
        client = FakeModelClient(overload_error())

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert client.calls == 3
        assert len(recording_sleep.delays) == 2
        assert result.is_fallback

    async def test_invalid_json_falls_back(self, make_orchestrator, sample_document):
        """Test that unparseable output falls back without retrying."""
        client = FakeModelClient("I think this content is pretty good!")

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert client.calls == 1
        assert result.is_fallback

    async def test_incomplete_breakdown_falls_back(self, make_orchestrator, sample_document):
        """Test that a response missing a metric falls back."""
        data = json.loads(valid_score_json())
        del data["breakdown"]["structure"]
        client = FakeModelClient(json.dumps(data))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert result.is_fallback

    async def test_unexpected_error_falls_back(self, make_orchestrator, sample_document):
        """Test that any client exception degrades to the fallback."""
        client = FakeModelClient(RuntimeError("connection reset"))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert result.is_fallback
        assert client.calls == 1


@pytest.mark.asyncio
class TestScoreWithAI:
    """Tests for successful AI score analysis."""

    async def test_success_after_overload(self, make_orchestrator, sample_document, recording_sleep):
        """Test two overload errors followed by a valid response."""
        client = FakeModelClient(overload_error(), overload_error(), valid_score_json())

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert client.calls == 3
        assert recording_sleep.total >= 3.0
        assert result.source == AnalysisSource.AI
        assert result.message is None

    async def test_overall_recomputed_from_breakdown(self, make_orchestrator, sample_document):
        """Test that the model's overall is replaced by the weighted mean."""
        client = FakeModelClient(valid_score_json(overall=12))

        result = await make_orchestrator(client).analyze_score(sample_document)

        # 80*.25 + 70*.30 + 90*.20 + 60*.15 + 100*.10 = 78
        assert result.overall == 78
        assert result.breakdown.content_quality.weight == 0.25
        assert result.breakdown.meta_data.status == MetricStatus.EXCELLENT

    async def test_scores_clamped(self, make_orchestrator, sample_document):
        """Test that out-of-range metric scores are clamped."""
        scores = {
            "contentQuality": 150,
            "keywordOptimization": -5,
            "readability": 50,
            "structure": 50,
            "metaData": 50,
        }
        client = FakeModelClient(valid_score_json(scores))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert result.breakdown.content_quality.score == 100
        assert result.breakdown.keyword_optimization.score == 0
        assert 0 <= result.overall <= 100

    async def test_fenced_response(self, make_orchestrator, sample_document):
        """Test that a fenced JSON response is accepted."""
        client = FakeModelClient(f"```json\n{valid_score_json()}\n```")

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert result.source == AnalysisSource.AI

    async def test_missing_recommendations_generated(self, make_orchestrator, sample_document):
        """Test that an empty recommendation list is filled from weak metrics."""
        scores = {
            "contentQuality": 40,
            "keywordOptimization": 95,
            "readability": 95,
            "structure": 95,
            "metaData": 95,
        }
        client = FakeModelClient(valid_score_json(scores, recommendations=[]))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert result.recommendations == ("contentQuality detail",)

    async def test_recommendations_capped(self, make_orchestrator, sample_document):
        """Test the recommendation cap on model output."""
        client = FakeModelClient(valid_score_json(recommendations=[f"tip {i}" for i in range(8)]))

        result = await make_orchestrator(client).analyze_score(sample_document)

        assert len(result.recommendations) == 5

    async def test_prompt_truncated(self, make_orchestrator):
        """Test that a long document is sent as an 800-word sample."""
        document = make_document(" ".join(f"w{i}" for i in range(1000)))
        client = FakeModelClient(valid_score_json())

        await make_orchestrator(client).analyze_score(document)

        assert "w799" in client.prompts[0]
        assert "w800" not in client.prompts[0]


@pytest.mark.asyncio
class TestPriorScores:
    """Tests for previous score handling."""

    async def test_explicit_previous_score(self, make_orchestrator, sample_document):
        """Test that an explicit previous score produces an improvement string."""
        result = await make_orchestrator().analyze_score(sample_document, previous_score=0)

        assert result.previous_score == 0
        assert result.improvement == f"+{result.overall} points better"

    async def test_store_supplies_previous_score(self, make_orchestrator, sample_document):
        """Test that the second analysis compares against the first."""
        store = InMemoryPriorScoreStore()
        orchestrator = make_orchestrator(prior_scores=store)

        first = await orchestrator.analyze_score(sample_document)
        second = await orchestrator.analyze_score(sample_document)

        assert len(store) == 1
        assert first.previous_score is None
        assert second.previous_score == first.overall
        assert second.improvement == "No change"


@pytest.mark.asyncio
class TestSessions:
    """Tests for request ids and duplicate suppression."""

    async def test_duplicate_request_served_from_session(self, make_orchestrator, sample_document):
        """Test that an unchanged request does not reach the model twice."""
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        first = await orchestrator.analyze_score(sample_document, session=session)
        second = await orchestrator.analyze_score(sample_document, session=session)

        assert client.calls == 1
        assert first.request_id == 1
        assert second.request_id == 2
        assert second.overall == first.overall
        assert session.is_current(second.request_id)
        assert not session.is_current(first.request_id)

    async def test_changed_keyword_reanalyzed(self, make_orchestrator, sample_document):
        """Test that a different keyword is a new request."""
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        await orchestrator.analyze_score(sample_document, target_keyword="insurance", session=session)
        await orchestrator.analyze_score(sample_document, target_keyword="coverage", session=session)

        assert client.calls == 2

    async def test_reset_clears_cache(self, make_orchestrator, sample_document):
        """Test that a reset session analyzes again."""
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        await orchestrator.analyze_score(sample_document, session=session)
        session.reset()
        await orchestrator.analyze_score(sample_document, session=session)

        assert client.calls == 2

    async def test_changed_metadata_reanalyzed(self, make_orchestrator):
        """Test that a new title and description are not served a stale result."""
        body = "Shared opening paragraph that is long enough to fill the first hundred characters of text easily."
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        await orchestrator.analyze_score(make_document(body, title="Draft"), session=session)
        await orchestrator.analyze_score(
            make_document(body, title="Liability Insurance Guide", description="Everything about liability cover."),
            session=session,
        )

        assert client.calls == 2

    async def test_text_past_prefix_reanalyzed(self, make_orchestrator):
        """Test that paragraphs added after the opening are a new request."""
        body = "Shared opening paragraph that is long enough to fill the first hundred characters of text easily."
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        await orchestrator.analyze_score(make_document(body), session=session)
        await orchestrator.analyze_score(
            make_document(body, "Second paragraph.", "Third paragraph.", "Fourth paragraph."),
            session=session,
        )

        assert client.calls == 2

    async def test_changed_text_fallback_not_stale(self, make_orchestrator):
        """Test that the rule-based score tracks the current document."""
        body = "Shared opening paragraph that is long enough to fill the first hundred characters of text easily."
        orchestrator = make_orchestrator()
        session = AnalysisSession()
        short_doc = make_document(body)
        long_doc = make_document(body, "Second paragraph.", "Third paragraph.", "Fourth paragraph.")

        await orchestrator.analyze_score(short_doc, session=session)
        result = await orchestrator.analyze_score(long_doc, session=session)

        assert result.breakdown == score_document(long_doc).breakdown

    async def test_new_previous_score_reanalyzed(self, make_orchestrator, sample_document):
        """Test that a repeat request with a previous score reports it."""
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        await orchestrator.analyze_score(sample_document, session=session)
        result = await orchestrator.analyze_score(sample_document, previous_score=10, session=session)

        assert client.calls == 2
        assert result.previous_score == 10
        assert result.improvement

    async def test_fallback_result_not_cached(self, make_orchestrator, sample_document):
        """Test that a request repeated after a model failure tries the model again."""
        client = FakeModelClient(LLMClientError("invalid API key", status_code=401), valid_score_json())
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        first = await orchestrator.analyze_score(sample_document, session=session)
        second = await orchestrator.analyze_score(sample_document, session=session)

        assert first.is_fallback
        assert second.source == AnalysisSource.AI
        assert client.calls == 2

    async def test_keyword_fallback_not_cached(self, make_orchestrator, sample_document):
        """Test that keyword mode also retries the model after a fallback."""
        client = FakeModelClient(LLMClientError("invalid API key", status_code=401), "[]")
        orchestrator = make_orchestrator(client)
        session = AnalysisSession()

        first = await orchestrator.analyze_keywords(sample_document, session=session)
        second = await orchestrator.analyze_keywords(sample_document, session=session)

        assert first.fallback
        assert not second.fallback
        assert client.calls == 2

    async def test_without_session_no_request_id(self, make_orchestrator, sample_document):
        """Test that sessionless results carry no request id."""
        result = await make_orchestrator().analyze_score(sample_document)
        assert result.request_id is None


@pytest.mark.asyncio
class TestKeywordAnalysis:
    """Tests for keyword mode."""

    async def test_ai_keywords(self, make_orchestrator, sample_document):
        """Test that model keywords are returned as AI results."""
        client = FakeModelClient(json.dumps([
            {"word": "good policy", "suggestion": "comprehensive policy", "reason": "vague"},
        ]))

        result = await make_orchestrator(client).analyze_keywords(sample_document)

        assert result.source == AnalysisSource.AI
        assert not result.fallback
        assert result.keywords[0].word == "good policy"
        assert result.keywords[0].suggestion == "comprehensive policy"

    async def test_keyword_fallback(self, make_orchestrator, sample_document):
        """Test that a failing model falls back to the weak-word list."""
        client = FakeModelClient(LLMClientError("invalid API key", status_code=401))

        result = await make_orchestrator(client).analyze_keywords(sample_document)

        assert result.fallback
        assert result.message == KEYWORD_FALLBACK_MESSAGE
        assert [k.word for k in result.keywords] == ["good", "very"]
        assert result.to_dict()["fallback"] is True

    async def test_keyword_prompt_truncated(self, make_orchestrator):
        """Test that keyword prompts carry a 500-word sample."""
        document = make_document(" ".join(f"w{i}" for i in range(1000)))
        client = FakeModelClient("[]")

        await make_orchestrator(client).analyze_keywords(document)

        assert "w499" in client.prompts[0]
        assert "w500" not in client.prompts[0]

    async def test_dispatch_by_mode(self, make_orchestrator, sample_document):
        """Test the mode switch of analyze()."""
        orchestrator = make_orchestrator()

        keywords = await orchestrator.analyze(sample_document, mode="keywords")
        score = await orchestrator.analyze(sample_document, mode="score")

        assert hasattr(keywords, "keywords")
        assert hasattr(score, "overall")

    async def test_unknown_mode(self, make_orchestrator, sample_document):
        """Test that an unknown mode is rejected."""
        with pytest.raises(ValueError):
            await make_orchestrator().analyze(sample_document, mode="summary")


@pytest.mark.asyncio
class TestInputValidation:
    """Tests for caller input errors."""

    async def test_dict_input(self, make_orchestrator, sample_document_dict):
        """Test that wire dicts are accepted."""
        result = await make_orchestrator().analyze_score(sample_document_dict)
        assert 0 <= result.overall <= 100

    async def test_missing_title(self, make_orchestrator):
        """Test that a payload without title raises."""
        with pytest.raises(DocumentValidationError):
            await make_orchestrator().analyze_score({"content": []})

    async def test_content_not_list(self, make_orchestrator):
        """Test that non-list content raises."""
        with pytest.raises(DocumentValidationError):
            await make_orchestrator().analyze_keywords({"title": "T", "content": "text"})

    async def test_oversized_content(self, make_orchestrator):
        """Test that content beyond the character ceiling is rejected."""
        client = FakeModelClient(valid_score_json())
        orchestrator = make_orchestrator(client, config=AnalyzerConfig(max_content_chars=50))

        with pytest.raises(DocumentValidationError, match="too long"):
            await orchestrator.analyze_score(make_document("x" * 51))

        assert client.calls == 0


class TestFromConfig:
    """Tests for building an orchestrator from configuration."""

    def test_without_key_has_no_client(self):
        """Test that no API key means fallback-only operation."""
        orchestrator = SEOAnalysisOrchestrator.from_config(AnalyzerConfig(api_key=None))

        assert orchestrator.client is None
        assert orchestrator.backoff.max_attempts == 3

    def test_backoff_from_config(self):
        """Test that retry settings flow into the policy."""
        config = AnalyzerConfig(max_attempts=5, backoff_base_seconds=0.5)
        orchestrator = SEOAnalysisOrchestrator(config=config)

        assert orchestrator.backoff.max_attempts == 5
        assert orchestrator.backoff.base_delay == 0.5

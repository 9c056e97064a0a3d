"""
Pytest fixtures and configuration for SEO Content Analyzer tests.
"""

import json
from pathlib import Path
from typing import Any, Union

import pytest

from seo_content_analyzer.llm_client import LLMClientError
from seo_content_analyzer.models import ContentBlock, ContentBlockType, ParsedDocument
from seo_content_analyzer.orchestrator import SEOAnalysisOrchestrator
from seo_content_analyzer.retry import BackoffPolicy


def make_block(content: str, block_type: str = "paragraph", index: int = 0, level=None) -> ContentBlock:
    """Build a content block for tests."""
    return ContentBlock(
        id=f"block-{index}",
        type=ContentBlockType(block_type),
        content=content,
        level=level,
    )


def make_document(*paragraphs: str, title: str = "Test Document", description: str = "", headings=()) -> ParsedDocument:
    """Build a document with optional headings followed by paragraphs."""
    blocks = [make_block(h, "heading", i, level=2) for i, h in enumerate(headings)]
    offset = len(blocks)
    blocks += [make_block(p, "paragraph", offset + i) for i, p in enumerate(paragraphs)]
    return ParsedDocument(title=title, description=description, blocks=blocks)


def overload_error() -> LLMClientError:
    return LLMClientError("Service overloaded", status_code=503)


def valid_score_json(scores: Union[dict, None] = None, recommendations=None, overall: int = 80) -> str:
    """Serialize a well-formed score response."""
    scores = scores or {
        "contentQuality": 80,
        "keywordOptimization": 70,
        "readability": 90,
        "structure": 60,
        "metaData": 100,
    }
    return json.dumps({
        "overall": overall,
        "breakdown": {
            name: {"score": value, "details": [f"{name} detail"]}
            for name, value in scores.items()
        },
        "recommendations": ["Add more internal links"] if recommendations is None else recommendations,
    })


class FakeModelClient:
    """
    Scripted ModelClient.

    Each call to generate() consumes the next scripted item: a string is
    returned, an exception is raised. The last item repeats once the script
    runs out.
    """

    def __init__(self, *script: Union[str, BaseException]):
        self.script: list[Any] = list(script)
        self.prompts: list[str] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        index = min(len(self.prompts), len(self.script)) - 1
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep replacement that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.delays)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """A sleep recorder to inject into BackoffPolicy."""
    return RecordingSleep()


@pytest.fixture
def backoff(recording_sleep: RecordingSleep) -> BackoffPolicy:
    """Default backoff policy that does not actually wait."""
    return BackoffPolicy(sleep=recording_sleep)


@pytest.fixture
def make_orchestrator(backoff: BackoffPolicy):
    """Factory for orchestrators wired to a fake client and the recording sleep."""
    def _make(client=None, **kwargs) -> SEOAnalysisOrchestrator:
        return SEOAnalysisOrchestrator(client=client, backoff=backoff, **kwargs)
    return _make


@pytest.fixture
def sample_document() -> ParsedDocument:
    """A small but well-structured document."""
    return make_document(
        "Professional liability insurance protects consultants from claims of negligence. "
        "However, many small firms still operate without it.",
        "A good policy covers legal defense costs and settlements. It is very affordable for most practices.",
        "Compare quotes from several carriers before you buy. Check the exclusions carefully.",
        title="Professional Liability Insurance for Consultants",
        description="Learn what professional liability insurance covers, who needs it and how to compare quotes.",
        headings=("What Liability Insurance Covers", "Who Needs Coverage"),
    )


@pytest.fixture
def sample_document_dict(sample_document: ParsedDocument) -> dict:
    """Wire representation of the sample document."""
    return sample_document.to_dict()


@pytest.fixture
def empty_document() -> ParsedDocument:
    """A document with a default title and no blocks."""
    return ParsedDocument(title="Untitled", blocks=[])


@pytest.fixture
def document_file(tmp_path: Path, sample_document_dict: dict) -> Path:
    """The sample document written to a JSON file."""
    path = tmp_path / "page.json"
    path.write_text(json.dumps(sample_document_dict), encoding="utf-8")
    return path

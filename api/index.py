"""
FastAPI wrapper for SEO Content Analyzer.

This module exposes score and keyword analysis as a small REST API.
"""

from functools import lru_cache
from typing import Any, Optional, Union

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from seo_content_analyzer import __version__
from seo_content_analyzer.config import AnalyzerConfig
from seo_content_analyzer.models import DocumentValidationError
from seo_content_analyzer.orchestrator import SEOAnalysisOrchestrator

app = FastAPI(
    title="SEO Content Analyzer API",
    description="SEO scoring and keyword suggestions with AI assistance and rule-based fallback",
    version=__version__,
)

# Enable CORS for all origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ScoreRequest(BaseModel):
    """Request model for SEO scoring."""
    content: Any = Field(..., description="Document object with title, description and content blocks")
    targetKeyword: Optional[str] = None
    previousScore: Optional[int] = Field(default=None, ge=0, le=100)


class KeywordRequest(BaseModel):
    """Request model for keyword analysis.

    'content' may be a full document object or plain text.
    """
    content: Union[dict, str]
    url: Optional[str] = None
    targetKeyword: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    ai_enabled: bool


@lru_cache(maxsize=1)
def get_orchestrator() -> SEOAnalysisOrchestrator:
    """Build the shared orchestrator from environment configuration."""
    return SEOAnalysisOrchestrator.from_config(AnalyzerConfig.from_env())


def _text_to_document(text: str, url: Optional[str]) -> dict:
    return {
        "title": "Untitled",
        "description": "",
        "content": [{"id": "block-0", "type": "paragraph", "content": text}],
        "originalUrl": url or "",
    }


@app.get("/api/health", response_model=HealthResponse)
async def health_check(orchestrator: SEOAnalysisOrchestrator = Depends(get_orchestrator)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        ai_enabled=orchestrator.client is not None,
    )


@app.post("/api/seo-score")
async def seo_score(
    request: ScoreRequest,
    orchestrator: SEOAnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Score a document.

    Remote model failures degrade to rule-based scoring; only an invalid
    document yields an error response.
    """
    try:
        score = await orchestrator.analyze_score(
            request.content,
            target_keyword=request.targetKeyword,
            previous_score=request.previousScore,
        )
    except DocumentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"score": score.to_dict()}


@app.post("/api/seo-keywords")
async def seo_keywords(
    request: KeywordRequest,
    orchestrator: SEOAnalysisOrchestrator = Depends(get_orchestrator),
):
    """Find weak or improvable words in a document or plain text."""
    content = request.content
    if isinstance(content, str):
        if not content.strip():
            raise HTTPException(status_code=400, detail="Content is required")
        content = _text_to_document(content, request.url)

    try:
        analysis = await orchestrator.analyze_keywords(content, target_keyword=request.targetKeyword)
    except DocumentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return analysis.to_dict()

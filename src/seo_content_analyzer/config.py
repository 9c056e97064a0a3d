# -*- coding: utf-8 -*-
"""
Centralized configuration for SEO Content Analyzer.

This module provides a unified configuration dataclass that controls
analysis behavior: prompt word windows, the retry policy for the remote
model, and the limits applied to inputs and results.
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass
class AnalyzerConfig:
    """
    Central configuration for content analysis behavior.

    Attributes:
        api_key: Anthropic API key. None means no remote model is used and
            every analysis takes the deterministic fallback path.
        model: Model identifier passed to the remote model.
        max_tokens: Maximum tokens requested from the model per call.
        request_timeout_seconds: HTTP timeout for a single model call.

        score_word_window: Words of content embedded in score prompts.
        keyword_word_window: Words of content embedded in keyword prompts.

        max_attempts: Total attempts (first call + retries) for transient
            overload errors.
        backoff_base_seconds: Base delay; retry i waits base * 2**(i-1).
        backoff_jitter_seconds: Upper bound of the uniform jitter added to
            every retry delay.

        max_content_chars: Input ceiling for document text. Longer documents
            are rejected as caller-input errors.
        max_recommendations: Cap on recommendation strings per score.
        max_fallback_keywords: Cap on keywords returned by the static matcher.
        max_ai_keywords: Cap on keywords accepted from the model.
    """

    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    request_timeout_seconds: float = 60.0

    # Prompt windows
    score_word_window: int = 800
    keyword_word_window: int = 500

    # Retry policy
    max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    backoff_jitter_seconds: float = 1.0

    # Limits
    max_content_chars: int = 10_000
    max_recommendations: int = 5
    max_fallback_keywords: int = 10
    max_ai_keywords: int = 10

    def __post_init__(self) -> None:
        """Validate numeric settings."""
        positive = {
            "max_tokens": self.max_tokens,
            "score_word_window": self.score_word_window,
            "keyword_word_window": self.keyword_word_window,
            "max_attempts": self.max_attempts,
            "max_content_chars": self.max_content_chars,
            "max_recommendations": self.max_recommendations,
            "max_fallback_keywords": self.max_fallback_keywords,
            "max_ai_keywords": self.max_ai_keywords,
        }
        for name, value in positive.items():
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")

        if self.backoff_base_seconds < 0 or self.backoff_jitter_seconds < 0:
            raise ValueError("Backoff delays must be non-negative")

    @property
    def has_api_key(self) -> bool:
        """Check if a remote model can be configured."""
        return bool(self.api_key)

    @classmethod
    def from_env(cls, **overrides) -> "AnalyzerConfig":
        """
        Build a config from environment variables.

        Reads ANTHROPIC_API_KEY, SEO_ANALYZER_MODEL and
        SEO_ANALYZER_MAX_ATTEMPTS. Keyword arguments take precedence.

        Raises:
            ValueError: If SEO_ANALYZER_MAX_ATTEMPTS is not an integer.
        """
        values: dict = {}

        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if api_key:
            values["api_key"] = api_key

        model = os.environ.get("SEO_ANALYZER_MODEL")
        if model:
            values["model"] = model

        max_attempts = os.environ.get("SEO_ANALYZER_MAX_ATTEMPTS")
        if max_attempts:
            try:
                values["max_attempts"] = int(max_attempts)
            except ValueError:
                raise ValueError(
                    f"SEO_ANALYZER_MAX_ATTEMPTS must be an integer, got {max_attempts!r}"
                )

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

"""
Static weak-word matcher used when AI keyword analysis is unavailable.

A fixed table maps generic, low-information words to a reason and a few
stronger replacements. Matching is case-insensitive and whole-word.
"""

import re
from typing import NamedTuple

from .models import KeywordSuggestion


class WeakWord(NamedTuple):
    reason: str
    suggestions: tuple[str, ...]


WEAK_WORDS: dict[str, WeakWord] = {
    "good": WeakWord(
        "Generic adjective that carries little search intent",
        ("effective", "reliable", "high-quality"),
    ),
    "great": WeakWord(
        "Overused praise word; specific benefits rank and convert better",
        ("outstanding", "exceptional", "proven"),
    ),
    "very": WeakWord(
        "Weak intensifier that adds length without meaning",
        ("extremely", "highly"),
    ),
    "really": WeakWord(
        "Filler intensifier that dilutes keyword density",
        ("genuinely", "truly"),
    ),
    "stuff": WeakWord(
        "Vague noun; name the actual product or topic",
        ("materials", "resources", "products"),
    ),
    "things": WeakWord(
        "Vague noun; concrete nouns match more search queries",
        ("features", "elements", "factors"),
    ),
    "thing": WeakWord(
        "Vague noun; concrete nouns match more search queries",
        ("feature", "element", "factor"),
    ),
    "nice": WeakWord(
        "Generic adjective with no descriptive value",
        ("appealing", "well-designed", "pleasant"),
    ),
    "bad": WeakWord(
        "Generic adjective; describe the actual problem",
        ("ineffective", "unreliable", "harmful"),
    ),
    "amazing": WeakWord(
        "Hype word that readers and search engines discount",
        ("remarkable", "impressive"),
    ),
    "awesome": WeakWord(
        "Informal hype word with no keyword value",
        ("excellent", "impressive"),
    ),
    "click here": WeakWord(
        "Non-descriptive anchor text gives no context to search engines",
        ("learn more about", "explore", "download the guide"),
    ),
    "read more": WeakWord(
        "Non-descriptive call to action",
        ("discover how", "see the full guide"),
    ),
    "a lot": WeakWord(
        "Imprecise quantity; use figures or specific terms",
        ("many", "numerous", "a significant number of"),
    ),
    "basically": WeakWord(
        "Filler word that weakens authority",
        ("essentially", "in short"),
    ),
}


def _whole_word_pattern(word: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(word)}(?!\w)", re.IGNORECASE)


_PATTERNS: dict[str, re.Pattern] = {word: _whole_word_pattern(word) for word in WEAK_WORDS}


def find_weak_words(text: str, limit: int = 10) -> list[KeywordSuggestion]:
    """
    Find table words in text.

    Args:
        text: Plain document text.
        limit: Maximum suggestions returned.

    Returns:
        One suggestion per matched table word, ordered by first appearance.
    """
    if not text or not text.strip():
        return []

    found: list[tuple[int, str]] = []
    for word, pattern in _PATTERNS.items():
        match = pattern.search(text)
        if match:
            found.append((match.start(), word))

    found.sort()
    return [
        KeywordSuggestion(
            word=word,
            reason=WEAK_WORDS[word].reason,
            suggestions=list(WEAK_WORDS[word].suggestions),
        )
        for _, word in found[:limit]
    ]

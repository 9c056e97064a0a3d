"""
Readability and text metrics.

Pure, stateless helpers used by the scorer:
- Word, sentence and syllable counts
- Flesch Reading Ease
- Vocabulary uniqueness

Empty or whitespace-only text yields zero counts and zero scores; none of
these functions divide by zero.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .models import ContentBlock, ContentBlockType

SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")
SYLLABLE_SUFFIX_PATTERN = re.compile(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$")
VOWEL_GROUP_PATTERN = re.compile(r"[aeiouy]{1,2}")

# Flesch score at or above this value is considered easy to read.
GOOD_FLESCH_SCORE = 60.0


@dataclass
class ReadabilityMetrics:
    """Figures computed once per document and shared by all metrics."""
    word_count: int
    sentence_count: int
    syllable_count: int
    paragraph_count: int
    average_words_per_sentence: float
    average_syllables_per_word: float
    average_paragraph_length: float
    flesch_reading_ease: float
    unique_word_ratio: float

    @property
    def is_empty(self) -> bool:
        return self.word_count == 0


def tokenize(text: str) -> list[str]:
    """Split on whitespace. Punctuation stays glued to its token."""
    return text.split()


def word_count(text: str) -> int:
    return len(tokenize(text))


def split_sentences(text: str) -> list[str]:
    """Split text on runs of sentence terminators, dropping blank parts."""
    return [s for s in SENTENCE_SPLIT_PATTERN.split(text) if s.strip()]


def count_syllables(word: str) -> int:
    """
    Estimate the syllables in a word.

    Short words count as one syllable. Otherwise a silent trailing e/es/ed and
    a leading y are removed before counting vowel groups of one or two letters.
    """
    word = word.lower()
    if len(word) <= 3:
        return 1
    word = SYLLABLE_SUFFIX_PATTERN.sub("", word)
    word = re.sub(r"^y", "", word)
    matches = VOWEL_GROUP_PATTERN.findall(word)
    return len(matches) if matches else 1


def average_sentence_length(text: str) -> float:
    """Average words per sentence, 0.0 when there are no sentences."""
    sentences = split_sentences(text)
    if not sentences:
        return 0.0
    return word_count(text) / len(sentences)


def flesch_reading_ease(text: str) -> float:
    """
    Flesch Reading Ease of a text.

    206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words).
    Returns 0.0 for text without words or sentences.
    """
    words = tokenize(text)
    sentences = split_sentences(text)
    if not words or not sentences:
        return 0.0

    syllables = sum(count_syllables(w) for w in words)
    return (
        206.835
        - 1.015 * (len(words) / len(sentences))
        - 84.6 * (syllables / len(words))
    )


def unique_word_ratio(text: str) -> float:
    """Case-insensitive distinct tokens over total tokens."""
    words = tokenize(text.lower())
    if not words:
        return 0.0
    return len(set(words)) / len(words)


def average_paragraph_length(blocks: list[ContentBlock]) -> float:
    paragraphs = [b for b in blocks if b.type == ContentBlockType.PARAGRAPH]
    if not paragraphs:
        return 0.0
    return sum(word_count(p.content) for p in paragraphs) / len(paragraphs)


def compute_readability_metrics(
    text: str,
    blocks: Optional[list[ContentBlock]] = None,
) -> ReadabilityMetrics:
    """
    Compute every readability figure for a document in one pass.

    Args:
        text: Plain document text.
        blocks: Optional content blocks, used for paragraph statistics.

    Returns:
        ReadabilityMetrics with all counts and averages.
    """
    blocks = blocks or []
    words = tokenize(text)
    sentences = split_sentences(text)
    syllables = sum(count_syllables(w) for w in words)
    n_words = len(words)
    n_sentences = len(sentences)

    return ReadabilityMetrics(
        word_count=n_words,
        sentence_count=n_sentences,
        syllable_count=syllables,
        paragraph_count=sum(1 for b in blocks if b.type == ContentBlockType.PARAGRAPH),
        average_words_per_sentence=n_words / n_sentences if n_sentences else 0.0,
        average_syllables_per_word=syllables / n_words if n_words else 0.0,
        average_paragraph_length=average_paragraph_length(blocks),
        flesch_reading_ease=flesch_reading_ease(text),
        unique_word_ratio=unique_word_ratio(text),
    )

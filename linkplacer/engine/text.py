"""Shared text utilities for the placement engine."""

from __future__ import annotations

import re
from typing import List

_TOKEN_RE = re.compile(r"[\w']+")
_SENTENCE_RE = re.compile(r"[.!?]+(?:\s+|$)")
_SYLLABLE_RE = re.compile(r"[aeiouy]+", re.IGNORECASE)
_MARKER_RE = re.compile(r"^(?:#{1,3}|-)\s+", re.MULTILINE)


def tokenize(text: str) -> List[str]:
    """Return lower-cased word tokens from the provided text."""

    return [token.lower() for token in _TOKEN_RE.findall(text)]


def word_count(text: str) -> int:
    return len(tokenize(strip_markers(text)))


def strip_markers(text: str) -> str:
    """Drop the heading and bullet markers emitted by the content reducer."""

    return _MARKER_RE.sub("", text)


def count_syllables(word: str) -> int:
    """Approximate syllable count of a single word."""

    word = word.lower()
    if len(word) <= 3:
        return 1

    syllables = len(_SYLLABLE_RE.findall(word))
    # Silent trailing e
    if word.endswith("e"):
        syllables = max(1, syllables - 1)
    if word.endswith("le") and len(word) > 2 and word[-3] not in "aeiou":
        syllables += 1
    return max(1, syllables)


def flesch_reading_ease(text: str) -> float:
    """Return the Flesch reading ease of ``text`` clamped to ``[0, 100]``.

    Flesch Reading Ease formula:
    206.835 - 1.015 × (words/sentences) - 84.6 × (syllables/words)

    Empty text is treated as perfectly readable so that it never shrinks
    the link budget.
    """

    clean = strip_markers(text)
    words = [token for token in tokenize(clean) if not token.isdigit()]
    if not words:
        return 100.0

    sentences = [part for part in _SENTENCE_RE.split(clean) if part.strip()]
    sentence_count = max(1, len(sentences))
    syllables = sum(count_syllables(word) for word in words)

    avg_words_per_sentence = len(words) / sentence_count
    avg_syllables_per_word = syllables / len(words)
    score = 206.835 - (1.015 * avg_words_per_sentence) - (84.6 * avg_syllables_per_word)
    return max(0.0, min(100.0, score))


def normalize_anchor(text: str) -> str:
    """Return a lowercase, trimmed key used to compare anchor texts."""

    return text.strip().lower()

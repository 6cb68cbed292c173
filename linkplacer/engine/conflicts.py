"""Greedy conflict resolution across located suggestions."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .links import normalize_path
from .text import normalize_anchor
from .types import DUPLICATE_ANCHOR, DUPLICATE_TARGET, TOO_CLOSE, LocatedSuggestion, Rejection

logger = logging.getLogger(__name__)

Span = Tuple[int, int]


def span_gap(first: Span, second: Span) -> int:
    """Characters between the closest edges of two spans; negative when they overlap."""

    return max(second[0] - first[1], first[0] - second[1])


def order_by_score(suggestions: Sequence[LocatedSuggestion]) -> List[LocatedSuggestion]:
    """Sort by descending score; ties keep prior suggestions first, then input order."""

    indexed = list(enumerate(suggestions))
    indexed.sort(key=lambda item: (-item[1].score, not item[1].prior, item[0]))
    return [suggestion for _, suggestion in indexed]


def resolve_conflicts(
    suggestions: Sequence[LocatedSuggestion],
    min_distance: int,
) -> Tuple[List[LocatedSuggestion], List[Rejection]]:
    """Admit suggestions best-first, skipping anything that collides with a survivor.

    Prior suggestions, the links accepted by earlier runs, are admitted
    first and unconditionally, so new suggestions can never displace them.
    A suggestion collides when its trimmed, case-folded anchor text or its
    normalised target was already admitted, or when its claimed paragraph
    lies within ``min_distance`` characters of an admitted one. This is a
    single greedy pass: a high scorer may block two lower scorers that
    would have fitted together.
    """

    admitted: List[LocatedSuggestion] = []
    rejected: List[Rejection] = []
    seen_anchors: set[str] = set()
    seen_targets: set[str] = set()
    spans: List[Span] = []

    def _claim(suggestion: LocatedSuggestion) -> None:
        admitted.append(suggestion)
        seen_anchors.add(normalize_anchor(suggestion.candidate.anchor_text))
        seen_targets.add(normalize_path(suggestion.candidate.target_url))
        spans.append(suggestion.span)

    for suggestion in suggestions:
        if suggestion.prior:
            _claim(suggestion)

    for suggestion in order_by_score([item for item in suggestions if not item.prior]):
        candidate = suggestion.candidate
        anchor_key = normalize_anchor(candidate.anchor_text)
        target_key = normalize_path(candidate.target_url)

        if anchor_key in seen_anchors:
            rejection = Rejection(candidate, DUPLICATE_ANCHOR, f"anchor '{candidate.anchor_text}' already used")
        elif target_key in seen_targets:
            rejection = Rejection(candidate, DUPLICATE_TARGET, f"target '{target_key}' already linked")
        else:
            clash = next((span for span in spans if span_gap(span, suggestion.span) < min_distance), None)
            if clash is None:
                _claim(suggestion)
                continue
            rejection = Rejection(
                candidate,
                TOO_CLOSE,
                f"{span_gap(clash, suggestion.span)} characters from an admitted link",
            )

        logger.debug("Rejected %r: %s", candidate.anchor_text, rejection.reason)
        rejected.append(rejection)

    return admitted, rejected

"""Shared fixtures for placement engine tests."""

from __future__ import annotations

from typing import Dict

import pytest

from linkplacer.engine.config import load_config
from linkplacer.engine.types import CandidateSuggestion, LocatedSuggestion

FILLER = "<p>" + "Plain filler words keep these paragraphs apart. " * 10 + "</p>"


@pytest.fixture()
def engine_config():
    """Provide a mutable copy of the default engine configuration."""

    return load_config(None)


def make_candidate(
    anchor_text: str,
    target_url: str,
    claimed_paragraph: str,
    *,
    scores: Dict[str, float] | None = None,
    **extra,
) -> CandidateSuggestion:
    return CandidateSuggestion(
        anchor_text=anchor_text,
        target_url=target_url,
        claimed_paragraph=claimed_paragraph,
        sub_scores=dict(scores or {}),
        **extra,
    )


def make_located(
    anchor_text: str,
    target_url: str,
    span: tuple[int, int],
    score: float,
    *,
    prior: bool = False,
) -> LocatedSuggestion:
    return LocatedSuggestion(
        candidate=make_candidate(anchor_text, target_url, anchor_text),
        node_id=0,
        span=span,
        score=score,
        prior=prior,
    )

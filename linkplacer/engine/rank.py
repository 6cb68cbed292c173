"""Scoring and ranking logic for located suggestions."""

from __future__ import annotations

import math
from typing import Mapping

from .config import EngineConfig
from .links import normalize_path
from .text import flesch_reading_ease, word_count
from .types import MONEY_PAGE, STANDARD_CONTENT, STRATEGIC_PILLAR, CandidateSuggestion, ContentAnalysis


def _clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(min(value, maximum), minimum)


def classify_role(url: str, config: EngineConfig) -> str:
    """Return the role of ``url`` from the configured URL pattern sets."""

    lowered = url.lower()
    if any(pattern in lowered for pattern in config.patterns("high_value_patterns")):
        return MONEY_PAGE
    if any(pattern in lowered for pattern in config.patterns("authority_patterns")):
        return STRATEGIC_PILLAR
    return STANDARD_CONTENT


def resolve_role(
    candidate: CandidateSuggestion,
    config: EngineConfig,
    inventory_roles: Mapping[str, str] | None = None,
) -> str:
    """Role of the candidate's target.

    The inventory knows the site's pages, so its role wins; otherwise the URL
    patterns decide. The model's own ``target_type`` is never trusted.
    """

    if inventory_roles:
        role = inventory_roles.get(normalize_path(candidate.target_url))
        if role:
            return role
    return classify_role(candidate.target_url, config)


def composite_score(
    candidate: CandidateSuggestion,
    role: str,
    config: EngineConfig,
    analysis: ContentAnalysis | None = None,
) -> float:
    """Return a bounded score in [0, 1] for the candidate.

    With model sub-scores the result is the weighted mean of those that have
    a configured weight, each normalised by ``score_scale``. Without them a
    base score is boosted by the target's role. Documents at the decision
    stage of the funnel favour links to money pages by
    ``decision_stage_boost``.
    """

    scale = float(config.get("score_scale", 10.0)) or 1.0
    weighted = 0.0
    total_weight = 0.0
    for name, value in candidate.sub_scores.items():
        weight = config.score_weight(name)
        if weight <= 0:
            continue
        weighted += weight * _clamp(value / scale)
        total_weight += weight

    stage_boost = 0.0
    if analysis is not None and analysis.is_decision_stage and role == MONEY_PAGE:
        stage_boost = float(config.get("decision_stage_boost", 0.0))

    if total_weight > 0:
        return round(_clamp(weighted / total_weight + stage_boost), 4)

    base = float(config.get("base_score", 0.5))
    return round(_clamp(base + config.role_boost(role) + stage_boost), 4)


def target_link_count(reduced_content: str, config: EngineConfig) -> int:
    """Return how many links the document should receive.

    One link per ``words_per_link`` words, clamped to the configured bounds,
    and scaled down for text that is already hard to read.
    """

    minimum = int(config.get("min_links", 2))
    maximum = int(config.get("max_links", 10))
    per_link = max(int(config.get("words_per_link", 150)), 1)

    count = word_count(reduced_content) // per_link
    count = max(minimum, min(count, maximum))

    threshold = float(config.get("low_readability_threshold", 30.0))
    if reduced_content and flesch_reading_ease(reduced_content) < threshold:
        factor = float(config.get("low_readability_factor", 0.6))
        count = max(minimum, math.floor(count * factor))
    return count

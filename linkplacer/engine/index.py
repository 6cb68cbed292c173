"""Coordinator for the suggestion validation and placement pipeline."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from . import conflicts as conflicts_module
from . import filters as filters_module
from . import insertion as insertion_module
from . import locator as locator_module
from . import rank as rank_module
from .candidates import parse_candidates
from .config import EngineConfig, load_config
from .document import Document
from .errors import DocumentError
from .links import extract_existing_links, normalize_path
from .reducer import reduce_content
from .types import (
    ALREADY_LINKED,
    OVER_BUDGET,
    UNLOCATABLE,
    UNPLACEABLE,
    UNVERIFIED_ANCHOR,
    AcceptedSuggestion,
    CandidateSuggestion,
    ContentAnalysis,
    ExistingLink,
    InventoryItem,
    LocatedSuggestion,
    PipelineResult,
    Rejection,
)

logger = logging.getLogger(__name__)


def run_pipeline(
    html: str,
    candidates: Sequence[CandidateSuggestion | Dict[str, object]],
    *,
    site_hostname: str | None = None,
    inventory: Sequence[InventoryItem] = (),
    prior: Iterable[AcceptedSuggestion] = (),
    analysis: ContentAnalysis | None = None,
    config: EngineConfig | None = None,
) -> PipelineResult:
    """Validate model candidates against ``html`` and insert the survivors.

    Candidates may be :class:`CandidateSuggestion` records or raw mappings
    straight from the model; malformed mappings are reported in
    ``PipelineResult.errors`` and the rest are still processed. Every
    candidate that fails a stage is recorded as a rejection.

    ``prior`` holds the links accepted by earlier runs on the same document.
    They keep their place ahead of every new candidate, count toward the
    link budget and are inserted again when ``html`` no longer carries them.
    ``analysis`` is the content analysis of the document, used for scoring.
    Raises :class:`DocumentError` for an empty document.
    """

    if not html or not html.strip():
        raise DocumentError("The document is empty.")

    engine_config = config or load_config(None)
    parsed, candidate_errors = parse_candidates(list(candidates))

    reduced = reduce_content(html, engine_config)
    existing = extract_existing_links(
        html,
        site_hostname=site_hostname,
        inventory_urls=[item.url for item in inventory],
        config=engine_config,
    )
    document = Document(html)

    result = PipelineResult(
        html=html,
        errors=[str(error) for error in candidate_errors],
        candidate_total=len(candidates),
        reduced_content=reduced,
        existing_links=existing,
    )

    located = _locate_and_verify(
        document, parsed, reduced, existing, inventory, analysis, engine_config, result.rejections
    )

    prior_by_id: Dict[int, AcceptedSuggestion] = {}
    merged: List[LocatedSuggestion] = []
    for accepted in prior:
        as_located = accepted.as_located()
        prior_by_id[id(as_located)] = accepted
        merged.append(as_located)
    merged.extend(located)

    survivors, conflict_rejections = conflicts_module.resolve_conflicts(
        merged,
        int(engine_config.get("min_link_distance", 300)),
    )
    result.rejections.extend(conflict_rejections)
    result.analysis = analysis

    result.target_count = rank_module.target_link_count(reduced, engine_config)
    placed = 0
    restored = 0
    for suggestion in survivors:
        if suggestion.prior:
            earlier = prior_by_id[id(suggestion)]
            outcome = _restore_prior(document, earlier)
            if outcome is None:
                logger.warning("Earlier link %r to %s could not be restored", earlier.candidate.anchor_text,
                               earlier.candidate.target_url)
                result.rejections.append(
                    Rejection(earlier.candidate, UNPLACEABLE, "earlier link could not be restored")
                )
                continue
            restored += outcome
            result.prior_kept.append(earlier)
            placed += 1
            continue
        if placed >= result.target_count:
            result.rejections.append(
                Rejection(suggestion.candidate, OVER_BUDGET, f"link budget of {result.target_count} reached")
            )
            continue
        markup = insertion_module.insert_link(document, suggestion)
        if markup is None:
            result.rejections.append(
                Rejection(suggestion.candidate, UNPLACEABLE, "no unlinked occurrence of the anchor text")
            )
            continue
        result.accepted.append(
            AcceptedSuggestion(
                candidate=suggestion.candidate,
                node_id=suggestion.node_id,
                span=suggestion.span,
                score=suggestion.score,
                markup=markup,
            )
        )
        placed += 1

    result.html = document.render() if result.accepted or restored else html
    if restored:
        logger.info("Restored %d earlier link(s)", restored)
    logger.info("Placement finished: %s", result.summary)
    return result


def _restore_prior(document: Document, earlier: AcceptedSuggestion) -> Optional[bool]:
    """Make sure an earlier accepted link is present in the document.

    Returns False when the link is already there, True when it was inserted
    again and None when its paragraph or anchor can no longer be found.
    """

    located = locator_module.locate_candidate(document, earlier.candidate)
    if located is None or not document.is_live(located.node_id):
        return None

    target = normalize_path(earlier.candidate.target_url)
    for anchor in document.tag(located.node_id).find_all("a"):
        if normalize_path(anchor.get("href") or "") == target:
            return False

    if insertion_module.insert_link(document, located) is None:
        return None
    return True


def _locate_and_verify(
    document: Document,
    candidates: Sequence[CandidateSuggestion],
    reduced: str,
    existing: Sequence[ExistingLink],
    inventory: Sequence[InventoryItem],
    analysis: ContentAnalysis | None,
    config: EngineConfig,
    rejections: List[Rejection],
) -> List[LocatedSuggestion]:
    existing_paths = filters_module.linked_paths(existing)
    inventory_roles = {normalize_path(item.url): item.role for item in inventory}

    located: List[LocatedSuggestion] = []
    for candidate in candidates:
        suggestion = locator_module.locate_candidate(document, candidate)
        if suggestion is None:
            rejections.append(Rejection(candidate, UNLOCATABLE, "claimed paragraph not found in document"))
            continue
        if not filters_module.verify_anchor(candidate, reduced):
            logger.debug("Anchor %r is not verbatim", candidate.anchor_text)
            rejections.append(Rejection(candidate, UNVERIFIED_ANCHOR, "anchor text is not verbatim"))
            continue
        if filters_module.is_already_linked(candidate, existing_paths):
            logger.debug("Target %s is already linked", candidate.target_url)
            rejections.append(Rejection(candidate, ALREADY_LINKED, "document already links to the target"))
            continue

        role = rank_module.resolve_role(candidate, config, inventory_roles)
        score = rank_module.composite_score(candidate, role, config, analysis)
        located.append(
            LocatedSuggestion(
                candidate=candidate,
                node_id=suggestion.node_id,
                span=suggestion.span,
                score=score,
            )
        )
    return located

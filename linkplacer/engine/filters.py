"""Guardrails applied to located suggestions before conflict resolution."""

from __future__ import annotations

from typing import Iterable, Set

from .links import normalize_path
from .types import CandidateSuggestion, ExistingLink


def verify_anchor(candidate: CandidateSuggestion, reduced_content: str) -> bool:
    """Return True when the anchor is verbatim in what the model saw.

    The anchor must appear, exactly and case-sensitively, both in the
    reduced content and in the claimed paragraph. The claimed paragraph was
    already found inside the located node, so the node text contains the
    anchor as well.
    """

    anchor = candidate.anchor_text
    if not anchor:
        return False
    return anchor in reduced_content and anchor in candidate.claimed_paragraph


def linked_paths(existing_links: Iterable[ExistingLink]) -> Set[str]:
    return {link.normalized_path for link in existing_links}


def is_already_linked(candidate: CandidateSuggestion, existing_paths: Set[str]) -> bool:
    """Return True when the document already links to the candidate's target."""

    return normalize_path(candidate.target_url) in existing_paths

"""Map a candidate's claimed paragraph onto a real document node."""

from __future__ import annotations

import logging
from typing import Optional

from .document import BlockNode, Document
from .types import CandidateSuggestion, LocatedSuggestion

logger = logging.getLogger(__name__)


def find_tightest_node(document: Document, claimed_paragraph: str) -> Optional[BlockNode]:
    """Return the shortest block node whose text contains ``claimed_paragraph``.

    Matching is exact and case-sensitive. Ties go to the node that comes
    first in document order, which keeps the result stable.
    """

    if not claimed_paragraph:
        return None

    best: Optional[BlockNode] = None
    for node in document.nodes:
        if len(node.text) < len(claimed_paragraph):
            continue
        if claimed_paragraph not in node.text:
            continue
        if best is None or len(node.text) < len(best.text):
            best = node
    return best


def locate_candidate(document: Document, candidate: CandidateSuggestion) -> Optional[LocatedSuggestion]:
    """Attach ``candidate`` to its node or return ``None`` when it is unlocatable."""

    node = find_tightest_node(document, candidate.claimed_paragraph)
    if node is None:
        logger.debug("Claimed paragraph for %r not found in document", candidate.anchor_text)
        return None

    start = node.start + node.text.index(candidate.claimed_paragraph)
    return LocatedSuggestion(
        candidate=candidate,
        node_id=node.node_id,
        span=(start, start + len(candidate.claimed_paragraph)),
    )

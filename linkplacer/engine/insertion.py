"""Insert an accepted suggestion into its document node.

The located node is cloned, the anchor occurrence inside the claimed
paragraph is wrapped in a link, and the clone is sanitised before it
replaces the live node. If no eligible occurrence exists the document is
left exactly as it was.
"""

from __future__ import annotations

import copy
import logging
from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag  # type: ignore

from .document import BLOCK_TAGS, Document, iter_text_nodes, text_content
from .links import is_safe_href
from .types import CandidateSuggestion, LocatedSuggestion

logger = logging.getLogger(__name__)

# Tags inside which links should never be inserted
SKIP_TAGS: set[str] = {"a", "code", "pre", "h1", "h2", "h3"}

# Elements removed from every rewritten node
DISALLOWED_TAGS = [
    "script",
    "style",
    "iframe",
    "object",
    "embed",
    "video",
    "audio",
    "source",
    "track",
    "picture",
    "img",
    "svg",
    "canvas",
    "form",
    "input",
    "button",
    "select",
    "option",
    "textarea",
    "noscript",
    "template",
    "link",
    "meta",
]

ALLOWED_ATTRIBUTES = {"a": {"href"}}

_PROTECTED_TAGS = SKIP_TAGS | set(DISALLOWED_TAGS)


def _should_skip(node: NavigableString) -> bool:
    """Return True if the text node sits in a link, heading, code block or removed element."""

    parent = node.parent
    while parent is not None and getattr(parent, "name", None):
        if parent.name.lower() in _PROTECTED_TAGS:
            return True
        parent = parent.parent
    return False


def _wrap(soup: BeautifulSoup, text_node: NavigableString, start: int, length: int, href: str) -> None:
    original = str(text_node)
    after = original[start + length:]
    if after:
        text_node.insert_after(after)

    anchor = soup.new_tag("a", href=href)
    anchor.string = original[start:start + length]
    text_node.insert_after(anchor)

    before = original[:start]
    if before:
        text_node.replace_with(before)
    else:
        text_node.extract()


def wrap_first_occurrence(soup: BeautifulSoup, root: Tag, candidate: CandidateSuggestion) -> bool:
    """Link the first unlinked anchor occurrence inside the claimed paragraph.

    Only occurrences that lie within a single text run and within the span
    of the claimed paragraph qualify. Returns False when there is none.
    """

    anchor = candidate.anchor_text
    text = text_content(root)
    window_start = text.find(candidate.claimed_paragraph)
    if not anchor or window_start == -1:
        return False
    window_end = window_start + len(candidate.claimed_paragraph)

    offset = 0
    for text_node in list(iter_text_nodes(root)):
        value = str(text_node)
        run_start = offset
        offset += len(value)
        if offset <= window_start:
            continue
        if run_start >= window_end:
            break
        if _should_skip(text_node):
            continue
        index = value.find(anchor, max(0, window_start - run_start))
        if index == -1 or run_start + index + len(anchor) > window_end:
            continue
        _wrap(soup, text_node, index, len(anchor), candidate.target_url)
        return True
    return False


def sanitize_fragment(root: Tag) -> Tag:
    """Strip disallowed elements, comments and attributes from ``root`` in place."""

    target = root.find(DISALLOWED_TAGS)
    while target is not None:
        target.decompose()
        target = root.find(DISALLOWED_TAGS)

    for comment in root.find_all(string=lambda value: isinstance(value, Comment)):
        comment.extract()

    for element in [root] + root.find_all(True):
        allowed = ALLOWED_ATTRIBUTES.get(element.name, set())
        kept = {name: value for name, value in element.attrs.items() if name in allowed}
        element.attrs = {}
        href = kept.get("href")
        if isinstance(href, str) and href.strip() and is_safe_href(href):
            element["href"] = href
    return root


def insert_link(document: Document, suggestion: LocatedSuggestion) -> Optional[str]:
    """Apply ``suggestion`` to the document and return the rewritten node markup.

    Returns ``None`` when the suggestion is unplaceable: the node is gone,
    sits inside a link or heading, or its anchor only occurs where a link
    may not be inserted.
    """

    candidate = suggestion.candidate
    if not document.is_live(suggestion.node_id):
        logger.debug("Node %s no longer exists for %r", suggestion.node_id, candidate.anchor_text)
        return None

    live = document.tag(suggestion.node_id)
    if any(parent.name in SKIP_TAGS for parent in live.parents):
        logger.debug("Node %s sits inside a protected element", suggestion.node_id)
        return None

    clone = copy.copy(live)
    pairs = list(zip(live.find_all(BLOCK_TAGS), clone.find_all(BLOCK_TAGS)))
    if not wrap_first_occurrence(document.soup, clone, candidate):
        logger.debug("No unlinked occurrence of %r in node %s", candidate.anchor_text, suggestion.node_id)
        return None

    sanitize_fragment(clone)
    document.replace_node(suggestion.node_id, clone, pairs)
    return str(clone)

"""Document tree used by the locator and the insertion engine.

The document is parsed once with BeautifulSoup. Every block-level element
gets an integer identity in document order together with the offset of its
first character inside the full document text, so suggestions can be
compared in original-document coordinates even after links were inserted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Tuple

from bs4 import BeautifulSoup, FeatureNotFound, NavigableString, Tag  # type: ignore
from bs4.element import PreformattedString  # type: ignore

BLOCK_TAGS: Tuple[str, ...] = (
    "p",
    "li",
    "td",
    "th",
    "dd",
    "dt",
    "blockquote",
    "figcaption",
    "div",
    "section",
    "article",
    "main",
    "header",
    "footer",
    "aside",
)

# Elements whose string content is never rendered as text.
NON_TEXT_PARENTS = {"script", "style", "template"}

BOILERPLATE_SELECTOR = ", ".join(
    [
        "script",
        "style",
        "svg",
        "iframe",
        "nav",
        "footer",
        "header",
        "aside",
        "noscript",
        ".ad-container",
        ".menu",
        ".nav",
        ".sidebar",
        ".breadcrumbs",
        ".breadcrumb",
        ".pagination",
        ".site-header",
        ".site-footer",
        "#sidebar",
        "#menu",
        "#nav",
        ".widget-area",
        ".entry-meta",
        ".post-meta",
        ".cat-links",
        ".tags-links",
        ".metadata",
        ".post-info",
        ".author-box",
        ".comment-respond",
        ".social-share",
        ".related-posts",
        ".newsletter-signup",
        ".disclaimer",
        ".cookie-banner",
        '[role="complementary"]',
        '[role="navigation"]',
        '[role="banner"]',
        '[role="contentinfo"]',
    ]
)

_FULL_DOCUMENT_RE = re.compile(r"<\s*(?:html|body|!doctype)\b", re.IGNORECASE)


def parse_html(html: str) -> BeautifulSoup:
    """Parse markup with lxml, falling back to the stdlib parser."""

    try:
        return BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        return BeautifulSoup(html, "html.parser")


def is_text_node(element: object) -> bool:
    """Return True for strings that contribute to the rendered text."""

    if not isinstance(element, NavigableString) or isinstance(element, PreformattedString):
        return False
    parent = element.parent
    return not (parent is not None and parent.name in NON_TEXT_PARENTS)


def iter_text_nodes(tag: Tag) -> Iterator[NavigableString]:
    for element in tag.descendants:
        if is_text_node(element):
            yield element


def text_content(tag: Tag) -> str:
    """Concatenate the visible text below ``tag`` without normalising it."""

    return "".join(str(node) for node in iter_text_nodes(tag))


def strip_boilerplate(soup: BeautifulSoup) -> None:
    """Remove navigation, ads and metadata regions in place."""

    for element in soup.select(BOILERPLATE_SELECTOR):
        element.extract()


@dataclass(frozen=True)
class BlockNode:
    """A block-level element as it appeared in the original document."""

    node_id: int
    name: str
    start: int
    text: str

    @property
    def end(self) -> int:
        return self.start + len(self.text)


class Document:
    """Mutable wrapper around a parsed HTML document.

    Location and verification only read :attr:`nodes`; the insertion engine
    swaps a single node at a time through :meth:`replace_node`.
    """

    def __init__(self, html: str) -> None:
        self.source = html
        self.soup = parse_html(html)
        self.is_fragment = not _FULL_DOCUMENT_RE.search(html)
        self.nodes: List[BlockNode] = []
        self._tags: Dict[int, Tag] = {}
        self._index()

    def _index(self) -> None:
        offset = 0
        for element in self.soup.descendants:
            if isinstance(element, Tag):
                if element.name in BLOCK_TAGS:
                    node_id = len(self.nodes)
                    self.nodes.append(
                        BlockNode(
                            node_id=node_id,
                            name=element.name,
                            start=offset,
                            text=text_content(element),
                        )
                    )
                    self._tags[node_id] = element
            elif is_text_node(element):
                offset += len(element)
        self.text_length = offset

    def node(self, node_id: int) -> BlockNode:
        return self.nodes[node_id]

    def tag(self, node_id: int) -> Tag:
        """Return the live element currently representing ``node_id``."""

        return self._tags[node_id]

    def is_live(self, node_id: int) -> bool:
        return node_id in self._tags

    def live_text(self, node_id: int) -> str:
        return text_content(self._tags[node_id])

    def markup(self, node_id: int) -> str:
        return str(self._tags[node_id])

    def block_descendants(self, node_id: int) -> List[Tag]:
        return self._tags[node_id].find_all(BLOCK_TAGS)

    def replace_node(
        self,
        node_id: int,
        replacement: Tag,
        descendants: Sequence[Tuple[Tag, Tag]] = (),
    ) -> None:
        """Swap the live element for ``replacement``.

        ``descendants`` pairs each block element of the old subtree with its
        copy inside ``replacement`` so their identities keep resolving. Pairs
        whose copy no longer sits inside ``replacement`` are dropped.
        """

        current = self._tags[node_id]
        ids_by_element = {id(tag): nid for nid, tag in self._tags.items()}
        alive = {id(tag) for tag in replacement.find_all(BLOCK_TAGS)}

        current.replace_with(replacement)
        self._tags[node_id] = replacement

        for old, new in descendants:
            nid = ids_by_element.get(id(old))
            if nid is None:
                continue
            if id(new) in alive:
                self._tags[nid] = new
            else:
                del self._tags[nid]

    def render(self) -> str:
        """Serialise the document; fragments come back as fragments."""

        if self.is_fragment and self.soup.body is not None:
            return "".join(str(child) for child in self.soup.body.contents)
        return str(self.soup)

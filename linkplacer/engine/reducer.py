"""Reduce a raw document to the compact text the model is prompted with."""

from __future__ import annotations

from typing import Dict, List

from .config import EngineConfig, load_config
from .document import parse_html, strip_boilerplate, text_content

HEADING_MARKERS: Dict[str, str] = {"h1": "#", "h2": "##", "h3": "###"}


def reduce_content(html: str, config: EngineConfig | None = None) -> str:
    """Return headings, paragraphs and list items of ``html`` as light markdown.

    The markup is parsed into a throwaway tree, so the document later used
    for insertion is never touched. Paragraphs and list items at or under
    the configured minimum lengths are treated as non-prose fragments and
    skipped. The result is capped at ``content_char_limit`` characters.
    """

    engine_config = config or load_config(None)
    min_paragraph = int(engine_config.get("min_paragraph_chars", 15))
    min_list_item = int(engine_config.get("min_list_item_chars", 5))
    limit = int(engine_config.get("content_char_limit", 15000))

    soup = parse_html(html or "")
    strip_boilerplate(soup)

    parts: List[str] = []
    for element in soup.find_all(True):
        text = text_content(element).strip()
        if not text:
            continue
        name = element.name
        if name in HEADING_MARKERS:
            parts.append(f"\n{HEADING_MARKERS[name]} {text}\n")
        elif name == "p" and len(text) > min_paragraph:
            parts.append(f"{text}\n\n")
        elif name == "li" and len(text) > min_list_item:
            parts.append(f"- {text}\n")

    return "".join(parts).strip()[:limit]

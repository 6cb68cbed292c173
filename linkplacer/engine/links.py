"""Existing-link extraction and URL normalisation helpers."""

from __future__ import annotations

import re
from typing import Iterable, List, Set
from urllib.parse import urljoin, urlsplit

from .config import EngineConfig, load_config
from .document import parse_html, strip_boilerplate, text_content
from .types import ExistingLink

_PLACEHOLDER_ROOT = "http://placeholder.invalid/"
_CONTROL_RE = re.compile(r"[\x00-\x20\x7f]+")

SAFE_SCHEMES = {"", "http", "https", "mailto", "tel"}
TARGET_SCHEMES = {"", "http", "https"}


def normalize_path(url: str) -> str:
    """Return the lower-cased path of ``url`` without a trailing slash.

    Relative URLs resolve against the site root, so ``/Page/``, ``page`` and
    ``https://example.com/page`` all normalise to ``/page``.
    """

    try:
        path = urlsplit(urljoin(_PLACEHOLDER_ROOT, url.strip())).path.lower()
    except ValueError:
        return url.strip().lower()
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path or "/"


def bare_hostname(url_or_host: str | None) -> str:
    """Return the hostname without a leading ``www.``."""

    if not url_or_host:
        return ""
    value = url_or_host.strip().lower()
    if "//" not in value:
        value = f"//{value}"
    try:
        host = urlsplit(value).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def url_scheme(href: str) -> str:
    """Return the scheme browsers would see after dropping control characters."""

    cleaned = _CONTROL_RE.sub("", href)
    try:
        return urlsplit(cleaned).scheme.lower()
    except ValueError:
        return "invalid"


def is_safe_href(href: str) -> bool:
    return url_scheme(href) in SAFE_SCHEMES


def is_relative(href: str) -> bool:
    try:
        parts = urlsplit(href.strip())
    except ValueError:
        return False
    return not parts.scheme and not parts.netloc


def is_excluded(href: str, config: EngineConfig) -> bool:
    lowered = href.strip().lower()
    if lowered.startswith("#"):
        return True
    return any(pattern in lowered for pattern in config.patterns("excluded_url_patterns"))


def is_internal(href: str, site_hostname: str, inventory_paths: Set[str]) -> bool:
    if is_relative(href):
        return True
    host = bare_hostname(href)
    if site_hostname and host and host == site_hostname:
        return True
    return normalize_path(href) in inventory_paths


def extract_existing_links(
    html: str,
    site_hostname: str | None = None,
    inventory_urls: Iterable[str] = (),
    config: EngineConfig | None = None,
) -> List[ExistingLink]:
    """Return internal links already present in ``html``, in document order.

    A link is internal when its href is relative, points at the site
    hostname, or resolves to a path listed in the inventory. Author, tag,
    search, login and non-http links are dropped, as are fragment-only
    hrefs. Boilerplate regions are ignored.
    """

    engine_config = config or load_config(None)
    limit = int(engine_config.get("max_existing_links", 200))
    hostname = bare_hostname(site_hostname)
    inventory_paths = {normalize_path(url) for url in inventory_urls if url}

    soup = parse_html(html or "")
    strip_boilerplate(soup)

    links: List[ExistingLink] = []
    for anchor in soup.find_all("a"):
        if len(links) >= limit:
            break
        href = (anchor.get("href") or "").strip()
        text = text_content(anchor).strip()
        if not href or not text:
            continue
        if not is_internal(href, hostname, inventory_paths):
            continue
        if is_excluded(href, engine_config):
            continue
        links.append(ExistingLink(anchor_text=text, href=href, normalized_path=normalize_path(href)))
    return links

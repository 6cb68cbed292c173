"""Service functions bridging the placement engine and the database.

These functions encapsulate the application logic around the engine so
they can be unit tested and reused from the views. They load a domain's
link inventory through an expiring cache, collect the accepted suggestions
of earlier runs on the same document, run and record a placement, and
check the audit and inbound answers against what the run found.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Sequence

from django.conf import settings
from django.core.cache import caches

from .engine import parse_audits, parse_inbound, run_pipeline
from .engine.config import EngineConfig, load_config
from .engine.rank import classify_role
from .engine.types import (
    AcceptedSuggestion,
    CandidateSuggestion,
    ContentAnalysis,
    DocumentInsights,
    InventoryItem,
    PipelineResult,
)
from .models import Domain, PlacementRun

logger = logging.getLogger(__name__)

DEFAULT_INVENTORY_TTL = 3600  # seconds
DEFAULT_CACHE_KEY_PREFIX = 'linkplacer:inventory'
EXCERPT_LIMIT = 1000


class InventoryCache:
    """Expiring cache of domain inventories on top of a Django cache backend."""

    def __init__(
        self,
        *,
        ttl: int | None = None,
        cache_alias: str = 'default',
        key_prefix: str | None = None,
    ) -> None:
        self.ttl = ttl or getattr(settings, 'LINKPLACER_INVENTORY_TTL', DEFAULT_INVENTORY_TTL)
        self.cache = caches[cache_alias]
        self.key_prefix = key_prefix or getattr(settings, 'LINKPLACER_CACHE_KEY_PREFIX', DEFAULT_CACHE_KEY_PREFIX)

    def _key(self, domain_id: int) -> str:
        return f"{self.key_prefix}:{domain_id}"

    def get(self, domain_id: int) -> List[InventoryItem] | None:
        cached = self.cache.get(self._key(domain_id))
        if cached is None:
            return None
        return [InventoryItem(**item) for item in cached]

    def set(self, domain_id: int, items: Sequence[InventoryItem]) -> None:
        payload = [{'url': item.url, 'title': item.title, 'role': item.role} for item in items]
        self.cache.set(self._key(domain_id), payload, timeout=self.ttl)

    def invalidate(self, domain_id: int) -> None:
        self.cache.delete(self._key(domain_id))


@lru_cache(maxsize=1)
def engine_config() -> EngineConfig:
    """Return the engine configuration named by ``LINKPLACER_ENGINE_CONFIG``."""

    return load_config(getattr(settings, 'LINKPLACER_ENGINE_CONFIG', None))


def load_inventory(domain: Domain, cache: InventoryCache | None = None) -> List[InventoryItem]:
    """Return the link targets of ``domain``, served from ``cache`` while fresh.

    Links without an explicit role are classified from their URL using the
    configured high-value and authority patterns.
    """

    if cache is not None:
        cached = cache.get(domain.pk)
        if cached is not None:
            return cached

    config = engine_config()
    items: List[InventoryItem] = []
    for link in domain.links.order_by('url'):  # type: ignore[attr-defined]
        title = link.title or _title_from_url(link.url)
        role = link.role or classify_role(link.url, config)
        items.append(InventoryItem(url=link.url, title=title, role=role))

    if cache is not None:
        cache.set(domain.pk, items)
    return items


def _title_from_url(url: str) -> str:
    """Use the last path segment as a readable title, as sitemap imports do."""

    segments = [segment for segment in url.split('/') if segment]
    if not segments:
        return url
    return segments[-1].replace('-', ' ')


def prior_accepted(user: Any, domain: Domain | None, document_key: str) -> List[AcceptedSuggestion]:
    """Accepted suggestions of earlier runs by ``user`` on the same document."""

    if not document_key:
        return []

    runs = PlacementRun.objects.filter(user=user, domain=domain, document_key=document_key).order_by('created_at')
    accepted: List[AcceptedSuggestion] = []
    for run in runs:
        for record in run.accepted_records or []:
            try:
                accepted.append(AcceptedSuggestion.from_record(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning('Ignoring unreadable record in placement run %s: %s', run.pk, exc)
    return accepted


def place_links(
    html: str,
    candidates: Sequence[CandidateSuggestion | Dict[str, Any]],
    *,
    user: Any,
    domain: Domain | None = None,
    document_key: str = '',
    analysis: ContentAnalysis | None = None,
    cache: InventoryCache | None = None,
) -> tuple[PipelineResult, PlacementRun]:
    """Run the placement pipeline for ``html`` and record the run.

    Raises :class:`~linkplacer.engine.errors.DocumentError` for an empty
    document; nothing is recorded in that case.
    """

    inventory = load_inventory(domain, cache) if domain is not None else []
    prior = prior_accepted(user, domain, document_key)

    result = run_pipeline(
        html,
        candidates,
        site_hostname=domain.hostname if domain is not None else None,
        inventory=inventory,
        prior=prior,
        analysis=analysis,
        config=engine_config(),
    )

    excerpt = html.strip()
    if len(excerpt) > EXCERPT_LIMIT:
        excerpt = f"{excerpt[:EXCERPT_LIMIT].rstrip()}…"

    run = PlacementRun.objects.create(
        user=user,
        domain=domain,
        document_key=document_key,
        source_excerpt=excerpt,
        linked_html=result.html,
        candidate_total=result.candidate_total,
        accepted_total=len(result.accepted),
        accepted_records=[accepted.to_record() for accepted in result.accepted],
        rejection_counts=result.rejection_counts(),
    )
    logger.info('Placement run %s for %s: %s', run.pk, document_key or 'unnamed document', result.summary)
    return result, run


def assess_links(
    result: PipelineResult,
    domain: Domain | None = None,
    *,
    audit: Any = '',
    inbound: Any = '',
    cache: InventoryCache | None = None,
) -> DocumentInsights:
    """Validate the audit and inbound answers for a finished placement.

    Audit verdicts are kept only for links the document already had. With a
    domain, inbound suggestions are kept only for pages in its inventory.
    """

    insights = DocumentInsights(analysis=result.analysis)
    if audit:
        insights.audits, errors = parse_audits(audit, result.existing_links)
        insights.errors.extend(errors)
    if inbound:
        inventory = load_inventory(domain, cache) if domain is not None else []
        limit = int(engine_config().get('inbound_limit', 5))
        insights.inbound, errors = parse_inbound(inbound, inventory, limit)
        insights.errors.extend(errors)
    return insights

"""Intake of model-proposed suggestions.

The generative model is an external collaborator: it sees the reduced
content and a slice of the inventory and answers with JSON. Everything in
that answer is untrusted, so this module only turns it into typed
:class:`CandidateSuggestion` records and reports malformed entries.

The answers of the supporting calls made around a placement are handled
the same way and become :class:`ContentAnalysis`, :class:`LinkAudit` or
:class:`InboundSuggestion` records.
"""

from __future__ import annotations

import json
import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from .config import EngineConfig, load_config
from .errors import CandidateError
from .links import TARGET_SCHEMES, normalize_path, url_scheme
from .types import (
    CONTENT_STAGES,
    STANDARD_CONTENT,
    CandidateSuggestion,
    ContentAnalysis,
    DocumentInsights,
    ExistingLink,
    InboundSuggestion,
    InventoryItem,
    LinkAudit,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

REQUIRED_FIELDS = ("anchor_text", "target_url", "claimed_paragraph")

# Keys used by earlier prompt versions mapped onto the current field names.
FIELD_ALIASES: Dict[str, str] = {
    "original_paragraph": "claimed_paragraph",
    "paragraph_with_link": "claimed_paragraph_with_link",
}

_TEXT_FIELDS = (
    "target_type",
    "claimed_paragraph_with_link",
    "reasoning",
    "strategy_tag",
    "suggestion_type",
)


class SuggestionModel(Protocol):
    """Boundary of the generative model used to propose links."""

    def suggest(self, reduced_content: str, inventory: Sequence[InventoryItem]) -> Any:
        """Return the raw model answer: JSON text, a mapping or a list."""


class AnalysisModel(Protocol):
    """Boundary of the model that reads the document before links are proposed."""

    def analyse(self, reduced_content: str) -> Any:
        """Return topic, intent, funnel stage and key entities as JSON."""


class AuditModel(Protocol):
    def audit(self, primary_topic: str, existing_links: Sequence[ExistingLink]) -> Any:
        """Return an object with an ``audits`` list, one entry per link."""


class InboundModel(Protocol):
    def suggest_inbound(self, primary_topic: str, inventory: Sequence[InventoryItem]) -> Any:
        """Return an object with a ``suggestions`` list of source pages."""


def extract_json(text: str) -> Any:
    """Decode the JSON object embedded in a model answer.

    Markdown code fences are unwrapped and anything outside the outermost
    braces is ignored. Raises :class:`ValueError` when no object is found.
    """

    match = _FENCE_RE.search(text)
    body = match.group(1) if match and match.group(1) else text.strip()
    start = body.find("{")
    end = body.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise ValueError("Model answer does not contain a JSON object.")
    return json.loads(body[start:end + 1])


def _sub_scores(payload: Mapping[str, Any]) -> Dict[str, float]:
    scores: Dict[str, float] = {}
    nested = payload.get("scores")
    if isinstance(nested, Mapping):
        for name, value in nested.items():
            if _is_number(value):
                scores[str(name)] = float(value)
    for key, value in payload.items():
        if key.endswith("_score") and _is_number(value):
            scores.setdefault(key[: -len("_score")], float(value))
    return scores


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def candidate_from_payload(payload: Any, index: int | None = None) -> CandidateSuggestion:
    """Validate one suggestion mapping and return it as a candidate.

    Raises :class:`CandidateError` when a required field is missing or not
    a string, or when the target URL is neither relative nor http(s).
    """

    if not isinstance(payload, Mapping):
        raise CandidateError("expected an object", index)

    data: Dict[str, Any] = {}
    for key, value in payload.items():
        data[FIELD_ALIASES.get(key, key)] = value

    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            raise CandidateError(f"missing required field '{name}'", index)

    target_url = data["target_url"].strip()
    if url_scheme(target_url) not in TARGET_SCHEMES:
        raise CandidateError(f"unsupported target URL '{target_url}'", index)

    extras: Dict[str, str] = {}
    for name in _TEXT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise CandidateError(f"field '{name}' must be a string", index)
        extras[name] = value

    return CandidateSuggestion(
        anchor_text=data["anchor_text"],
        target_url=target_url,
        claimed_paragraph=data["claimed_paragraph"],
        target_type=extras.get("target_type") or STANDARD_CONTENT,
        claimed_paragraph_with_link=extras.get("claimed_paragraph_with_link", ""),
        reasoning=extras.get("reasoning", ""),
        strategy_tag=extras.get("strategy_tag", ""),
        suggestion_type=extras.get("suggestion_type") or "NEW",
        sub_scores=_sub_scores(data),
    )


def parse_candidates(entries: Sequence[Any]) -> Tuple[List[CandidateSuggestion], List[CandidateError]]:
    """Validate each entry, keeping the good ones and collecting errors."""

    candidates: List[CandidateSuggestion] = []
    errors: List[CandidateError] = []
    for index, entry in enumerate(entries):
        if isinstance(entry, CandidateSuggestion):
            candidates.append(entry)
            continue
        try:
            candidates.append(candidate_from_payload(entry, index))
        except CandidateError as exc:
            logger.info("Skipping malformed candidate: %s", exc)
            errors.append(exc)
    return candidates, errors


def _decode(response: Any) -> Any:
    """Return the JSON payload of a raw model answer.

    Bytes are decoded and text goes through :func:`extract_json`; mappings
    and lists are returned as they are. Raises :class:`ValueError` when the
    text holds no JSON object.
    """

    if isinstance(response, (bytes, bytearray)):
        response = response.decode("utf-8", errors="replace")
    if isinstance(response, str):
        response = extract_json(response)
    return response


def _entries(response: Any, key: str) -> Tuple[List[Any] | None, List[str]]:
    try:
        payload = _decode(response)
    except ValueError as exc:
        logger.warning("Unparseable model answer: %s", exc)
        return None, [f"Model answer could not be parsed: {exc}"]

    entries = payload.get(key, []) if isinstance(payload, Mapping) else payload
    if not isinstance(entries, list):
        return None, [f"Model answer has no '{key}' list."]
    return entries, []


def _text(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name)
    return value.strip() if isinstance(value, str) else ""


def parse_model_response(response: Any) -> Tuple[List[CandidateSuggestion], List[str]]:
    """Turn a raw model answer into candidates plus readable error messages."""

    entries, problems = _entries(response, "suggestions")
    if entries is None:
        return [], problems

    candidates, errors = parse_candidates(entries)
    return candidates, [str(error) for error in errors]


def inventory_batches(inventory: Sequence[InventoryItem], batch_size: int) -> List[List[InventoryItem]]:
    size = max(1, batch_size)
    return [list(inventory[start:start + size]) for start in range(0, len(inventory), size)]


def gather_candidates(
    model: SuggestionModel,
    reduced_content: str,
    inventory: Sequence[InventoryItem],
    config: EngineConfig | None = None,
) -> Tuple[List[CandidateSuggestion], List[str]]:
    """Fan the inventory out over concurrent model calls and merge the answers.

    Answers are merged in batch order, so the merged list does not depend
    on which call finished first. A failing call is reported in the errors
    and does not affect the other batches.
    """

    engine_config = config or load_config(None)
    batches = inventory_batches(inventory, int(engine_config.get("inventory_batch_size", 100)))
    if not batches:
        batches = [[]]
    workers = max(1, min(len(batches), int(engine_config.get("max_model_workers", 4))))

    def _call(batch: List[InventoryItem]) -> Any:
        return model.suggest(reduced_content, batch)

    candidates: List[CandidateSuggestion] = []
    errors: List[str] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_call, batch) for batch in batches]
        for number, future in enumerate(futures, start=1):
            try:
                response = future.result()
            except Exception as exc:
                logger.warning("Model call for inventory batch %d failed: %s", number, exc)
                errors.append(f"Inventory batch {number} failed: {exc}")
                continue
            batch_candidates, batch_errors = parse_model_response(response)
            candidates.extend(batch_candidates)
            errors.extend(f"Inventory batch {number}: {message}" for message in batch_errors)
    return candidates, errors


def parse_analysis(response: Any) -> Tuple[Optional[ContentAnalysis], List[str]]:
    """Turn the content analysis answer into a :class:`ContentAnalysis`.

    The answer must carry a ``primary_topic``. An unknown funnel stage is
    reported and left empty; key entities that are not strings are dropped.
    """

    try:
        payload = _decode(response)
    except ValueError as exc:
        logger.warning("Unparseable analysis answer: %s", exc)
        return None, [f"Analysis could not be parsed: {exc}"]

    if isinstance(payload, Mapping) and isinstance(payload.get("analysis"), Mapping):
        payload = payload["analysis"]
    if not isinstance(payload, Mapping):
        return None, ["Analysis must be an object."]

    topic = _text(payload, "primary_topic")
    if not topic:
        return None, ["Analysis has no 'primary_topic'."]

    errors: List[str] = []
    stage = _text(payload, "content_stage")
    known = {name.lower(): name for name in CONTENT_STAGES}
    if stage and stage.lower() not in known:
        errors.append(f"Unknown content stage '{stage}'.")
    stage = known.get(stage.lower(), "")

    entities: List[str] = []
    raw_entities = payload.get("key_entities")
    for entity in raw_entities if isinstance(raw_entities, list) else []:
        if isinstance(entity, str) and entity.strip() and entity.strip() not in entities:
            entities.append(entity.strip())

    analysis = ContentAnalysis(
        primary_topic=topic,
        user_intent=_text(payload, "user_intent"),
        content_stage=stage,
        key_entities=tuple(entities),
    )
    return analysis, errors


def parse_audits(
    response: Any,
    existing_links: Sequence[ExistingLink] = (),
) -> Tuple[List[LinkAudit], List[str]]:
    """Turn the link audit answer into :class:`LinkAudit` records.

    Scores are percentages and are clamped to 0..100. When
    ``existing_links`` is given, verdicts on links the document does not
    contain are dropped, as are repeated verdicts on the same link.
    """

    entries, errors = _entries(response, "audits")
    if entries is None:
        return [], errors

    known = {link.normalized_path: link for link in existing_links}
    seen: set[str] = set()
    audits: List[LinkAudit] = []
    for number, entry in enumerate(entries, start=1):
        if not isinstance(entry, Mapping):
            errors.append(f"Audit {number}: expected an object")
            continue
        url = _text(entry, "url")
        score = entry.get("score")
        if not url:
            errors.append(f"Audit {number}: missing required field 'url'")
            continue
        if not _is_number(score):
            errors.append(f"Audit {number}: score must be a number")
            continue
        path = normalize_path(url)
        if existing_links and path not in known:
            logger.info("Dropping audit of %s, which is not linked from the document", url)
            errors.append(f"Audit {number}: '{url}' is not linked from the document")
            continue
        if path in seen:
            continue
        seen.add(path)
        anchor_text = _text(entry, "anchor_text")
        if not anchor_text and path in known:
            anchor_text = known[path].anchor_text
        audits.append(
            LinkAudit(
                anchor_text=anchor_text,
                url=url,
                score=max(0.0, min(float(score), 100.0)),
                reasoning=_text(entry, "reasoning"),
                recommendation=_text(entry, "recommendation"),
            )
        )
    return audits, errors


def parse_inbound(
    response: Any,
    inventory: Sequence[InventoryItem] = (),
    limit: int = 5,
) -> Tuple[List[InboundSuggestion], List[str]]:
    """Turn the inbound link answer into :class:`InboundSuggestion` records.

    When ``inventory`` is given, only pages it lists are kept and their URL
    and title come from the inventory rather than the model. At most
    ``limit`` suggestions are returned, one per source page.
    """

    entries, errors = _entries(response, "suggestions")
    if entries is None:
        return [], errors

    pages = {normalize_path(item.url): item for item in inventory}
    seen: set[str] = set()
    suggestions: List[InboundSuggestion] = []
    for number, entry in enumerate(entries, start=1):
        if len(suggestions) >= limit:
            break
        if not isinstance(entry, Mapping):
            errors.append(f"Inbound suggestion {number}: expected an object")
            continue
        url = _text(entry, "source_page_url")
        anchor_text = _text(entry, "suggested_anchor_text")
        if not url or not anchor_text:
            errors.append(f"Inbound suggestion {number}: missing source page or anchor text")
            continue
        path = normalize_path(url)
        page = pages.get(path)
        if inventory and page is None:
            errors.append(f"Inbound suggestion {number}: '{url}' is not in the inventory")
            continue
        if path in seen:
            continue
        seen.add(path)
        suggestions.append(
            InboundSuggestion(
                source_page_url=page.url if page else url,
                source_page_title=page.title if page else _text(entry, "source_page_title"),
                suggested_anchor_text=anchor_text,
                reasoning=_text(entry, "reasoning"),
            )
        )
    return suggestions, errors


def gather_insights(
    reduced_content: str,
    analysis_model: AnalysisModel,
    *,
    audit_model: AuditModel | None = None,
    inbound_model: InboundModel | None = None,
    existing_links: Sequence[ExistingLink] = (),
    inventory: Sequence[InventoryItem] = (),
    config: EngineConfig | None = None,
) -> DocumentInsights:
    """Analyse the document, then audit its links and find inbound sources.

    The audit and the inbound search both need the primary topic, so they
    only start once the analysis succeeded, and then run concurrently. A
    failing call is reported in ``errors`` and leaves its part empty.
    """

    engine_config = config or load_config(None)
    insights = DocumentInsights()
    try:
        response = analysis_model.analyse(reduced_content)
    except Exception as exc:
        logger.warning("Content analysis failed: %s", exc)
        insights.errors.append(f"Content analysis failed: {exc}")
        return insights

    insights.analysis, problems = parse_analysis(response)
    insights.errors.extend(problems)
    if insights.analysis is None:
        return insights

    topic = insights.analysis.primary_topic
    sample = list(inventory[: int(engine_config.get("inventory_batch_size", 100))])
    limit = int(engine_config.get("inbound_limit", 5))

    with ThreadPoolExecutor(max_workers=2) as executor:
        audit_future = None
        inbound_future = None
        if audit_model is not None and existing_links:
            audit_future = executor.submit(audit_model.audit, topic, list(existing_links))
        if inbound_model is not None and sample:
            inbound_future = executor.submit(inbound_model.suggest_inbound, topic, sample)

        if audit_future is not None:
            try:
                insights.audits, problems = parse_audits(audit_future.result(), existing_links)
                insights.errors.extend(problems)
            except Exception as exc:
                logger.warning("Link audit failed: %s", exc)
                insights.errors.append(f"Link audit failed: {exc}")

        if inbound_future is not None:
            try:
                insights.inbound, problems = parse_inbound(inbound_future.result(), sample, limit)
                insights.errors.extend(problems)
            except Exception as exc:
                logger.warning("Inbound suggestions failed: %s", exc)
                insights.errors.append(f"Inbound suggestions failed: {exc}")
    return insights

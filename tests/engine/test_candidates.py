"""Model answer parsing and concurrent fan-out tests."""

from __future__ import annotations

import json
import threading

import pytest

from linkplacer.engine.candidates import (
    candidate_from_payload,
    extract_json,
    gather_candidates,
    gather_insights,
    inventory_batches,
    parse_analysis,
    parse_audits,
    parse_inbound,
    parse_model_response,
)
from linkplacer.engine.errors import CandidateError
from linkplacer.engine.types import DECISION, ExistingLink, InventoryItem


def _suggestion(**overrides):
    payload = {
        "anchor_text": "pricing plans",
        "target_url": "/pricing",
        "claimed_paragraph": "Our pricing plans are flexible.",
    }
    payload.update(overrides)
    return payload


def test_extract_json_unwraps_code_fences():
    answer = 'Here you go:\n```json\n{"suggestions": []}\n```\nThanks!'
    assert extract_json(answer) == {"suggestions": []}


def test_extract_json_ignores_surrounding_prose():
    assert extract_json('Sure. {"suggestions": [1]} Done.') == {"suggestions": [1]}
    with pytest.raises(ValueError):
        extract_json("no json at all")


def test_candidate_from_payload_accepts_legacy_field_names():
    candidate = candidate_from_payload(
        {
            "anchor_text": "pricing plans",
            "target_url": " https://example.com/pricing ",
            "original_paragraph": "Our pricing plans are flexible.",
            "paragraph_with_link": "Our [pricing plans](/pricing) are flexible.",
            "strategy_tag": "conversion",
        }
    )
    assert candidate.claimed_paragraph == "Our pricing plans are flexible."
    assert candidate.claimed_paragraph_with_link.startswith("Our [pricing plans]")
    assert candidate.target_url == "https://example.com/pricing"
    assert candidate.strategy_tag == "conversion"
    assert candidate.suggestion_type == "NEW"


def test_candidate_from_payload_collects_sub_scores():
    candidate = candidate_from_payload(
        _suggestion(relevance_score=8, scores={"flow": 5, "bogus": "high"}, anchor_quality_score=True)
    )
    assert candidate.sub_scores == {"relevance": 8.0, "flow": 5.0}


@pytest.mark.parametrize(
    "payload, message",
    [
        (_suggestion(anchor_text=""), "missing required field 'anchor_text'"),
        (_suggestion(target_url=None), "missing required field 'target_url'"),
        (_suggestion(target_url="javascript:alert(1)"), "unsupported target URL"),
        (_suggestion(reasoning=["not", "text"]), "field 'reasoning' must be a string"),
        ("not an object", "expected an object"),
    ],
)
def test_candidate_from_payload_rejects_malformed_entries(payload, message):
    with pytest.raises(CandidateError) as excinfo:
        candidate_from_payload(payload, 1)
    assert str(excinfo.value).startswith("Candidate 2: ")
    assert message in str(excinfo.value)


def test_parse_model_response_keeps_good_entries_and_reports_bad_ones():
    answer = json.dumps({"suggestions": [_suggestion(), {"anchor_text": "x"}, _suggestion(anchor_text="flexible")]})
    candidates, errors = parse_model_response(answer)

    assert [candidate.anchor_text for candidate in candidates] == ["pricing plans", "flexible"]
    assert errors == ["Candidate 2: missing required field 'target_url'"]


def test_parse_model_response_handles_unusable_answers():
    candidates, errors = parse_model_response("I could not find any links.")
    assert candidates == []
    assert errors[0].startswith("Model answer could not be parsed")

    candidates, errors = parse_model_response({"suggestions": "none"})
    assert candidates == []
    assert errors == ["Model answer has no 'suggestions' list."]


def test_parse_model_response_accepts_bytes_and_lists():
    candidates, _ = parse_model_response(json.dumps({"suggestions": [_suggestion()]}).encode("utf-8"))
    assert len(candidates) == 1
    candidates, _ = parse_model_response([_suggestion()])
    assert len(candidates) == 1


def _inventory(count):
    return [InventoryItem(url=f"/page-{index}", title=f"Page {index}") for index in range(count)]


class FakeModel:
    """Suggests one link per inventory item it is shown."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls = []
        self.lock = threading.Lock()

    def suggest(self, reduced_content, inventory):
        with self.lock:
            self.calls.append([item.url for item in inventory])
        if self.fail_on and any(item.url == self.fail_on for item in inventory):
            raise RuntimeError("model unavailable")
        return json.dumps(
            {"suggestions": [_suggestion(anchor_text=item.title, target_url=item.url) for item in inventory]}
        )


def test_inventory_batches_split_evenly():
    batches = inventory_batches(_inventory(5), 2)
    assert [len(batch) for batch in batches] == [2, 2, 1]


def test_gather_candidates_merges_batches_in_order(engine_config):
    engine_config.raw["inventory_batch_size"] = 2
    model = FakeModel()

    candidates, errors = gather_candidates(model, "reduced", _inventory(5), engine_config)

    assert errors == []
    assert [candidate.target_url for candidate in candidates] == [f"/page-{index}" for index in range(5)]
    assert len(model.calls) == 3


def test_gather_candidates_isolates_failed_batches(engine_config):
    engine_config.raw["inventory_batch_size"] = 2
    model = FakeModel(fail_on="/page-2")

    candidates, errors = gather_candidates(model, "reduced", _inventory(5), engine_config)

    assert [candidate.target_url for candidate in candidates] == ["/page-0", "/page-1", "/page-4"]
    assert errors == ["Inventory batch 2 failed: model unavailable"]


def test_gather_candidates_calls_model_once_without_inventory(engine_config):
    model = FakeModel()
    candidates, errors = gather_candidates(model, "reduced", [], engine_config)
    assert candidates == []
    assert errors == []
    assert model.calls == [[]]


def test_parse_analysis_reads_the_analysis_answer():
    answer = (
        "Here is my analysis:\n```json\n"
        + json.dumps(
            {
                "primary_topic": "SEO pricing",
                "user_intent": "compare plans",
                "content_stage": "decision",
                "key_entities": ["Pro plan", "", "Pro plan", 3, "Agency plan"],
            }
        )
        + "\n```"
    )

    analysis, errors = parse_analysis(answer)

    assert errors == []
    assert analysis.primary_topic == "SEO pricing"
    assert analysis.content_stage == DECISION
    assert analysis.is_decision_stage
    assert analysis.key_entities == ("Pro plan", "Agency plan")


@pytest.mark.parametrize(
    "answer, message",
    [
        ("no json here", "Analysis could not be parsed"),
        ({"user_intent": "learn"}, "Analysis has no 'primary_topic'."),
        (["Awareness"], "Analysis must be an object."),
    ],
)
def test_parse_analysis_reports_unusable_answers(answer, message):
    analysis, errors = parse_analysis(answer)
    assert analysis is None
    assert errors[0].startswith(message)


def test_parse_analysis_clears_unknown_stages():
    analysis, errors = parse_analysis({"analysis": {"primary_topic": "SEO", "content_stage": "Retention"}})
    assert analysis.content_stage == ""
    assert not analysis.is_decision_stage
    assert errors == ["Unknown content stage 'Retention'."]


EXISTING = [
    ExistingLink(anchor_text="our story", href="/about/", normalized_path="/about"),
    ExistingLink(anchor_text="plans", href="https://example.com/pricing", normalized_path="/pricing"),
]


def test_parse_audits_keeps_verdicts_on_existing_links():
    answer = {
        "audits": [
            {"anchor_text": "our story", "url": "/about", "score": 140, "recommendation": "Keep"},
            {"url": "https://example.com/pricing/", "score": -5, "reasoning": "Vague anchor"},
            {"anchor_text": "ghost", "url": "/never-linked", "score": 50},
            {"anchor_text": "our story", "url": "/about", "score": 10},
            {"anchor_text": "plans", "url": "/pricing", "score": "high"},
            "not an object",
        ]
    }

    audits, errors = parse_audits(answer, EXISTING)

    assert [(audit.url, audit.score) for audit in audits] == [("/about", 100.0), ("https://example.com/pricing/", 0.0)]
    assert audits[0].recommendation == "Keep"
    assert audits[1].anchor_text == "plans"
    assert errors == [
        "Audit 3: '/never-linked' is not linked from the document",
        "Audit 5: score must be a number",
        "Audit 6: expected an object",
    ]


def test_parse_audits_without_existing_links_keeps_everything():
    audits, errors = parse_audits(json.dumps({"audits": [{"url": "/anywhere", "score": 75}]}))
    assert [audit.url for audit in audits] == ["/anywhere"]
    assert errors == []


def test_parse_inbound_uses_inventory_pages_and_caps_the_list():
    inventory = _inventory(8)
    answer = {
        "suggestions": [
            {
                "source_page_url": f"https://example.com/page-{index}/",
                "source_page_title": "Model title",
                "suggested_anchor_text": f"anchor {index}",
            }
            for index in range(8)
        ]
    }
    answer["suggestions"].insert(1, {"source_page_url": "/unknown", "suggested_anchor_text": "lost"})
    answer["suggestions"].insert(2, {"source_page_url": "/page-0", "suggested_anchor_text": "again"})

    suggestions, errors = parse_inbound(answer, inventory, limit=3)

    assert [suggestion.source_page_url for suggestion in suggestions] == ["/page-0", "/page-1", "/page-2"]
    assert suggestions[0].source_page_title == "Page 0"
    assert suggestions[0].suggested_anchor_text == "anchor 0"
    assert errors == ["Inbound suggestion 2: '/unknown' is not in the inventory"]


def test_parse_inbound_requires_anchor_text():
    suggestions, errors = parse_inbound({"suggestions": [{"source_page_url": "/page-0"}]}, _inventory(1))
    assert suggestions == []
    assert errors == ["Inbound suggestion 1: missing source page or anchor text"]


class FakeInsightModels:
    """Answers the analysis, audit and inbound calls from canned data."""

    def __init__(self, analysis=None, fail_audit: bool = False) -> None:
        self.analysis = analysis or {"primary_topic": "pricing", "content_stage": "Decision"}
        self.fail_audit = fail_audit
        self.topics = []
        self.lock = threading.Lock()

    def analyse(self, reduced_content):
        return json.dumps(self.analysis)

    def audit(self, primary_topic, existing_links):
        with self.lock:
            self.topics.append(("audit", primary_topic))
        if self.fail_audit:
            raise RuntimeError("audit timed out")
        return {"audits": [{"anchor_text": link.anchor_text, "url": link.href, "score": 80} for link in existing_links]}

    def suggest_inbound(self, primary_topic, inventory):
        with self.lock:
            self.topics.append(("inbound", primary_topic))
        return {
            "suggestions": [
                {"source_page_url": item.url, "suggested_anchor_text": item.title} for item in inventory
            ]
        }


def test_gather_insights_runs_every_call(engine_config):
    engine_config.raw["inventory_batch_size"] = 4
    models = FakeInsightModels()

    insights = gather_insights(
        "reduced",
        models,
        audit_model=models,
        inbound_model=models,
        existing_links=EXISTING,
        inventory=_inventory(10),
        config=engine_config,
    )

    assert insights.errors == []
    assert insights.analysis.is_decision_stage
    assert [audit.url for audit in insights.audits] == ["/about/", "https://example.com/pricing"]
    assert [suggestion.source_page_url for suggestion in insights.inbound] == [f"/page-{index}" for index in range(4)]
    assert sorted(models.topics) == [("audit", "pricing"), ("inbound", "pricing")]


def test_gather_insights_isolates_a_failed_audit(engine_config):
    models = FakeInsightModels(fail_audit=True)

    insights = gather_insights(
        "reduced",
        models,
        audit_model=models,
        inbound_model=models,
        existing_links=EXISTING,
        inventory=_inventory(2),
        config=engine_config,
    )

    assert insights.audits == []
    assert len(insights.inbound) == 2
    assert insights.errors == ["Link audit failed: audit timed out"]


def test_gather_insights_stops_without_an_analysis(engine_config):
    models = FakeInsightModels(analysis={"user_intent": "learn"})

    insights = gather_insights(
        "reduced",
        models,
        audit_model=models,
        inbound_model=models,
        existing_links=EXISTING,
        inventory=_inventory(2),
        config=engine_config,
    )

    assert insights.analysis is None
    assert insights.audits == []
    assert insights.inbound == []
    assert models.topics == []
    assert insights.errors == ["Analysis has no 'primary_topic'."]

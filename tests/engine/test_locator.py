"""Locating and verifying candidates against the document."""

from __future__ import annotations

from linkplacer.engine.document import Document
from linkplacer.engine.filters import is_already_linked, linked_paths, verify_anchor
from linkplacer.engine.locator import find_tightest_node, locate_candidate
from linkplacer.engine.types import ExistingLink

from .conftest import make_candidate


def test_tightest_node_prefers_the_paragraph_over_its_container():
    document = Document("<div><p>Alpha beta gamma.</p><p>Delta epsilon.</p></div>")
    node = find_tightest_node(document, "Alpha beta")
    assert node is not None
    assert node.name == "p"
    assert node.text == "Alpha beta gamma."


def test_tightest_node_ties_go_to_the_first_node():
    document = Document("<p>Same text here.</p><p>Same text here.</p>")
    node = find_tightest_node(document, "Same text here.")
    assert node is not None
    assert node.node_id == 0


def test_tightest_node_is_case_sensitive():
    document = Document("<p>Alpha beta gamma.</p>")
    assert find_tightest_node(document, "alpha beta") is None
    assert find_tightest_node(document, "") is None


def test_locate_candidate_reports_document_coordinates():
    document = Document("<p>Intro.</p><p>Alpha beta gamma.</p>")
    candidate = make_candidate("gamma", "/gamma", "beta gamma.")
    located = locate_candidate(document, candidate)
    assert located is not None
    assert located.node_id == 1
    assert located.span == (12, 23)
    assert located.candidate is candidate


def test_locate_candidate_returns_none_for_hallucinated_paragraph():
    document = Document("<p>Alpha beta gamma.</p>")
    candidate = make_candidate("beta", "/beta", "This sentence was never written.")
    assert locate_candidate(document, candidate) is None


def test_verify_anchor_requires_exact_text_in_reduced_content_and_paragraph():
    paragraph = "Our pricing plans are flexible."
    reduced = "Our pricing plans are flexible."

    assert verify_anchor(make_candidate("pricing plans", "/pricing", paragraph), reduced)
    assert not verify_anchor(make_candidate("Pricing Plans", "/pricing", paragraph), reduced)
    assert not verify_anchor(make_candidate("pricing plans", "/pricing", paragraph), "")
    assert not verify_anchor(make_candidate("discount", "/pricing", paragraph), reduced + " discount")


def test_already_linked_compares_normalised_paths():
    existing = [ExistingLink(anchor_text="Pricing", href="/Pricing/", normalized_path="/pricing")]
    paths = linked_paths(existing)
    assert is_already_linked(make_candidate("plans", "https://example.com/pricing", "plans"), paths)
    assert not is_already_linked(make_candidate("plans", "/plans", "plans"), paths)

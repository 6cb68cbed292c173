"""Link insertion and sanitisation tests."""

from __future__ import annotations

from linkplacer.engine.document import Document, parse_html
from linkplacer.engine.insertion import insert_link, sanitize_fragment
from linkplacer.engine.locator import locate_candidate

from .conftest import make_candidate


def _place(html: str, candidate):
    document = Document(html)
    located = locate_candidate(document, candidate)
    assert located is not None
    return document, insert_link(document, located)


def test_insert_link_wraps_the_anchor_inside_the_claimed_paragraph():
    paragraph = "Our pricing plans are flexible."
    document, markup = _place(f"<p>{paragraph}</p>", make_candidate("pricing plans", "/pricing", paragraph))

    assert markup == '<p>Our <a href="/pricing">pricing plans</a> are flexible.</p>'
    assert document.render() == markup


def test_insert_link_only_touches_the_claimed_sentence():
    html = "<p>Plans differ. Our pricing plans are flexible. Ask about pricing plans.</p>"
    candidate = make_candidate("pricing plans", "/pricing", "Ask about pricing plans.")
    document, markup = _place(html, candidate)

    assert markup == (
        '<p>Plans differ. Our pricing plans are flexible. '
        'Ask about <a href="/pricing">pricing plans</a>.</p>'
    )


def test_insert_link_skips_existing_links_and_reports_unplaceable():
    paragraph = "See our pricing plans today for details."
    html = '<p>See our <a href="/plans">pricing plans</a> today for details.</p>'
    document, markup = _place(html, make_candidate("pricing plans", "/pricing", paragraph))

    assert markup is None
    assert document.render() == html


def test_insert_link_never_links_inside_headings():
    heading = "Pricing plans explained"
    _, markup = _place(f"<div><h2>{heading}</h2></div>", make_candidate("Pricing plans", "/pricing", heading))
    assert markup is None


def test_insert_link_keeps_document_text_unchanged():
    html = "<div><p>First paragraph about pricing plans here.</p><p>Second paragraph.</p></div>"
    candidate = make_candidate("pricing plans", "/pricing", "First paragraph about pricing plans here.")
    document, markup = _place(html, candidate)

    assert markup is not None
    reparsed = Document(document.render())
    assert [node.text for node in reparsed.nodes] == [node.text for node in Document(html).nodes]


def test_insert_link_sanitises_the_rewritten_node():
    html = '<p onclick="steal()">Read about pricing plans today.<img src="x.png" onerror="steal()"></p>'
    candidate = make_candidate("pricing plans", "/pricing", "Read about pricing plans today.")
    _, markup = _place(html, candidate)

    assert markup == '<p>Read about <a href="/pricing">pricing plans</a> today.</p>'


def test_insert_link_builds_on_earlier_links_in_the_same_node():
    paragraph = "Our pricing plans are flexible and fair."
    document = Document(f"<p>{paragraph}</p>")
    first = locate_candidate(document, make_candidate("pricing plans", "/pricing", paragraph))
    second = locate_candidate(document, make_candidate("flexible", "/flexible", paragraph))

    assert insert_link(document, first) is not None
    markup = insert_link(document, second)
    assert markup == '<p>Our <a href="/pricing">pricing plans</a> are <a href="/flexible">flexible</a> and fair.</p>'


def test_sanitize_fragment_strips_unsafe_content():
    soup = parse_html(
        '<div style="color:red"><script>alert(1)</script>'
        '<a href="javascript:alert(1)" onclick="x()">Click</a>'
        '<a href="/safe" target="_blank">Safe</a><!-- note --><iframe src="/x"></iframe></div>'
    )
    root = soup.find("div")
    sanitize_fragment(root)

    assert str(root) == '<div><a>Click</a><a href="/safe">Safe</a></div>'

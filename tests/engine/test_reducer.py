"""Content reduction tests."""

from __future__ import annotations

from linkplacer.engine.reducer import reduce_content

ARTICLE = (
    "<header><p>Site header with a long tagline</p></header>"
    "<nav><p>Navigation links everywhere here</p></nav>"
    "<h1>Choosing a plan</h1>"
    "<p>Short one</p>"
    "<p>This paragraph is long enough.</p>"
    "<ul><li>Item one</li><li>tiny</li></ul>"
    "<div class=\"sidebar\"><p>Sidebar promotion that is long</p></div>"
    "<footer><p>Footer text that is quite long</p></footer>"
)


def test_reduce_content_keeps_headings_paragraphs_and_list_items(engine_config):
    reduced = reduce_content(ARTICLE, engine_config)
    assert reduced == "# Choosing a plan\nThis paragraph is long enough.\n\n- Item one"


def test_reduce_content_drops_boilerplate_regions(engine_config):
    reduced = reduce_content(ARTICLE, engine_config)
    assert "Navigation" not in reduced
    assert "Sidebar" not in reduced
    assert "Footer" not in reduced
    assert "tagline" not in reduced


def test_reduce_content_respects_character_cap(engine_config):
    engine_config.raw["content_char_limit"] = 20
    reduced = reduce_content("<p>" + "word " * 50 + "</p>", engine_config)
    assert len(reduced) == 20


def test_reduce_content_keeps_text_verbatim(engine_config):
    html = "<h2>Plans &amp; pricing</h2><p>Our  pricing plans are flexible.</p>"
    reduced = reduce_content(html, engine_config)
    assert "## Plans & pricing" in reduced
    assert "Our  pricing plans are flexible." in reduced


def test_reduce_content_handles_empty_input(engine_config):
    assert reduce_content("", engine_config) == ""

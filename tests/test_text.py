from bs4 import BeautifulSoup

from newsletter_builder.pipeline.text import clean_text, escape_html, node_text, normalize_dashes


def test_normalize_dashes_folds_unicode_dashes():
    assert normalize_dashes("a\u2013b\u2014c\u2212d\u2010e") == "a-b-c-d-e"


def test_normalize_dashes_handles_none():
    assert normalize_dashes(None) == ""


def test_clean_text_collapses_whitespace_and_nbsp():
    assert clean_text("  Item\n\t A\xa0B  ") == "Item A B"


def test_escape_html_escapes_markup_and_quotes():
    assert escape_html('<a href="x">Tom & Jerry</a>') == "&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&lt;/a&gt;"


def test_node_text_folds_curly_quotes_and_case():
    el = BeautifulSoup("<h2>What\u2019s  On</h2>", "html.parser").h2
    assert node_text(el) == "what's on"

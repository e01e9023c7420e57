"""Whitespace, dash and entity normalization shared by every stage."""

import html
import re

from bs4 import Tag

_DASH_RE = re.compile("[\u2010\u2011\u2012\u2013\u2014\u2212]")
_WS_RE = re.compile(r"\s+")
_QUOTE_RE = re.compile("[\u2018\u2019\u02bc]")


def normalize_dashes(s: str) -> str:
    return _DASH_RE.sub("-", s or "")


def clean_text(s: str) -> str:
    """Collapse whitespace (NBSP included) and normalize dashes."""
    return normalize_dashes(_WS_RE.sub(" ", s or "").strip())


def escape_html(s: str) -> str:
    return html.escape(normalize_dashes(s or ""), quote=True)


def node_text(el: Tag) -> str:
    """Lower-cased clean text of a node, used for marker matching."""
    return _QUOTE_RE.sub("'", clean_text(el.get_text())).lower()

"""
Groups document nodes into sections by walking siblings from a marker heading.

A marker is a predicate over a node's normalized text. From the marker the
walk advances through following siblings in document order, opening a topic
at each sub-heading and stopping at the next heading of the parent's rank (or
at a named stop section). A missing marker is not an error: documents vary
from edition to edition, so every extractor returns an empty result instead.
"""

import logging
import re
from collections.abc import Callable, Iterable, Iterator

from bs4 import BeautifulSoup, Tag

from newsletter_builder.pipeline.sanitizer import first_href, is_empty_rich_text, sanitize_inline_html
from newsletter_builder.pipeline.text import clean_text, node_text
from newsletter_builder.state import Event, Topic

logger = logging.getLogger(__name__)

Predicate = Callable[[str], bool]
TitleClassifier = Callable[[Tag], bool]

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
CONTENT_TAGS = ("p", "ul", "ol", "img")
WRAPPER_TAGS = ("div", "figure")

_TERMINAL_PUNCT_RE = re.compile(r"[.!?]$")


def exact(*names: str) -> Predicate:
    wanted = frozenset(n.lower() for n in names)
    return lambda text: text in wanted


def prefix(*names: str) -> Predicate:
    wanted = tuple(n.lower() for n in names)
    return lambda text: text.startswith(wanted)


def any_of(*predicates: Predicate) -> Predicate:
    return lambda text: any(p(text) for p in predicates)


def find_marker(soup: BeautifulSoup, matches: Predicate, tags: Iterable[str]) -> Tag | None:
    """First matching node in document order, preferring the innermost one.

    A wrapper div whose text starts with the marker text would otherwise
    shadow the paragraph that actually carries it.
    """
    tags = list(tags)
    for el in soup.find_all(tags):
        if not matches(node_text(el)):
            continue
        while True:
            inner = next((d for d in el.find_all(tags) if matches(node_text(d))), None)
            if inner is None:
                return el
            el = inner
    return None


def looks_like_title_line(el: Tag) -> bool:
    """Heuristic title detection for documents that use bold paragraphs as headings.

    Either the paragraph is a single <strong> around at most 80 characters, or
    its text is at most 60 characters and does not end like a sentence. Short
    sentences without a full stop are misread as titles; this is kept as-is.
    """
    text = clean_text(el.get_text())
    if not text:
        return False

    inner = el.decode_contents().strip().lower()
    strong_only = inner.startswith("<strong>") and inner.endswith("</strong>") and len(text) <= 80
    short_no_period = len(text) <= 60 and not _TERMINAL_PUNCT_RE.search(text)
    return strong_only or short_no_period


def _stopper(stop_tags: Iterable[str], stop_names: Iterable[str]) -> Callable[[Tag, str], bool]:
    stop_tags = frozenset(stop_tags)
    stop_names = frozenset(n.lower() for n in stop_names)

    def is_stop(el: Tag, text: str) -> bool:
        if el.name in stop_tags and text:
            return True
        if stop_names and (el.name in HEADING_TAGS or el.name == "p"):
            return text in stop_names
        return False

    return is_stop


def _content_nodes(el: Tag, content_tags: tuple[str, ...]) -> list[Tag]:
    if el.name in content_tags:
        return [el]
    if el.name in WRAPPER_TAGS:
        return el.find_all(list(content_tags), recursive=False)
    return []


def _is_blank_paragraph(el: Tag) -> bool:
    return el.name == "p" and el.find("img") is None and is_empty_rich_text(el.decode_contents())


def iter_section(marker: Tag, stop_tags: Iterable[str] = ("h1", "h2", "h3"),
                 stop_names: Iterable[str] = ()) -> Iterator[tuple[Tag, str]]:
    """Yield (node, normalized text) for siblings after marker until a stop node."""
    is_stop = _stopper(stop_tags, stop_names)
    for el in marker.find_next_siblings():
        text = node_text(el)
        if is_stop(el, text):
            return
        yield el, text


def extract_topics(
    soup: BeautifulSoup,
    matches: Predicate,
    *,
    marker_tags: Iterable[str] = ("h2",),
    sub_tags: Iterable[str] = ("h3",),
    stop_tags: Iterable[str] = ("h1", "h2"),
    stop_names: Iterable[str] = (),
    content_tags: tuple[str, ...] = CONTENT_TAGS,
    title_classifier: TitleClassifier | None = None,
    preamble: str = "discard",
    require_body: bool = False,
) -> list[Topic]:
    """Split the section under a marker into titled topics.

    preamble controls content seen before the first sub-heading: "discard"
    drops it, "keep" gathers it under an untitled topic, and "title" promotes
    the first non-empty line to the first topic's title.
    """
    marker = find_marker(soup, matches, marker_tags)
    if marker is None:
        return []

    sub_tags = frozenset(sub_tags)
    stop_names = tuple(stop_names)
    topics: list[Topic] = []
    current: Topic | None = None

    for el, text in iter_section(marker, stop_tags, stop_names):
        is_title = bool(text) and (
            el.name in sub_tags
            or (title_classifier is not None and el.name == "p" and title_classifier(el))
        )
        if is_title or (current is None and preamble == "title" and text):
            if current is not None:
                topics.append(current)
            current = Topic(title=clean_text(el.get_text()), nodes=[])
            continue

        if current is None:
            if preamble != "keep":
                continue
            current = Topic(title="", nodes=[])

        for node in _content_nodes(el, content_tags):
            if not _is_blank_paragraph(node):
                current["nodes"].append(node)

    if current is not None:
        topics.append(current)

    stop_set = frozenset(n.lower() for n in stop_names)
    kept = [
        t for t in topics
        if (t["title"] or preamble == "keep")
        and t["title"].lower() not in stop_set
        and (t["nodes"] or not require_body)
    ]
    return kept


def extract_edition_items(
    soup: BeautifulSoup,
    matches: Predicate,
    *,
    marker_tags: Iterable[str] = ("p", "h1", "h2", "h3", "div"),
    stop_names: Iterable[str] = ("spotlight",),
    paragraph_fallback: bool = False,
    skip_patterns: Iterable[str] = (),
    stop_prefixes: Iterable[str] = (),
    stop_on_blank: bool = False,
    max_items: int | None = None,
) -> list[str]:
    """Items of the "In this edition" list, as clean text in document order."""
    marker = find_marker(soup, matches, marker_tags)
    if marker is None:
        return []

    siblings = list(iter_section(marker, ("h1", "h2", "h3"), stop_names))

    for el, _ in siblings:
        lst = el if el.name in ("ul", "ol") else el.find(["ul", "ol"])
        if lst is not None:
            items = [clean_text(li.get_text()) for li in lst.find_all("li")]
            return [i for i in items if i][:max_items]

    if not paragraph_fallback:
        return []

    skip_res = [re.compile(p, re.IGNORECASE) for p in skip_patterns]
    stop_prefixes = tuple(p.lower() for p in stop_prefixes)
    marker_prefix = re.compile(r"^in this edition:?\s*", re.IGNORECASE)
    items: list[str] = []

    for el, _ in siblings:
        if el.name == "p":
            paragraphs = [el]
        elif el.name in WRAPPER_TAGS:
            paragraphs = el.find_all("p")
        else:
            continue
        for p in paragraphs:
            line = clean_text(p.get_text())
            if not line and stop_on_blank:
                return _dedupe(items)[:max_items]
            if stop_prefixes and line.lower().startswith(stop_prefixes):
                return _dedupe(items)[:max_items]
            if any(r.search(line) for r in skip_res):
                continue
            line = marker_prefix.sub("", line).strip()
            if line:
                items.append(line)

    return _dedupe(items)[:max_items]


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _section_paragraphs(marker: Tag, stop_tags: Iterable[str]) -> Iterator[Tag]:
    for el, _ in iter_section(marker, stop_tags):
        if el.name == "p":
            yield el
        elif el.name in WRAPPER_TAGS:
            yield from el.find_all("p", recursive=False)


def extract_paragraphs(
    soup: BeautifulSoup,
    matches: Predicate,
    link_style: str,
    *,
    marker_tags: Iterable[str] = ("h2",),
    stop_tags: Iterable[str] = ("h1", "h2"),
) -> list[str]:
    """Sanitized inner markup of every non-empty paragraph in the section."""
    marker = find_marker(soup, matches, marker_tags)
    if marker is None:
        return []

    items = []
    for p in _section_paragraphs(marker, stop_tags):
        inner = sanitize_inline_html(p.decode_contents(), link_style)
        if not is_empty_rich_text(inner):
            items.append(inner)
    return items


def extract_first_paragraph(
    soup: BeautifulSoup,
    matches: Predicate,
    link_style: str = "",
    *,
    marker_tags: Iterable[str] = ("h2",),
    stop_tags: Iterable[str] = ("h1", "h2", "h3"),
    as_html: bool = False,
) -> str:
    """First non-empty paragraph after the marker: clean text, or sanitized markup."""
    marker = find_marker(soup, matches, marker_tags)
    if marker is None:
        return ""

    for p in _section_paragraphs(marker, stop_tags):
        if as_html:
            inner = sanitize_inline_html(p.decode_contents(), link_style)
            if not is_empty_rich_text(inner):
                return inner
        else:
            text = clean_text(p.get_text())
            if text:
                return text
    return ""


def extract_events(
    soup: BeautifulSoup,
    matches: Predicate,
    *,
    site_url: str,
    image: str,
    marker_tags: Iterable[str] = ("h2", "h3"),
    stop_tags: Iterable[str] = ("h1", "h2"),
    max_events: int = 3,
) -> list[Event]:
    """Event listings: blocks of lines separated by blank paragraphs.

    Each block reads title, description lines, then a call-to-action line;
    the first link anywhere in the block is the call-to-action target.
    """
    marker = find_marker(soup, matches, marker_tags)
    if marker is None:
        return []

    blocks: list[list[Tag]] = []
    current: list[Tag] = []
    for p in _section_paragraphs(marker, stop_tags):
        if not clean_text(p.get_text()):
            if current:
                blocks.append(current)
            current = []
            continue
        current.append(p)
    if current:
        blocks.append(current)

    events: list[Event] = []
    for block in blocks[:max_events]:
        lines = [clean_text(p.get_text()) for p in block]
        link = first_href("".join(p.decode_contents() for p in block))
        events.append(Event(
            title=lines[0],
            desc=" ".join(lines[1:-1]),
            cta_text=lines[-1] if len(lines) >= 2 else "Learn more",
            cta_url=link or site_url,
            image=image,
            image_alt=lines[0],
        ))
    return events


def extract_sections(state: dict) -> dict:
    """Run every configured section extractor against the parsed document."""
    newsletter = state["newsletter"]
    soup = state["soup"]

    sections: dict[str, object] = {}
    for spec in newsletter.sections:
        data = spec.extract(soup, newsletter.style)
        sections[spec.token] = data
        _log_section(spec.token, data)

    logger.info("Extracted %d sections for %s", len(sections), newsletter.slug)
    return {"sections": sections}


def _log_section(token: str, data: object) -> None:
    if not data:
        logger.warning("Section %s not found in document", token)
        return
    if isinstance(data, str):
        logger.info("  %s: %.80s", token, data)
    elif isinstance(data[0], dict):
        logger.info("  %s: %d items %s", token, len(data), [d["title"] for d in data])
    else:
        logger.info("  %s: %d items", token, len(data))

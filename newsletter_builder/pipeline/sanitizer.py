"""
Inline HTML sanitizer: reduce converter markup to a small inline subset and
restyle hyperlinks for the target brand.
"""

import bleach
from bs4 import BeautifulSoup, Tag

from newsletter_builder.pipeline.text import normalize_dashes

INLINE_TAGS = frozenset({"strong", "b", "em", "i", "a", "br"})
INLINE_ATTRS = {"a": ["href", "title"]}
LINK_PROTOCOLS = frozenset({"http", "https", "mailto", "tel"})


def rewrite_anchors(root: Tag, link_style: str) -> None:
    """Force every link open in a new tab with the brand style."""
    for a in root.find_all("a"):
        a["target"] = "_blank"
        a["style"] = link_style


def flatten_disallowed(root: Tag) -> None:
    """Replace each element outside the allow-list with its plain text.

    An element's allowed descendants are flattened along with it, so
    ``<span>a <b>b</b></span>`` becomes ``a b``.
    """
    while True:
        el = root.find(lambda t: t.name not in INLINE_TAGS)
        if el is None:
            return
        el.replace_with(el.get_text())


def sanitize_inline_html(fragment: str, link_style: str) -> str:
    """Strip everything but inline formatting and links, keeping text.

    Pre-existing link styles are always overwritten, so running the result
    through again yields the same markup.
    """
    soup = BeautifulSoup(fragment or "", "html.parser")
    flatten_disallowed(soup)
    cleaned = bleach.clean(
        str(soup),
        tags=INLINE_TAGS,
        attributes=INLINE_ATTRS,
        protocols=LINK_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )
    soup = BeautifulSoup(cleaned, "html.parser")
    rewrite_anchors(soup, link_style)
    return normalize_dashes(soup.decode_contents().strip())


def is_empty_rich_text(fragment: str) -> bool:
    """True for fragments with no visible text, e.g. ``<strong>&nbsp;</strong>``."""
    text = BeautifulSoup(fragment or "", "html.parser").get_text()
    return not text.replace("\xa0", " ").strip()


def first_href(fragment: str) -> str:
    a = BeautifulSoup(fragment or "", "html.parser").find("a", href=True)
    return a["href"] if a else ""


def render_list(list_node: Tag, link_style: str, *, list_style: str, item_style: str) -> str:
    """Re-emit a ul/ol with brand styles and sanitized items."""
    items = []
    for li in list_node.find_all("li", recursive=False):
        inner = sanitize_inline_html(li.decode_contents(), link_style)
        if is_empty_rich_text(inner):
            continue
        items.append(f'<li style="{item_style}">{inner}</li>')

    if not items:
        return ""

    tag = list_node.name
    return f'<{tag} style="{list_style}">\n' + "\n".join(items) + f"\n</{tag}>"

"""
MJML fragment renderers.

Each renderer takes the data produced by one extractor, the brand style and
the newsletter's template directory, and returns an MJML fragment. Empty
input always renders as "", which the layout substitution turns into an
omitted section.
"""

import logging
from pathlib import Path

from bs4 import Tag

from newsletter_builder.pipeline.sanitizer import (
    is_empty_rich_text,
    render_list,
    sanitize_inline_html,
)
from newsletter_builder.pipeline.templating import (
    has_token,
    load_template,
    substitute,
    warn_missing_tokens,
)
from newsletter_builder.pipeline.text import clean_text, escape_html, normalize_dashes
from newsletter_builder.state import Category, Event, ImageRef, Topic, TopicParts

logger = logging.getLogger(__name__)

LIST_ITEM_STYLE = "font-size: 16px; line-height: 1.5; margin-bottom: 6px;"
CAPTION_BLOCKERS = ["strong", "b", "ul", "ol", "h1", "h2", "h3", "img"]


# ---------------------------------------------------------------------------
# In this edition
# ---------------------------------------------------------------------------

def edition_row(text: str, idx: int, total: int, spacious: bool = False) -> str:
    safe = escape_html(clean_text(text))
    if not spacious or idx == total - 1:
        arrow_pad, text_style = "padding-right: 8px;", "line-height: 1.6;"
    else:
        arrow_pad = "padding-right: 8px; padding-bottom: 5px;"
        text_style = "line-height: 24px; padding-bottom: 11px;"

    return (
        "<tr>\n"
        f'  <td style="font-size: 18px; width: 20px; vertical-align: top; {arrow_pad}"> \u2192 </td>\n'
        f'  <td style="font-size: 16px; {text_style}">{safe}</td>\n'
        "</tr>"
    )


def render_edition(items: list[str], style, template_dir: Path, *,
                   template: str = "in-this-edition-table.mjml") -> str:
    items = [i for i in items or [] if i]
    if not items:
        return ""

    rows = "\n".join(
        edition_row(text, idx, len(items), style.spacious_edition_rows)
        for idx, text in enumerate(items)
    )
    tpl = load_template(template_dir / template)
    warn_missing_tokens(tpl, ["ROWS"], template)
    return substitute(tpl, {"ROWS": rows})


# ---------------------------------------------------------------------------
# Topic bodies
# ---------------------------------------------------------------------------

def _node_image(node: Tag) -> ImageRef | None:
    img = node if node.name == "img" else node.find("img") if node.name == "p" else None
    if img is None:
        return None
    return ImageRef(src=img.get("src", ""), alt=img.get("alt", ""))


def _is_caption(node: Tag) -> bool:
    if node.name != "p":
        return False
    return (
        node.find(["em", "i"]) is not None
        and bool(clean_text(node.get_text()))
        and node.find(CAPTION_BLOCKERS) is None
    )


def render_topic_body(nodes: list[Tag], style, *, paragraph_style: str | None = None,
                      last_paragraph_style: str | None = None,
                      summary_bold: bool = False) -> str:
    """Paragraphs and lists of one topic, restyled for the brand."""
    p_style = paragraph_style or style.paragraph_style
    parts: list[str] = []
    last_p = -1

    for node in nodes:
        if node.name == "p":
            inner = sanitize_inline_html(node.decode_contents(), style.link_style)
            if is_empty_rich_text(inner):
                continue
            text = clean_text(node.get_text())
            if summary_bold and text.lower().startswith(("summary:", "summary :")):
                inner = f"<strong>{escape_html(text)}</strong>"
            last_p = len(parts)
            parts.append(f'<p style="{p_style}">{inner}</p>')
        elif node.name in ("ul", "ol"):
            listing = render_list(node, style.link_style,
                                  list_style=style.list_style, item_style=LIST_ITEM_STYLE)
            if listing:
                parts.append(listing)

    if last_paragraph_style and parts and last_p == len(parts) - 1:
        parts[last_p] = parts[last_p].replace(f'style="{p_style}"', f'style="{last_paragraph_style}"', 1)

    return "\n".join(parts)


def split_topic_nodes(nodes: list[Tag], style, *, caption: bool = True, **body_options) -> TopicParts:
    """Separate the first image and its italic caption from the body."""
    image = None
    image_idx = caption_idx = -1

    for i, node in enumerate(nodes):
        image = _node_image(node)
        if image is not None:
            image_idx = i
            break

    if caption and image_idx >= 0 and image_idx + 1 < len(nodes) and _is_caption(nodes[image_idx + 1]):
        caption_idx = image_idx + 1

    caption_html = ""
    if caption_idx >= 0:
        caption_html = sanitize_inline_html(nodes[caption_idx].decode_contents(), style.link_style)

    body = [n for i, n in enumerate(nodes) if i not in (image_idx, caption_idx)]
    return TopicParts(
        image=image,
        caption_html=caption_html,
        body_html=render_topic_body(body, style, **body_options),
    )


# ---------------------------------------------------------------------------
# MJML building blocks
# ---------------------------------------------------------------------------

def title_block(title: str, style, padding: str = "10px 12px", tag: str = "h2") -> str:
    return (
        f'<mj-text padding="{padding}" font-family="{style.heading_font}" color="#000000">\n'
        f'  <{tag} style="font-size: 24px; line-height: 1.2; font-weight: {style.title_weight}; margin: 0;">'
        f"{escape_html(title)}</{tag}>\n"
        "</mj-text>"
    )


def image_block(style, alt: str, padding: str = "10px 12px", radius: str = "10px",
                src: str | None = None) -> str:
    return (
        f'<mj-image border-radius="{radius}" padding="{padding}" width="600px"\n'
        f'  src="{escape_html(src or style.image_placeholder)}"\n'
        f'  alt="{escape_html(alt)}"\n'
        f'  href="{style.site_url}/" />'
    )


def caption_block(caption_html: str, style) -> str:
    return (
        f'<mj-text padding="0px {style.gutter}" font-family="{style.body_font}" color="#A9A7AF">\n'
        f'  <p style="font-size: 12px; line-height: 1.2; color: #a9a7af; margin: 0;"><i>{caption_html}</i></p>\n'
        "</mj-text>"
    )


def body_block(body_html: str, style, padding: str | None = None) -> str:
    if not body_html:
        return ""
    padding = padding or f"10px {style.gutter}"
    return (
        f'<mj-text padding="{padding}" font-family="{style.body_font}" color="#000000">\n'
        f"{body_html}\n"
        "</mj-text>"
    )


def section_heading(style, text: str) -> str:
    """Accent-underlined section heading shown above the first card."""
    return (
        f'<mj-text padding="16px {style.gutter} 10px {style.gutter}" font-family="{style.heading_font}" color="white">\n'
        f'  <h2 style="padding-bottom: 8px; color: {style.accent}; text-align: left; '
        f"border-bottom: 2px solid {style.accent}; font-size: 26px; line-height: 1.2; "
        f'font-weight: 300; margin: 0;">{escape_html(text)}</h2>\n'
        "</mj-text>"
    )


def banner_heading(style, text: str) -> str:
    """Centered label between two highlight rules."""
    rule = (
        '<td valign="middle" style="width: {w}; font-size: 0; line-height: 0; padding: 0px;">'
        f'<div style="height: 0px; border-top: 4px solid {style.highlight}">&nbsp;</div></td>'
    )
    return (
        '<mj-table cellpadding="0" cellspacing="0" width="100%" padding="16px 0px 12px 0px">\n'
        "  <tr>\n"
        f"    {rule.format(w='12%')}\n"
        '    <td valign="middle" style="padding: 0 8px; text-align: center; white-space: nowrap">'
        '<span style="display: inline-block; font-weight: 900; font-size: 15px; line-height: 1.2; '
        'font-family: Arial, sans-serif; color: #000000; text-transform: uppercase;">'
        f"{escape_html(text)}</span></td>\n"
        f"    {rule.format(w='100%')}\n"
        "  </tr>\n"
        "</mj-table>"
    )


def card(inner: str, style, column_padding: str = "0px") -> str:
    return (
        f'<mj-section background-color="#eff1f4" padding="{style.card_padding}" border-radius="{style.card_radius}">\n'
        f'  <mj-column background-color="#fff" border-radius="{style.card_radius}" padding="{column_padding}">\n'
        f"{inner}\n"
        "  </mj-column>\n"
        "</mj-section>"
    )


def spacer(style) -> str:
    return f'<mj-spacer height="{style.card_gap}" />'


def ad_block(style) -> str:
    """House advertisement card placed between the first two spotlight stories."""
    if style.ad_block:
        return style.ad_block.strip()

    inner = "\n".join([
        '<mj-spacer height="14px" />',
        section_heading(style, "This could be your business"),
        image_block(style, "Advertise your business to an engaged, influential audience",
                    padding=f"10px {style.gutter} 14px {style.gutter}", src=style.ad_image),
        body_block(
            '<p style="font-size: 16px; line-height: 24px; margin: 0 0 10px 0;">'
            "Reach a wide audience of engaged, loyal readers right where they're paying attention. "
            "Our audience is educated, influential, and ready to respond.</p>\n"
            '<p style="font-size: 16px; line-height: 24px; margin: 0;">'
            f'<a href="{style.site_url}/advertise" target="_blank" style="{style.link_style}">'
            "<strong>Partner with us</strong></a></p>",
            style,
        ),
        '<mj-spacer height="15px" />',
    ])
    return card(inner, style)


# ---------------------------------------------------------------------------
# Topic layouts
# ---------------------------------------------------------------------------

def render_topic_cards(
    topics: list[Topic],
    style,
    template_dir: Path,
    *,
    heading: str = "Spotlight",
    header: str | None = "rule",
    image: str = "always",
    image_first: bool = False,
    caption: bool = False,
    template: str | None = None,
    ad: bool = True,
    **body_options,
) -> str:
    """One card per topic, section header on the first, ad after the first.

    image is "always" (placeholder for every topic), "if_present" (only when
    the document had an image in the topic) or "never".
    """
    if not topics:
        return ""

    tpl = None
    if template:
        tpl = load_template(template_dir / template)
        warn_missing_tokens(tpl, ["SPOTLIGHT_HEADER", "SPOTLIGHT_TOPIC"], template)

    heading_markup = ""
    if header == "rule":
        heading_markup = section_heading(style, heading)
    elif header == "banner":
        heading_markup = banner_heading(style, heading)

    out: list[str] = []
    for idx, topic in enumerate(topics):
        parts = split_topic_nodes(topic["nodes"], style, caption=caption, **body_options)
        title = clean_text(topic["title"])

        blocks = [title_block(title, style, padding=f"10px {style.gutter}")]
        if image == "always" or (image == "if_present" and parts["image"]):
            if image_first:
                radius = f"{style.card_radius} {style.card_radius} 0 0"
                blocks.insert(0, image_block(style, title, padding="0", radius=radius))
            else:
                blocks.append(image_block(style, title, padding=f"10px {style.gutter}"))
        if parts["caption_html"]:
            blocks.append(caption_block(parts["caption_html"], style))
        if parts["body_html"]:
            blocks.append(body_block(parts["body_html"], style))

        topic_markup = "\n".join(blocks)
        head = heading_markup if idx == 0 else ""

        if tpl is not None:
            out.append(substitute(tpl, {
                "SPOTLIGHT_HEADER": head or spacer(style),
                "SPOTLIGHT_TOPIC": topic_markup,
            }).strip())
        else:
            out.append(card("\n".join(b for b in (head, topic_markup) if b), style))
        if idx < len(topics) - 1:
            out.append(spacer(style))

        if idx == 0 and ad and len(topics) > 1:
            out.append(ad_block(style))
            out.append(spacer(style))

    return "\n\n".join(out)


def render_topic_digest(
    topics: list[Topic],
    style,
    template_dir: Path,
    *,
    template: str | None = None,
    always_image: tuple[str, ...] = (),
) -> str:
    """Stacked sub-topics: heading, optional image, ruled paragraphs, dividers."""
    if not topics:
        return ""

    p_style = (
        f"font-size: 16px; line-height: 1.5; border-left: 3px solid {style.accent}; "
        "padding-left: 14px; margin-bottom: 15px;"
    )
    always = frozenset(t.lower() for t in always_image)
    blocks: list[str] = []

    for idx, topic in enumerate(topics):
        title = clean_text(topic["title"])
        pad = f"14px {style.gutter} 0px {style.gutter}" if idx == 0 else f"0px {style.gutter}"
        parts = [title_block(title, style, padding=pad, tag="h3")]

        has_image = any(_node_image(n) for n in topic["nodes"])
        if title.lower() in always or has_image:
            parts.append(image_block(style, title, padding=f"0px {style.gutter} 10px {style.gutter}"))

        body = render_topic_body([n for n in topic["nodes"] if n.name != "img"], style, paragraph_style=p_style)
        if body:
            parts.append(body_block(body, style, padding=f"0px {style.gutter}"))

        if idx < len(topics) - 1:
            parts.append(
                '<mj-divider border-width="1px" border-style="solid" '
                f'border-color="lightgrey" padding="0px {style.gutter}" />'
            )
        blocks.append("\n".join(parts))

    markup = "\n".join(blocks)

    if template and (template_dir / template).exists():
        tpl = load_template(template_dir / template)
        if has_token(tpl, "SUBTOPIC_BLOCKS"):
            return substitute(tpl, {"SUBTOPIC_BLOCKS": markup})
        logger.warning("Placeholder {{%%SUBTOPIC_BLOCKS%%}} not found in %s, appending", template)
        return f"{tpl.strip()}\n{markup}"
    return markup


def render_topic_headlines(topics: list[Topic], style, template_dir: Path) -> str:
    """Title and body per topic with no card chrome."""
    if not topics:
        return ""

    p_style = "font-size: 16px; line-height: 1.5; margin: 10px 0 0 0;"
    out = []
    for topic in topics:
        heading = (
            f'<h2 style="font-size: 24px; line-height: 1.2; font-weight: {style.title_weight}; margin: 0;">'
            f"{escape_html(clean_text(topic['title']))}</h2>"
        )
        body = render_topic_body(topic["nodes"], style, paragraph_style=p_style)
        out.append("\n".join(b for b in (heading, body) if b))
    return "\n\n".join(out)


def render_topic_stack(topics: list[Topic], style, template_dir: Path) -> str:
    """Title, optional image and caption, and body per topic, inside the layout's column."""
    if not topics:
        return ""

    out = []
    for topic in topics:
        title = clean_text(topic["title"])
        parts = split_topic_nodes(topic["nodes"], style)
        blocks = [title_block(title, style, padding=f"10px {style.gutter}")]
        if parts["image"]:
            blocks.append(image_block(style, title, padding=f"10px {style.gutter}"))
        if parts["caption_html"]:
            blocks.append(caption_block(parts["caption_html"], style))
        if parts["body_html"]:
            blocks.append(body_block(parts["body_html"], style))
        out.append("\n".join(blocks))
    return "\n\n".join(out)


# ---------------------------------------------------------------------------
# Categories (bulleted digest split across two cards)
# ---------------------------------------------------------------------------

def to_categories(topics: list[Topic], style) -> list[Category]:
    categories = []
    for topic in topics:
        items: list[str] = []
        for node in topic["nodes"]:
            if node.name in ("ul", "ol"):
                lis = node.find_all("li")
            elif node.name == "p":
                lis = [node]
            else:
                continue
            for li in lis:
                inner = sanitize_inline_html(li.decode_contents(), style.link_style)
                if not is_empty_rich_text(inner):
                    items.append(inner)
        title = clean_text(topic["title"])
        if title and items:
            categories.append(Category(title=title, items=items))
    return categories


def _bullet_table(items: list[str], style, padding_bottom: str = "0px") -> str:
    rows = "\n".join(
        "<tr>\n"
        '  <td style="font-size: 18px; vertical-align: top; line-height: 24px; '
        'padding-bottom: 15px; padding-right: 8px;"> &#8226; </td>\n'
        '  <td style="font-size: 16px; line-height: 24px; padding-bottom: 15px; padding-left: 0px;">'
        f"{normalize_dashes(item)}</td>\n"
        "</tr>"
        for item in items
    )
    if not rows:
        return ""
    return (
        f'<mj-table font-family="{style.body_font}" cellpadding="0" cellspacing="0" '
        f'padding="0px 32px {padding_bottom} 32px" style="width: 100%">\n{rows}\n</mj-table>'
    )


def _category_blocks(categories: list[Category], style, first_padding_top: str) -> str:
    out = []
    for idx, cat in enumerate(categories):
        pad_top = first_padding_top if idx == 0 else "20px"
        pad_bottom = "5px" if idx == len(categories) - 1 else "0px"
        out.append(
            f'<mj-text padding="{pad_top} 20px 10px 20px" font-family="{style.body_font}" color="#000000">\n'
            f'  <h3 style="font-size: 20px; line-height: 1.2; font-weight: 700; margin: 0;">'
            f"{escape_html(cat['title'])}</h3>\n"
            "</mj-text>\n"
            + _bullet_table(cat["items"], style, pad_bottom)
        )
    return "\n".join(out)


def render_category_cards(
    topics: list[Topic],
    style,
    template_dir: Path,
    *,
    heading: str = "Long story short",
    split_after: str | None = "business",
) -> str:
    """Bulleted categories; those after split_after move to a second card led by an image."""
    categories = to_categories(topics or [], style)
    if not categories:
        return ""

    titles = [c["title"].lower() for c in categories]
    cut = titles.index(split_after) + 1 if split_after in titles else len(categories)
    first, second = categories[:cut], categories[cut:]

    second_image = None
    if split_after:
        start = next((i for i, t in enumerate(topics) if clean_text(t["title"]).lower() == split_after), None)
        if start is not None:
            second_image = next(
                (img["src"] for t in topics[start:] for n in t["nodes"]
                 if (img := _node_image(n)) and img["src"]),
                None,
            )

    card1 = card("\n".join([
        title_block(heading, style, padding="20px 20px 0px 20px"),
        f'<mj-divider border-width="4.8px" border-color="{style.accent}" width="35px" '
        'align="left" padding="0 20px 0px 20px" />',
        '<mj-spacer height="30px" />',
        _category_blocks(first, style, "0px"),
    ]), style)
    out = [card1, spacer(style)]

    if second:
        inner = "\n".join([
            image_block(style, heading, padding="0", radius=f"{style.card_radius} {style.card_radius} 0 0",
                        src=second_image),
            _category_blocks(second, style, "20px"),
        ])
        out += [card(inner, style, column_padding="0px 0px 20px 0px"), spacer(style)]

    return "\n".join(out)


# ---------------------------------------------------------------------------
# Paragraph-level sections
# ---------------------------------------------------------------------------

def render_paragraph_stack(items: list[str], style, template_dir: Path) -> str:
    p_style = "font-size: 16px; line-height: 1.5; padding-top: 0px; padding-bottom: 6px; margin: 0 0 10px 0;"
    return "\n".join(f'<p style="{p_style}">{inner}</p>' for inner in items or [] if inner)


def render_inline(items: list[str], style, template_dir: Path) -> str:
    """Paragraph contents joined inline, for a banner that supplies its own wrapper."""
    return " ".join(i for i in items or [] if i)


def render_text(text: str, style, template_dir: Path) -> str:
    return escape_html(text or "")


def render_markup(markup: str, style, template_dir: Path) -> str:
    return markup or ""


def render_callout(value: str, style, template_dir: Path, *, escape: bool = True) -> str:
    if not value:
        return ""
    inner = escape_html(clean_text(value)) if escape else value
    return f'<p style="font-size: 16px; line-height: 1.5; margin: 0;">{inner}</p>'


def render_events(events: list[Event], style, template_dir: Path, *, heading: str = "What's on") -> str:
    if not events:
        return ""

    blocks = []
    for idx, ev in enumerate(events):
        cta_url = escape_html(ev["cta_url"] or "#")
        blocks.append(
            '<mj-section padding="5px 10px 0px 10px">\n'
            '  <mj-group width="100%">\n'
            '    <mj-column width="30%" vertical-align="top" padding="0">\n'
            f'      <mj-image align="left" src="{escape_html(ev["image"])}" alt="{escape_html(ev["image_alt"])}" '
            f'padding="0px" border-radius="8px" fluid-on-mobile="true" href="{cta_url}" />\n'
            "    </mj-column>\n"
            '    <mj-column width="70%" vertical-align="top">\n'
            f'      <mj-text padding="0px 15px" font-family="{style.body_font}" color="#000000" font-size="16px">\n'
            '        <p style="margin-bottom: 7px; margin-top: 6px; line-height: 16px;">'
            f"<strong>{escape_html(ev['title'])}</strong></p>\n"
            f'        <p style="line-height: 24px">{escape_html(ev["desc"])}</p>\n'
            '        <p style="margin-bottom: 0px; line-height: 16px">'
            f'<a style="{style.link_style}" target="_blank" href="{cta_url}">{escape_html(ev["cta_text"])}</a></p>\n'
            "      </mj-text>\n"
            "    </mj-column>\n"
            "  </mj-group>\n"
            "</mj-section>"
        )
        if idx < len(events) - 1:
            blocks.append(
                '<mj-divider border-style="dashed" border-width="1px" border-color="lightgrey" '
                'padding="20px 22px 8px 22px" />'
            )

    header = "\n".join([
        title_block(heading, style, padding="20px 20px 0px 20px"),
        f'<mj-divider border-width="4.8px" border-color="{style.accent}" width="35px" '
        'align="left" padding="0 20px 0px 20px" />',
        '<mj-spacer height="10px" />',
    ])
    # mj-section cannot nest inside mj-column, so the events follow the header card.
    return "\n".join([card(header, style), *blocks, spacer(style)])


# ---------------------------------------------------------------------------
# Pipeline stage
# ---------------------------------------------------------------------------

def render_sections(state: dict) -> dict:
    newsletter = state["newsletter"]
    template_dir = state["paths"]["template_dir"]
    sections = state["sections"]

    fragments: dict[str, str] = {}
    for spec in newsletter.sections:
        fragments[spec.token] = spec.render(sections.get(spec.token), newsletter.style, template_dir)
        logger.debug("Rendered %s: %d chars", spec.token, len(fragments[spec.token]))

    logger.info("Rendered %d fragments", sum(1 for f in fragments.values() if f))
    return {"fragments": fragments}

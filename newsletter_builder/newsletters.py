"""
Per-newsletter configuration: brand styles and the ordered section table.

Each section pairs a layout token with an extractor and a renderer, both
built from the generic functions in pipeline/sectioner.py and
pipeline/renderer.py. Adding a newsletter means adding a table here, not a
new builder.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

from bs4 import BeautifulSoup

from newsletter_builder.pipeline import renderer as r
from newsletter_builder.pipeline.sectioner import (
    any_of,
    exact,
    extract_edition_items,
    extract_events,
    extract_first_paragraph,
    extract_paragraphs,
    extract_topics,
    looks_like_title_line,
    prefix,
)


class BuildError(RuntimeError):
    """Fatal build problem: bad input path, missing template, unknown newsletter."""


@dataclass(frozen=True)
class BrandStyle:
    name: str
    site_url: str
    accent: str
    heading_font: str
    body_font: str
    highlight: str = "#eeca66"
    card_radius: str = "5px"
    card_padding: str = "1px 1px 1px 1px"
    card_gap: str = "10px"
    gutter: str = "12px"
    title_weight: str = "400"
    paragraph_style: str = "font-size: 16px; line-height: 1.5; margin: 0 0 10px 0;"
    list_margin: str = "10px 0 0 18px"
    footer_link_style: str = "text-decoration: none; border-bottom: 2px solid #fff; color: white !important;"
    ad_block: str = ""
    spacious_edition_rows: bool = False

    @property
    def link_style(self) -> str:
        return f"text-decoration: none; border-bottom: 2px solid {self.accent}; color: black;"

    @property
    def list_style(self) -> str:
        return f"margin: {self.list_margin}; padding: 0"

    @property
    def image_placeholder(self) -> str:
        return f"{self.site_url}/email/images/REPLACE_ME.jpg"

    @property
    def ad_image(self) -> str:
        return f"{self.site_url}/email/ad/REPLACE_ME.jpg"


Extract = Callable[[BeautifulSoup, BrandStyle], object]
Render = Callable[[object, BrandStyle, Path], str]


@dataclass(frozen=True)
class SectionSpec:
    token: str
    extract: Extract
    render: Render


@dataclass(frozen=True)
class Newsletter:
    slug: str
    style: BrandStyle
    sections: tuple[SectionSpec, ...]
    required_templates: tuple[str, ...] = ("layout.mjml", "in-this-edition-table.mjml")
    optional_templates: tuple[str, ...] = field(default_factory=tuple)


CASLON = "TNYAdobeCaslonPro, 'Times New Roman', serif"
AUSTIN = "Austin News Text Web, TNYAdobeCaslonPro, 'Times New Roman', serif"

IN_THIS_EDITION = prefix("in this edition")
PREVIEW_TEXT = any_of(exact("preview"), prefix("preview text"))
IMAGE_CREDITS = prefix("image credits", "images credits")
DID_YOU_KNOW = prefix("did you know")


def _edition(**options) -> Extract:
    return lambda soup, style: extract_edition_items(soup, IN_THIS_EDITION, **options)


def _topics(matches, **options) -> Extract:
    return lambda soup, style: extract_topics(soup, matches, **options)


def _paragraphs(matches, *, footer: bool = False, **options) -> Extract:
    def extract(soup, style):
        link_style = style.footer_link_style if footer else style.link_style
        return extract_paragraphs(soup, matches, link_style, **options)
    return extract


def _first_paragraph(matches, **options) -> Extract:
    return lambda soup, style: extract_first_paragraph(soup, matches, style.link_style, **options)


# ---------------------------------------------------------------------------
# Presidential Summary
# ---------------------------------------------------------------------------

PRESIDENTIAL_STYLE = BrandStyle(
    name="Presidential Summary",
    site_url="https://www.presidentialsummary.com",
    accent="#4d3060",
    heading_font=CASLON,
    body_font="Roboto+Serif",
    card_padding="1px 0.5px 1px 1px",
)

PRESIDENTIAL = Newsletter(
    slug="presidential-summary",
    style=PRESIDENTIAL_STYLE,
    sections=(
        SectionSpec("IN_THIS_EDITION_TABLE", _edition(), r.render_edition),
        SectionSpec(
            "SPOTLIGHT_SECTIONS",
            _topics(exact("spotlight")),
            partial(r.render_topic_cards, template="spotlight.mjml"),
        ),
        SectionSpec(
            "LONG_STORY_SHORT_SECTIONS",
            _topics(exact("long story short")),
            partial(r.render_topic_digest, template="long-story-short.mjml",
                    always_image=("science & tech",)),
        ),
        SectionSpec("FOOTER_BANNER", _paragraphs(exact("footer"), footer=True), r.render_inline),
        SectionSpec("IMAGE_CREDITS", _first_paragraph(exact("image credits"), stop_tags=("h1", "h2")), r.render_text),
        SectionSpec("PREVIEW_TEXT", _first_paragraph(exact("preview text"), stop_tags=("h1", "h2")), r.render_text),
    ),
    required_templates=("layout.mjml", "in-this-edition-table.mjml", "spotlight.mjml"),
    optional_templates=("long-story-short.mjml",),
)


# ---------------------------------------------------------------------------
# Geopolitical Summary
# ---------------------------------------------------------------------------

GEOPOLITICAL_STYLE = BrandStyle(
    name="Geopolitical Summary",
    site_url="https://www.geopoliticalsummary.com",
    accent="#06266d",
    heading_font=CASLON,
    body_font="Roboto+Serif",
    card_padding="1px 0.5px 1px 1px",
)

GEOPOLITICAL = Newsletter(
    slug="geopolitical-summary",
    style=GEOPOLITICAL_STYLE,
    sections=(
        SectionSpec("PREVIEW_TEXT", _first_paragraph(exact("preview text"), as_html=True), r.render_markup),
        SectionSpec("IN_THIS_EDITION_TABLE", _edition(paragraph_fallback=True), r.render_edition),
        SectionSpec(
            "SPOTLIGHT_SECTION",
            _topics(exact("spotlight", "spotlights")),
            partial(r.render_topic_cards, image="if_present", caption=True),
        ),
        SectionSpec("WORLDWIDE_SECTION", _paragraphs(exact("worldwide")), r.render_paragraph_stack),
        SectionSpec("FOUNDATIONS_SECTION", _topics(exact("foundations")), r.render_topic_stack),
        SectionSpec("ANALYSIS_SECTION", _topics(exact("analysis")), r.render_topic_headlines),
    ),
)


# ---------------------------------------------------------------------------
# Dubai Summary
# ---------------------------------------------------------------------------

DUBAI_ACCENT = "#102341"

DUBAI_AD = f"""
<mj-section background-color="#eff1f4" padding="1px 0.5px 1px 1px" border-radius="5px">
  <mj-column background-color="#fff" border-radius="5px" padding="0px">
    <mj-spacer height="14px" />
    <mj-text padding="2px 12px 0px 12px" font-family="Arial" color="#000000">
      <p style="font-size: 12px; line-height: 1.2"><i>Brand in residence: Washmen</i></p>
    </mj-text>
    <mj-text padding="2px 12px 0px 12px" font-family="{AUSTIN}" color="white">
      <h2 style="padding-bottom: 8px; color: {DUBAI_ACCENT}; text-align: left; border-bottom: 2px solid {DUBAI_ACCENT}; font-size: 26px; line-height: 1.2; font-weight: 300; margin: 0;">Laundry, dry cleaning, shoe &amp; bag restoration</h2>
    </mj-text>
    <mj-spacer height="12px" />
    <mj-image border-radius="10px" padding="10px 12px 14px 12px" width="600px"
      src="https://www.dubaisummary.com/email/ad/REPLACE_ME.jpg" alt="REPLACE_ME" />
    <mj-text padding="10px 12px 0px 12px" font-family="Arial" color="#000000">
      <p style="font-size: 16px; line-height: 24px; margin: 0 0 10px 0;">Dubai moves fast. Your laundry should not slow you down. <a style="text-decoration: none; border-bottom: 2px solid {DUBAI_ACCENT}; color: black;">Washmen</a> collects, cleans, and delivers with hotel-grade care. Free delivery the next day!</p>
    </mj-text>
    <mj-text padding="0px 12px 10px 12px" font-family="Arial" color="#000000">
      <p style="font-size: 16px; line-height: 24px; margin: 0;"><a style="text-decoration: none; border-bottom: 2px solid {DUBAI_ACCENT}; color: black;"><strong>Download the app</strong></a></p>
    </mj-text>
    <mj-spacer height="6px" />
  </mj-column>
</mj-section>
"""

DUBAI_STOP_SECTIONS = (
    "event", "career", "meanwhile", "did you know?", "did you know", "fact:", "fact",
)

DUBAI_STYLE = BrandStyle(
    name="Dubai Summary",
    site_url="https://www.dubaisummary.com",
    accent=DUBAI_ACCENT,
    heading_font=AUSTIN,
    body_font="Arial",
    card_padding="1px 0.5px 1px 1px",
    ad_block=DUBAI_AD,
)

DUBAI = Newsletter(
    slug="dubai-summary",
    style=DUBAI_STYLE,
    sections=(
        SectionSpec(
            "IN_THIS_EDITION_TABLE",
            _edition(
                paragraph_fallback=True,
                skip_patterns=(r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",),
                stop_on_blank=True,
            ),
            r.render_edition,
        ),
        SectionSpec(
            "SPOTLIGHT_SECTION",
            _topics(
                exact("spotlight"),
                marker_tags=("p", "h2", "h3"),
                sub_tags=("h2", "h3"),
                stop_tags=(),
                stop_names=DUBAI_STOP_SECTIONS,
                title_classifier=looks_like_title_line,
                preamble="title",
                require_body=True,
            ),
            partial(
                r.render_topic_cards,
                header="banner",
                image="if_present",
                summary_bold=True,
                last_paragraph_style="font-size: 16px; line-height: 1.5; margin: 0;",
            ),
        ),
        SectionSpec(
            "DID_YOU_KNOW_SECTION",
            _first_paragraph(exact("did you know?", "did you know"), marker_tags=("h2", "h3", "p")),
            r.render_callout,
        ),
    ),
)


# ---------------------------------------------------------------------------
# London Summary
# ---------------------------------------------------------------------------

LONDON_STYLE = BrandStyle(
    name="London Summary",
    site_url="https://www.londonsummary.com",
    accent="#80011F",
    heading_font=AUSTIN,
    body_font="Arial",
    card_radius="10px",
    card_gap="20px",
    gutter="20px",
    list_margin="12px 0 0 18px",
    spacious_edition_rows=True,
)


def _london_events(soup, style):
    return extract_events(
        soup,
        prefix("what's on"),
        site_url=style.site_url,
        image=style.image_placeholder,
    )


LONDON = Newsletter(
    slug="london-summary",
    style=LONDON_STYLE,
    sections=(
        SectionSpec(
            "IN_THIS_EDITION_TABLE",
            _edition(
                paragraph_fallback=True,
                skip_patterns=(r"\baqi\b", r"air quality"),
                stop_prefixes=("was this email forwarded",),
                max_items=12,
                stop_on_blank=True,
            ),
            r.render_edition,
        ),
        SectionSpec(
            "SPOTLIGHT_SECTION",
            _topics(exact("spotlight"), require_body=True),
            partial(
                r.render_topic_cards,
                header=None,
                image_first=True,
                last_paragraph_style="font-size: 16px; line-height: 24px; padding-bottom: 20px; margin: 0;",
            ),
        ),
        SectionSpec("WHATS_ON_SECTION", _london_events, r.render_events),
        SectionSpec(
            "LONG_STORY_SHORT_SECTION",
            _topics(prefix("long story short"), marker_tags=("h2", "h3")),
            r.render_category_cards,
        ),
        SectionSpec(
            "DID_YOU_KNOW_SECTION",
            _first_paragraph(DID_YOU_KNOW, marker_tags=("h2", "h3", "p", "div"), as_html=True),
            partial(r.render_callout, escape=False),
        ),
        SectionSpec(
            "PREVIEW_TEXT",
            _first_paragraph(PREVIEW_TEXT, marker_tags=("h1", "h2", "h3", "p", "div")),
            r.render_text,
        ),
        SectionSpec(
            "IMAGE_CREDITS",
            _first_paragraph(IMAGE_CREDITS, marker_tags=("h1", "h2", "h3", "p", "div"), as_html=True),
            r.render_markup,
        ),
    ),
)


NEWSLETTERS: dict[str, Newsletter] = {
    n.slug: n for n in (PRESIDENTIAL, GEOPOLITICAL, DUBAI, LONDON)
}


def get_newsletter(slug: str) -> Newsletter:
    try:
        return NEWSLETTERS[slug]
    except KeyError:
        known = ", ".join(sorted(NEWSLETTERS))
        raise BuildError(f"Unknown newsletter {slug!r} (known: {known})") from None

"""
Input resolution and DOCX loading: Docling for the conversion, BeautifulSoup
for the tree every extractor walks.
"""

import logging
import os
from pathlib import Path

from bs4 import BeautifulSoup

from newsletter_builder.newsletters import BuildError, get_newsletter
from newsletter_builder.pipeline.sectioner import HEADING_TAGS
from newsletter_builder.state import BuildPaths

logger = logging.getLogger(__name__)

DEFAULT_HEADING_SHIFT = 1   # Docling renders Word "Heading N" as h(N+1)


def derive_paths(docx_path: str | Path, root: str | Path) -> BuildPaths:
    """Map docx/<newsletter>/<year>/<month>/<file>.docx onto dist/ and mjml-template/."""
    root = Path(root).resolve()
    docx = Path(docx_path).resolve()
    docx_root = root / "docx"

    try:
        rel = docx.relative_to(docx_root)
    except ValueError:
        raise BuildError(f"DOCX must be inside {docx_root}: {docx}") from None

    if len(rel.parts) != 4 or docx.suffix.lower() != ".docx":
        raise BuildError(
            f"Expected docx/<newsletter>/<year>/<month>/<file>.docx, got docx/{rel.as_posix()}"
        )

    newsletter, year, month, _ = rel.parts
    out_dir = root / "dist" / newsletter / year / month
    return BuildPaths(
        newsletter=newsletter,
        docx=docx,
        template_dir=root / "mjml-template" / newsletter,
        out_dir=out_dir,
        out_mjml=out_dir / f"{docx.stem}.mjml",
        out_html=out_dir / f"{docx.stem}.html",
    )


def validate_inputs(state: dict) -> dict:
    """Resolve the newsletter and check the input file and required templates exist."""
    paths = derive_paths(state["docx_path"], state["root"])
    newsletter = get_newsletter(paths["newsletter"])

    if not paths["docx"].is_file():
        raise BuildError(f"DOCX not found: {paths['docx']}")

    for name in newsletter.required_templates:
        tpl = paths["template_dir"] / name
        if not tpl.is_file():
            raise BuildError(f"{name} not found: {tpl}")

    for name in newsletter.optional_templates:
        if not (paths["template_dir"] / name).is_file():
            logger.info("Optional template %s not present, using built-in markup", name)

    logger.info("Building %s from %s", newsletter.slug, paths["docx"])
    return {"paths": paths, "newsletter": newsletter}


def heading_shift() -> int:
    raw = os.environ.get("NEWSLETTER_HEADING_SHIFT", "")
    if not raw:
        return DEFAULT_HEADING_SHIFT
    try:
        return max(0, int(raw))
    except ValueError:
        raise BuildError(f"NEWSLETTER_HEADING_SHIFT must be an integer, got {raw!r}") from None


def shift_headings(soup: BeautifulSoup, shift: int) -> int:
    """Lift every heading by shift levels (never above h1). Returns the count renamed."""
    if shift <= 0:
        return 0
    renamed = 0
    for el in soup.find_all(list(HEADING_TAGS)):
        level = max(1, int(el.name[1]) - shift)
        if el.name != f"h{level}":
            el.name = f"h{level}"
            renamed += 1
    return renamed


def convert_docx(path: Path) -> str:
    """DOCX to HTML with images inlined as data: URIs."""
    from docling.document_converter import DocumentConverter
    from docling_core.types.doc import ImageRefMode

    doc = DocumentConverter().convert(str(path)).document
    return doc.export_to_html(image_mode=ImageRefMode.EMBEDDED)


def parse_html(html: str, shift: int = 0) -> BeautifulSoup:
    soup = BeautifulSoup(html, "html.parser")
    renamed = shift_headings(soup, shift)
    if renamed:
        logger.debug("Shifted %d headings by %d", renamed, shift)
    return soup


def load_document(state: dict) -> dict:
    """Convert the DOCX and parse it into the tree the extractors share."""
    docx = state["paths"]["docx"]

    logger.info("Converting with Docling: %s", docx)
    html = convert_docx(docx)

    soup = parse_html(html, heading_shift())
    logger.info("Loaded document: %d headings, %d paragraphs, %d images",
                len(soup.find_all(list(HEADING_TAGS))), len(soup.find_all("p")), len(soup.find_all("img")))
    return {"doc_html": html, "soup": soup}

"""
pipeline/assembler.py: layout substitution and MJML compilation.

Substitution is a single pass over layout.mjml; compilation goes through the
mjml package. Compiler messages are reported but never block the output.
"""

import io
import logging

from mjml import mjml_to_html

from newsletter_builder.pipeline.templating import load_template, substitute, warn_missing_tokens

logger = logging.getLogger(__name__)


def assemble(state: dict) -> dict:
    """Substitute every rendered fragment into the newsletter layout."""
    layout = load_template(state["paths"]["template_dir"] / "layout.mjml")
    fragments = state.get("fragments", {})

    warn_missing_tokens(layout, fragments, "layout.mjml")
    mjml = substitute(layout, fragments)

    logger.info("Assembly complete: %d fragments, %d chars of MJML", len(fragments), len(mjml))
    return {"mjml": mjml}


def compile_markup(state: dict) -> dict:
    """MJML to HTML. Returns the HTML and the compiler's error messages."""
    result = mjml_to_html(io.BytesIO(state["mjml"].encode("utf-8")))

    errors = [_format_error(e) for e in result.errors or []]
    for message in errors:
        logger.warning("MJML: %s", message)

    logger.info("Compiled %d chars of HTML (%d MJML warnings)", len(result.html), len(errors))
    return {"html_out": result.html, "mjml_errors": errors}


def _format_error(error) -> str:
    if isinstance(error, str):
        return error
    message = getattr(error, "message", None) or getattr(error, "formattedMessage", None)
    return str(message or error)

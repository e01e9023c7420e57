"""CLI entry point for the newsletter builder."""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from newsletter_builder.newsletters import BuildError
from newsletter_builder.pipeline.loader import load_document, validate_inputs
from newsletter_builder.pipeline.sectioner import extract_sections
from newsletter_builder.pipeline.renderer import render_sections
from newsletter_builder.pipeline.assembler import assemble, compile_markup
from newsletter_builder.state import BuildPaths

logger = logging.getLogger(__name__)


def write_outputs(paths: BuildPaths, mjml: str, html: str) -> None:
    paths["out_dir"].mkdir(parents=True, exist_ok=True)
    paths["out_mjml"].write_text(mjml, encoding="utf-8")
    paths["out_html"].write_text(html, encoding="utf-8")
    logger.info("Wrote %s", paths["out_mjml"])
    logger.info("Wrote %s", paths["out_html"])


def run_pipeline(docx_path: str, root: str) -> dict:
    """Run the full build, return final state."""
    state: dict = {"docx_path": docx_path, "root": root}

    state.update(validate_inputs(state))
    state.update(load_document(state))
    state.update(extract_sections(state))
    state.update(render_sections(state))
    state.update(assemble(state))
    state.update(compile_markup(state))

    # Only written once compilation has returned, so a failed build leaves nothing behind.
    write_outputs(state["paths"], state["mjml"], state["html_out"])
    return state


def main() -> int:
    parser = argparse.ArgumentParser(description="Build an MJML/HTML newsletter from a DOCX draft.")
    parser.add_argument("docx_path", help="Path to docx/<newsletter>/<year>/<month>/<file>.docx")
    parser.add_argument("--root", default=os.environ.get("NEWSLETTER_ROOT", "."),
                        help="Project root holding docx/, dist/ and mjml-template/")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")

    start = time.time()
    try:
        state = run_pipeline(str(Path(args.docx_path)), args.root)
    except BuildError as e:
        logger.error("%s", e)
        return 1
    except Exception:
        logger.exception("Build failed")
        return 1

    logger.info("Done: %s -> %s (%.1fs)",
                state["newsletter"].slug, state["paths"]["out_html"], time.time() - start)
    return 0


if __name__ == "__main__":
    sys.exit(main())

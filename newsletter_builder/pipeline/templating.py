"""
Placeholder substitution for MJML templates.

Tokens look like ``{{%NAME%}}`` with optional spaces around NAME. Names are
case-sensitive. Substitution is a single regex pass, so markup inserted for
one token is never scanned for further tokens.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{\{%\s*([A-Za-z0-9_]+)\s*%\}\}")


def token_pattern(name: str) -> re.Pattern:
    return re.compile(r"\{\{%\s*" + re.escape(name) + r"\s*%\}\}")


def has_token(template: str, name: str) -> bool:
    return token_pattern(name).search(template) is not None


def find_tokens(template: str) -> list[str]:
    """Distinct token names in order of first appearance."""
    return list(dict.fromkeys(TOKEN_RE.findall(template)))


def warn_missing_tokens(template: str, names: Iterable[str], label: str) -> list[str]:
    missing = [n for n in names if not has_token(template, n)]
    for name in missing:
        logger.warning("Placeholder {{%%%s%%}} not found in %s", name, label)
    return missing


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace every token; tokens without a value become empty strings."""
    unknown = [n for n in find_tokens(template) if n not in values]
    if unknown:
        logger.debug("No value for %s, leaving empty", ", ".join(unknown))
    return TOKEN_RE.sub(lambda m: values.get(m.group(1)) or "", template)


def load_template(path: Path) -> str:
    return Path(path).read_text(encoding="utf-8")

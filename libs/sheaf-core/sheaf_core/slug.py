"""Slug helpers: normalization and extraction from path templates."""

import re
import unicodedata
from functools import lru_cache

from sheaf_core.models import SlugOptions

_UNICODE_UNSAFE = re.compile(r"[\W_]+")
_ASCII_UNSAFE = re.compile(r"[^A-Za-z0-9]+")
_WHITESPACE = re.compile(r"\s+")
_PLACEHOLDER = re.compile(r"({{.+?}})")


def normalize_slug(text: str, options: SlugOptions | None = None) -> str:
    """
    Turn arbitrary text (usually an entry title) into a URL-safe slug.

    Characters that are not letters or numbers become separators, the result
    is lower-cased, and runs of separators collapse into one replacement
    character.
    """
    options = options or SlugOptions()
    text = str(text)
    if options.clean_accents:
        text = "".join(
            c for c in unicodedata.normalize("NFD", text) if not unicodedata.combining(c)
        )
    unsafe = _ASCII_UNSAFE if options.encoding == "ascii" else _UNICODE_UNSAFE
    text = unsafe.sub(" ", text).lower().strip()
    return _WHITESPACE.sub(options.sanitize_replacement, text)


@lru_cache(maxsize=256)
def slug_pattern(template: str) -> re.Pattern[str]:
    """Compile a path template such as ``{{year}}/{{slug}}`` into a matching regex."""
    regex = ""
    has_slug = False
    for part in _PLACEHOLDER.split(template):
        if part == "{{slug}}":
            regex += "(?P=slug)" if has_slug else "(?P<slug>.+?)"
            has_slug = True
        elif _PLACEHOLDER.fullmatch(part):
            regex += "[^/]+"
        else:
            regex += re.escape(part)
    return re.compile(f"^{regex}$")


def extract_slug(template: str, sub_path: str) -> str | None:
    """Return the ``{{slug}}`` part of ``sub_path``, or None if it does not match."""
    if "{{slug}}" not in template:
        return None
    m = slug_pattern(template).match(sub_path)
    return m.group("slug") if m else None

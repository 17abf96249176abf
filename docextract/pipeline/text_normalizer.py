"""
Text normalisation shared by the extraction service and the parsers.
"""

import re
from typing import Iterable, Optional

from docextract.schemas.contracts import Page

_NBSP = re.compile("\u00a0")
_TRAILING_WS_BEFORE_NL = re.compile(r"[ \t]+\n")
_MANY_NEWLINES = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r"[ \t]{2,}")
_HSPACE = re.compile(r"[ \t]+")
_TRAILING_PAGE_NUMBER = re.compile(r"\s+(\d{1,3})\s*$")


def normalize_text(s: Optional[str]) -> str:
    """nbsp to space, strip trailing spaces per line, collapse blank runs and space runs."""
    t = _NBSP.sub(" ", s or "")
    t = _TRAILING_WS_BEFORE_NL.sub("\n", t)
    t = _MANY_NEWLINES.sub("\n\n", t)
    t = _MULTI_SPACE.sub(" ", t)
    return t.strip()


def combine_page_text(pages: Iterable[Page]) -> str:
    """Normalise each page, drop empties, join with a blank line."""
    parts = [normalize_text(p.text) for p in pages]
    return normalize_text("\n\n".join(p for p in parts if p))


def normalize_whitespace(s: Optional[str]) -> str:
    return _HSPACE.sub(" ", (s or "").replace("\r", "")).strip()


def to_lines(text: Optional[str]) -> list[str]:
    """Split into trimmed, non-empty lines with inner whitespace collapsed."""
    lines = (text or "").replace("\r", "").split("\n")
    cleaned = (_HSPACE.sub(" ", line).strip() for line in lines)
    return [line for line in cleaned if line]


def first_match(text: str, pattern: re.Pattern) -> Optional[str]:
    """Group 1 of the first match, whitespace-normalised, or None."""
    m = pattern.search(text or "")
    if not m or not m.group(1):
        return None
    return normalize_whitespace(m.group(1))


def clean_trailing_page_number(s: Optional[str]) -> str:
    """Drop a trailing 1-3 digit page number, unless that leaves under 20 chars."""
    t = (s or "").strip()
    stripped = _TRAILING_PAGE_NUMBER.sub("", t)
    return stripped if len(stripped) >= 20 else t

"""
Reading-order text reconstruction from positioned PDF fragments.

PDF pages have no paragraph model, only positioned runs of glyphs. We rebuild
lines the way a reader would: top-to-bottom, left-to-right, with a space only
where the horizontal gap says one was intended.

Coordinates are PDF user space: y grows upward, so the first line of a page
has the largest y.
"""

import re
from typing import Iterable

from docextract.schemas.contracts import TextFragment

# Previous char that already implies "no space needed after me"
_OPENERS = re.compile(r"[\s(\[{\"'/-]$")
# Next char that must hug the previous fragment
_CLOSERS = re.compile(r"^[,.;:!?)}\]\"']")
_WS = re.compile(r"\s+")
_MANY_NEWLINES = re.compile(r"\n{3,}")


def bucket_lines(fragments: Iterable[TextFragment], y_tolerance: float = 4.0) -> list[list[TextFragment]]:
    """
    Stable-sort fragments by y descending then x ascending and cluster them
    into lines. A fragment joins the current line if its y is within
    y_tolerance of the line's first fragment.
    """
    ordered = sorted(fragments, key=lambda f: (-f.y, f.x))
    if not ordered:
        return []

    lines: list[list[TextFragment]] = []
    current = [ordered[0]]
    anchor_y = ordered[0].y

    for frag in ordered[1:]:
        if abs(frag.y - anchor_y) <= y_tolerance:
            current.append(frag)
        else:
            lines.append(sorted(current, key=lambda f: f.x))
            current = [frag]
            anchor_y = frag.y

    lines.append(sorted(current, key=lambda f: f.x))
    return lines


def needs_space(line: str, next_text: str, x_gap: float, space_gap: float = 3.0) -> bool:
    """Whether a space belongs between the text so far and the next fragment."""
    if not line or not next_text:
        return False
    if x_gap <= space_gap:
        return False
    if _OPENERS.search(line[-1]):
        return False
    if _CLOSERS.search(next_text[0]):
        return False
    return True


def items_to_text(
    fragments: Iterable[TextFragment],
    y_tolerance: float = 4.0,
    space_gap: float = 3.0,
) -> str:
    """
    Rebuild readable page text from positioned fragments.

    - whitespace-only fragments add no text but still close the line when
      they carry an explicit line break
    - an explicit line break always closes the current line
    - runs of 3+ newlines collapse to a single blank line
    """
    out_lines: list[str] = []

    for bucket in bucket_lines(fragments, y_tolerance):
        line = ""
        last_x = None

        for frag in bucket:
            raw = frag.text or ""
            if not raw.strip():
                if frag.has_eol:
                    _flush(line, out_lines)
                    line, last_x = "", None
                continue

            text = _WS.sub(" ", raw)
            if line and last_x is not None:
                if needs_space(line, text, frag.x - last_x, space_gap) and not line.endswith(" "):
                    line += " "
            line += text
            last_x = frag.x + (frag.width or 0.0)

            if frag.has_eol:
                _flush(line, out_lines)
                line, last_x = "", None

        _flush(line, out_lines)

    return _MANY_NEWLINES.sub("\n\n", "\n".join(out_lines)).strip()


def _flush(line: str, out_lines: list[str]) -> None:
    cleaned = _WS.sub(" ", line).rstrip()
    if cleaned:
        out_lines.append(cleaned)

"""
Learning outcome descriptions and per-LO essential content.
"""

import re
from typing import Optional

from pydantic import BaseModel

from docextract.parsers.criterion_codes import is_criterion_start, split_criterion_line
from docextract.pipeline.text_normalizer import clean_trailing_page_number, normalize_whitespace, to_lines

LO_INLINE = re.compile(r"^\s*(LO\s*\d{1,2})\b\s*[:\-–]?\s*(.*)$", re.I)
LO_LONG = re.compile(r"^\s*Learning\s*Outcome\s*(\d{1,2})\b\s*[:\-–]?\s*(.*)$", re.I)
LO_GLUED = re.compile(r"\b(LO\d{1,2})(?=[A-Za-z])")

HARD_STOPS = [
    re.compile(r"^\s*Assessment\s*criteria\b", re.I),
    re.compile(r"^\s*Essential\s*content\b", re.I),
    re.compile(r"^\s*Pass\b", re.I),
    re.compile(r"^\s*Merit\b", re.I),
    re.compile(r"^\s*Distinction\b", re.I),
]

FOOTER_LINES = [
    re.compile(r"©\s*pearson", re.I),
    re.compile(r"\bpearson\s*education\b", re.I),
    re.compile(r"\beducation\s*limited\b", re.I),
    re.compile(r"\bengineering\s*suite\b", re.I),
    re.compile(r"\blearning\s*outcomes?\s*&?\s*assessment\s*criteria\b", re.I),
    re.compile(r"\bissue\s*\d+\b", re.I),
    re.compile(r"^\s*\d{1,4}\s*$"),
    re.compile(r"^\s*page\s*\d{1,4}\s*$", re.I),
]

FOOTER_TAIL_MARKERS = [
    re.compile(r"\bengineering\s*suite\b", re.I),
    re.compile(r"\bissue\s*\d+\b", re.I),
    re.compile(r"©"),
    re.compile(r"\bpearson\b", re.I),
]

ESSENTIAL_CONTENT_MAX_CHARS = 2000


class LearningOutcomeText(BaseModel):
    lo_code: str
    description: str = ""


def unglue_lo(line: str) -> str:
    """'LO1Describe' → 'LO1 Describe'."""
    return LO_GLUED.sub(r"\1 ", line)


def _lo_code(raw: str) -> str:
    digits = re.sub(r"\D", "", raw)
    return f"LO{int(digits)}" if digits else re.sub(r"\s+", "", raw.upper())


def _is_footer_line(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    if len(s) > 140 and re.search(r"©|pearson|suite|issue", s, re.I):
        return True
    return any(rx.search(s) for rx in FOOTER_LINES)


def _strip_footer_tail(s: str) -> str:
    t = (s or "").strip()
    cut_at = -1
    for rx in FOOTER_TAIL_MARKERS:
        m = rx.search(t)
        if m and (cut_at == -1 or m.start() < cut_at):
            cut_at = m.start()
    if cut_at > 0:
        t = t[:cut_at].strip()
    return re.sub(r"\s+\d{1,4}\s*$", "", t).strip()


def parse_learning_outcomes(text: str) -> list[LearningOutcomeText]:
    """
    LO codes with their (possibly wrapped) descriptions, from anywhere in the
    document. The first description seen for a code wins. A criterion line
    ends the current description.
    """
    out: list[LearningOutcomeText] = []
    current: Optional[LearningOutcomeText] = None

    def flush():
        nonlocal current
        if current is not None:
            current.description = normalize_whitespace(current.description)
            if current.description and not any(x.lo_code == current.lo_code for x in out):
                out.append(current)
        current = None

    lines = [part for raw in to_lines(text) for part in split_criterion_line(unglue_lo(raw).strip())]
    for line in lines:
        if not line:
            continue

        if current is not None and (any(rx.search(line) for rx in HARD_STOPS) or is_criterion_start(line)):
            flush()
            continue

        m = LO_INLINE.match(line) or LO_LONG.match(line)
        if m:
            flush()
            current = LearningOutcomeText(
                lo_code=_lo_code(m.group(1)),
                description=normalize_whitespace(_strip_footer_tail(m.group(2) or "")),
            )
            continue

        if current is None:
            continue
        maybe = normalize_whitespace(line)
        if not maybe or _is_footer_line(maybe):
            continue
        maybe = normalize_whitespace(_strip_footer_tail(maybe))
        if maybe:
            current.description = f"{current.description} {maybe}" if current.description else maybe

    flush()
    out.sort(key=lambda lo: int(re.sub(r"\D", "", lo.lo_code) or 0))
    return out


# ── Essential content ───────────────────────────────────────

ESSENTIAL_START = re.compile(r"^Essential\s+Content\b", re.I)
ESSENTIAL_END = [
    re.compile(r"^Recommended Resources\b", re.I),
    re.compile(r"^Journals\b", re.I),
    re.compile(r"^Links\b", re.I),
    re.compile(r"^This unit links to\b", re.I),
    re.compile(r"^Assessment\b", re.I),
    re.compile(r"^Learning Outcomes and Assessment Criteria\b", re.I),
]
ESSENTIAL_JUNK = re.compile(r"^(Unit Descriptors|Issue\s+\d+|©\s*Pearson|Pearson Education|Page\s+\d+)", re.I)
LO_ANYWHERE = re.compile(r"\b(LO\d{1,2})\b", re.I)


def _essential_region(lines: list[str]) -> list[str]:
    start = next((i for i, line in enumerate(lines) if ESSENTIAL_START.match(line)), -1)
    if start < 0:
        return []
    base = lines[start + 1:]
    ends = [i for rx in ESSENTIAL_END for i, line in enumerate(base) if rx.match(line)]
    return base[:min(ends)] if ends else base


def extract_essential_content_by_lo(text: str, lo_codes: list[str]) -> dict[str, str]:
    """Essential Content text per LO, criteria lines excluded, capped at 2000 chars."""
    out = {lo: "" for lo in lo_codes}
    current_lo: Optional[str] = None
    parts: list[str] = []

    def flush():
        nonlocal parts
        if current_lo is not None:
            body = clean_trailing_page_number(normalize_whitespace(" ".join(parts)))
            if body:
                out[current_lo] = body[:ESSENTIAL_CONTENT_MAX_CHARS]
        parts = []

    for raw in _essential_region(to_lines(text)):
        if ESSENTIAL_JUNK.match(raw):
            continue
        line = unglue_lo(raw)
        if is_criterion_start(line):
            continue

        hit = LO_ANYWHERE.search(line)
        if hit and hit.group(1).upper() in lo_codes:
            lo = hit.group(1).upper()
            if current_lo is not None and lo != current_lo:
                flush()
            current_lo = lo
            trailing = normalize_whitespace(re.sub(rf"^\s*{lo}\b[:\-–]?\s*", "", line, flags=re.I))
            if trailing and not is_criterion_start(trailing):
                parts.append(trailing)
            continue

        if current_lo is not None:
            parts.append(line)

    flush()
    return out

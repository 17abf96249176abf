"""
Unit-level labels of a unit descriptor: code, title, Pearson code, level,
credits and issue label.
"""

import re
from typing import Optional

from docextract.parsers.strategies import Strategy, first_hit
from docextract.pipeline.text_normalizer import first_match, normalize_whitespace, to_lines


# ── Unit code ───────────────────────────────────────────────
def _unit_heading(text: str, fallback: str) -> Optional[str]:
    return first_match(text, re.compile(r"^\s*Unit\s+(\d{4})\b", re.I | re.M))


def _unit_number_label(text: str, fallback: str) -> Optional[str]:
    return first_match(text, re.compile(r"\bUnit\s+(?:number|no\.?)\s*[:\-]?\s*(\d{4})\b", re.I))


def _unit_anywhere(text: str, fallback: str) -> Optional[str]:
    return first_match(text, re.compile(r"\bUnit\s*(\d{4})\b", re.I))


def _title_fallback(text: str, fallback: str) -> Optional[str]:
    return first_match(fallback or "", re.compile(r"\b(\d{4})\b"))


UNIT_CODE_STRATEGIES = [
    Strategy("unit_heading", _unit_heading),
    Strategy("unit_number_label", _unit_number_label),
    Strategy("unit_anywhere", _unit_anywhere),
    Strategy("title_fallback", _title_fallback),
]


def parse_unit_code(text: str, doc_title_fallback: str = "") -> Optional[str]:
    return first_hit(UNIT_CODE_STRATEGIES, text or "", doc_title_fallback).value


# ── Unit title ──────────────────────────────────────────────
TITLE_STOP = re.compile(
    r"(engineering suite|©|pearson|higher nationals|unit descriptor|learning outcomes|"
    r"assessment criteria|level\b|credits?\b|credit value|unit code|guided learning|summary of unit|"
    r"essential content)",
    re.I,
)
TITLE_CONTINUATION_LIMIT = 8


def parse_unit_title(text: str, doc_title_fallback: str = "") -> str:
    """Text after 'Unit NNNN' on its heading line, plus wrapped continuation lines."""
    lines = to_lines(text)
    code = parse_unit_code(text, doc_title_fallback)
    code_re = re.compile(rf"\bUnit\s+{code}\b" if code else r"\bUnit\s+\d{4}\b", re.I)

    for i, line in enumerate(lines):
        if not code_re.search(line):
            continue
        first = re.sub(r"^\s*[:\-–—]\s*", "", code_re.sub("", line, count=1)).strip()
        parts = [first] if first and not TITLE_STOP.search(first) else []

        for nxt in lines[i + 1:i + TITLE_CONTINUATION_LIMIT]:
            if TITLE_STOP.search(nxt) or re.match(r"^issue\b", nxt, re.I):
                break
            parts.append(nxt)

        joined = normalize_whitespace(" ".join(parts))
        if joined:
            return joined

    return normalize_whitespace(first_match(text, re.compile(r"Unit\s+\d{4}\s*[-–—:]\s*([^\n]+)", re.I)))


# ── Pearson unit code, e.g. "Unit code: D/615/1475" ────────
def _pearson_label(text: str) -> Optional[str]:
    return first_match(text, re.compile(r"\bUnit\s+code\s*[:\-]?\s*([A-Z]\s*/\s*\d{3}\s*/\s*\d{4})", re.I))


def _pearson_shape(text: str) -> Optional[str]:
    return first_match(text, re.compile(r"\b([A-Z]/\d{3}/\d{4})\b"))


PEARSON_CODE_STRATEGIES = [
    Strategy("pearson_label", _pearson_label),
    Strategy("pearson_shape", _pearson_shape),
]


def parse_pearson_unit_code(text: str) -> Optional[str]:
    value = first_hit(PEARSON_CODE_STRATEGIES, text or "").value
    return re.sub(r"\s+", "", value).upper() if value else None


# ── Level / credits ─────────────────────────────────────────
META_PATTERNS = {
    "Level": [
        re.compile(r"\bUnit\s+level\s*[:\-]?\s*(\d{1,2})\b", re.I),
        re.compile(r"\bLevel\s*[:\-]?\s*(\d{1,2})\b", re.I),
    ],
    "Credits": [
        re.compile(r"\bCredit\s+value\s*[:\-]?\s*(\d{1,3})\b", re.I),
        re.compile(r"\bCredits?\s*[:\-]?\s*(\d{1,3})\b", re.I),
    ],
}


def parse_meta_number(text: str, label: str) -> Optional[int]:
    for pattern in META_PATTERNS.get(label, []):
        value = first_match(text or "", pattern)
        if value and value.isdigit():
            return int(value)
    return None


# ── Issue label ─────────────────────────────────────────────
def _issue_with_date(text: str) -> Optional[str]:
    return first_match(text, re.compile(r"\b(Issue\s+\d+\s*[-–—]\s*[A-Z][a-z]+\s+\d{4})\b"))


def _issue_only(text: str) -> Optional[str]:
    return first_match(text, re.compile(r"\b(Issue\s+\d+)\b", re.I))


ISSUE_STRATEGIES = [
    Strategy("issue_with_date", _issue_with_date),
    Strategy("issue_only", _issue_only),
]


def parse_issue_label(text: str) -> Optional[str]:
    value = first_hit(ISSUE_STRATEGIES, text or "").value
    return re.sub(r"\s*[-–—]\s*", " - ", value) if value else None

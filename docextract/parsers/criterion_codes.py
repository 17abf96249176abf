"""
Assessment-criterion code helpers (P1, M2, D3 ...).

Also handles two OCR artefacts seen in flattened criteria tables:
confusable digits inside a code (Pl0 → P10, Ml → M1) and several
criteria run together on one line.
"""

import re
from typing import Iterable, Optional

_CODE = re.compile(r"^([PMD])\s*(\d+)$")
_CODE_IN_TEXT = re.compile(r"\b([PMD])\s*(\d+)\b", re.I)
_MARKER = re.compile(r"\[\[[^\]]+\]\]")

# Code whose digit run may contain I/l/O, followed by a word, whitespace or punctuation
_CONFUSABLE = re.compile(r"(?<![A-Za-z0-9])([PMD])\s?([0-9IlO]{1,2})(?=[A-Z][a-z]|[\s:.\-–)]|$)")
_GLUED_CODES = re.compile(r"(?<![A-Za-z])([PMD]\d{1,2})(?=[PMD]\d{1,2}(?!\d))")
_LINE_START_CODE = re.compile(r"^\s*[PMD]\s?\d{1,2}\b")
_ROW_START = re.compile(r"^\s*(?:LO\s?\d{1,2}|[PMD]\s?\d{1,2})\b")
_INNER_CODE_START = re.compile(r"\s(?=[PMD]\d{1,2}\s+[A-Z][a-z])")

_OCR_DIGITS = str.maketrans("IlO", "110")

BAND_RANK = {"P": 0, "M": 1, "D": 2}


def normalize_criterion_code(value) -> Optional[str]:
    """'p 03' → 'P3'; anything that is not a criterion code → None."""
    m = _CODE.match(str(value or "").strip().upper())
    if not m:
        return None
    return f"{m.group(1)}{int(m.group(2))}"


def criterion_sort_key(code: str) -> tuple:
    c = (code or "").upper()
    digits = re.search(r"\d+", c)
    return BAND_RANK.get(c[:1], 9), int(digits.group(0)) if digits else 0, c


def sort_criterion_codes(codes: Iterable[str]) -> list[str]:
    return sorted(codes, key=criterion_sort_key)


def unique_sorted_codes(codes: Iterable) -> list[str]:
    found = {normalize_criterion_code(c) for c in codes or []}
    found.discard(None)
    return sort_criterion_codes(found)


def extract_criterion_codes(text: str) -> list[str]:
    """Every criterion code mentioned in free text, ignoring [[EQ:..]]/[[IMG:..]] markers."""
    if not text:
        return []
    scrubbed = _MARKER.sub(" ", text)
    return unique_sorted_codes(f"{m.group(1)}{m.group(2)}" for m in _CODE_IN_TEXT.finditer(scrubbed))


def _fix_token(m: re.Match) -> str:
    run = m.group(2)
    if not any(ch.isdigit() for ch in run) and run not in ("l", "I"):
        return m.group(0)
    fixed = f"{m.group(1)}{run.translate(_OCR_DIGITS)}"
    tail = m.string[m.end():m.end() + 1]
    return fixed + " " if tail.isalpha() else fixed


def fix_ocr_codes(line: str) -> str:
    """Repair confusable digits in criterion tokens: 'P1OInvestigate' → 'P10 Investigate'."""
    fixed = _CONFUSABLE.sub(_fix_token, line or "")
    return _GLUED_CODES.sub(r"\1 ", fixed)


def split_criterion_line(line: str) -> list[str]:
    """
    Split a flattened row like 'P1 Explain x P2 Describe y' into one line per
    criterion. Only rows that open with an LO or criterion code are split.
    """
    if not _ROW_START.match(line or ""):
        return [line]
    return [part.strip() for part in _INNER_CODE_START.split(line) if part.strip()]


def is_criterion_start(line: str) -> bool:
    return bool(_LINE_START_CODE.match(line or ""))

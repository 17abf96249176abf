"""
UK-first date handling for brief headers.

Header dates are free text ("1st September 2025", "01/09/2025",
"no later than 5th May 2026"). We validate the shape, tidy the text and,
where possible, derive an ISO date. Numeric dates are read day-first.
"""

import re
from datetime import date
from typing import Optional

from dateutil import parser as dateutil_parser
from pydantic import BaseModel


class DateParseResult(BaseModel):
    parsed_date: Optional[date] = None
    raw_text: str
    format_detected: str
    confidence: float
    is_ambiguous: bool
    ambiguity_note: Optional[str] = None


MONTHS = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*"

# Ordered by specificity (try most specific first)
DATE_FORMATS = [
    # Named month
    (rf"(\d{{1,2}})(?:st|nd|rd|th)?\s+({MONTHS})\s+(\d{{4}})", "DD_MONTH_YYYY", False),
    (rf"({MONTHS})\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})", "MONTH_DD_YYYY", False),

    # ISO
    (r"(\d{4})-(\d{2})-(\d{2})", "YYYY-MM-DD", False),

    # UK numeric (potentially ambiguous)
    (r"(\d{1,2})/(\d{1,2})/(\d{4})", "DD/MM/YYYY", True),
    (r"(\d{1,2})-(\d{1,2})-(\d{4})", "DD-MM-YYYY", True),
    (r"(\d{1,2})\.(\d{1,2})\.(\d{4})", "DD.MM.YYYY", True),
    (r"(\d{1,2})/(\d{1,2})/(\d{2})", "DD/MM/YY", True),
]

_ORDINAL_BREAK = re.compile(r"(\d{1,2})\s*\n\s*(st|nd|rd|th)\s*\n\s*", re.I)
_ORDINAL_GAP = re.compile(r"(\d{1,2})\s*(st|nd|rd|th)\b", re.I)

_DATE_SHAPES = [
    re.compile(r"^\d{1,2}(st|nd|rd|th)?\s+[A-Za-z]{3,}\s+\d{4}$", re.I),
    re.compile(r"^\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}$"),
    re.compile(r"no later than\s+\d{1,2}(st|nd|rd|th)?\s+[A-Za-z]{3,}\s+\d{4}", re.I),
]
_NAMED_DATE = re.compile(r"(\d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]{3,}\s+\d{4})", re.I)


def tidy_date(s: Optional[str]) -> str:
    """Join '1\\nst\\n September', collapse whitespace, close up '1 st' → '1st'."""
    v = _ORDINAL_BREAK.sub(r"\1\2 ", (s or "").replace("\r", ""))
    v = re.sub(r"\s+", " ", v).strip()
    return _ORDINAL_GAP.sub(r"\1\2", v)


def is_date_like(s: Optional[str]) -> bool:
    """Header-date shape check; bare day numbers are rejected."""
    v = tidy_date(s)
    if not v or re.fullmatch(r"\d{1,2}", v):
        return False
    return any(p.search(v) for p in _DATE_SHAPES)


def named_date_in(s: Optional[str]) -> Optional[str]:
    """The first 'D Month YYYY' inside a longer value, e.g. after 'no later than'."""
    m = _NAMED_DATE.search(tidy_date(s))
    return m.group(1) if m else None


def parse_date_uk(raw: str) -> DateParseResult:
    """Parse a date string with UK (day-first) priority."""
    raw_clean = tidy_date(raw)

    for pattern, format_name, potentially_ambiguous in DATE_FORMATS:
        m = re.search(pattern, raw_clean, re.IGNORECASE)
        if not m:
            continue
        try:
            parsed = _parse_by_format(m, format_name)
        except (ValueError, OverflowError):
            continue
        if parsed is None:
            continue

        is_ambiguous = False
        ambiguity_note = None
        if potentially_ambiguous:
            day_val, month_val = int(m.group(1)), int(m.group(2))
            if day_val <= 12 and month_val <= 12 and day_val != month_val:
                is_ambiguous = True
                ambiguity_note = f"dd/mm vs mm/dd ambiguous ({m.group(1)}/{m.group(2)})"

        confidence = 0.95 if not is_ambiguous else 0.70
        if parsed.year < 2000:
            confidence = 0.5

        return DateParseResult(
            parsed_date=parsed,
            raw_text=raw,
            format_detected=format_name,
            confidence=confidence,
            is_ambiguous=is_ambiguous,
            ambiguity_note=ambiguity_note,
        )

    return DateParseResult(
        parsed_date=None,
        raw_text=raw,
        format_detected="UNKNOWN",
        confidence=0.0,
        is_ambiguous=False,
    )


def _parse_by_format(match, format_name: str) -> Optional[date]:
    if format_name == "YYYY-MM-DD":
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    if format_name in ("DD/MM/YYYY", "DD-MM-YYYY", "DD.MM.YYYY"):
        return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))

    if format_name == "DD/MM/YY":
        yy = int(match.group(3))
        year = 1900 + yy if yy > 50 else 2000 + yy
        return date(year, int(match.group(2)), int(match.group(1)))

    if format_name in ("DD_MONTH_YYYY", "MONTH_DD_YYYY"):
        return dateutil_parser.parse(match.group(0), dayfirst=True).date()

    return None


def to_iso_date(s: Optional[str]) -> Optional[str]:
    """ISO date for a header date value, or None when it cannot be read."""
    if not s:
        return None
    result = parse_date_uk(s)
    return result.parsed_date.isoformat() if result.parsed_date else None

"""
Assessment-criteria parser for unit descriptors.

Scans the "Learning Outcomes and Assessment Criteria" window line by line
with a small state machine:

    SEEKING_LO ──LO heading──► IN_LO ──P/M/D code──► IN_CRITERION
        ▲                        ▲                        │
        └──── (unknown LO) ──────┴──── next code / LO ────┘

Every transition out of IN_CRITERION goes through flush(), which commits
the accumulated description or discards it if it ended up empty.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from docextract.parsers.criterion_codes import criterion_sort_key, fix_ocr_codes, split_criterion_line
from docextract.parsers.spec_outcomes import unglue_lo
from docextract.pipeline.text_normalizer import clean_trailing_page_number, normalize_whitespace, to_lines
from docextract.schemas.drafts import CriterionDraft, grade_band_for

SECTION_START = re.compile(r"Learning Outcomes and Assessment Criteria", re.I)
MAJOR_SECTION = re.compile(
    r"^\s*(Essential Content|Recommended Resources|Journals|Links|This unit links to)\b", re.I
)
LO_HEADING = re.compile(r"^\s*(?:Learning\s+Outcome\s+)?(LO\d{1,2})\b", re.I)
AC_LINE = re.compile(r"^([PMD])\s*(\d{1,2})\b\s*(.*)$", re.I)
LO_AND_AC_LINE = re.compile(r"\b(LO\d{1,2})\b\s+([PMD])\s*(\d{1,2})\b\s*(.*)$", re.I)

FOOTER_NOISE = re.compile(
    r"^\s*(?:Unit Descriptors for the Pearson BTEC Higher Nationals Engineering Suite|Issue\s+\d+|"
    r"©\s*Pearson|Pearson Education|Education Limited|Page\s*\d+|\d{1,4})\b",
    re.I,
)
COPYRIGHT_LINE = re.compile(r"^\s*(?:©\s*Pearson|Pearson Education|Education Limited)\b", re.I)
BARE_PAGE_NUMBER = re.compile(r"^\s*(?:page\s*)?\d{1,4}\s*$", re.I)

LONG_LINE_CHARS = 80
MIN_MARKER_INDEX = 25
FOOTER_MARKERS = [
    re.compile(r"\bengineering\s*suite\b", re.I),
    re.compile(r"\bissue\s*\d+\b", re.I),
    re.compile(r"©"),
    re.compile(r"\bpearson\b", re.I),
    re.compile(r"\beducation\s*limited\b", re.I),
    re.compile(r"\bpearson\s*education\b", re.I),
]

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_BAND_HEADER = re.compile(r"\b(?:page\s*)?\d{1,4}\s+pass\s+merit\s+distinction\b", re.I)
_BAND_WORDS = re.compile(r"\bpass\s+merit\s+distinction\b", re.I)


class ScanState(str, Enum):
    SEEKING_LO = "SEEKING_LO"
    IN_LO = "IN_LO"
    IN_CRITERION = "IN_CRITERION"


@dataclass
class CriterionAccumulator:
    lo_code: Optional[str] = None
    ac_code: Optional[str] = None
    parts: list[str] = field(default_factory=list)


def strip_pdf_junk(line: str) -> str:
    """Remove control chars, band header rows and footer text trailing a long line."""
    s = normalize_whitespace(_CONTROL_CHARS.sub(" ", line or "").replace("\n", " "))
    if not s:
        return ""
    s = _BAND_HEADER.sub(" ", s)
    s = _BAND_WORDS.sub(" ", s)
    s = re.sub(r"\s+\d{1,4}\s*$", "", s)

    if len(s) > LONG_LINE_CHARS:
        cuts = [m.start() for rx in FOOTER_MARKERS for m in [rx.search(s)] if m and m.start() >= MIN_MARKER_INDEX]
        if cuts:
            s = s[:min(cuts)].strip()

    s = normalize_whitespace(clean_trailing_page_number(normalize_whitespace(s)))
    return s.strip()


def criteria_window(lines: list[str]) -> list[str]:
    """From the section heading (or the top) to the first terminal heading."""
    start = next((i for i, line in enumerate(lines) if SECTION_START.search(line)), -1)
    base = lines[start:] if start >= 0 else lines
    end = next((i for i, line in enumerate(base) if MAJOR_SECTION.search(line)), -1)
    return base[:end] if end >= 0 else base


class CriteriaScanner:
    """Single-pass FSM collecting criteria per wanted LO code."""

    def __init__(self, lo_codes: list[str]):
        self.wanted = {code.upper() for code in lo_codes}
        self.by_lo: dict[str, list[CriterionDraft]] = {lo: [] for lo in self.wanted}
        self.state = ScanState.SEEKING_LO
        self.acc = CriterionAccumulator()

    def flush(self) -> None:
        """Commit the open criterion (if any) and return to IN_LO."""
        acc = self.acc
        if acc.lo_code and acc.ac_code:
            desc = strip_pdf_junk(" ".join(acc.parts))
            bucket = self.by_lo.setdefault(acc.lo_code, [])
            if desc and not any(c.ac_code == acc.ac_code for c in bucket):
                bucket.append(CriterionDraft(
                    ac_code=acc.ac_code,
                    grade_band=grade_band_for(acc.ac_code),
                    description=desc,
                ))
        self.acc = CriterionAccumulator(lo_code=acc.lo_code)
        self.state = ScanState.IN_LO if acc.lo_code else ScanState.SEEKING_LO

    def _enter_lo(self, lo: str) -> None:
        self.flush()
        self.acc.lo_code = lo
        self.state = ScanState.IN_LO

    def _open_criterion(self, code: str, rest: str) -> None:
        self.flush()
        self.acc.ac_code = code
        if rest:
            self.acc.parts.append(rest)
        self.state = ScanState.IN_CRITERION

    def feed(self, raw: str) -> bool:
        """Consume one line. Returns False once a terminal heading ends the scan."""
        line = strip_pdf_junk(unglue_lo(raw.strip()))
        if not line or FOOTER_NOISE.search(line):
            return True

        if self.state == ScanState.IN_CRITERION and MAJOR_SECTION.search(line):
            self.flush()
            return False

        heading = LO_HEADING.match(line)
        if heading and heading.group(1).upper() in self.wanted:
            self._enter_lo(heading.group(1).upper())

        ac = AC_LINE.match(line)
        if ac:
            if self.acc.lo_code in self.wanted:
                self._open_criterion(f"{ac.group(1).upper()}{ac.group(2)}", ac.group(3).strip())
            return True

        combined = LO_AND_AC_LINE.search(line)
        if combined:
            lo = combined.group(1).upper()
            if lo in self.wanted:
                self._enter_lo(lo)
                self._open_criterion(f"{combined.group(2).upper()}{combined.group(3)}", combined.group(4).strip())
            return True

        if self.state == ScanState.IN_CRITERION:
            if COPYRIGHT_LINE.search(line) or BARE_PAGE_NUMBER.match(line):
                return True
            self.acc.parts.append(line)
        return True

    def result(self) -> dict[str, list[CriterionDraft]]:
        self.flush()
        return {lo: sorted(items, key=lambda c: criterion_sort_key(c.ac_code)) for lo, items in self.by_lo.items()}


def _expand(lines: list[str]) -> list[str]:
    out: list[str] = []
    for line in lines:
        out.extend(split_criterion_line(fix_ocr_codes(line)))
    return out


def parse_criteria_by_lo(text: str, lo_codes: list[str]) -> dict[str, list[CriterionDraft]]:
    """Criteria grouped by LO, each list sorted PASS < MERIT < DISTINCTION then number."""
    scanner = CriteriaScanner(lo_codes)
    for line in _expand(criteria_window(to_lines(text))):
        if not scanner.feed(line):
            break
    return scanner.result()

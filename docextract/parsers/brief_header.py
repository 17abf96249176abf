"""
Assignment brief header extraction.

Each labelled field is tried with two strategies in order:
  same_line    - pattern on the flattened header, anchored to the next label
  label_lines  - label on its own line, value on the following lines
The winning strategy per field is reported alongside the header.

Academic year has its own ordered strategy list (label, issue_line,
issue_date_month); the cohort-number-vs-year problem makes every one of
them a heuristic.
"""

import re
from typing import Callable, Optional

from pydantic import BaseModel

from docextract.parsers.dates import is_date_like, named_date_in, tidy_date, to_iso_date
from docextract.parsers.strategies import Strategy, first_hit
from docextract.pipeline.text_normalizer import normalize_whitespace
from docextract.schemas.drafts import BriefHeader

HEADER_PREVIEW_CHARS = 4500
HEADER_MAX_LINES = 200
LABEL_VALUE_MAX_CHARS = 200
LABEL_VALUE_MAX_LINES = 4

LABELS = [
    "Qualification",
    "Unit number and title",
    "Assignment title",
    "Assignment",
    "Assignment number",
    "Unit Code",
    "Assessor",
    "Internal Verifier",
    "Verification Date",
    "Issue Date",
    "Final Submission Date",
    "Academic year",
]

_LABEL_LINE = [re.compile(rf"^{re.escape(label)}\b", re.I) for label in LABELS]

# "Assignment" must not swallow "Assignment title" or "Assignment number"
LABEL_EXCLUSIONS = {"Assignment": r"(?!\s+(?:title|number)\b)"}

# (field, same-line pattern, label-line labels)
FIELD_SPECS: list[tuple[str, re.Pattern, list[str]]] = [
    ("qualification", re.compile(r"Qualification\s+(.+?)\s+Unit number", re.I), ["Qualification"]),
    ("unit_number_and_title",
     re.compile(r"Unit number and title\s+([0-9]{4}\.\s+.+?)\s+Assignment title", re.I),
     ["Unit number and title"]),
    ("assignment_title", re.compile(r"Assignment title\s+(.+?)\s+Assessor", re.I), ["Assignment title"]),
    ("assignment", re.compile(r"Assignment\s+(\d+\s+of\s+\d+)", re.I), ["Assignment", "Assignment number"]),
    ("assessor", re.compile(r"Assessor\s+(.+?)\s+Academic year", re.I), ["Assessor"]),
    ("unit_code", re.compile(r"Unit Code\s+([A-Z0-9/]+)\b", re.I), ["Unit Code"]),
    ("internal_verifier", re.compile(r"Internal Verifier\s+(.+?)\s+Verification Date", re.I), ["Internal Verifier"]),
    ("verification_date", re.compile(r"Verification Date\s+(.+?)\s+Issue Date", re.I), ["Verification Date"]),
    ("issue_date", re.compile(r"Issue Date\s+(.+?)\s+Final Submission Date", re.I), ["Issue Date"]),
    ("final_submission_date",
     re.compile(r"Final Submission Date\s+(.+?)\s*(?:Policy on the Use of Artificial Intelligence|$)", re.I),
     ["Final Submission Date"]),
]

DATE_FIELDS = ("verification_date", "issue_date", "final_submission_date")

MISSING_LABELS = {
    "qualification": "Qualification",
    "unit_number_and_title": "Unit number and title",
    "assignment_title": "Assignment title",
    "assignment": "Assignment",
    "assessor": "Assessor",
    "academic_year": "Academic year",
    "unit_code": "Unit Code",
    "internal_verifier": "Internal Verifier",
    "verification_date": "Verification Date",
    "issue_date": "Issue Date",
    "final_submission_date": "Final Submission Date",
}


class HeaderExtraction(BaseModel):
    header: BriefHeader
    strategies: dict[str, str] = {}
    warnings: list[str] = []


def flatten_header(s: str) -> str:
    """Header text on one line; ordinal breaks like '1\\nst\\n Sept' joined."""
    v = re.sub(r"(\d{1,2})\s*\n\s*(st|nd|rd|th)\s*\n\s*", r"\1\2 ", (s or "").replace("\r", ""), flags=re.I)
    v = re.sub(r"\n+", " ", v)
    return re.sub(r"[ \t]+", " ", v).strip()


def is_label_line(line: str) -> bool:
    trimmed = line.strip()
    return bool(trimmed) and any(rx.search(trimmed) for rx in _LABEL_LINE)


def value_from_label_lines(lines: list[str], label: str) -> Optional[str]:
    """Value on the label's own line, else up to 4 following lines until the next label."""
    label_re = re.compile(rf"^\s*{re.escape(label)}\b{LABEL_EXCLUSIONS.get(label, '')}\s*[:\-–]?\s*(.*)$", re.I)
    for i, line in enumerate(lines):
        m = label_re.match(line)
        if not m:
            continue
        remainder = (m.group(1) or "").strip()
        if remainder:
            return normalize_whitespace(remainder)[:LABEL_VALUE_MAX_CHARS]

        collected: list[str] = []
        for nxt in lines[i + 1:]:
            if len(collected) >= LABEL_VALUE_MAX_LINES or is_label_line(nxt):
                break
            if nxt.strip():
                collected.append(nxt.strip())
            if len(" ".join(collected)) > LABEL_VALUE_MAX_CHARS:
                break
        value = normalize_whitespace(" ".join(collected))
        return value[:LABEL_VALUE_MAX_CHARS] if value else None
    return None


def _same_line(pattern: re.Pattern) -> Callable[[str, list[str]], Optional[str]]:
    def run(flat: str, lines: list[str]) -> Optional[str]:
        m = pattern.search(flat)
        return normalize_whitespace(m.group(1)) if m and m.group(1) else None
    return run


def _label_lines(labels: list[str]) -> Callable[[str, list[str]], Optional[str]]:
    def run(flat: str, lines: list[str]) -> Optional[str]:
        for label in labels:
            value = value_from_label_lines(lines, label)
            if value:
                return value
        return None
    return run


def field_strategies(pattern: re.Pattern, labels: list[str]) -> list[Strategy]:
    return [Strategy("same_line", _same_line(pattern)), Strategy("label_lines", _label_lines(labels))]


# ── Academic year ────────────────────────────────────────────

def academic_year_like(s: Optional[str]) -> bool:
    v = (s or "").strip()
    if not v or re.search(r"\b(unit|code|assignment|verifier|date)\b", v, re.I):
        return False
    return bool(
        re.fullmatch(r"\d{1,2}", v)
        or re.fullmatch(r"\d{4}\s*[-/]\s*\d{2,4}", v)
        or re.fullmatch(r"\d{4}", v)
    )


def is_calendar_academic_year(s: Optional[str]) -> bool:
    """A year like 2025/26 or 2026, not a cohort number like '1'."""
    return academic_year_like(s) and not re.fullmatch(r"\d{1,2}", (s or "").strip())


def _short_year_span(value: str) -> str:
    """2025/2026 → 2025/26."""
    v = re.sub(r"\s+", "", value)
    return re.sub(r"^(\d{4})/(\d{2})(\d{2})$", r"\1/\3", v)


def year_from_label(flat: str, lines: list[str]) -> Optional[str]:
    m = re.search(r"Academic year\s+([0-9]{1,4}(?:\s*/\s*\d{2,4})?)", flat, re.I)
    value = m.group(1) if m else value_from_label_lines(lines, "Academic year")
    return re.sub(r"\s+", "", value) if value else None


def year_from_issue_line(flat: str, lines: list[str]) -> Optional[str]:
    m = re.search(r"\bIssue\s+\d+\s*[-–]\s*(\d{4}\s*/\s*\d{2,4})\b", flat, re.I)
    if not m:
        return None
    value = _short_year_span(m.group(1))
    return value if academic_year_like(value) else None


def year_from_issue_date_month(flat: str, lines: list[str]) -> Optional[str]:
    """Sep-Dec issue dates start an academic year; Jan-Aug belong to the previous one."""
    m = re.search(r"\bIssue Date\s+(\d{1,2}(?:st|nd|rd|th)?\s+[A-Za-z]{3,}\s+\d{4})\b", flat, re.I)
    if not m:
        return None
    year = int(re.search(r"\d{4}", m.group(1)).group(0))
    month = re.search(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)", m.group(1).split(" ", 1)[1].lower())
    if not month:
        return None
    start = year if month.group(1) in ("sep", "oct", "nov", "dec") else year - 1
    return f"{start}/{(start + 1) % 100:02d}"


ACADEMIC_YEAR_STRATEGIES = [
    Strategy("label", year_from_label),
    Strategy("issue_line", year_from_issue_line),
    Strategy("issue_date_month", year_from_issue_date_month),
]


# ── Header ───────────────────────────────────────────────────

def extract_brief_header(
    preview: str,
    year_strategies: Optional[list[Strategy]] = None,
) -> HeaderExtraction:
    """Header fields, the strategy that produced each, and soft warnings."""
    header_text = (preview or "")[:HEADER_PREVIEW_CHARS]
    lines = header_text.replace("\r", "").split("\n")[:HEADER_MAX_LINES]
    flat = flatten_header(header_text)

    values: dict[str, Optional[str]] = {}
    strategies: dict[str, str] = {}
    warnings: list[str] = []

    for field, pattern, labels in FIELD_SPECS:
        hit = first_hit(field_strategies(pattern, labels), flat, lines)
        values[field] = hit.value
        if hit.strategy:
            strategies[field] = hit.strategy

    final = values.get("final_submission_date")
    if final:
        values["final_submission_date"] = named_date_in(final) or final

    for field in DATE_FIELDS:
        value = values.get(field)
        if value and not is_date_like(value):
            warnings.append(f"{_camel(field)}: ambiguous")
            values[field] = None
            strategies.pop(field, None)
        elif value:
            values[field] = tidy_date(value)

    year_hit = first_hit(year_strategies or ACADEMIC_YEAR_STRATEGIES, flat, lines, accept=is_calendar_academic_year)
    if year_hit.value is None:
        # A cohort number is still better than nothing
        cohort = year_from_label(flat, lines)
        if cohort and academic_year_like(cohort):
            year_hit = year_hit._replace(value=cohort, strategy="label")
    if year_hit.value:
        values["academic_year"] = year_hit.value
        strategies["academic_year"] = year_hit.strategy
    else:
        values["academic_year"] = None
        warnings.append("academicYear: not detected")

    header = BriefHeader(
        qualification=values["qualification"],
        unit_number_and_title=values["unit_number_and_title"],
        assignment_title=values["assignment_title"],
        assignment=values["assignment"],
        assignment_number=_assignment_number(values["assignment"]),
        unit_code=values["unit_code"],
        assessor=values["assessor"],
        internal_verifier=values["internal_verifier"],
        verification_date=values["verification_date"],
        issue_date=values["issue_date"],
        final_submission_date=values["final_submission_date"],
        academic_year=values["academic_year"],
        verification_date_iso=to_iso_date(values["verification_date"]),
        issue_date_iso=to_iso_date(values["issue_date"]),
        final_submission_date_iso=to_iso_date(values["final_submission_date"]),
    )

    missing = [label for field, label in MISSING_LABELS.items() if not getattr(header, field)]
    if missing:
        warnings.append(f"Header fields missing: {', '.join(missing)}")

    return HeaderExtraction(header=header, strategies=strategies, warnings=warnings)


def _assignment_number(assignment: Optional[str]) -> Optional[str]:
    m = re.match(r"\s*(\d+)", assignment or "")
    return m.group(1) if m else None


def _camel(field: str) -> str:
    head, *rest = field.split("_")
    return head + "".join(part.title() for part in rest)


def parse_unit_number_and_title(raw: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """'4015. Engineering Design' → ('4015', 'Engineering Design')."""
    m = re.search(r"(\d{4})\.\s*(.+)", raw or "")
    if not m:
        return None, None
    return m.group(1), normalize_whitespace(m.group(2))


def build_brief_title(header: BriefHeader, assignment_number: Optional[int], fallback_title: str) -> str:
    unit_number, unit_title = parse_unit_number_and_title(header.unit_number_and_title)
    if unit_number and unit_title and assignment_number:
        return f"Unit {unit_number} - {unit_title} - Assignment {assignment_number}"
    if unit_number and unit_title:
        return f"Unit {unit_number} - {unit_title}"
    if header.assignment_title and assignment_number:
        return f"{normalize_whitespace(header.assignment_title)} - Assignment {assignment_number}"
    return fallback_title or header.assignment_title or ""

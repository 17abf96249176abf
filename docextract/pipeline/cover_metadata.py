"""
Cover-page metadata extraction for submissions.

Scans the first two pages for identity fields (student name/ID, unit and
assignment codes, submission date, assessor) and a plagiarism declaration.
Each field is an ordered list of patterns; the first hit wins.
"""

import re
from typing import Any, Optional

from pydantic import BaseModel

from docextract.schemas.contracts import Page

COVER_SCAN_PAGES = 2
SNIPPET_MARGIN = 40


class CoverField(BaseModel):
    value: str
    confidence: float
    page: int
    snippet: str


class DeclarationField(BaseModel):
    value: bool = True
    confidence: float = 0.8
    page: int
    snippet: str = "Declaration text detected on cover page."


class CoverMetadata(BaseModel):
    student_name: Optional[CoverField] = None
    student_id: Optional[CoverField] = None
    unit_code: Optional[CoverField] = None
    assignment_code: Optional[CoverField] = None
    submission_date: Optional[CoverField] = None
    assessor_name: Optional[CoverField] = None
    declaration_present: Optional[DeclarationField] = None
    confidence: float = 0.0

    def identity_values(self) -> list[str]:
        fields = [self.student_name, self.student_id, self.unit_code, self.assignment_code, self.submission_date]
        return [f.value.strip() for f in fields if f is not None and f.value.strip()]

    @property
    def ready(self) -> bool:
        return is_cover_metadata_ready(self)


# ── Patterns: (regex, value group, confidence) in priority order ─────
FIELD_PATTERNS: dict[str, list[tuple[re.Pattern, int, float]]] = {
    "student_name": [
        (re.compile(r"\bstudent\s*name\s*[:\-]\s*([^\n]{2,120})", re.I), 1, 0.72),
        (re.compile(r"\bname\s*[:\-]\s*([^\n]{2,120})", re.I), 1, 0.72),
    ],
    "student_id": [
        (re.compile(r"\b(student\s*id|id)\s*[:\-]\s*([A-Za-z0-9\-/]{3,40})", re.I), 2, 0.86),
    ],
    "unit_code": [
        (re.compile(r"\bunit\s*(?:code)?\s*[:\-]\s*([0-9]{4})\b", re.I), 1, 0.84),
        (re.compile(r"\b(u[0-9]{4}|[0-9]{4})\b", re.I), 1, 0.84),
    ],
    "assignment_code": [
        (re.compile(r"\bassignment\s*(?:number|no\.?|code)?\s*[:\-]?\s*(A\d+)\b", re.I), 1, 0.84),
        (re.compile(r"\b(A\d+)\b", re.I), 1, 0.84),
    ],
    "submission_date": [
        (re.compile(
            r"\b(submission\s*date|date\s*submitted|date)\s*[:\-]\s*([0-3]?\d[/\-][01]?\d[/\-](?:19|20)?\d{2})",
            re.I,
        ), 2, 0.84),
    ],
    "assessor_name": [
        (re.compile(r"\bassessor\s*(?:name)?\s*[:\-]\s*([^\n]{2,120})", re.I), 1, 0.84),
    ],
}

DECLARATION_PATTERN = re.compile(r"\b(i\s+declare|declaration|this work is my own|plagiarism)\b", re.I)

_HSPACE = re.compile(r"[ \t]+")


def _normalize(text: str) -> str:
    t = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    return _HSPACE.sub(" ", t).strip()


def _capture(field: str, page_number: int, text: str) -> Optional[CoverField]:
    for pattern, group, confidence in FIELD_PATTERNS[field]:
        m = pattern.search(text)
        if not m:
            continue
        value = (m.group(group) or "").strip()
        if not value:
            continue
        snippet = text[max(0, m.start() - SNIPPET_MARGIN):min(len(text), m.end() + SNIPPET_MARGIN)].strip()
        return CoverField(value=value, confidence=confidence, page=page_number, snippet=snippet)
    return None


def extract_cover_metadata(pages: list[Page]) -> CoverMetadata:
    """Scan the leading pages; confidence is the mean of the fields found."""
    out = CoverMetadata()
    scores: list[float] = []

    for idx, page in enumerate(pages[:COVER_SCAN_PAGES]):
        page_number = page.page_number or idx + 1
        text = _normalize(page.text)

        for field in FIELD_PATTERNS:
            if getattr(out, field) is not None:
                continue
            found = _capture(field, page_number, text)
            if found is not None:
                setattr(out, field, found)
                scores.append(found.confidence)

        if out.declaration_present is None and DECLARATION_PATTERN.search(text):
            out.declaration_present = DeclarationField(page=page_number)
            scores.append(out.declaration_present.confidence)

    out.confidence = sum(scores) / len(scores) if scores else 0.0
    return out


def is_cover_metadata_ready(cover: Any) -> bool:
    """At least two identity fields and confidence ≥ 0.5. Accepts a model or its dict dump."""
    if cover is None:
        return False
    if isinstance(cover, dict):
        try:
            cover = CoverMetadata.model_validate(cover)
        except ValueError:
            return False
    if not isinstance(cover, CoverMetadata):
        return False
    return len(cover.identity_values()) >= 2 and cover.confidence >= 0.5

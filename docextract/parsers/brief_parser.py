"""
Assignment brief (BRIEF) parser: text in, ParsedBriefDraft out.

Page boundaries come from form feeds. The header is read from the first
page; tasks, parts and tables from the whole document. Equation and image
markers (`[[EQ:…]]`, `[[IMG:…]]`) are left in the task text untouched and
never contribute criterion codes.
"""

import re
from typing import Optional

import structlog

from docextract.parsers.brief_header import HEADER_PREVIEW_CHARS, build_brief_title, extract_brief_header
from docextract.parsers.brief_tasks import extract_brief_tasks
from docextract.parsers.criterion_codes import extract_criterion_codes
from docextract.pipeline.text_normalizer import first_match, normalize_whitespace
from docextract.schemas.drafts import ParsedBriefDraft

logger = structlog.get_logger(__name__)

BRIEF_PARSER_VERSION = "brief-v1"

UNIT_CODE_PATTERNS = [
    re.compile(r"\bUnit\s+number\s+and\s+title\s+(4\d{3})\b", re.I),
    re.compile(r"\bUnit\s+(4\d{3})\b", re.I),
]
FALLBACK_UNIT_CODE = re.compile(r"\b(4\d{3})\b")
ASSIGNMENT_OF = re.compile(r"\bAssignment\s+(\d+)\s+of\s+(\d+)\b", re.I)
ASSIGNMENT_TITLE_PATTERNS = [
    re.compile(r"\bAssignment\s+title\s+([^\n\r]+)", re.I),
    re.compile(r"\bAssignment\s+title\s*[:\-]\s*([^\n\r]+)", re.I),
]
AIAS_LEVEL = re.compile(r"\bAIAS\s*[–-]\s*LEVEL\s*(\d)\b", re.I)
ASSIGNMENT_CODE = re.compile(r"\bA\d+\b", re.I)


def split_pages(text: str) -> list[str]:
    """Form-feed page split; a document without breaks is one page."""
    cleaned = (text or "").replace("\r", "")
    parts = cleaned.split("\f")
    if len(parts) <= 1:
        return [cleaned]
    return [p.strip() for p in parts if p.strip()]


def guess_unit_code(text: str, fallback_title: str) -> Optional[str]:
    for pattern in UNIT_CODE_PATTERNS:
        found = first_match(text, pattern)
        if found:
            return found
    return first_match(fallback_title or "", FALLBACK_UNIT_CODE)


def _assignment_title(text: str) -> Optional[str]:
    for pattern in ASSIGNMENT_TITLE_PATTERNS:
        found = first_match(text, pattern)
        if found:
            return found
    return None


def extract_brief(text: str, doc_title_fallback: str = "") -> ParsedBriefDraft:
    """Parse header, tasks, end matter and detected criterion codes of a brief."""
    t = text or ""

    assignment_of = ASSIGNMENT_OF.search(t)
    assignment_number = int(assignment_of.group(1)) if assignment_of else None
    total_assignments = int(assignment_of.group(2)) if assignment_of else None

    aias = AIAS_LEVEL.search(t)
    if assignment_number:
        assignment_code = f"A{assignment_number}"
    else:
        code = ASSIGNMENT_CODE.search(t)
        assignment_code = code.group(0).upper() if code else None

    pages = split_pages(t)
    header_result = extract_brief_header(pages[0] or t[:HEADER_PREVIEW_CHARS])
    tasks_result = extract_brief_tasks(t, pages)

    body_title = _assignment_title(t)
    title = build_brief_title(header_result.header, assignment_number, body_title or doc_title_fallback)

    draft = ParsedBriefDraft(
        kind="BRIEF",
        parser_version=BRIEF_PARSER_VERSION,
        title=title or normalize_whitespace(body_title) or "",
        header=header_result.header,
        header_strategies=header_result.strategies,
        assignment_code=assignment_code,
        unit_code_guess=guess_unit_code(t, doc_title_fallback),
        assignment_number=assignment_number,
        total_assignments=total_assignments,
        aias_level=int(aias.group(1)) if aias else None,
        tasks=tasks_result.tasks,
        detected_criterion_codes=extract_criterion_codes(t),
        end_matter=tasks_result.end_matter,
        warnings=header_result.warnings + tasks_result.warnings,
    )

    logger.debug(
        "brief_parsed",
        unit_code=draft.unit_code_guess,
        tasks=len(draft.tasks),
        criterion_codes=len(draft.detected_criterion_codes),
        warnings=len(draft.warnings),
    )
    return draft

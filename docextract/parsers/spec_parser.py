"""
Unit descriptor (SPEC) parser: text in, ParsedSpecDraft out.
Pure function; no I/O.
"""

import structlog

from docextract.parsers.spec_criteria import parse_criteria_by_lo
from docextract.parsers.spec_labels import (
    parse_issue_label,
    parse_meta_number,
    parse_pearson_unit_code,
    parse_unit_code,
    parse_unit_title,
)
from docextract.parsers.spec_outcomes import extract_essential_content_by_lo, parse_learning_outcomes
from docextract.schemas.drafts import LearningOutcomeDraft, ParsedSpecDraft, UnitDraft

logger = structlog.get_logger(__name__)

SPEC_PARSER_VERSION = "spec-v1"


def parse_spec(text: str, doc_title_fallback: str = "") -> ParsedSpecDraft:
    """Parse unit labels, learning outcomes, their criteria and essential content."""
    t = text or ""
    issue_label = parse_issue_label(t)

    unit = UnitDraft(
        unit_code=parse_unit_code(t, doc_title_fallback) or "",
        unit_title=parse_unit_title(t, doc_title_fallback) or "",
        pearson_unit_code=parse_pearson_unit_code(t),
        level=parse_meta_number(t, "Level"),
        credits=parse_meta_number(t, "Credits"),
        spec_issue=issue_label,
        spec_version_label=issue_label,
    )

    outcomes = parse_learning_outcomes(t)
    lo_codes = [lo.lo_code for lo in outcomes]
    criteria_by_lo = parse_criteria_by_lo(t, lo_codes)
    essential_by_lo = extract_essential_content_by_lo(t, lo_codes)

    learning_outcomes = [
        LearningOutcomeDraft(
            lo_code=lo.lo_code,
            description=lo.description,
            essential_content=essential_by_lo.get(lo.lo_code) or None,
            criteria=criteria_by_lo.get(lo.lo_code, []),
        )
        for lo in outcomes
    ]

    warnings = []
    if not learning_outcomes:
        warnings.append("No learning outcomes detected.")
    elif not any(lo.criteria for lo in learning_outcomes):
        warnings.append("No assessment criteria detected.")

    logger.debug(
        "spec_parsed",
        unit_code=unit.unit_code,
        learning_outcomes=len(learning_outcomes),
        criteria=sum(len(lo.criteria) for lo in learning_outcomes),
    )

    draft = ParsedSpecDraft(kind="SPEC", parser_version=SPEC_PARSER_VERSION, unit=unit,
                            learning_outcomes=learning_outcomes)
    if warnings:
        draft.warnings = warnings
    return draft

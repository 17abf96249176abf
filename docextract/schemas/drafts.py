"""
Typed drafts produced by the structural parsers.
These JSON shapes are the contract handed to the downstream lock step:
field names and the PASS/MERIT/DISTINCTION values must round-trip exactly.
"""

from typing import Literal, Optional, Union

from pydantic import Field

from docextract.models.enums import GradeBand, TaskConfidence
from docextract.schemas.contracts import WireModel


def grade_band_for(ac_code: str) -> GradeBand:
    """P → PASS, M → MERIT, anything else → DISTINCTION."""
    lead = (ac_code or "").strip().upper()[:1]
    if lead == "P":
        return GradeBand.PASS
    if lead == "M":
        return GradeBand.MERIT
    return GradeBand.DISTINCTION


# ─── Spec ────────────────────────────────────────────────────

class CriterionDraft(WireModel):
    ac_code: str
    grade_band: GradeBand
    description: str = ""


class LearningOutcomeDraft(WireModel):
    lo_code: str
    description: str = ""
    essential_content: Optional[str] = None
    criteria: list[CriterionDraft] = []


class UnitDraft(WireModel):
    unit_code: str = ""
    unit_title: str = ""
    pearson_unit_code: Optional[str] = None
    level: Optional[int] = None
    credits: Optional[int] = None
    spec_issue: Optional[str] = None
    spec_version_label: Optional[str] = None


class ParsedSpecDraft(WireModel):
    kind: Literal["SPEC"]
    parser_version: str
    unit: UnitDraft
    learning_outcomes: list[LearningOutcomeDraft] = []
    warnings: Optional[list[str]] = None


# ─── Brief ───────────────────────────────────────────────────

class PartDraft(WireModel):
    key: str
    text: str


class TableBlock(WireModel):
    kind: Literal["TABLE"]
    caption: Optional[str] = None
    headers: list[str]
    rows: list[list[str]]


class UnstructuredBlock(WireModel):
    kind: Literal["UNSTRUCTURED"]
    caption: Optional[str] = None
    text: str
    warning: str = "TABLE UNSTRUCTURED"


Block = Union[TableBlock, UnstructuredBlock]


class TaskDraft(WireModel):
    n: int = Field(ge=0)
    label: str
    title: Optional[str] = None
    heading: str = ""
    pages: list[int] = []
    text: str = ""
    prompt: str = ""
    parts: Optional[list[PartDraft]] = None
    tables: Optional[list[Block]] = None
    aias: Optional[str] = None
    warnings: Optional[list[str]] = None
    confidence: TaskConfidence = TaskConfidence.CLEAN


class BriefHeader(WireModel):
    qualification: Optional[str] = None
    unit_number_and_title: Optional[str] = None
    assignment_title: Optional[str] = None
    assignment: Optional[str] = None
    assignment_number: Optional[str] = None
    unit_code: Optional[str] = None
    assessor: Optional[str] = None
    internal_verifier: Optional[str] = None
    verification_date: Optional[str] = None
    issue_date: Optional[str] = None
    final_submission_date: Optional[str] = None
    academic_year: Optional[str] = None
    verification_date_iso: Optional[str] = None
    issue_date_iso: Optional[str] = None
    final_submission_date_iso: Optional[str] = None


class EndMatter(WireModel):
    sources_block: Optional[str] = None
    criteria_block: Optional[str] = None


class ParsedBriefDraft(WireModel):
    kind: Literal["BRIEF"]
    parser_version: str
    title: str = ""
    header: BriefHeader = BriefHeader()
    header_strategies: dict[str, str] = {}
    assignment_code: Optional[str] = None
    unit_code_guess: Optional[str] = None
    assignment_number: Optional[int] = None
    total_assignments: Optional[int] = None
    aias_level: Optional[int] = None
    tasks: list[TaskDraft] = []
    detected_criterion_codes: list[str] = []
    end_matter: Optional[EndMatter] = None
    warnings: list[str] = []

"""
Reference document extraction (unit specs and assignment briefs).

The file goes through the normal extraction chain; page texts are joined with
form feeds so the brief parser can recover page numbers. For PDF specs the
isolated subprocess extractor is also tried, and its parse wins when it scores
clearly better on criteria.
"""

import re
from typing import Any, Optional

import structlog
from pydantic import BaseModel

from docextract.config import ExtractionConfig
from docextract.engines.base import EngineError, ExtractionEngine
from docextract.engines.subprocess_engine import SubprocessPdfEngine
from docextract.models.enums import DocumentKind, ReferenceDocumentType
from docextract.parsers.brief_parser import extract_brief
from docextract.parsers.spec_parser import parse_spec
from docextract.pipeline.file_extractor import FileExtractor
from docextract.schemas.drafts import ParsedSpecDraft

logger = structlog.get_logger(__name__)

PREVIEW_CHARS = 4000
SHORT_TEXT_CHARS = 50
FALLBACK_MARGIN = 120
_EQ_PLACEHOLDER = re.compile(r"\[\[EQ:[^\]]+\]\]")


class SpecParseScore(BaseModel):
    score: float
    total_criteria: int
    lo_count: int
    lo_with_criteria: int


class ReferenceExtraction(BaseModel):
    text: str
    warnings: list[str] = []
    extracted: dict[str, Any]


def strip_equation_placeholders(text: str) -> str:
    t = _EQ_PLACEHOLDER.sub(" ", text or "")
    t = re.sub(r"[ \t]{2,}", " ", t)
    return re.sub(r"\n[ \t]+\n", "\n\n", t)


def score_spec_parse(draft: ParsedSpecDraft) -> SpecParseScore:
    """
    Rank a spec parse by how complete its criteria look.
    Criteria and LO coverage dominate; missing bands and stub descriptions
    are penalised.
    """
    total = 0
    lo_with_criteria = 0
    bands = {"P": 0, "M": 0, "D": 0}
    desc_chars = 0
    short_descs = 0
    codes: set[str] = set()

    for lo in draft.learning_outcomes:
        if lo.criteria:
            lo_with_criteria += 1
        total += len(lo.criteria)
        for c in lo.criteria:
            code = c.ac_code.strip().upper()
            if code:
                codes.add(code)
                if code[0] in bands:
                    bands[code[0]] += 1
            desc = c.description.strip()
            desc_chars += len(desc)
            if desc and len(desc) < 20:
                short_descs += 1

    score = (
        total * 100
        + lo_with_criteria * 250
        + len(codes) * 20
        + min(desc_chars, 12000) * 0.2
        + (40 if draft.unit.unit_code.strip() else 0)
        + (40 if draft.unit.unit_title.strip() else 0)
        - short_descs * 35
        - (200 if bands["P"] == 0 else 0)
        - (120 if bands["M"] == 0 else 0)
        - (120 if bands["D"] == 0 else 0)
    )
    return SpecParseScore(
        score=score,
        total_criteria=total,
        lo_count=len(draft.learning_outcomes),
        lo_with_criteria=lo_with_criteria,
    )


class ReferenceDocumentExtractor:
    """Turns a SPEC/BRIEF file into text plus its typed draft."""

    def __init__(
        self,
        file_extractor: Optional[FileExtractor] = None,
        fallback_engine: Optional[ExtractionEngine] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        self.file_extractor = file_extractor or FileExtractor()
        self.fallback_engine = fallback_engine or SubprocessPdfEngine()
        self.config = config or ExtractionConfig.from_settings()

    async def extract(
        self,
        doc_type: ReferenceDocumentType,
        path: str,
        doc_title_fallback: str = "",
    ) -> ReferenceExtraction:
        result = await self.file_extractor.extract_file(path, self.config)
        text = "\f".join(p.text for p in result.pages)
        page_count = len(result.pages)
        has_form_feeds = "\f" in text

        warnings: list[str] = []
        extraction_warnings: list[str] = []
        if len(text.strip()) < SHORT_TEXT_CHARS:
            warning = "Extraction produced empty/short text. This may be a scanned document; OCR may be required."
            warnings.append(warning)
            extraction_warnings.append(warning)
        if page_count <= 1:
            extraction_warnings.append("pageCount: missing or too low; page boundaries may be unreliable.")
        if not has_form_feeds:
            extraction_warnings.append("page breaks missing; page numbers may be unreliable.")

        envelope: dict[str, Any] = {"pageCount": page_count, "hasFormFeedBreaks": has_form_feeds}
        if extraction_warnings:
            envelope["extractionWarnings"] = extraction_warnings

        if doc_type == ReferenceDocumentType.SPEC:
            draft = parse_spec(strip_equation_placeholders(text), doc_title_fallback)
            if result.kind == DocumentKind.PDF:
                draft = await self._prefer_fallback_spec(path, draft, doc_title_fallback, warnings)
            extracted = {**draft.to_wire(), **envelope}
        elif doc_type == ReferenceDocumentType.BRIEF:
            brief = extract_brief(text, doc_title_fallback)
            extracted = {
                **brief.to_wire(),
                **envelope,
                "warnings": brief.warnings + warnings,
                "preview": text[:PREVIEW_CHARS],
                "charCount": len(text),
            }
        else:
            extracted = {
                "kind": doc_type.value,
                "preview": text[:PREVIEW_CHARS],
                "charCount": len(text),
                **envelope,
            }

        logger.info(
            "reference_document_extracted",
            doc_type=doc_type.value,
            path=path,
            pages=page_count,
            chars=len(text),
            warnings=len(warnings),
        )
        return ReferenceExtraction(text=text, warnings=warnings, extracted=extracted)

    async def _prefer_fallback_spec(
        self,
        path: str,
        primary: ParsedSpecDraft,
        doc_title_fallback: str,
        warnings: list[str],
    ) -> ParsedSpecDraft:
        try:
            fallback = await self.fallback_engine.extract(path, self.config)
        except EngineError as e:
            logger.info("spec_fallback_unavailable", path=path, error_code=e.error_code)
            return primary

        fallback_text = strip_equation_placeholders("\f".join(p.text for p in fallback.pages))
        if len(fallback_text.strip()) <= SHORT_TEXT_CHARS:
            return primary

        alternative = parse_spec(fallback_text, doc_title_fallback)
        primary_score = score_spec_parse(primary)
        alt_score = score_spec_parse(alternative)
        if alt_score.score > primary_score.score + FALLBACK_MARGIN:
            warnings.append(
                "SPEC parser fallback selected (subprocess) because criteria extraction quality was higher: "
                f"{alt_score.total_criteria} vs {primary_score.total_criteria}."
            )
            logger.info(
                "spec_fallback_selected",
                path=path,
                primary_score=primary_score.score,
                fallback_score=alt_score.score,
            )
            return alternative
        return primary


async def extract_reference_document(
    doc_type: ReferenceDocumentType,
    path: str,
    doc_title_fallback: str = "",
    config: Optional[ExtractionConfig] = None,
) -> ReferenceExtraction:
    """Extract with the default engines."""
    return await ReferenceDocumentExtractor(config=config).extract(doc_type, path, doc_title_fallback)

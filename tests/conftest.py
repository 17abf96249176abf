"""
Shared test fixtures.
"""

from typing import Optional

import pytest

from docextract.config import ExtractionConfig
from docextract.engines.base import EngineError, ExtractionEngine, OcrEngine
from docextract.models.enums import DocumentKind
from docextract.schemas.contracts import ExtractionResult, OcrResult, Page
from docextract.storage.memory_store import InMemoryExtractionStore


class FakePdfEngine(ExtractionEngine):
    """Returns canned page texts, or raises EngineError when `error` is set."""

    engine_name = "fake_pdf"
    engine_version = "1"

    def __init__(self, texts: Optional[list[str]] = None, error: Optional[EngineError] = None,
                 confidence: float = 0.9):
        self.texts = texts or []
        self.error = error
        self.confidence = confidence
        self.calls = 0

    async def extract(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        pages = [
            Page(page_number=i, text=t, confidence=0.9 if t else 0.0)
            for i, t in enumerate(self.texts, start=1)
        ]
        combined = "".join(self.texts).strip()
        return ExtractionResult(
            kind=DocumentKind.PDF,
            detected_mime="application/pdf",
            is_scanned=len(combined) < 50,
            overall_confidence=0.0 if len(combined) < 50 else self.confidence,
            pages=pages,
            warnings=[f"pages={len(pages)}, pagesWithText={sum(1 for t in self.texts if t)}"],
        )


class FakeOcrEngine(OcrEngine):
    """OCR port double returning fixed page texts."""

    def __init__(self, texts: Optional[list[str]] = None, ok: bool = True):
        self.texts = texts or []
        self.ok = ok
        self.calls: list[tuple[int, int]] = []

    @property
    def model_name(self) -> str:
        return "fake-ocr"

    async def ocr(self, pdf_bytes: bytes, max_pages: int, min_chars_per_page: int) -> OcrResult:
        self.calls.append((max_pages, min_chars_per_page))
        pages = [Page(page_number=i, text=t, confidence=0.85) for i, t in enumerate(self.texts, start=1)]
        return OcrResult(
            ok=self.ok,
            pages=pages,
            combined_text="\n\n".join(self.texts),
            model=self.model_name,
            warnings=[] if self.texts else ["OCR completed but returned no text."],
        )


@pytest.fixture
def config() -> ExtractionConfig:
    return ExtractionConfig()


@pytest.fixture
def store() -> InMemoryExtractionStore:
    return InMemoryExtractionStore()


@pytest.fixture
def pdf_file(tmp_path):
    path = tmp_path / "submission.pdf"
    path.write_bytes(b"%PDF-1.4\n%fake\n")
    return str(path)


@pytest.fixture
def long_page_text() -> str:
    """A page of ordinary prose well above the meaningful-text threshold."""
    sentence = "The student explains how the control system responds to a step input. "
    return sentence * 20


@pytest.fixture
def spec_text() -> str:
    return "\n".join([
        "Unit 4015: Engineering Design",
        "Unit code K/618/7401",
        "Level: 4",
        "Credits: 15",
        "Issue 3 – March 2022",
        "Learning Outcomes",
        "By the end of this unit a student will be able to:",
        "LO1 Plan a design solution for an engineering problem",
        "LO2 Produce a design specification for a product",
        "Essential Content",
        "LO1 Plan a design solution",
        "Design process: problem definition, constraints and requirements.",
        "LO2 Produce a design specification",
        "Specification writing: performance, materials and tolerances.",
        "Learning Outcomes and Assessment Criteria",
        "Pass Merit Distinction",
        "LO1 Plan a design solution for an engineering problem",
        "P1 Produce a design brief for a new product",
        "P2 Identify the constraints that affect the design",
        "M1 Evaluate the design brief against customer needs",
        "D1 Justify the chosen design approach with evidence",
        "LO2 Produce a design specification for a product",
        "P3 Produce a product design specification",
        "M2 Analyse how the specification meets the brief",
        "Recommended Resources",
        "Textbooks on engineering design.",
    ])


@pytest.fixture
def brief_text() -> str:
    page1 = "\n".join([
        "Qualification Pearson BTEC Higher National Diploma in Engineering",
        "Unit number and title 4015. Engineering Design",
        "Assignment title Designing a Bracket",
        "Assessor Jane Smith",
        "Academic year 2024/25",
        "Assignment 1 of 2",
        "Unit Code K/618/7401",
        "Internal Verifier Tom Brown",
        "Verification Date 2 September 2024",
        "Issue Date 12 September 2024",
        "Final Submission Date 15 November 2024",
        "AIAS – LEVEL 2",
    ])
    page2 = "\n".join([
        "Task 1 – Design brief",
        "Write a design brief for the bracket. (P1)",
        "a) Describe the customer requirements.",
        "b) List the constraints that apply. (P2)",
        "Task 2 – Evaluation",
        "Evaluate the brief against customer needs. (M1)",
        "Justify the approach taken. (D1)",
    ])
    page3 = "\n".join([
        "Sources of information",
        "Textbooks on engineering design.",
    ])
    return "\f".join([page1, page2, page3])

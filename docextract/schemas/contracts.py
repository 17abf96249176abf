"""
Core extraction contracts.
ExtractionResult is THE central schema: the PDF, subprocess, DOCX and OCR
paths all produce it, and everything downstream (run bookkeeping, quality
gate, parsers) operates on it, never on engine-specific output.

Wire names are camelCase; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from docextract.models.enums import DocumentKind, ExtractionMode, RunStatus, SubmissionStatus


class WireModel(BaseModel):
    """Base for models that cross a process or storage boundary."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialise with camelCase keys, keeping explicit nulls, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class TextFragment(BaseModel):
    """A positioned text run from a PDF page. Transient: never persisted."""
    text: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    has_eol: bool = False


class Page(WireModel):
    """Reconstructed text for one page (1-based page number)."""
    page_number: int = Field(ge=1)
    text: str = ""
    confidence: float = Field(ge=0.0, le=1.0, default=0.0)
    width: Optional[float] = None
    height: Optional[float] = None


class ExtractionResult(WireModel):
    """Complete, self-describing extractor output."""
    kind: DocumentKind
    detected_mime: Optional[str] = None
    is_scanned: bool = False
    overall_confidence: float = Field(ge=0.0, le=1.0, default=0.0)
    pages: list[Page] = []
    warnings: list[str] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)


class OcrResult(WireModel):
    """Output of an OCR port call."""
    ok: bool = False
    pages: list[Page] = []
    combined_text: str = ""
    model: Optional[str] = None
    warnings: list[str] = []


class OcrMeta(WireModel):
    attempted: bool = False
    succeeded: bool = False
    model: Optional[str] = None
    warnings: list[str] = []


class SourceMeta(WireModel):
    """Audit metadata stored on the run alongside its pages."""
    kind: DocumentKind
    detected_mime: Optional[str] = None
    ocr: OcrMeta = OcrMeta()
    derived_text_chars: int = 0
    raw_is_scanned: bool = False
    raw_overall_confidence: float = 0.0
    extraction_mode: ExtractionMode = ExtractionMode.FULL
    cover_metadata: Optional[dict[str, Any]] = None


class RunRecord(WireModel):
    """An extraction run as seen through the persistence port."""
    id: str
    submission_id: str
    status: RunStatus
    is_scanned: bool = False
    overall_confidence: float = 0.0
    page_count: int = 0
    warnings: list[str] = []
    source_meta: Optional[dict[str, Any]] = None
    engine_version: str = "extract-v2"
    started_at: datetime
    finished_at: Optional[datetime] = None
    error: Optional[str] = None


class SubmissionRecord(WireModel):
    """The slice of a submission that extraction reads and owns."""
    id: str
    status: SubmissionStatus
    file_name: str = ""
    storage_path: str = ""
    extracted_text: Optional[str] = None
    cover_metadata: Optional[dict[str, Any]] = None


class RunFinalization(BaseModel):
    """Everything written in the single success transaction."""
    run_status: RunStatus
    submission_status: SubmissionStatus
    is_scanned: bool
    overall_confidence: float
    pages: list[Page]
    warnings: list[str]
    source_meta: dict[str, Any]
    extracted_text: str
    cover_metadata: Optional[dict[str, Any]] = None

"""
File → ExtractionResult dispatcher.

Fallback chain for PDFs: pdfplumber → isolated subprocess → empty scanned
result. Every engine failure is downgraded to warnings here; the only
exception that escapes is a missing/unreadable file.
"""

from pathlib import Path
from typing import Optional

import structlog

from docextract.config import ExtractionConfig
from docextract.engines.base import EngineError, ExtractionEngine
from docextract.engines.docx_engine import DocxEngine
from docextract.engines.pdfplumber_engine import PdfPlumberEngine, PDF_MIME
from docextract.engines.subprocess_engine import SubprocessPdfEngine
from docextract.models.enums import DocumentKind
from docextract.observability.metrics import pages_extracted_total
from docextract.schemas.contracts import ExtractionResult, Page

logger = structlog.get_logger(__name__)


def detect_kind(path: str) -> DocumentKind:
    """Declared kind from the file extension."""
    suffix = Path(path).suffix.lower()
    if suffix == ".pdf":
        return DocumentKind.PDF
    if suffix == ".docx":
        return DocumentKind.DOCX
    return DocumentKind.UNKNOWN


def empty_result(kind: DocumentKind, warnings: list[str], detected_mime: Optional[str] = None) -> ExtractionResult:
    """One empty page, scanned, zero confidence."""
    return ExtractionResult(
        kind=kind,
        detected_mime=detected_mime,
        is_scanned=True,
        overall_confidence=0.0,
        pages=[Page(page_number=1, text="", confidence=0.0)],
        warnings=warnings,
    )


class FileExtractor:
    """
    Chooses and chains engines for a file.
    Engines are injectable so tests can replace any stage.
    """

    def __init__(
        self,
        primary_pdf: Optional[ExtractionEngine] = None,
        fallback_pdf: Optional[ExtractionEngine] = None,
        docx: Optional[ExtractionEngine] = None,
    ):
        self.primary_pdf = primary_pdf or PdfPlumberEngine()
        self.fallback_pdf = fallback_pdf or SubprocessPdfEngine()
        self.docx = docx or DocxEngine()

    async def extract_file(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        file_path = Path(path)
        if not file_path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        kind = detect_kind(path)
        if kind == DocumentKind.PDF:
            result = await self._extract_pdf(str(file_path), config)
        elif kind == DocumentKind.DOCX:
            result = await self.docx.extract(str(file_path), config)
            pages_extracted_total.labels(engine_name=self.docx.engine_name).inc(len(result.pages))
        else:
            result = ExtractionResult(
                kind=DocumentKind.UNKNOWN,
                is_scanned=False,
                overall_confidence=0.0,
                pages=[],
                warnings=[f"Unsupported file type: {file_path.suffix or '(none)'}"],
            )

        logger.info(
            "file_extracted",
            path=path,
            kind=result.kind.value,
            pages=len(result.pages),
            is_scanned=result.is_scanned,
            confidence=round(result.overall_confidence, 4),
            warnings=len(result.warnings),
        )
        return result

    async def _extract_pdf(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        warnings: list[str] = []

        try:
            result = await self.primary_pdf.extract(path, config)
            pages_extracted_total.labels(engine_name=self.primary_pdf.engine_name).inc(len(result.pages))
            return result
        except EngineError as e:
            warnings.extend(e.warnings or [str(e)])
            logger.warning("primary_pdf_engine_failed", path=path, error_code=e.error_code)

        try:
            result = await self.fallback_pdf.extract(path, config)
        except EngineError as e:
            warnings.extend(e.warnings)
            warnings.append(f"subprocess extractor failed: {e.message}")
            logger.warning("fallback_pdf_engine_failed", path=path, error_code=e.error_code)
            return empty_result(DocumentKind.PDF, warnings, PDF_MIME)

        pages = result.pages
        if config.cover_only and len(pages) > config.cover_page_limit:
            pages = pages[:config.cover_page_limit]
        pages_extracted_total.labels(engine_name=self.fallback_pdf.engine_name).inc(len(pages))
        return result.model_copy(update={"pages": pages, "warnings": warnings + result.warnings})


async def extract_file(path: str, config: ExtractionConfig) -> ExtractionResult:
    """Extract a file with the default engine chain."""
    return await FileExtractor().extract_file(path, config)

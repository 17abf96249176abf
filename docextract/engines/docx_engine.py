"""
python-docx extraction engine.
A DOCX has no page model, so the whole document becomes page 1.
Paragraphs and tables are read in body order; table rows become
pipe-separated lines so the brief table detector can still see columns.
"""

import structlog
from docx import Document
from docx.table import Table
from docx.text.paragraph import Paragraph

from docextract.config import ExtractionConfig
from docextract.engines.base import ExtractionEngine
from docextract.models.enums import DocumentKind
from docextract.schemas.contracts import ExtractionResult, Page

logger = structlog.get_logger(__name__)

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOCX_CONFIDENCE = 0.95


def read_docx_text(path: str) -> str:
    """Read paragraphs and table rows in document order."""
    doc = Document(path)
    lines = []
    for element in doc.element.body:
        tag = element.tag.rsplit("}", 1)[-1]
        if tag == "p":
            para = Paragraph(element, doc)
            lines.append(para.text)
        elif tag == "tbl":
            table = Table(element, doc)
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    lines.append(" | ".join(cells))
    return "\n".join(lines).strip()


class DocxEngine(ExtractionEngine):
    """Whole-document DOCX extraction. Never raises: failures become warnings."""

    engine_name = "python_docx"
    engine_version = "1.1"

    async def extract(self, path: str, config: ExtractionConfig) -> ExtractionResult:
        try:
            text = read_docx_text(path)
        except Exception as e:
            logger.warning("docx_extraction_failed", path=path, error=str(e))
            return ExtractionResult(
                kind=DocumentKind.DOCX,
                detected_mime=DOCX_MIME,
                is_scanned=False,
                overall_confidence=0.0,
                pages=[Page(page_number=1, text="", confidence=0.0)],
                warnings=[f"DOCX extraction failed: {type(e).__name__}: {e}"],
            )

        confidence = DOCX_CONFIDENCE if text else 0.0
        return ExtractionResult(
            kind=DocumentKind.DOCX,
            detected_mime=DOCX_MIME,
            is_scanned=not text,
            overall_confidence=confidence,
            pages=[Page(page_number=1, text=text, confidence=confidence)],
            warnings=[],
        )

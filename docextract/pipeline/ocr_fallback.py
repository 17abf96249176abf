"""
OCR fallback coordinator.

Runs only for PDFs whose reconstructed text is below the meaningful-text
threshold. OCR output replaces the extracted pages only when it clears the
same threshold; otherwise the original result stands and the document ends
up NEEDS_OCR (a human-actionable state, not a failure).
"""

from pathlib import Path
from typing import Optional

import structlog

from docextract.config import ExtractionConfig
from docextract.engines.base import OcrEngine
from docextract.models.enums import DocumentKind
from docextract.observability.metrics import ocr_attempts_total
from docextract.pipeline.text_normalizer import combine_page_text
from docextract.schemas.contracts import ExtractionResult, OcrMeta, OcrResult

logger = structlog.get_logger(__name__)


def should_attempt_ocr(result: ExtractionResult, combined_text: str, config: ExtractionConfig) -> bool:
    return result.kind == DocumentKind.PDF and len(combined_text) < config.min_meaningful_text_chars


async def run_ocr(
    engine: Optional[OcrEngine],
    path: str,
    config: ExtractionConfig,
) -> OcrResult:
    """Call the OCR port; any failure comes back as ok=False with a warning."""
    if not config.ocr_enabled or engine is None:
        return OcrResult(ok=False, warnings=["OCR disabled."])

    try:
        pdf_bytes = Path(path).read_bytes()
        max_pages = config.cover_page_limit if config.cover_only else config.ocr_max_pages
        return await engine.ocr(pdf_bytes, max_pages, config.ocr_min_chars_per_page)
    except Exception as e:
        logger.warning("ocr_failed", path=path, error=f"{type(e).__name__}: {e}")
        return OcrResult(ok=False, model=engine.model_name, warnings=[f"OCR failed: {type(e).__name__}: {e}"])


async def apply_ocr_fallback(
    engine: Optional[OcrEngine],
    path: str,
    result: ExtractionResult,
    config: ExtractionConfig,
) -> tuple[ExtractionResult, str, OcrMeta]:
    """
    Returns the (possibly replaced) result, its combined text and OCR audit meta.
    """
    combined = combine_page_text(result.pages)
    meta = OcrMeta()

    if not should_attempt_ocr(result, combined, config):
        return result, combined, meta

    meta.attempted = True
    ocr = await run_ocr(engine, path, config)
    meta.model = ocr.model
    meta.warnings = list(ocr.warnings)

    ocr_text = combine_page_text(ocr.pages) if ocr.pages else (ocr.combined_text or "").strip()
    if ocr.ok and ocr.pages and len(ocr_text) >= config.min_meaningful_text_chars:
        meta.succeeded = True
        ocr_attempts_total.labels(outcome="replaced").inc()
        logger.info("ocr_fallback_applied", path=path, chars=len(ocr_text), pages=len(ocr.pages))
        replaced = result.model_copy(update={
            "pages": ocr.pages,
            "warnings": result.warnings + [f"OCR applied ({ocr.model or 'ocr'}): {len(ocr_text)} chars."],
        })
        return replaced, ocr_text, meta

    outcome = "insufficient" if ocr.ok else "failed"
    ocr_attempts_total.labels(outcome=outcome).inc()
    logger.info("ocr_fallback_skipped", path=path, outcome=outcome, chars=len(ocr_text))
    return result, combined, meta

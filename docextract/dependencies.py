"""
FastAPI dependency injection.
Provides the persistence port, services built on it, and API key validation.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from docextract.config import ExtractionConfig, settings
from docextract.engines.tesseract_engine import TesseractOcrEngine
from docextract.pipeline.batch_grader import BatchGrader
from docextract.pipeline.extraction_service import ExtractionService
from docextract.pipeline.grading import HttpGradingClient
from docextract.pipeline.reference_document import ReferenceDocumentExtractor
from docextract.pipeline.run_state import ExtractionStore
from docextract.storage.sql_store import SqlExtractionStore


# ── Singleton instances ──────────────────────────────────────
_store: Optional[ExtractionStore] = None


def get_store() -> ExtractionStore:
    """Get or create the SQL-backed store singleton."""
    global _store
    if _store is None:
        _store = SqlExtractionStore()
    return _store


def get_config() -> ExtractionConfig:
    return ExtractionConfig.from_settings()


def get_extraction_service(
    store: ExtractionStore = Depends(get_store),
    config: ExtractionConfig = Depends(get_config),
) -> ExtractionService:
    ocr = None
    if config.ocr_enabled:
        ocr = TesseractOcrEngine(lang=config.ocr_lang, dpi=config.ocr_render_dpi, tesseract_cmd=settings.TESSERACT_CMD)
    return ExtractionService(store, ocr_engine=ocr, config=config)


def get_batch_grader(
    store: ExtractionStore = Depends(get_store),
    config: ExtractionConfig = Depends(get_config),
) -> BatchGrader:
    return BatchGrader(store, HttpGradingClient(), config)


def get_reference_extractor(config: ExtractionConfig = Depends(get_config)) -> ReferenceDocumentExtractor:
    return ReferenceDocumentExtractor(config=config)


async def verify_api_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> Optional[str]:
    """
    Verify API key if configured.
    If API_KEY is not set, all requests are allowed (dev mode).
    """
    if settings.API_KEY is None:
        return None

    if x_api_key is None or x_api_key != settings.API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key

"""
RQ job functions.
Each job wraps an async service call with asyncio.run, so the worker
process needs no event loop of its own.
"""

import asyncio
from typing import Optional

import structlog
from redis import Redis
from rq import Queue

from docextract.config import ExtractionConfig, settings
from docextract.engines.tesseract_engine import TesseractOcrEngine
from docextract.models.enums import ExtractionMode
from docextract.pipeline.batch_grader import BatchGradeRequest, BatchGrader
from docextract.pipeline.extraction_service import ExtractionError, ExtractionService
from docextract.pipeline.grading import HttpGradingClient
from docextract.storage.sql_store import SqlExtractionStore

logger = structlog.get_logger(__name__)


def get_queue() -> Queue:
    conn = Redis.from_url(settings.REDIS_URL)
    return Queue(settings.QUEUE_NAME, connection=conn)


def enqueue_extraction(submission_id: str, force: bool = False, mode: str = ExtractionMode.FULL.value) -> str:
    """Queue an extraction; returns the RQ job id."""
    job = get_queue().enqueue(
        extract_submission_job,
        submission_id,
        force,
        mode,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,
        failure_ttl=604800,
    )
    logger.info("job_enqueued", job="extract_submission", submission_id=submission_id, job_id=job.id)
    return job.id


def enqueue_batch_grade(submission_ids: list[str], concurrency: int = 1,
                        retry_failed_only: bool = False, force_retry: bool = False) -> str:
    job = get_queue().enqueue(
        batch_grade_job,
        submission_ids,
        concurrency,
        retry_failed_only,
        force_retry,
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        result_ttl=86400,
        failure_ttl=604800,
    )
    logger.info("job_enqueued", job="batch_grade", submissions=len(submission_ids), job_id=job.id)
    return job.id


def _ocr_engine(config: ExtractionConfig) -> Optional[TesseractOcrEngine]:
    if not config.ocr_enabled:
        return None
    return TesseractOcrEngine(lang=config.ocr_lang, dpi=config.ocr_render_dpi, tesseract_cmd=settings.TESSERACT_CMD)


def extract_submission_job(submission_id: str, force: bool = False, mode: str = ExtractionMode.FULL.value) -> dict:
    """Worker entry point for one extraction attempt."""
    logger.info("job_started", job="extract_submission", submission_id=submission_id, force=force, mode=mode)
    config = ExtractionConfig.from_settings()
    service = ExtractionService(SqlExtractionStore(), ocr_engine=_ocr_engine(config), config=config)
    try:
        result = asyncio.run(service.extract(submission_id, force=force, mode=ExtractionMode(mode)))
    except ExtractionError as e:
        logger.error("job_failed", job="extract_submission", submission_id=submission_id,
                     code=e.error_code, error=e.message)
        raise
    logger.info("job_completed", job="extract_submission", submission_id=submission_id,
                status=result.get("status"), skipped=result.get("skipped", False))
    return result


def batch_grade_job(submission_ids: list[str], concurrency: int = 1,
                    retry_failed_only: bool = False, force_retry: bool = False) -> dict:
    """Worker entry point for a batch grading run."""
    logger.info("job_started", job="batch_grade", submissions=len(submission_ids))
    grader = BatchGrader(SqlExtractionStore(), HttpGradingClient())
    request = BatchGradeRequest(
        submission_ids=submission_ids,
        concurrency=concurrency,
        retry_failed_only=retry_failed_only,
        force_retry=force_retry,
    )
    report = asyncio.run(grader.run(request))
    logger.info("job_completed", job="batch_grade", **report.summary.model_dump())
    return report.model_dump(mode="json", by_alias=True)

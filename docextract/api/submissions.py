"""
/api/v1/submissions endpoints.
Extraction trigger, extraction readiness and batch grading.
"""

from typing import Literal, Optional

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import Field
from redis.exceptions import RedisError

from docextract.api.errors import api_error, with_request_id
from docextract.config import ExtractionConfig, settings
from docextract.dependencies import (
    get_batch_grader,
    get_config,
    get_extraction_service,
    get_store,
    verify_api_key,
)
from docextract.models.enums import ExtractionMode
from docextract.pipeline.batch_grader import BatchGradeRequest, BatchGrader
from docextract.pipeline.confidence_scorer import compute_extraction_quality
from docextract.pipeline.extraction_service import ExtractionService, make_request_id
from docextract.pipeline.quality_gate import evaluate_extraction_readiness
from docextract.pipeline.run_state import ExtractionStore
from docextract.schemas.contracts import WireModel
from docextract.worker.jobs import enqueue_batch_grade, enqueue_extraction

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/submissions", tags=["submissions"], dependencies=[Depends(verify_api_key)])

MODES = {"full": ExtractionMode.FULL, "cover": ExtractionMode.COVER_ONLY}


class ExtractRequest(WireModel):
    force: bool = False
    mode: Literal["full", "cover"] = "full"
    background: bool = False


class BatchGradeBody(WireModel):
    submission_ids: list[str] = Field(default_factory=list)
    concurrency: int = Field(default_factory=lambda: settings.BATCH_DEFAULT_CONCURRENCY)
    retry_failed_only: bool = False
    force_retry: bool = False
    background: bool = False


@router.post("/batch-grade")
async def batch_grade(
    body: BatchGradeBody = Body(default_factory=BatchGradeBody),
    grader: BatchGrader = Depends(get_batch_grader),
):
    """Grade many submissions, skipping those that are not ready."""
    request_id = make_request_id()
    ids = [i.strip() for i in body.submission_ids if i and i.strip()]
    if not ids:
        return api_error(
            400,
            "BATCH_GRADE_IDS_REQUIRED",
            "No submissions selected for batch grading. Provide submissionIds.",
            request_id,
        )

    if body.background:
        try:
            job_id = enqueue_batch_grade(ids, body.concurrency, body.retry_failed_only, body.force_retry)
        except RedisError as e:
            logger.warning("enqueue_failed", job="batch_grade", error=str(e), request_id=request_id)
            return api_error(503, "BATCH_GRADE_QUEUE_UNAVAILABLE", "Background queue is unavailable.", request_id)
        payload = {"ok": True, "queued": True, "jobId": job_id, "requestId": request_id}
        return with_request_id(payload, request_id, status_code=202)

    report = await grader.run(
        BatchGradeRequest(
            submission_ids=ids,
            concurrency=body.concurrency,
            retry_failed_only=body.retry_failed_only,
            force_retry=body.force_retry,
        ),
        request_id=request_id,
    )
    payload = {"ok": True, "requestId": request_id, **report.model_dump(mode="json", by_alias=True)}
    return with_request_id(payload, request_id)


@router.post("/{submission_id}/extract")
async def extract_submission(
    submission_id: str,
    body: Optional[ExtractRequest] = Body(None),
    service: ExtractionService = Depends(get_extraction_service),
):
    """Run (or skip) one extraction attempt for a submission."""
    body = body or ExtractRequest()
    request_id = make_request_id()
    if body.background:
        try:
            job_id = enqueue_extraction(submission_id, body.force, MODES[body.mode].value)
        except RedisError as e:
            logger.warning("enqueue_failed", job="extract_submission", submission_id=submission_id,
                           error=str(e), request_id=request_id)
            return api_error(503, "EXTRACT_QUEUE_UNAVAILABLE", "Background queue is unavailable.", request_id)
        payload = {"ok": True, "queued": True, "jobId": job_id, "submissionId": submission_id, "requestId": request_id}
        return with_request_id(payload, request_id, status_code=202)

    result = await service.extract(
        submission_id,
        force=body.force,
        mode=MODES[body.mode],
        request_id=request_id,
    )
    return with_request_id(result, request_id)


@router.get("/{submission_id}/readiness")
async def extraction_readiness(
    submission_id: str,
    store: ExtractionStore = Depends(get_store),
    config: ExtractionConfig = Depends(get_config),
):
    """Quality gate verdict plus the 0-100 extraction quality score."""
    request_id = make_request_id()
    submission = await store.get_submission(submission_id)
    if submission is None:
        return api_error(404, "SUBMISSION_NOT_FOUND", "Submission not found.", request_id)

    latest = await store.get_latest_run(submission_id)
    verdict = evaluate_extraction_readiness(submission.status.value, submission.extracted_text, latest, config)
    quality = compute_extraction_quality(submission.status.value, submission.extracted_text, latest, config)
    payload = {
        "submissionId": submission_id,
        "verdict": verdict.model_dump(mode="json", by_alias=True),
        "quality": quality.model_dump(mode="json", by_alias=True),
        "requestId": request_id,
    }
    return with_request_id(payload, request_id)

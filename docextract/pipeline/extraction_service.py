"""
Submission extraction: the idempotent extract operation.

    guards → lock → run RUNNING → extract_file → OCR fallback
           → cover metadata (cover-only) → confidence → finalize (one transaction)

Any exception after the run is created marks the run FAILED and the
submission FAILED in one transaction, then surfaces as ExtractionError.
"""

import time
import uuid
from typing import Optional

import structlog

from docextract.config import ExtractionConfig
from docextract.engines.base import OcrEngine
from docextract.models.enums import ExtractionMode, RunStatus, SkipReason, SubmissionStatus
from docextract.observability.metrics import (
    confidence_scores,
    extraction_duration_seconds,
    extraction_runs_active,
    extraction_runs_total,
    extraction_skipped_total,
)
from docextract.pipeline.confidence_scorer import blend_confidence
from docextract.pipeline.cover_metadata import extract_cover_metadata
from docextract.pipeline.file_extractor import FileExtractor
from docextract.pipeline.ocr_fallback import apply_ocr_fallback
from docextract.pipeline.run_state import ExtractionStore, terminal_statuses
from docextract.schemas.contracts import Page, RunFinalization, SourceMeta
from docextract.storage.paths import resolve_upload_path

logger = structlog.get_logger(__name__)

FLOOR_CONFIDENCE = 0.7


class ExtractionError(Exception):
    """Fatal extraction error, rendered to callers as an error envelope."""
    def __init__(
        self,
        message: str,
        error_code: str = "EXTRACT_FAILED",
        user_message: str = "Extraction failed.",
        status_code: int = 500,
        details: Optional[dict] = None,
        request_id: Optional[str] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.user_message = user_message
        self.status_code = status_code
        self.details = details or {}
        self.request_id = request_id
        super().__init__(message)


def make_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _skipped(reason: SkipReason, request_id: str, run_id: Optional[str], status: Optional[str] = None) -> dict:
    extraction_skipped_total.labels(reason=reason.value).inc()
    out = {"ok": True, "skipped": True, "reason": reason.value, "runId": run_id, "requestId": request_id}
    if status is not None:
        out["status"] = status
    return out


class ExtractionService:
    """
    Runs one extraction attempt for a submission against a persistence port.
    The file extractor and OCR engine are injectable.
    """

    def __init__(
        self,
        store: ExtractionStore,
        file_extractor: Optional[FileExtractor] = None,
        ocr_engine: Optional[OcrEngine] = None,
        config: Optional[ExtractionConfig] = None,
    ):
        self.store = store
        self.file_extractor = file_extractor or FileExtractor()
        self.ocr_engine = ocr_engine
        self.config = config or ExtractionConfig.from_settings()

    async def extract(
        self,
        submission_id: str,
        force: bool = False,
        mode: ExtractionMode = ExtractionMode.FULL,
        request_id: Optional[str] = None,
    ) -> dict:
        """
        Extract a submission. Returns the success or skip payload; raises
        ExtractionError on a missing submission or a failed attempt.
        """
        request_id = request_id or make_request_id()
        log = logger.bind(submission_id=submission_id, request_id=request_id, mode=mode.value)

        submission = await self.store.get_submission(submission_id)
        if submission is None:
            raise ExtractionError(
                f"Submission {submission_id} not found",
                error_code="EXTRACT_SUBMISSION_NOT_FOUND",
                user_message="Submission not found.",
                status_code=404,
                details={"submissionId": submission_id},
                request_id=request_id,
            )

        latest = await self.store.get_latest_run(submission_id)
        latest_id = latest.id if latest else None

        # ── Idempotency guards ──
        if not force:
            if submission.status == SubmissionStatus.EXTRACTING or (latest and latest.status == RunStatus.RUNNING):
                log.info("extraction_skipped", reason=SkipReason.ALREADY_RUNNING.value)
                return _skipped(SkipReason.ALREADY_RUNNING, request_id, latest_id)
            if (
                latest
                and latest.status in (RunStatus.DONE, RunStatus.NEEDS_OCR)
                and len((submission.extracted_text or "").strip()) >= self.config.min_meaningful_text_chars
            ):
                log.info("extraction_skipped", reason=SkipReason.ALREADY_EXTRACTED.value)
                return _skipped(SkipReason.ALREADY_EXTRACTED, request_id, latest_id, latest.status.value)

        # ── Lock ──
        if force:
            await self.store.force_extraction_lock(submission_id)
        elif await self.store.claim_extraction_lock(submission_id) == 0:
            log.info("extraction_skipped", reason=SkipReason.ALREADY_RUNNING.value, lock="lost")
            return _skipped(SkipReason.ALREADY_RUNNING, request_id, latest_id)

        try:
            run = await self.store.create_run(submission_id, self.config.engine_version)
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            log.error("extraction_run_create_failed", error=error_msg)
            await self._fail(None, submission_id, error_msg)
            extraction_runs_total.labels(status=RunStatus.FAILED.value, mode=mode.value).inc()
            raise ExtractionError(
                error_msg,
                details={"submissionId": submission_id},
                request_id=request_id,
            ) from e
        log = log.bind(run_id=run.id)
        log.info("extraction_started", force=force)

        config = self.config.with_overrides(cover_only=mode == ExtractionMode.COVER_ONLY)
        started = time.time()
        extraction_runs_active.inc()
        try:
            path = resolve_upload_path(submission.storage_path)
            finalization = await self._run(path, config, mode)
            await self.store.finalize_success(run.id, submission_id, finalization)
        except Exception as e:
            error_msg = f"{type(e).__name__}: {e}"
            log.error("extraction_failed", error=error_msg)
            await self._fail(run.id, submission_id, error_msg)
            extraction_runs_total.labels(status=RunStatus.FAILED.value, mode=mode.value).inc()
            raise ExtractionError(
                error_msg,
                details={"submissionId": submission_id, "runId": run.id},
                request_id=request_id,
            ) from e
        finally:
            extraction_runs_active.dec()
            extraction_duration_seconds.labels(mode=mode.value).observe(time.time() - started)

        extraction_runs_total.labels(status=finalization.run_status.value, mode=mode.value).inc()
        confidence_scores.labels(mode=mode.value).observe(finalization.overall_confidence)
        log.info(
            "extraction_completed",
            status=finalization.run_status.value,
            is_scanned=finalization.is_scanned,
            confidence=finalization.overall_confidence,
            pages=len(finalization.pages),
            chars=len(finalization.extracted_text),
            duration_ms=int((time.time() - started) * 1000),
        )

        return {
            "ok": True,
            "runId": run.id,
            "status": finalization.run_status.value,
            "isScanned": finalization.is_scanned,
            "extractedChars": len(finalization.extracted_text),
            "requestId": request_id,
        }

    async def _run(self, path: str, config: ExtractionConfig, mode: ExtractionMode) -> RunFinalization:
        res = await self.file_extractor.extract_file(path, config)
        if not res.pages:
            res = res.model_copy(update={"pages": [Page(page_number=1, text="", confidence=0.0)]})

        final, combined, ocr_meta = await apply_ocr_fallback(self.ocr_engine, path, res, config)
        has_meaningful = len(combined) >= config.min_meaningful_text_chars

        cover = None
        cover_confidence = None
        if mode == ExtractionMode.COVER_ONLY:
            cover = extract_cover_metadata(final.pages)
            if cover.ready:
                cover_confidence = cover.confidence
            # Cover-only never flags scanned for short text alone
            is_scanned = not combined
        else:
            is_scanned = not has_meaningful

        blended = blend_confidence(
            res.overall_confidence,
            final.pages,
            len(combined),
            mode=mode,
            ocr_succeeded=ocr_meta.succeeded,
            cover_confidence=cover_confidence,
        )
        overall = 0.0 if is_scanned else max(blended.document_confidence, FLOOR_CONFIDENCE)
        run_status, submission_status = terminal_statuses(is_scanned)

        cover_dump = cover.model_dump() if cover is not None else None
        source_meta = SourceMeta(
            kind=res.kind,
            detected_mime=res.detected_mime,
            ocr=ocr_meta,
            derived_text_chars=len(combined),
            raw_is_scanned=res.is_scanned,
            raw_overall_confidence=res.overall_confidence,
            extraction_mode=mode,
        )
        meta = source_meta.model_dump(mode="json", by_alias=True)
        meta["confidenceSignals"] = blended.signals
        if cover_dump is not None:
            meta["coverMetadata"] = cover_dump

        return RunFinalization(
            run_status=run_status,
            submission_status=submission_status,
            is_scanned=is_scanned,
            overall_confidence=round(overall, 4),
            pages=final.pages,
            warnings=list(final.warnings) + list(ocr_meta.warnings),
            source_meta=meta,
            extracted_text=combined,
            cover_metadata=cover_dump,
        )

    async def _fail(self, run_id: Optional[str], submission_id: str, error: str) -> None:
        """Mark run and submission failed."""
        try:
            await self.store.finalize_failure(run_id, submission_id, error)
        except Exception as e:
            logger.error("failed_to_mark_failure", submission_id=submission_id, run_id=run_id, error=str(e))

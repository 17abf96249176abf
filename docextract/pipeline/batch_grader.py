"""
Batch grading orchestrator.

Targets are filtered by submission status and the extraction quality gate;
everything else is reported as skipped with a reason. Targets are graded by a
small worker pool pulling from a shared index. One failure never aborts the
batch.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import structlog
from pydantic import BaseModel

from docextract.config import ExtractionConfig
from docextract.models.enums import SkipReason, SubmissionStatus
from docextract.observability.metrics import batch_grade_items_total, grading_latency_seconds
from docextract.pipeline.grading import GradingError, GradingPort
from docextract.pipeline.quality_gate import QualityGateVerdict, evaluate_extraction_readiness
from docextract.pipeline.run_state import ExtractionStore
from docextract.schemas.contracts import WireModel

logger = structlog.get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

MAX_CONCURRENCY = 4


async def run_with_concurrency(
    items: Sequence[T],
    limit: int,
    worker: Callable[[T], Awaitable[R]],
) -> list[R]:
    """
    Run `worker` over `items` with at most `limit` (clamped 1..4) in flight.
    Results keep input order.
    """
    results: list[Any] = [None] * len(items)
    next_index = 0

    async def drain() -> None:
        nonlocal next_index
        while next_index < len(items):
            i = next_index
            next_index += 1
            results[i] = await worker(items[i])

    pool = max(1, min(MAX_CONCURRENCY, int(limit or 1)))
    await asyncio.gather(*(drain() for _ in range(pool)))
    return results


class BatchGradeRequest(WireModel):
    submission_ids: list[str]
    concurrency: int = 1
    retry_failed_only: bool = False
    force_retry: bool = False


class SkippedItem(WireModel):
    submission_id: str
    reason: SkipReason
    blockers: Optional[list[str]] = None


class BatchResult(WireModel):
    submission_id: str
    ok: bool
    status: int
    grade: Optional[str] = None
    assessment_id: Optional[str] = None
    error: Optional[str] = None


class BatchSummary(BaseModel):
    requested: int
    targeted: int
    skipped: int
    succeeded: int
    failed: int


class BatchGradeReport(WireModel):
    summary: BatchSummary
    skipped: list[SkippedItem]
    results: list[BatchResult]


def skip_reason(
    status: Optional[str],
    verdict: Optional[QualityGateVerdict],
    retry_failed_only: bool,
    force_retry: bool,
) -> Optional[SkipReason]:
    """None when the submission should be graded."""
    if not status:
        return SkipReason.MISSING
    if retry_failed_only:
        return None if status == SubmissionStatus.FAILED.value else SkipReason.NOT_FAILED
    if not force_retry and status == SubmissionStatus.DONE.value:
        return SkipReason.ALREADY_DONE
    if verdict is not None and not verdict.ok:
        return SkipReason.EXTRACTION_NOT_READY
    return None


class BatchGrader:

    def __init__(self, store: ExtractionStore, grader: GradingPort, config: Optional[ExtractionConfig] = None):
        self.store = store
        self.grader = grader
        self.config = config or ExtractionConfig.from_settings()

    async def run(self, request: BatchGradeRequest, request_id: Optional[str] = None) -> BatchGradeReport:
        unique_ids = list(dict.fromkeys(i.strip() for i in request.submission_ids if i and i.strip()))

        targets: list[str] = []
        skipped: list[SkippedItem] = []
        for submission_id in unique_ids:
            submission = await self.store.get_submission(submission_id)
            status = submission.status.value if submission else None
            verdict = None
            if submission:
                latest = await self.store.get_latest_run(submission_id)
                verdict = evaluate_extraction_readiness(
                    submission.status.value, submission.extracted_text, latest, self.config,
                )
            reason = skip_reason(status, verdict, request.retry_failed_only, request.force_retry)
            if reason is None:
                targets.append(submission_id)
            elif reason == SkipReason.EXTRACTION_NOT_READY:
                skipped.append(SkippedItem(submission_id=submission_id, reason=reason, blockers=verdict.blockers))
            else:
                skipped.append(SkippedItem(submission_id=submission_id, reason=reason))

        for item in skipped:
            batch_grade_items_total.labels(outcome=f"skipped:{item.reason.value}").inc()

        results = await run_with_concurrency(targets, request.concurrency, self._grade_one)
        succeeded = sum(1 for r in results if r.ok)
        summary = BatchSummary(
            requested=len(unique_ids),
            targeted=len(targets),
            skipped=len(skipped),
            succeeded=succeeded,
            failed=len(results) - succeeded,
        )

        logger.info(
            "batch_grade_run",
            request_id=request_id,
            retry_failed_only=request.retry_failed_only,
            force_retry=request.force_retry,
            **summary.model_dump(),
        )
        return BatchGradeReport(summary=summary, skipped=skipped, results=results)

    async def _grade_one(self, submission_id: str) -> BatchResult:
        start = time.perf_counter()
        try:
            outcome = await self.grader.grade(submission_id)
        except GradingError as e:
            batch_grade_items_total.labels(outcome="failed").inc()
            logger.warning("batch_grade_item_failed", submission_id=submission_id, error=e.message, status=e.status)
            return BatchResult(submission_id=submission_id, ok=False, status=e.status, error=e.message)
        except Exception as e:
            batch_grade_items_total.labels(outcome="failed").inc()
            logger.exception("batch_grade_item_error", submission_id=submission_id)
            return BatchResult(submission_id=submission_id, ok=False, status=500, error=str(e))
        finally:
            grading_latency_seconds.observe(time.perf_counter() - start)

        batch_grade_items_total.labels(outcome="succeeded").inc()
        return BatchResult(
            submission_id=submission_id,
            ok=True,
            status=200,
            grade=outcome.overall_grade,
            assessment_id=outcome.assessment_id,
        )

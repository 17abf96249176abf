"""
Tests for batch grading: target filtering, bounded concurrency and
per-item failure isolation.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from docextract.models.enums import RunStatus, SkipReason, SubmissionStatus
from docextract.pipeline.batch_grader import (
    BatchGradeRequest,
    BatchGrader,
    run_with_concurrency,
    skip_reason,
)
from docextract.pipeline.grading import GradeOutcome, GradingError, GradingPort, HttpGradingClient
from docextract.pipeline.quality_gate import QualityGateVerdict
from docextract.schemas.contracts import RunRecord


class FakeGrader(GradingPort):

    def __init__(self, fail=None, crash=None):
        self.fail = set(fail or [])
        self.crash = set(crash or [])
        self.calls: list[str] = []

    async def grade(self, submission_id: str) -> GradeOutcome:
        self.calls.append(submission_id)
        await asyncio.sleep(0)
        if submission_id in self.fail:
            raise GradingError("Grader unavailable", 502)
        if submission_id in self.crash:
            raise KeyError("assessment")
        return GradeOutcome(overall_grade="MERIT", assessment_id=f"as-{submission_id}")


def seed_ready(store, submission_id, status=SubmissionStatus.EXTRACTED):
    store.add_submission(f"/tmp/{submission_id}.pdf", status=status, submission_id=submission_id,
                         extracted_text="x" * 1000)
    store.add_run(RunRecord(
        id=f"run-{submission_id}",
        submission_id=submission_id,
        status=RunStatus.DONE,
        page_count=3,
        overall_confidence=0.9,
        source_meta={"extractionMode": "FULL"},
        started_at=datetime.now(timezone.utc),
    ))


class TestRunWithConcurrency:
    """Bounded worker pool."""

    def test_results_keep_input_order(self):
        async def double(n):
            await asyncio.sleep(0)
            return n * 2

        assert asyncio.run(run_with_concurrency([1, 2, 3, 4], 3, double)) == [2, 4, 6, 8]

    def test_in_flight_clamped_to_four(self):
        in_flight = 0
        peak = 0

        async def work(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return n

        asyncio.run(run_with_concurrency(list(range(10)), 10, work))
        assert peak == 4

    def test_zero_limit_runs_serially(self):
        order = []

        async def work(n):
            order.append(n)
            await asyncio.sleep(0)
            return n

        asyncio.run(run_with_concurrency([1, 2, 3], 0, work))
        assert order == [1, 2, 3]


class TestSkipReason:
    """Test skip reasons."""

    def test_reasons(self):
        blocked = QualityGateVerdict(ok=False, blockers=["No extraction run found."])
        assert skip_reason(None, None, False, False) == SkipReason.MISSING
        assert skip_reason("EXTRACTED", None, True, False) == SkipReason.NOT_FAILED
        assert skip_reason("FAILED", blocked, True, False) is None
        assert skip_reason("DONE", None, False, False) == SkipReason.ALREADY_DONE
        assert skip_reason("DONE", None, False, True) is None
        assert skip_reason("EXTRACTED", blocked, False, False) == SkipReason.EXTRACTION_NOT_READY


class TestBatchGrader:
    """Batch grading end to end against the in-memory store."""

    def test_one_failure_does_not_abort_batch(self, store, config):
        ids = [f"s{i}" for i in range(1, 6)]
        for sid in ids:
            seed_ready(store, sid)
        grader = FakeGrader(fail=["s3"])

        report = asyncio.run(BatchGrader(store, grader, config).run(BatchGradeRequest(submission_ids=ids)))

        assert report.summary.model_dump() == {
            "requested": 5, "targeted": 5, "skipped": 0, "succeeded": 4, "failed": 1,
        }
        assert [r.submission_id for r in report.results] == ids
        assert grader.calls == ids
        failed = report.results[2]
        assert not failed.ok and failed.status == 502 and failed.error == "Grader unavailable"
        assert report.results[0].grade == "MERIT"
        assert report.results[0].assessment_id == "as-s1"

    def test_unexpected_exception_is_a_failed_item(self, store, config):
        seed_ready(store, "s1")
        report = asyncio.run(BatchGrader(store, FakeGrader(crash=["s1"]), config).run(
            BatchGradeRequest(submission_ids=["s1"])
        ))
        assert report.summary.failed == 1
        assert report.results[0].status == 500

    def test_skips_are_reported_with_reasons(self, store, config):
        seed_ready(store, "ready")
        seed_ready(store, "graded", status=SubmissionStatus.DONE)
        store.add_submission("/tmp/raw.pdf", submission_id="raw")
        grader = FakeGrader()

        report = asyncio.run(BatchGrader(store, grader, config).run(
            BatchGradeRequest(submission_ids=["ready", "graded", "raw", "ghost", "ready", " "])
        ))

        assert report.summary.requested == 4
        assert grader.calls == ["ready"]
        reasons = {s.submission_id: s.reason for s in report.skipped}
        assert reasons == {
            "graded": SkipReason.ALREADY_DONE,
            "raw": SkipReason.EXTRACTION_NOT_READY,
            "ghost": SkipReason.MISSING,
        }
        raw = next(s for s in report.skipped if s.submission_id == "raw")
        assert "No extraction run found." in raw.blockers

    def test_retry_failed_only(self, store, config):
        seed_ready(store, "ok")
        seed_ready(store, "bad", status=SubmissionStatus.FAILED)
        grader = FakeGrader()

        report = asyncio.run(BatchGrader(store, grader, config).run(
            BatchGradeRequest(submission_ids=["ok", "bad"], retry_failed_only=True)
        ))

        assert grader.calls == ["bad"]
        assert report.skipped[0].reason == SkipReason.NOT_FAILED

    def test_report_wire_shape(self, store, config):
        seed_ready(store, "s1")
        report = asyncio.run(BatchGrader(store, FakeGrader(), config).run(
            BatchGradeRequest(submission_ids=["s1", "ghost"])
        ))
        wire = report.to_wire()
        assert wire["skipped"] == [{"submissionId": "ghost", "reason": "missing"}]
        assert wire["results"][0]["assessmentId"] == "as-s1"


class TestHttpGradingClient:
    """Grading client over a mock transport."""

    def test_reads_assessment(self):
        def handler(request):
            assert request.url.path == "/api/submissions/s1/grade"
            return httpx.Response(200, json={"assessment": {"overallGrade": "PASS", "id": "as-9"}})

        client = HttpGradingClient(base_url="http://grader.local/", transport=httpx.MockTransport(handler))
        outcome = asyncio.run(client.grade("s1"))
        assert outcome == GradeOutcome(overall_grade="PASS", assessment_id="as-9")

    def test_upstream_error_status(self):
        def handler(request):
            return httpx.Response(422, json={"error": "Brief not bound"})

        client = HttpGradingClient(base_url="http://grader.local", transport=httpx.MockTransport(handler))
        with pytest.raises(GradingError) as exc:
            asyncio.run(client.grade("s1"))
        assert exc.value.status == 422
        assert exc.value.message == "Brief not bound"

    def test_missing_base_url(self, monkeypatch):
        monkeypatch.setattr("docextract.pipeline.grading.settings.GRADING_SERVICE_URL", None)
        with pytest.raises(GradingError):
            asyncio.run(HttpGradingClient(base_url="").grade("s1"))

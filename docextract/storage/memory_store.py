"""
In-memory ExtractionStore.
Used by tests and local tooling; a single asyncio.Lock stands in for the
database transaction so every port call is all-or-nothing.
"""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional

from docextract.models.enums import RunStatus, SubmissionStatus
from docextract.pipeline.run_state import ExtractionStore, assert_transition
from docextract.schemas.contracts import Page, RunFinalization, RunRecord, SubmissionRecord


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryExtractionStore(ExtractionStore):

    def __init__(self):
        self._lock = asyncio.Lock()
        self.submissions: dict[str, SubmissionRecord] = {}
        self.runs: dict[str, RunRecord] = {}
        self.pages: dict[str, list[Page]] = {}

    # ─── Seeding helpers ──────────────────────────────────────

    def add_submission(
        self,
        storage_path: str,
        status: SubmissionStatus = SubmissionStatus.UPLOADED,
        submission_id: Optional[str] = None,
        extracted_text: Optional[str] = None,
    ) -> SubmissionRecord:
        sid = submission_id or str(uuid.uuid4())
        record = SubmissionRecord(
            id=sid,
            status=status,
            file_name=storage_path.rsplit("/", 1)[-1],
            storage_path=storage_path,
            extracted_text=extracted_text,
        )
        self.submissions[sid] = record
        return record

    def add_run(self, run: RunRecord) -> RunRecord:
        self.runs[run.id] = run
        return run

    def runs_for(self, submission_id: str) -> list[RunRecord]:
        runs = [r for r in self.runs.values() if r.submission_id == submission_id]
        return sorted(runs, key=lambda r: r.started_at)

    # ─── Port ─────────────────────────────────────────────────

    async def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        return self.submissions.get(submission_id)

    async def get_latest_run(self, submission_id: str) -> Optional[RunRecord]:
        runs = self.runs_for(submission_id)
        return runs[-1] if runs else None

    async def claim_extraction_lock(self, submission_id: str) -> int:
        async with self._lock:
            sub = self.submissions.get(submission_id)
            if sub is None or sub.status == SubmissionStatus.EXTRACTING:
                return 0
            sub.status = SubmissionStatus.EXTRACTING
            return 1

    async def force_extraction_lock(self, submission_id: str) -> None:
        async with self._lock:
            sub = self.submissions.get(submission_id)
            if sub is not None:
                sub.status = SubmissionStatus.EXTRACTING

    async def create_run(self, submission_id: str, engine_version: str) -> RunRecord:
        async with self._lock:
            run = RunRecord(
                id=str(uuid.uuid4()),
                submission_id=submission_id,
                status=RunStatus.RUNNING,
                engine_version=engine_version,
                started_at=_now(),
            )
            self.runs[run.id] = run
            return run

    async def finalize_success(self, run_id: str, submission_id: str, result: RunFinalization) -> RunRecord:
        async with self._lock:
            run = self.runs[run_id]
            assert_transition(run_id, run.status, result.run_status)
            finished = run.model_copy(update={
                "status": result.run_status,
                "is_scanned": result.is_scanned,
                "overall_confidence": result.overall_confidence,
                "page_count": len(result.pages),
                "warnings": list(result.warnings),
                "source_meta": dict(result.source_meta),
                "finished_at": _now(),
            })
            self.pages[run_id] = [p.model_copy() for p in result.pages]
            self.runs[run_id] = finished
            sub = self.submissions[submission_id]
            sub.status = result.submission_status
            sub.extracted_text = result.extracted_text
            if result.cover_metadata is not None:
                sub.cover_metadata = result.cover_metadata
            return finished

    async def finalize_failure(self, run_id: Optional[str], submission_id: str, error: str) -> None:
        async with self._lock:
            if run_id is not None and run_id in self.runs:
                run = self.runs[run_id]
                assert_transition(run_id, run.status, RunStatus.FAILED)
                self.runs[run_id] = run.model_copy(update={
                    "status": RunStatus.FAILED,
                    "error": error,
                    "finished_at": _now(),
                })
            sub = self.submissions.get(submission_id)
            if sub is not None:
                sub.status = SubmissionStatus.FAILED

"""
PostgreSQL ExtractionStore on the async SQLAlchemy session factory.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docextract.models.database import async_session_factory
from docextract.models.enums import RunStatus, SubmissionStatus
from docextract.models.tables import ExtractedPage, ExtractionRun, Submission
from docextract.pipeline.run_state import ExtractionStore, assert_transition
from docextract.schemas.contracts import RunFinalization, RunRecord, SubmissionRecord

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _submission_record(row: Submission) -> SubmissionRecord:
    return SubmissionRecord(
        id=str(row.submission_id),
        status=SubmissionStatus(row.status),
        file_name=row.file_name,
        storage_path=row.storage_path,
        extracted_text=row.extracted_text,
        cover_metadata=row.cover_metadata_json,
    )


def _run_record(row: ExtractionRun) -> RunRecord:
    return RunRecord(
        id=str(row.run_id),
        submission_id=str(row.submission_id),
        status=RunStatus(row.status),
        is_scanned=row.is_scanned,
        overall_confidence=row.overall_confidence,
        page_count=row.page_count,
        warnings=list(row.warnings_json or []),
        source_meta=row.source_meta_json,
        engine_version=row.engine_version,
        started_at=row.started_at,
        finished_at=row.finished_at,
        error=row.error,
    )


def _parse_id(value: str) -> Optional[uuid.UUID]:
    """UUID for a stored id, or None when the id is not a UUID."""
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SqlExtractionStore(ExtractionStore):

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self.session_factory = session_factory or async_session_factory

    async def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        key = _parse_id(submission_id)
        if key is None:
            return None
        async with self.session_factory() as session:
            row = await session.get(Submission, key)
            return _submission_record(row) if row else None

    async def get_latest_run(self, submission_id: str) -> Optional[RunRecord]:
        key = _parse_id(submission_id)
        if key is None:
            return None
        async with self.session_factory() as session:
            result = await session.execute(
                select(ExtractionRun)
                .where(ExtractionRun.submission_id == key)
                .order_by(ExtractionRun.started_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
            return _run_record(row) if row else None

    async def claim_extraction_lock(self, submission_id: str) -> int:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(Submission)
                    .where(
                        Submission.submission_id == uuid.UUID(submission_id),
                        Submission.status != SubmissionStatus.EXTRACTING.value,
                    )
                    .values(status=SubmissionStatus.EXTRACTING.value, updated_at=_now())
                )
                return result.rowcount or 0

    async def force_extraction_lock(self, submission_id: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(Submission)
                    .where(Submission.submission_id == uuid.UUID(submission_id))
                    .values(status=SubmissionStatus.EXTRACTING.value, updated_at=_now())
                )

    async def create_run(self, submission_id: str, engine_version: str) -> RunRecord:
        async with self.session_factory() as session:
            async with session.begin():
                run = ExtractionRun(
                    run_id=uuid.uuid4(),
                    submission_id=uuid.UUID(submission_id),
                    status=RunStatus.RUNNING.value,
                    is_scanned=False,
                    overall_confidence=0.0,
                    engine_version=engine_version,
                    started_at=_now(),
                )
                session.add(run)
                await session.flush()
                return _run_record(run)

    async def finalize_success(self, run_id: str, submission_id: str, result: RunFinalization) -> RunRecord:
        async with self.session_factory() as session:
            async with session.begin():
                run = await session.get(ExtractionRun, uuid.UUID(run_id), with_for_update=True)
                if run is None:
                    raise LookupError(f"Extraction run {run_id} not found")
                assert_transition(run_id, RunStatus(run.status), result.run_status)

                for page in result.pages:
                    session.add(ExtractedPage(
                        run_id=run.run_id,
                        page_number=page.page_number,
                        text=page.text,
                        confidence=page.confidence,
                        width=page.width,
                        height=page.height,
                    ))

                run.status = result.run_status.value
                run.is_scanned = result.is_scanned
                run.overall_confidence = result.overall_confidence
                run.page_count = len(result.pages)
                run.warnings_json = list(result.warnings) or None
                run.source_meta_json = result.source_meta
                run.finished_at = _now()

                values = {
                    "status": result.submission_status.value,
                    "extracted_text": result.extracted_text,
                    "updated_at": _now(),
                }
                if result.cover_metadata is not None:
                    values["cover_metadata_json"] = result.cover_metadata
                await session.execute(
                    update(Submission)
                    .where(Submission.submission_id == uuid.UUID(submission_id))
                    .values(**values)
                )
                await session.flush()
                record = _run_record(run)

        logger.debug("run_finalized", run_id=run_id, status=record.status.value)
        return record

    async def finalize_failure(self, run_id: Optional[str], submission_id: str, error: str) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                if run_id is not None:
                    run = await session.get(ExtractionRun, uuid.UUID(run_id), with_for_update=True)
                    if run is not None:
                        assert_transition(run_id, RunStatus(run.status), RunStatus.FAILED)
                        run.status = RunStatus.FAILED.value
                        run.error = error
                        run.finished_at = _now()
                await session.execute(
                    update(Submission)
                    .where(Submission.submission_id == uuid.UUID(submission_id))
                    .values(status=SubmissionStatus.FAILED.value, updated_at=_now())
                )

"""
Extraction run state machine and the persistence port it runs against.

    RUNNING ──► DONE
       │──────► NEEDS_OCR
       └──────► FAILED

Runs are append-only: a finished run is never mutated, a retry creates a new
run. The submission's EXTRACTING status is the extraction lock, claimed with
a single conditional update.
"""

from abc import ABC, abstractmethod
from typing import Optional

from docextract.models.enums import RunStatus, SubmissionStatus
from docextract.schemas.contracts import RunFinalization, RunRecord, SubmissionRecord

RUN_TRANSITIONS: dict[RunStatus, set[RunStatus]] = {
    RunStatus.PENDING: {RunStatus.RUNNING, RunStatus.FAILED},
    RunStatus.RUNNING: {RunStatus.DONE, RunStatus.NEEDS_OCR, RunStatus.FAILED},
    RunStatus.DONE: set(),
    RunStatus.NEEDS_OCR: set(),
    RunStatus.FAILED: set(),
}

TERMINAL_RUN_STATUSES = {RunStatus.DONE, RunStatus.NEEDS_OCR, RunStatus.FAILED}


class InvalidRunTransition(Exception):
    """Raised when a run is moved along an edge the state machine does not have."""

    def __init__(self, run_id: str, current: RunStatus, target: RunStatus):
        self.run_id = run_id
        self.current = current
        self.target = target
        super().__init__(f"Run {run_id}: illegal transition {current.value} -> {target.value}")


def assert_transition(run_id: str, current: RunStatus, target: RunStatus) -> None:
    if target not in RUN_TRANSITIONS.get(current, set()):
        raise InvalidRunTransition(run_id, current, target)


def terminal_statuses(is_scanned: bool) -> tuple[RunStatus, SubmissionStatus]:
    """Run and submission status for a successfully completed attempt."""
    if is_scanned:
        return RunStatus.NEEDS_OCR, SubmissionStatus.NEEDS_OCR
    return RunStatus.DONE, SubmissionStatus.EXTRACTED


class ExtractionStore(ABC):
    """
    Persistence port for extraction.

    Implementations must make finalize_success and finalize_failure atomic:
    readers never see a DONE run without its pages, nor a FAILED run whose
    submission is still EXTRACTING.
    """

    @abstractmethod
    async def get_submission(self, submission_id: str) -> Optional[SubmissionRecord]:
        ...

    @abstractmethod
    async def get_latest_run(self, submission_id: str) -> Optional[RunRecord]:
        ...

    @abstractmethod
    async def claim_extraction_lock(self, submission_id: str) -> int:
        """Conditional update status != EXTRACTING → EXTRACTING. Returns rows updated (0 or 1)."""
        ...

    @abstractmethod
    async def force_extraction_lock(self, submission_id: str) -> None:
        """Set EXTRACTING unconditionally (force re-run)."""
        ...

    @abstractmethod
    async def create_run(self, submission_id: str, engine_version: str) -> RunRecord:
        """Insert a new RUNNING run."""
        ...

    @abstractmethod
    async def finalize_success(self, run_id: str, submission_id: str, result: RunFinalization) -> RunRecord:
        """Write pages, finalise the run and update the submission in one transaction."""
        ...

    @abstractmethod
    async def finalize_failure(self, run_id: Optional[str], submission_id: str, error: str) -> None:
        """Run FAILED with error and submission FAILED, in one transaction."""
        ...

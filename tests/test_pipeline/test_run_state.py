"""
Tests for the run state machine and the in-memory persistence port.
"""

import asyncio

import pytest

from docextract.models.enums import RunStatus, SubmissionStatus
from docextract.pipeline.run_state import InvalidRunTransition, assert_transition, terminal_statuses
from docextract.schemas.contracts import Page, RunFinalization


class TestTransitions:
    """Test the submission status machine."""

    def test_running_to_terminal(self):
        for target in (RunStatus.DONE, RunStatus.NEEDS_OCR, RunStatus.FAILED):
            assert_transition("r1", RunStatus.RUNNING, target)

    def test_finished_runs_are_immutable(self):
        with pytest.raises(InvalidRunTransition) as exc:
            assert_transition("r1", RunStatus.DONE, RunStatus.RUNNING)
        assert str(exc.value) == "Run r1: illegal transition DONE -> RUNNING"

    def test_terminal_statuses(self):
        assert terminal_statuses(True) == (RunStatus.NEEDS_OCR, SubmissionStatus.NEEDS_OCR)
        assert terminal_statuses(False) == (RunStatus.DONE, SubmissionStatus.EXTRACTED)


class TestInMemoryStore:
    """In-memory store bookkeeping."""

    def test_lock_is_claimed_once(self, store):
        sub = store.add_submission("/tmp/a.pdf")
        assert asyncio.run(store.claim_extraction_lock(sub.id)) == 1
        assert asyncio.run(store.claim_extraction_lock(sub.id)) == 0
        assert store.submissions[sub.id].status == SubmissionStatus.EXTRACTING

    def test_finalize_success_writes_everything(self, store):
        sub = store.add_submission("/tmp/a.pdf")

        async def scenario():
            run = await store.create_run(sub.id, "extract-v2")
            return await store.finalize_success(run.id, sub.id, RunFinalization(
                run_status=RunStatus.DONE,
                submission_status=SubmissionStatus.EXTRACTED,
                is_scanned=False,
                overall_confidence=0.9,
                pages=[Page(page_number=1, text="hello", confidence=0.9)],
                warnings=[],
                source_meta={"kind": "PDF"},
                extracted_text="hello",
            ))

        finished = asyncio.run(scenario())
        assert finished.status == RunStatus.DONE
        assert finished.page_count == 1
        assert finished.finished_at is not None
        assert store.pages[finished.id][0].text == "hello"
        assert store.submissions[sub.id].status == SubmissionStatus.EXTRACTED
        assert store.submissions[sub.id].extracted_text == "hello"

    def test_finalize_failure_marks_both(self, store):
        sub = store.add_submission("/tmp/a.pdf")

        async def scenario():
            run = await store.create_run(sub.id, "extract-v2")
            await store.finalize_failure(run.id, sub.id, "RuntimeError: boom")
            return await store.get_latest_run(sub.id)

        latest = asyncio.run(scenario())
        assert latest.status == RunStatus.FAILED
        assert latest.error == "RuntimeError: boom"
        assert store.submissions[sub.id].status == SubmissionStatus.FAILED

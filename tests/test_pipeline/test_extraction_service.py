"""
Tests for the idempotent submission extract operation.
"""

import asyncio

import pytest

from docextract.models.enums import ExtractionMode, RunStatus, SubmissionStatus
from docextract.pipeline.extraction_service import ExtractionError, ExtractionService
from docextract.pipeline.file_extractor import FileExtractor
from tests.conftest import FakeOcrEngine, FakePdfEngine


def make_service(store, config, texts=None, error=None, ocr=None):
    engine = FakePdfEngine(texts, error=error)
    extractor = FileExtractor(primary_pdf=engine, fallback_pdf=FakePdfEngine(error=error))
    return ExtractionService(store, extractor, ocr_engine=ocr, config=config), engine


class TestExtractSuccess:
    """Happy path: lock, run, complete."""

    def test_text_pdf_is_extracted(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file)
        service, _ = make_service(store, config, [long_page_text, long_page_text])

        result = asyncio.run(service.extract(sub.id, request_id="req-1"))

        assert result["ok"] and result["status"] == "DONE"
        assert result["isScanned"] is False
        assert result["requestId"] == "req-1"
        run = store.runs[result["runId"]]
        assert run.status == RunStatus.DONE
        assert run.page_count == 2
        assert run.overall_confidence >= 0.7
        assert run.source_meta["kind"] == "PDF"
        assert run.source_meta["extractionMode"] == "FULL"
        assert "confidenceSignals" in run.source_meta
        assert len(store.pages[run.id]) == 2
        submission = store.submissions[sub.id]
        assert submission.status == SubmissionStatus.EXTRACTED
        assert result["extractedChars"] == len(submission.extracted_text)

    def test_second_call_is_skipped(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file)
        service, engine = make_service(store, config, [long_page_text])

        first = asyncio.run(service.extract(sub.id))
        second = asyncio.run(service.extract(sub.id))

        assert second["skipped"] and second["reason"] == "already-extracted"
        assert len(store.runs_for(sub.id)) == 1
        assert second["runId"] == first["runId"]
        assert second["status"] == "DONE"
        assert engine.calls == 1

    def test_force_creates_new_run(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file)
        service, engine = make_service(store, config, [long_page_text])

        first = asyncio.run(service.extract(sub.id))
        second = asyncio.run(service.extract(sub.id, force=True))

        assert second["runId"] != first["runId"]
        assert engine.calls == 2
        assert [r.status for r in store.runs_for(sub.id)] == [RunStatus.DONE, RunStatus.DONE]

    def test_already_running_is_skipped(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file, status=SubmissionStatus.EXTRACTING)
        service, engine = make_service(store, config, [long_page_text])

        result = asyncio.run(service.extract(sub.id))

        assert result == {
            "ok": True, "skipped": True, "reason": "already-running",
            "runId": None, "requestId": result["requestId"],
        }
        assert engine.calls == 0
        assert store.runs_for(sub.id) == []


class TestExtractScanned:
    """Scanned documents and the OCR fallback."""

    def test_scanned_without_ocr_needs_ocr(self, store, config, pdf_file):
        sub = store.add_submission(pdf_file)
        service, _ = make_service(store, config.with_overrides(ocr_enabled=False), ["Fig 1"])

        result = asyncio.run(service.extract(sub.id))

        assert result["status"] == "NEEDS_OCR"
        assert result["isScanned"] is True
        run = store.runs[result["runId"]]
        assert run.overall_confidence == 0.0
        assert run.source_meta["ocr"]["attempted"] is True
        assert run.source_meta["ocr"]["succeeded"] is False
        assert "OCR disabled." in run.warnings
        assert store.submissions[sub.id].status == SubmissionStatus.NEEDS_OCR

    def test_ocr_rescues_scanned_pdf(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file)
        service, _ = make_service(store, config, ["Fig 1"], ocr=FakeOcrEngine([long_page_text]))

        result = asyncio.run(service.extract(sub.id))

        assert result["status"] == "DONE"
        run = store.runs[result["runId"]]
        assert run.source_meta["ocr"]["succeeded"] is True
        assert run.source_meta["ocr"]["model"] == "fake-ocr"
        assert run.source_meta["rawIsScanned"] is True
        assert store.pages[run.id][0].text == long_page_text

    def test_cover_only_short_text_is_not_scanned(self, store, config, pdf_file):
        sub = store.add_submission(pdf_file)
        cover = "Student Name: Alice Jones\nStudent ID: S1234567\nUnit: 4015\nAssignment A1"
        service, _ = make_service(store, config, [cover])

        result = asyncio.run(service.extract(sub.id, mode=ExtractionMode.COVER_ONLY))

        assert result["status"] == "DONE"
        run = store.runs[result["runId"]]
        assert run.source_meta["extractionMode"] == "COVER_ONLY"
        assert run.source_meta["coverMetadata"]["student_id"]["value"] == "S1234567"
        assert store.submissions[sub.id].cover_metadata["unit_code"]["value"] == "4015"


class TestExtractFailure:
    """Failed attempts release the submission."""

    def test_missing_submission(self, store, config):
        service, _ = make_service(store, config, ["x"])
        with pytest.raises(ExtractionError) as exc:
            asyncio.run(service.extract("nope", request_id="req-404"))
        assert exc.value.status_code == 404
        assert exc.value.error_code == "EXTRACT_SUBMISSION_NOT_FOUND"
        assert exc.value.request_id == "req-404"

    def test_unexpected_error_fails_run_and_submission(self, store, config, pdf_file):
        sub = store.add_submission(pdf_file)
        service, _ = make_service(store, config, error=RuntimeError("disk gone"))

        with pytest.raises(ExtractionError) as exc:
            asyncio.run(service.extract(sub.id, request_id="req-500"))

        assert exc.value.status_code == 500
        assert exc.value.message == "RuntimeError: disk gone"
        assert exc.value.request_id == "req-500"
        run = store.runs_for(sub.id)[0]
        assert run.status == RunStatus.FAILED
        assert run.error == "RuntimeError: disk gone"
        assert store.submissions[sub.id].status == SubmissionStatus.FAILED

    def test_failed_submission_can_be_retried(self, store, config, pdf_file, long_page_text):
        sub = store.add_submission(pdf_file, status=SubmissionStatus.FAILED)
        service, _ = make_service(store, config, [long_page_text])
        result = asyncio.run(service.extract(sub.id))
        assert result["status"] == "DONE"

    def test_run_creation_failure_releases_lock(self, store, config, pdf_file, long_page_text, monkeypatch):
        sub = store.add_submission(pdf_file)
        service, engine = make_service(store, config, [long_page_text])

        async def broken_create_run(submission_id, engine_version):
            raise RuntimeError("db down")

        monkeypatch.setattr(store, "create_run", broken_create_run)

        with pytest.raises(ExtractionError) as exc:
            asyncio.run(service.extract(sub.id, request_id="req-run"))

        assert exc.value.message == "RuntimeError: db down"
        assert exc.value.request_id == "req-run"
        assert store.submissions[sub.id].status == SubmissionStatus.FAILED
        assert store.runs_for(sub.id) == []
        assert engine.calls == 0

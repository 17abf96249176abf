"""
Tests for the extraction readiness gate.
"""

from datetime import datetime, timezone

from docextract.config import ExtractionConfig
from docextract.models.enums import RunStatus
from docextract.pipeline.quality_gate import (
    GateThresholds,
    evaluate_extraction_readiness,
    infer_extracted_chars,
)
from docextract.schemas.contracts import RunRecord


def make_run(status=RunStatus.DONE, pages=3, confidence=0.9, warnings=None, source_meta=None) -> RunRecord:
    return RunRecord(
        id="run-1",
        submission_id="sub-1",
        status=status,
        page_count=pages,
        overall_confidence=confidence,
        warnings=warnings or [],
        source_meta=source_meta if source_meta is not None else {"extractionMode": "FULL"},
        started_at=datetime.now(timezone.utc),
    )


class TestGateThresholds:
    """Threshold overrides."""

    def test_floors_applied(self):
        limits = GateThresholds.from_config(ExtractionConfig(gate_min_chars=50, gate_min_confidence=0.1,
                                                             gate_max_warnings=1))
        assert limits.min_chars == 200
        assert limits.min_confidence == 0.4
        assert limits.max_warnings_before_block == 2


class TestInferExtractedChars:
    """Character counts with and without stored text."""

    def test_text_wins(self):
        assert infer_extracted_chars("  abc  ", {"derivedTextChars": 900}) == 3

    def test_largest_recorded_count(self):
        meta = {"derivedTextChars": 900, "qualitySignals": {"derivedTextChars": 1200}}
        assert infer_extracted_chars("", meta) == 1200

    def test_garbage_ignored(self):
        assert infer_extracted_chars("", {"derivedTextChars": "n/a"}) == 0


class TestEvaluateExtractionReadiness:
    """Test the readiness gate."""

    def test_ready(self):
        verdict = evaluate_extraction_readiness("EXTRACTED", "x" * 1000, make_run())
        assert verdict.ok
        assert verdict.blockers == []
        assert verdict.metrics.extracted_chars == 1000
        assert verdict.metrics.extraction_mode == "FULL"

    def test_no_run(self):
        verdict = evaluate_extraction_readiness("UPLOADED", None, None)
        assert not verdict.ok
        assert "No extraction run found." in verdict.blockers
        assert "Extracted text length signal is unavailable for this run." in verdict.warnings
        assert "Extraction page count is missing." in verdict.warnings

    def test_short_text_blocks(self):
        verdict = evaluate_extraction_readiness("EXTRACTED", "x" * 300, make_run())
        assert verdict.blockers == ["Extracted text too short (300 chars; minimum 700)."]

    def test_low_confidence_blocks(self):
        verdict = evaluate_extraction_readiness("EXTRACTED", "x" * 1000, make_run(confidence=0.5))
        assert verdict.blockers == ["Extraction confidence too low (0.50; minimum 0.68)."]

    def test_needs_ocr_blocks_full_mode(self):
        verdict = evaluate_extraction_readiness("NEEDS_OCR", "x" * 1000, make_run(status=RunStatus.NEEDS_OCR))
        assert "Extraction flagged as NEEDS_OCR. Run OCR/correction before grading." in verdict.blockers
        assert "Submission status is NEEDS_OCR." in verdict.blockers

    def test_needs_ocr_allowed_in_cover_only(self):
        run = make_run(status=RunStatus.NEEDS_OCR, pages=1, confidence=0.0,
                       source_meta={"extractionMode": "COVER_ONLY"})
        verdict = evaluate_extraction_readiness("NEEDS_OCR", "Name: A", run)
        assert verdict.ok
        assert any("cover-only mode is allowed to continue" in w for w in verdict.warnings)
        assert any("incomplete cover metadata" in w for w in verdict.warnings)

    def test_cover_metadata_softens_short_text(self):
        cover = {
            "student_name": {"value": "Alice Jones", "confidence": 0.72, "page": 1, "snippet": "Name: Alice Jones"},
            "student_id": {"value": "S1234", "confidence": 0.86, "page": 1, "snippet": "ID: S1234"},
            "confidence": 0.79,
        }
        run = make_run(source_meta={"extractionMode": "FULL", "coverMetadata": cover})
        verdict = evaluate_extraction_readiness("EXTRACTED", "x" * 300, run)
        assert verdict.ok
        assert verdict.metrics.cover_metadata_ready
        assert "Extracted body text is short (300 chars), but cover metadata is available." in verdict.warnings

    def test_failed_and_running(self):
        failed = evaluate_extraction_readiness("FAILED", "x" * 1000, make_run(status=RunStatus.FAILED))
        assert "Latest extraction run failed." in failed.blockers
        running = evaluate_extraction_readiness("EXTRACTING", "x" * 1000, make_run(status=RunStatus.RUNNING))
        assert "Extraction is still in progress." in running.blockers

    def test_too_many_warnings(self):
        run = make_run(warnings=[f"page {i} odd" for i in range(8)])
        verdict = evaluate_extraction_readiness("EXTRACTED", "x" * 1000, run)
        assert verdict.blockers == ["Extraction produced too many warnings (8; maximum 7)."]
        assert "Extraction warning: page 0 odd" in verdict.warnings

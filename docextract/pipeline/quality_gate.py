"""
Extraction quality gate.

Pure decision function shared by the extract endpoint, batch grading and the
readiness listing: (submission status, extracted text, latest run) → verdict.
Never persisted on its own; always attached to the decision that used it.
"""

from typing import Any, Optional

from pydantic import BaseModel

from docextract.config import ExtractionConfig
from docextract.models.enums import ExtractionMode
from docextract.pipeline.cover_metadata import is_cover_metadata_ready
from docextract.schemas.contracts import RunRecord, WireModel

KNOWN_RUN_STATUSES = {"DONE", "NEEDS_OCR", "FAILED", "RUNNING", "PENDING"}


class GateThresholds(BaseModel):
    min_chars: int = 700
    min_confidence: float = 0.68
    min_pages: int = 1
    max_warnings_before_block: int = 8

    @classmethod
    def from_config(cls, config: ExtractionConfig) -> "GateThresholds":
        return cls(
            min_chars=max(200, int(config.gate_min_chars)),
            min_confidence=max(0.4, min(0.99, float(config.gate_min_confidence))),
            min_pages=max(1, int(config.gate_min_pages)),
            max_warnings_before_block=max(2, int(config.gate_max_warnings)),
        )


class GateMetrics(WireModel):
    extracted_chars: int = 0
    page_count: int = 0
    overall_confidence: float = 0.0
    run_status: str = ""
    cover_metadata_ready: bool = False
    extraction_mode: str = "UNKNOWN"


class QualityGateVerdict(WireModel):
    ok: bool
    blockers: list[str] = []
    warnings: list[str] = []
    metrics: GateMetrics = GateMetrics()


# ─── Helpers ─────────────────────────────────────────────────

def _char_candidates(source_meta: dict[str, Any]) -> list[int]:
    quality = source_meta.get("qualitySignals") or {}
    raw = [
        source_meta.get("derivedTextChars"),
        source_meta.get("extractedChars"),
        quality.get("derivedTextChars") if isinstance(quality, dict) else None,
    ]
    values = []
    for value in raw:
        try:
            n = int(float(value or 0))
        except (TypeError, ValueError):
            continue
        if n > 0:
            values.append(n)
    return values


def infer_extracted_chars(extracted_text: str, source_meta: dict[str, Any]) -> int:
    """Text length if we have text, else the largest char count recorded on the run."""
    text_chars = len((extracted_text or "").strip())
    if text_chars > 0:
        return text_chars
    candidates = _char_candidates(source_meta)
    return max(candidates) if candidates else 0


def has_char_signal(extracted_text: str, source_meta: dict[str, Any]) -> bool:
    return bool((extracted_text or "").strip()) or bool(_char_candidates(source_meta))


def _fmt(n: float) -> str:
    return f"{n:.2f}"


# ─── Gate ────────────────────────────────────────────────────

def evaluate_extraction_readiness(
    submission_status: Optional[str],
    extracted_text: Optional[str],
    latest_run: Optional[RunRecord],
    config: Optional[ExtractionConfig] = None,
) -> QualityGateVerdict:
    """Decide whether extracted output is safe to grade."""
    limits = GateThresholds.from_config(config or ExtractionConfig())
    blockers: list[str] = []
    warnings: list[str] = []

    run = latest_run
    text = extracted_text or ""
    source_meta = dict(run.source_meta or {}) if run else {}
    extracted_chars = infer_extracted_chars(text, source_meta)
    char_signal = has_char_signal(text, source_meta)
    run_status = (run.status.value if run else "").upper()
    page_count = int(run.page_count or 0) if run else 0
    confidence = float(run.overall_confidence or 0.0) if run else 0.0
    run_warnings = [w.strip() for w in (run.warnings if run else []) if w and w.strip()]
    mode = str(source_meta.get("extractionMode") or "").strip().upper()
    cover_only = mode == ExtractionMode.COVER_ONLY.value
    cover_ready = is_cover_metadata_ready(source_meta.get("coverMetadata"))

    if run is None:
        blockers.append("No extraction run found.")
    if run_status == "NEEDS_OCR":
        if cover_only:
            warnings.append("Extraction flagged as NEEDS_OCR, but cover-only mode is allowed to continue.")
        else:
            blockers.append("Extraction flagged as NEEDS_OCR. Run OCR/correction before grading.")
    if run_status == "FAILED":
        blockers.append("Latest extraction run failed.")
    if run_status in ("RUNNING", "PENDING"):
        blockers.append("Extraction is still in progress.")
    if run_status and run_status not in KNOWN_RUN_STATUSES:
        warnings.append(f"Unknown extraction status: {run_status}.")
    if cover_only and not cover_ready:
        warnings.append(
            "Cover-only extraction has incomplete cover metadata; complete it in submission review if needed."
        )

    if extracted_chars < limits.min_chars:
        if not char_signal:
            warnings.append("Extracted text length signal is unavailable for this run.")
        elif cover_only:
            warnings.append(
                f"Cover-only extraction has short body text ({extracted_chars} chars), which is expected for this mode."
            )
        elif cover_ready:
            warnings.append(f"Extracted body text is short ({extracted_chars} chars), but cover metadata is available.")
        else:
            blockers.append(f"Extracted text too short ({extracted_chars} chars; minimum {limits.min_chars}).")

    if 0 < confidence < limits.min_confidence:
        blockers.append(
            f"Extraction confidence too low ({_fmt(confidence)}; minimum {_fmt(limits.min_confidence)})."
        )
    if page_count <= 0:
        warnings.append("Extraction page count is missing.")
    if 0 < page_count < limits.min_pages:
        blockers.append(f"Extraction page count too low ({page_count}; minimum {limits.min_pages}).")
    warnings.extend(f"Extraction warning: {w}" for w in run_warnings)
    if len(run_warnings) >= limits.max_warnings_before_block:
        blockers.append(
            f"Extraction produced too many warnings ({len(run_warnings)}; "
            f"maximum {limits.max_warnings_before_block - 1})."
        )

    status = (submission_status or "").upper()
    if status == "NEEDS_OCR":
        if cover_only:
            warnings.append("Submission status is NEEDS_OCR, but cover-only mode is allowed to continue.")
        else:
            blockers.append("Submission status is NEEDS_OCR.")

    return QualityGateVerdict(
        ok=not blockers,
        blockers=blockers,
        warnings=warnings,
        metrics=GateMetrics(
            extracted_chars=extracted_chars,
            page_count=max(page_count, 0),
            overall_confidence=confidence,
            run_status=run_status,
            cover_metadata_ready=cover_ready,
            extraction_mode=mode or "UNKNOWN",
        ),
    )

"""
Confidence scoring: weighted blend of extraction signals, plus a 0-100
quality score with run-state caps layered on top of the quality gate.
Caps override the weighted score for safety.
"""

from typing import Optional

from pydantic import BaseModel

from docextract.config import ExtractionConfig
from docextract.models.enums import ExtractionMode, QualityBand, QualityRoute
from docextract.pipeline.quality_gate import GateMetrics, evaluate_extraction_readiness
from docextract.schemas.contracts import Page, RunRecord


class ConfidenceResult(BaseModel):
    """Blended document confidence and the signals that produced it."""
    document_confidence: float = 0.0
    signals: dict[str, float] = {}
    bonus: float = 0.0
    cap: float = 0.96


# ── Weights for document-level confidence ────────────────────
DOCUMENT_WEIGHTS = {
    "raw_confidence": 0.40,
    "mean_page_confidence": 0.25,
    "meaningful_page_ratio": 0.20,
    "text_density": 0.15,
}

MEANINGFUL_PAGE_CHARS = 120
TARGET_CHARS_PER_PAGE = 900
OCR_SUCCESS_BONUS = 0.03
DENSE_TEXT_BONUS = 0.02
CAP_BY_MODE = {
    ExtractionMode.FULL: 0.96,
    ExtractionMode.COVER_ONLY: 0.99,
}


def _clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def blend_confidence(
    raw_confidence: float,
    pages: list[Page],
    combined_chars: int,
    mode: ExtractionMode = ExtractionMode.FULL,
    ocr_succeeded: bool = False,
    cover_confidence: Optional[float] = None,
) -> ConfidenceResult:
    """
    Blend raw extractor confidence with page-level signals.

    In cover-only mode a ready cover-metadata confidence is averaged in, since
    identity binding, not body text, is what that flow needs.
    """
    n = len(pages)
    mean_page = sum(p.confidence for p in pages) / n if n else 0.0
    meaningful_ratio = sum(1 for p in pages if len(p.text.strip()) >= MEANINGFUL_PAGE_CHARS) / n if n else 0.0
    density_raw = combined_chars / (n * TARGET_CHARS_PER_PAGE) if n else 0.0
    density = _clamp(density_raw, 0.0, 1.0)

    signals = {
        "raw_confidence": _clamp(raw_confidence, 0.0, 1.0),
        "mean_page_confidence": _clamp(mean_page, 0.0, 1.0),
        "meaningful_page_ratio": meaningful_ratio,
        "text_density": density,
    }
    weighted = sum(DOCUMENT_WEIGHTS[k] * v for k, v in signals.items())

    bonus = 0.0
    if ocr_succeeded:
        bonus += OCR_SUCCESS_BONUS
    if density_raw >= 1.0:
        bonus += DENSE_TEXT_BONUS

    score = weighted + bonus
    if mode == ExtractionMode.COVER_ONLY and cover_confidence is not None and cover_confidence > 0:
        signals["cover_confidence"] = cover_confidence
        score = (score + cover_confidence) / 2

    cap = CAP_BY_MODE[mode]
    return ConfidenceResult(
        document_confidence=round(_clamp(score, 0.0, cap), 4),
        signals={k: round(v, 4) for k, v in signals.items()},
        bonus=bonus,
        cap=cap,
    )


# ── Extraction quality score (0-100) ─────────────────────────

class ExtractionQuality(BaseModel):
    score: int
    band: QualityBand
    route: QualityRoute
    ready: bool
    blockers: list[str] = []
    warnings: list[str] = []
    metrics: GateMetrics


AUTO_READY_MIN_SCORE = 72
BLOCKED_MAX_SCORE = 40


def compute_extraction_quality(
    submission_status: Optional[str],
    extracted_text: Optional[str],
    latest_run: Optional[RunRecord],
    config: Optional[ExtractionConfig] = None,
) -> ExtractionQuality:
    """Score extraction quality and derive a routing hint."""
    gate = evaluate_extraction_readiness(submission_status, extracted_text, latest_run, config)
    m = gate.metrics

    # Cover metadata reduces dependence on full-body chars
    chars_weight = 25 if m.cover_metadata_ready else 45
    score = (
        _clamp(m.extracted_chars / 1200, 0, 1) * chars_weight
        + _clamp(m.overall_confidence / 0.85, 0, 1) * 35
        + (10 if m.page_count > 0 else 0)
        + _clamp(m.page_count / 4, 0, 1) * 10
        + (20 if m.cover_metadata_ready else 0)
    )
    score -= len(gate.warnings) * 3
    score -= len(gate.blockers) * 8

    # ── Run-state caps ───────────────────────────────────────
    if m.run_status == "NEEDS_OCR":
        score = min(score, 25)
    if m.run_status == "FAILED":
        score = 0
    if m.run_status in ("RUNNING", "PENDING"):
        score = min(score, 35)

    final = int(_clamp(score, 0, 100) + 0.5)

    if final >= 75:
        band = QualityBand.HIGH
    elif final >= 50:
        band = QualityBand.MEDIUM
    else:
        band = QualityBand.LOW

    if final <= BLOCKED_MAX_SCORE:
        route = QualityRoute.BLOCKED
    elif final >= AUTO_READY_MIN_SCORE:
        route = QualityRoute.AUTO_READY
    else:
        route = QualityRoute.NEEDS_REVIEW

    return ExtractionQuality(
        score=final,
        band=band,
        route=route,
        ready=gate.ok and route == QualityRoute.AUTO_READY,
        blockers=gate.blockers,
        warnings=gate.warnings,
        metrics=m,
    )

"""
Prometheus metrics for the document extraction service.
"""

from prometheus_client import Counter, Histogram, Gauge


# ── Extraction Runs ──────────────────────────────────────────
extraction_runs_total = Counter(
    "extraction_runs_total",
    "Extraction runs finalised, by terminal status",
    ["status", "mode"],
)

extraction_skipped_total = Counter(
    "extraction_skipped_total",
    "Extraction requests skipped by the idempotency guards",
    ["reason"],
)

extraction_duration_seconds = Histogram(
    "extraction_duration_seconds",
    "Time to extract a submission end-to-end",
    ["mode"],
    buckets=[0.5, 1, 5, 10, 30, 60, 120, 300],
)

extraction_runs_active = Gauge(
    "extraction_runs_active",
    "Number of extraction runs currently in progress",
)

# ── Engines ──────────────────────────────────────────────────
pages_extracted_total = Counter(
    "pages_extracted_total",
    "Total pages extracted",
    ["engine_name"],
)

ocr_attempts_total = Counter(
    "ocr_attempts_total",
    "OCR fallback attempts, by outcome",
    ["outcome"],
)

confidence_scores = Histogram(
    "confidence_scores",
    "Distribution of final document confidence scores",
    ["mode"],
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 0.95, 1.0],
)

# ── Batch Grading ────────────────────────────────────────────
batch_grade_items_total = Counter(
    "batch_grade_items_total",
    "Batch grading items, by outcome",
    ["outcome"],
)

grading_latency_seconds = Histogram(
    "grading_latency_seconds",
    "Latency of grading port calls",
    buckets=[0.5, 1, 2, 5, 10, 30, 60, 120],
)

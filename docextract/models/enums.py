"""
Python enums for extraction and submission state.
Names and values MUST match the wire contract and DB columns exactly.
"""

from enum import Enum


class DocumentKind(str, Enum):
    PDF = "PDF"
    DOCX = "DOCX"
    UNKNOWN = "UNKNOWN"


class SubmissionStatus(str, Enum):
    UPLOADED = "UPLOADED"
    EXTRACTING = "EXTRACTING"
    EXTRACTED = "EXTRACTED"
    NEEDS_OCR = "NEEDS_OCR"
    ASSESSING = "ASSESSING"
    DONE = "DONE"
    FAILED = "FAILED"


class RunStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    NEEDS_OCR = "NEEDS_OCR"
    FAILED = "FAILED"


class ExtractionMode(str, Enum):
    FULL = "FULL"
    COVER_ONLY = "COVER_ONLY"


class GradeBand(str, Enum):
    PASS = "PASS"
    MERIT = "MERIT"
    DISTINCTION = "DISTINCTION"


class TaskConfidence(str, Enum):
    CLEAN = "CLEAN"
    HEURISTIC = "HEURISTIC"


class QualityBand(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class QualityRoute(str, Enum):
    AUTO_READY = "AUTO_READY"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    BLOCKED = "BLOCKED"


class SkipReason(str, Enum):
    """Machine-readable reasons a submission was not extracted or graded."""
    ALREADY_RUNNING = "already-running"
    ALREADY_EXTRACTED = "already-extracted"
    MISSING = "missing"
    NOT_FAILED = "not-failed"
    ALREADY_DONE = "already-done"
    EXTRACTION_NOT_READY = "extraction-not-ready"
    NOT_TARGETED = "not-targeted"


class ReferenceDocumentType(str, Enum):
    SPEC = "SPEC"
    BRIEF = "BRIEF"
    OTHER = "OTHER"

"""
SQLAlchemy ORM models.
Only the columns this service reads or owns during extraction are mapped;
the rest of the submissions table belongs to the upload/grading services.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID, ENUM
from sqlalchemy.orm import Mapped, mapped_column, relationship

from docextract.models.database import Base


SUBMISSION_STATUS_ENUM = ENUM(
    'UPLOADED', 'EXTRACTING', 'EXTRACTED', 'NEEDS_OCR', 'ASSESSING', 'DONE', 'FAILED',
    name='submission_status_enum', create_type=False,
)

RUN_STATUS_ENUM = ENUM(
    'PENDING', 'RUNNING', 'DONE', 'NEEDS_OCR', 'FAILED',
    name='extraction_run_status_enum', create_type=False,
)


# ────────────────────────────────────────────────────────────
# SUBMISSIONS
# ────────────────────────────────────────────────────────────
class Submission(Base):
    __tablename__ = "submissions"

    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    file_name: Mapped[str] = mapped_column(Text, nullable=False)
    storage_path: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        SUBMISSION_STATUS_ENUM, nullable=False, default="UPLOADED", server_default="UPLOADED"
    )
    extracted_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_metadata_json: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )

    # Relationships
    extraction_runs = relationship(
        "ExtractionRun", back_populates="submission", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_submissions_status", "status"),
    )


# ────────────────────────────────────────────────────────────
# EXTRACTION RUNS
# ────────────────────────────────────────────────────────────
class ExtractionRun(Base):
    __tablename__ = "extraction_runs"

    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("submissions.submission_id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        RUN_STATUS_ENUM, nullable=False, default="RUNNING", server_default="RUNNING"
    )
    is_scanned: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    overall_confidence: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default="0"
    )
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    warnings_json: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    source_meta_json: Mapped[Optional[dict]] = mapped_column(JSONB, nullable=True)
    engine_version: Mapped[str] = mapped_column(Text, nullable=False)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    submission = relationship("Submission", back_populates="extraction_runs")
    pages = relationship("ExtractedPage", back_populates="extraction_run", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_runs_submission_started", "submission_id", "started_at"),
        Index("idx_runs_status", "status"),
    )


# ────────────────────────────────────────────────────────────
# EXTRACTED PAGES
# ────────────────────────────────────────────────────────────
class ExtractedPage(Base):
    __tablename__ = "extracted_pages"

    page_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
        server_default=text("gen_random_uuid()")
    )
    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("extraction_runs.run_id", ondelete="CASCADE"), nullable=False
    )
    page_number: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="", server_default="")
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default="0")
    width: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Relationships
    extraction_run = relationship("ExtractionRun", back_populates="pages")

    __table_args__ = (
        UniqueConstraint("run_id", "page_number", name="uq_extracted_pages_run_page"),
    )

"""
Tests for the file → ExtractionResult dispatcher and its fallback chain.
"""

import asyncio

import pytest

from docextract.engines.base import EngineError
from docextract.models.enums import DocumentKind
from docextract.pipeline.file_extractor import FileExtractor, detect_kind
from tests.conftest import FakePdfEngine


class TestDetectKind:
    """Kind detection by extension."""

    def test_extensions(self):
        assert detect_kind("a/b/c.PDF") == DocumentKind.PDF
        assert detect_kind("essay.docx") == DocumentKind.DOCX
        assert detect_kind("notes.txt") == DocumentKind.UNKNOWN


class TestFileExtractor:
    """Engine chaining with injected engines."""

    def test_missing_file_raises(self, config):
        extractor = FileExtractor(primary_pdf=FakePdfEngine(["x"]), fallback_pdf=FakePdfEngine(["y"]))
        with pytest.raises(FileNotFoundError):
            asyncio.run(extractor.extract_file("/nonexistent/file.pdf", config))

    def test_primary_result_used(self, config, pdf_file, long_page_text):
        primary = FakePdfEngine([long_page_text])
        fallback = FakePdfEngine(["fallback"])
        result = asyncio.run(FileExtractor(primary, fallback).extract_file(pdf_file, config))
        assert result.pages[0].text == long_page_text
        assert fallback.calls == 0

    def test_fallback_after_primary_failure(self, config, pdf_file, long_page_text):
        primary = FakePdfEngine(error=EngineError("fake_pdf", "ERR_PDF_OPEN", "broken xref",
                                                  warnings=["pdf open failed (rich): broken xref"]))
        fallback = FakePdfEngine([long_page_text])
        result = asyncio.run(FileExtractor(primary, fallback).extract_file(pdf_file, config))
        assert result.pages[0].text == long_page_text
        assert result.warnings[0] == "pdf open failed (rich): broken xref"

    def test_both_engines_fail_gives_empty_scanned_result(self, config, pdf_file):
        primary = FakePdfEngine(error=EngineError("fake_pdf", "ERR_PDF_OPEN", "broken"))
        fallback = FakePdfEngine(error=EngineError("mupdf_subprocess", "ERR_SUBPROCESS_TIMEOUT", "Timeout after 15s"))
        result = asyncio.run(FileExtractor(primary, fallback).extract_file(pdf_file, config))
        assert result.is_scanned
        assert result.overall_confidence == 0.0
        assert len(result.pages) == 1 and result.pages[0].text == ""
        assert "subprocess extractor failed: Timeout after 15s" in result.warnings

    def test_cover_only_limits_fallback_pages(self, config, pdf_file):
        primary = FakePdfEngine(error=EngineError("fake_pdf", "ERR_PAGE_GUARD", "too large"))
        fallback = FakePdfEngine(["one", "two", "three", "four"])
        cover_config = config.with_overrides(cover_only=True, cover_page_limit=2)
        result = asyncio.run(FileExtractor(primary, fallback).extract_file(pdf_file, cover_config))
        assert [p.text for p in result.pages] == ["one", "two"]

    def test_unsupported_extension(self, config, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        result = asyncio.run(FileExtractor(FakePdfEngine(), FakePdfEngine()).extract_file(str(path), config))
        assert result.kind == DocumentKind.UNKNOWN
        assert result.warnings == ["Unsupported file type: .txt"]
        assert result.pages == []

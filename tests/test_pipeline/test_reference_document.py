"""
Tests for SPEC/BRIEF reference document extraction.
"""

import asyncio

from docextract.engines.base import EngineError
from docextract.models.enums import ReferenceDocumentType
from docextract.parsers.spec_parser import parse_spec
from docextract.pipeline.file_extractor import FileExtractor
from docextract.pipeline.reference_document import (
    ReferenceDocumentExtractor,
    score_spec_parse,
    strip_equation_placeholders,
)
from tests.conftest import FakePdfEngine

PROSE = "This unit introduces students to the design process used in industry. " * 3


def make_extractor(config, pages, fallback_pages=None):
    primary = FakePdfEngine(pages)
    fallback = (
        FakePdfEngine(fallback_pages) if fallback_pages is not None
        else FakePdfEngine(error=EngineError("mupdf_subprocess", "ERR_SUBPROCESS_FAILED", "unavailable"))
    )
    return ReferenceDocumentExtractor(
        file_extractor=FileExtractor(primary_pdf=primary, fallback_pdf=fallback),
        fallback_engine=fallback,
        config=config,
    )


class TestHelpers:
    """Reference document helpers."""

    def test_strip_equation_placeholders(self):
        assert strip_equation_placeholders("F = [[EQ:ma]] here") == "F = here"

    def test_score_prefers_complete_parse(self, spec_text):
        good = score_spec_parse(parse_spec(spec_text))
        empty = score_spec_parse(parse_spec(PROSE))
        assert good.total_criteria == 6
        assert good.lo_with_criteria == 2
        assert good.score > empty.score


class TestSpecExtraction:
    """Specs go through the spec parser."""

    def test_primary_parse_used(self, config, pdf_file, spec_text):
        extractor = make_extractor(config, [spec_text])
        result = asyncio.run(extractor.extract(ReferenceDocumentType.SPEC, pdf_file))
        extracted = result.extracted
        assert extracted["kind"] == "SPEC"
        assert extracted["unit"]["unitCode"] == "4015"
        assert extracted["pageCount"] == 1
        assert extracted["hasFormFeedBreaks"] is False
        assert "page breaks missing; page numbers may be unreliable." in extracted["extractionWarnings"]
        assert result.warnings == []

    def test_fallback_parse_wins_when_clearly_better(self, config, pdf_file, spec_text):
        extractor = make_extractor(config, [PROSE], fallback_pages=[spec_text])
        result = asyncio.run(extractor.extract(ReferenceDocumentType.SPEC, pdf_file))
        assert len(result.extracted["learningOutcomes"]) == 2
        assert result.warnings == [
            "SPEC parser fallback selected (subprocess) because criteria extraction quality was higher: 6 vs 0."
        ]

    def test_fallback_ignored_when_not_better(self, config, pdf_file, spec_text):
        extractor = make_extractor(config, [spec_text], fallback_pages=[spec_text])
        result = asyncio.run(extractor.extract(ReferenceDocumentType.SPEC, pdf_file))
        assert result.warnings == []


class TestBriefExtraction:
    """Test brief reference extraction."""

    def test_brief_with_pages(self, config, pdf_file, brief_text):
        extractor = make_extractor(config, brief_text.split("\f"))
        result = asyncio.run(extractor.extract(ReferenceDocumentType.BRIEF, pdf_file, "Bracket brief"))
        extracted = result.extracted
        assert extracted["kind"] == "BRIEF"
        assert extracted["pageCount"] == 3
        assert extracted["hasFormFeedBreaks"] is True
        assert "extractionWarnings" not in extracted
        assert [t["n"] for t in extracted["tasks"]] == [1, 2]
        assert extracted["tasks"][0]["pages"] == [2]
        assert extracted["charCount"] == len(result.text)
        assert extracted["warnings"] == []


class TestOtherExtraction:
    """Other document types keep raw text only."""

    def test_short_text_warns(self, config, pdf_file):
        extractor = make_extractor(config, ["x"])
        result = asyncio.run(extractor.extract(ReferenceDocumentType.OTHER, pdf_file))
        assert result.extracted["kind"] == "OTHER"
        assert result.extracted["preview"] == "x"
        assert result.warnings == [
            "Extraction produced empty/short text. This may be a scanned document; OCR may be required."
        ]

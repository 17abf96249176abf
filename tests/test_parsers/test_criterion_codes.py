"""
Tests for criterion code helpers and OCR repair.
"""

from docextract.parsers.criterion_codes import (
    extract_criterion_codes,
    fix_ocr_codes,
    is_criterion_start,
    normalize_criterion_code,
    sort_criterion_codes,
    split_criterion_line,
)


class TestNormalizeAndSort:
    """Criterion code ordering: P, then M, then D."""

    def test_normalize(self):
        assert normalize_criterion_code("p 03") == "P3"
        assert normalize_criterion_code("D12") == "D12"
        assert normalize_criterion_code("LO1") is None
        assert normalize_criterion_code(None) is None

    def test_band_then_number(self):
        assert sort_criterion_codes(["D1", "P10", "M2", "P2"]) == ["P2", "P10", "M2", "D1"]

    def test_extract_from_text_ignores_markers(self):
        text = "Covers P1, p2 and M1 [[EQ:P9]] with D1 and P1 again."
        assert extract_criterion_codes(text) == ["P1", "P2", "M1", "D1"]

    def test_extract_empty(self):
        assert extract_criterion_codes("") == []


class TestFixOcrCodes:
    """OCR confusions in criterion codes."""

    def test_confusable_digits(self):
        assert fix_ocr_codes("Pl0 Investigate the system") == "P10 Investigate the system"

    def test_glued_word_gets_space(self):
        assert fix_ocr_codes("P1OInvestigate") == "P10 Investigate"

    def test_single_l_is_one(self):
        assert fix_ocr_codes("Ml Explain") == "M1 Explain"

    def test_letters_only_left_alone(self):
        assert fix_ocr_codes("PO box") == "PO box"

    def test_glued_codes_split(self):
        assert fix_ocr_codes("P1P2 Explain") == "P1 P2 Explain"


class TestSplitCriterionLine:
    """Test splitting a code from its description."""

    def test_flattened_row(self):
        line = "P1 Explain the brief P2 Describe the constraints"
        assert split_criterion_line(line) == ["P1 Explain the brief", "P2 Describe the constraints"]

    def test_lo_row(self):
        line = "LO1 Plan a design P1 Produce a brief"
        assert split_criterion_line(line) == ["LO1 Plan a design", "P1 Produce a brief"]

    def test_prose_untouched(self):
        line = "Students should see P2 Describe in the grid"
        assert split_criterion_line(line) == [line]

    def test_is_criterion_start(self):
        assert is_criterion_start("P3 Produce a specification")
        assert not is_criterion_start("Pass Merit Distinction")

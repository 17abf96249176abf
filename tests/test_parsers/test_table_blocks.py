"""
Tests for table detection in task bodies.
"""

from docextract.parsers.table_blocks import detect_table_blocks, split_columns


class TestSplitColumns:
    """Column splitting on wide gaps."""

    def test_pipes(self):
        assert split_columns("| Sample | Before QC | After QC |") == ["Sample", "Before QC", "After QC"]

    def test_space_runs(self):
        assert split_columns("Alice  Lead   Engineer") == ["Alice", "Lead", "Engineer"]

    def test_single_spaces_are_one_cell(self):
        assert split_columns("a normal sentence") == ["a normal sentence"]


class TestDetectTableBlocks:
    """Test table block detection."""

    def test_before_after_table(self):
        body = "\n".join([
            "Complete the table below.",
            "Table 1 Defect counts",
            "Sample | Before QC | After QC",
            "A | 12 | 10",
            "B | 15 | 11",
        ])
        blocks = detect_table_blocks(body)
        assert len(blocks) == 1
        table = blocks[0]
        assert table.kind == "TABLE"
        assert table.caption == "Table 1 Defect counts"
        assert table.headers == ["Sample", "Before QC", "After QC"]
        assert table.rows == [["A", "12", "10"], ["B", "15", "11"]]

    def test_numeric_grid_without_before_after(self):
        body = "Material | Yield | UTS\nSteel | 250 | 400\nAluminium | 95 | 110"
        blocks = detect_table_blocks(body)
        assert blocks[0].kind == "TABLE"
        assert blocks[0].caption is None

    def test_unknown_shape_kept_verbatim(self):
        body = "Name  Role\nAlice  Lead\nBob  Tester"
        blocks = detect_table_blocks(body)
        assert len(blocks) == 1
        block = blocks[0]
        assert block.kind == "UNSTRUCTURED"
        assert block.text == body
        assert block.warning == "TABLE UNSTRUCTURED"

    def test_two_lines_are_not_a_table(self):
        assert detect_table_blocks("A | 1\nB | 2") == []

    def test_prose_has_no_blocks(self):
        assert detect_table_blocks("Write a report.\nInclude diagrams.") == []

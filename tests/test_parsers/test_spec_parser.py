"""
Tests for the unit descriptor parser.
"""

from docextract.models.enums import GradeBand
from docextract.parsers.spec_labels import parse_issue_label, parse_pearson_unit_code, parse_unit_code
from docextract.parsers.spec_parser import SPEC_PARSER_VERSION, parse_spec


class TestSpecLabels:
    """Unit header labels."""

    def test_unit_code_from_heading(self):
        assert parse_unit_code("Unit 4015: Engineering Design") == "4015"

    def test_unit_code_from_title_fallback(self):
        assert parse_unit_code("no heading here", "4017 Quality and Process Improvement") == "4017"

    def test_pearson_code(self):
        assert parse_pearson_unit_code("Unit code K/618/7401") == "K/618/7401"

    def test_issue_label_dash_normalised(self):
        assert parse_issue_label("Issue 3 – March 2022") == "Issue 3 - March 2022"
        assert parse_issue_label("issue 5") == "issue 5"
        assert parse_issue_label("nothing") is None


class TestParseSpec:
    """Test spec parsing on a clean criteria table."""

    def test_unit_fields(self, spec_text):
        draft = parse_spec(spec_text)
        assert draft.parser_version == SPEC_PARSER_VERSION
        unit = draft.unit
        assert unit.unit_code == "4015"
        assert unit.unit_title == "Engineering Design"
        assert unit.pearson_unit_code == "K/618/7401"
        assert unit.level == 4
        assert unit.credits == 15
        assert unit.spec_issue == "Issue 3 - March 2022"
        assert unit.spec_version_label == unit.spec_issue

    def test_learning_outcomes_and_criteria(self, spec_text):
        draft = parse_spec(spec_text)
        assert [lo.lo_code for lo in draft.learning_outcomes] == ["LO1", "LO2"]
        lo1, lo2 = draft.learning_outcomes
        assert lo1.description == "Plan a design solution for an engineering problem"
        assert [c.ac_code for c in lo1.criteria] == ["P1", "P2", "M1", "D1"]
        assert [c.grade_band for c in lo1.criteria] == [
            GradeBand.PASS, GradeBand.PASS, GradeBand.MERIT, GradeBand.DISTINCTION,
        ]
        assert lo1.criteria[0].description == "Produce a design brief for a new product"
        assert [c.ac_code for c in lo2.criteria] == ["P3", "M2"]
        assert lo2.criteria[1].description == "Analyse how the specification meets the brief"

    def test_essential_content(self, spec_text):
        lo1 = parse_spec(spec_text).learning_outcomes[0]
        assert lo1.essential_content == (
            "Plan a design solution Design process: problem definition, constraints and requirements."
        )

    def test_clean_parse_has_no_warnings_key(self, spec_text):
        wire = parse_spec(spec_text).to_wire()
        assert "warnings" not in wire
        assert wire["kind"] == "SPEC"
        assert wire["learningOutcomes"][0]["criteria"][0] == {
            "acCode": "P1",
            "gradeBand": "PASS",
            "description": "Produce a design brief for a new product",
        }

    def test_no_outcomes_warns(self):
        draft = parse_spec("A page of text with no outcomes at all.")
        assert draft.learning_outcomes == []
        assert draft.warnings == ["No learning outcomes detected."]


NOISY_SPEC = "\n".join([
    "Unit 4017: Quality and Process Improvement",
    "Learning Outcomes",
    "LO1 Investigate quality systems in engineering",
    "Learning Outcomes and Assessment Criteria",
    "Pass Merit Distinction",
    "LO1 Investigate quality systems in engineering",
    "M1 Evaluate the benefits of the chosen quality system",
    "D1 Justify improvements to the quality system",
    "P2 Describe two quality control techniques",
    "© Pearson Education Limited 2022",
    "Issue 3 – March 2022",
    "17",
    "Pl0Investigate the cost of quality failures",
    "P3 Explain the role of audits P4 Describe a corrective action plan",
    "P1 Explain the purpose of quality standards",
    "Recommended Resources",
])


class TestParseSpecNoisyTable:
    """Unsorted, OCR-damaged criteria with page furniture in between."""

    def test_criteria_sorted_and_repaired(self):
        lo1 = parse_spec(NOISY_SPEC).learning_outcomes[0]
        assert lo1.description == "Investigate quality systems in engineering"
        assert [c.ac_code for c in lo1.criteria] == ["P1", "P2", "P3", "P4", "P10", "M1", "D1"]

    def test_footer_lines_left_out_of_descriptions(self):
        criteria = {c.ac_code: c.description for c in parse_spec(NOISY_SPEC).learning_outcomes[0].criteria}
        assert criteria["P2"] == "Describe two quality control techniques"
        assert criteria["P10"] == "Investigate the cost of quality failures"

    def test_flattened_row_split(self):
        criteria = {c.ac_code: c.description for c in parse_spec(NOISY_SPEC).learning_outcomes[0].criteria}
        assert criteria["P3"] == "Explain the role of audits"
        assert criteria["P4"] == "Describe a corrective action plan"


class TestParseSpecMinimal:
    """A bare LO with three criteria and no section headings."""

    def test_lo_with_pass_and_merit(self):
        text = "LO1 Demonstrate design skills\nP1 Demonstrate the process\nP2 Explain the method\nM1 Evaluate the outcome"
        wire = parse_spec(text).to_wire()
        assert len(wire["learningOutcomes"]) == 1
        lo1 = wire["learningOutcomes"][0]
        assert lo1["loCode"] == "LO1"
        assert [(c["acCode"], c["gradeBand"]) for c in lo1["criteria"]] == [
            ("P1", "PASS"), ("P2", "PASS"), ("M1", "MERIT"),
        ]

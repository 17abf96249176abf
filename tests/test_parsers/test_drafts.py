"""
Tests for the draft wire contract: camelCase keys, explicit nulls kept,
unset optionals dropped.
"""

from docextract.models.enums import GradeBand
from docextract.schemas.drafts import (
    CriterionDraft,
    ParsedBriefDraft,
    ParsedSpecDraft,
    TableBlock,
    TaskDraft,
    UnitDraft,
    grade_band_for,
)


class TestGradeBand:
    """Band from the criterion code letter."""

    def test_bands(self):
        assert grade_band_for("P4") == GradeBand.PASS
        assert grade_band_for("m2") == GradeBand.MERIT
        assert grade_band_for("D1") == GradeBand.DISTINCTION
        assert grade_band_for("") == GradeBand.DISTINCTION


class TestWireShape:
    """camelCase wire output and null/absent handling."""

    def test_absent_optional_is_dropped(self):
        assert TaskDraft(n=1, label="Task 1").to_wire() == {"n": 1, "label": "Task 1"}

    def test_explicit_null_is_kept(self):
        wire = TaskDraft(n=1, label="Task 1", aias=None).to_wire()
        assert "aias" in wire and wire["aias"] is None

    def test_spec_round_trip(self):
        draft = ParsedSpecDraft(
            kind="SPEC",
            parser_version="spec-v1",
            unit=UnitDraft(unit_code="4015", unit_title="Engineering Design", level=4),
            learning_outcomes=[],
        )
        wire = draft.to_wire()
        assert wire["parserVersion"] == "spec-v1"
        assert wire["unit"] == {"unitCode": "4015", "unitTitle": "Engineering Design", "level": 4}
        assert ParsedSpecDraft.model_validate(wire) == draft

    def test_grade_band_serialises_as_value(self):
        wire = CriterionDraft(ac_code="M1", grade_band=GradeBand.MERIT, description="Evaluate").to_wire()
        assert wire == {"acCode": "M1", "gradeBand": "MERIT", "description": "Evaluate"}

    def test_table_block_in_task(self):
        task = TaskDraft(
            n=2,
            label="Task 2",
            tables=[TableBlock(kind="TABLE", headers=["Sample", "Before", "After"], rows=[["A", "1", "2"]])],
        )
        wire = task.to_wire()
        assert wire["tables"][0] == {"kind": "TABLE", "headers": ["Sample", "Before", "After"], "rows": [["A", "1", "2"]]}

    def test_brief_accepts_wire_input(self):
        brief = ParsedBriefDraft.model_validate({
            "kind": "BRIEF",
            "parserVersion": "brief-v1",
            "assignmentCode": "A2",
            "detectedCriterionCodes": ["P1"],
        })
        assert brief.assignment_code == "A2"
        assert brief.detected_criterion_codes == ["P1"]

    def test_spec_round_trip_keeps_null_vs_absent(self):
        draft = ParsedSpecDraft(
            kind="SPEC",
            parser_version="spec-v1",
            unit=UnitDraft(unit_code="4015", unit_title="Engineering Design", pearson_unit_code=None),
            learning_outcomes=[],
        )
        wire = draft.to_wire()
        assert wire["unit"]["pearsonUnitCode"] is None
        assert "level" not in wire["unit"]

        again = ParsedSpecDraft.model_validate(wire)
        assert again == draft
        assert again.to_wire() == wire

"""Tests for prompt building and output contracts."""
import json

import pytest

from examiq.errors import SchemaViolation
from examiq.models.generation import Difficulty, GenerationKind
from examiq.services.content_generator import (
    DescriptiveItem,
    MCQItem,
    OutputContract,
    TutorMode,
    build,
    build_tutor_prompt,
    key_point_band,
)
from examiq.services.content_generator.prompts import SYSTEM_INSTRUCTION


class TestKeyPointBand:
    @pytest.mark.parametrize(
        "marks,band",
        [(1, (2, 3)), (2, (2, 3)), (3, (4, 6)), (5, (4, 6)), (6, (7, 10)), (8, (7, 10))],
    )
    def test_bands(self, marks, band):
        assert key_point_band(marks) == band


class TestBuild:
    """Test prompt and contract construction per kind."""

    def test_notes_is_free_text(self, sample_text):
        prompt = build(GenerationKind.notes(), sample_text, Difficulty.HARD)
        assert prompt.prompt.startswith("MODE: NOTES_GENERATION")
        assert sample_text in prompt.prompt
        assert prompt.system_instruction == SYSTEM_INSTRUCTION
        assert not prompt.contract.is_typed

    def test_mcq_contract(self, sample_text):
        prompt = build(GenerationKind.mcq(), sample_text, Difficulty.EASY)
        assert "MODE: MCQ_GENERATION" in prompt.prompt
        assert "Easy difficulty" in prompt.prompt
        assert prompt.contract.item_model is MCQItem
        assert prompt.contract.json_schema["type"] == "array"
        assert prompt.contract.json_schema["items"]["properties"]["correct_answer"]["enum"] == ["A", "B", "C", "D"]

    def test_descriptive_contract_carries_marks(self, sample_text):
        prompt = build(GenerationKind.descriptive(8), sample_text, Difficulty.MEDIUM)
        assert "8-mark" in prompt.prompt
        assert "7-10 critical key points" in prompt.prompt
        assert "1 mark for intro, 6 marks for points" in prompt.prompt
        assert prompt.contract.item_model is DescriptiveItem
        assert prompt.contract.context == {"marks": 8}
        key_points = prompt.contract.json_schema["items"]["properties"]["key_points"]
        assert (key_points["minItems"], key_points["maxItems"]) == (7, 10)

    def test_tutor_prompts(self):
        chat = build_tutor_prompt(TutorMode.CHAT, "What is entropy?")
        assert chat.prompt == "MODE: CHAT_TUTOR\nUser query: What is entropy?"
        explain = build_tutor_prompt(TutorMode.TEST_EXPLANATION, "Scored 3/10")
        assert explain.prompt.startswith("MODE: TEST_EXPLANATION\nAnalyze this test result:")
        assert not explain.contract.is_typed


class TestMCQContract:
    """Test validation of MCQ bank responses."""

    def _contract(self):
        return build(GenerationKind.mcq(), "content", Difficulty.MEDIUM).contract

    def test_valid_items(self, sample_mcq_items):
        items = self._contract().parse(json.dumps(sample_mcq_items))
        assert len(items) == 3
        assert all(isinstance(item, MCQItem) for item in items)

    def test_wrapped_items_object(self, sample_mcq_items):
        items = self._contract().parse(json.dumps({"items": sample_mcq_items}))
        assert len(items) == 3

    def test_code_fenced_json(self, sample_mcq_items):
        text = "```json\n" + json.dumps(sample_mcq_items) + "\n```"
        assert len(self._contract().parse(text)) == 3

    def test_answer_is_normalized(self, sample_mcq_items):
        sample_mcq_items[0]["correct_answer"] = " b "
        items = self._contract().parse(json.dumps(sample_mcq_items))
        assert items[0].correct_answer == "B"

    def test_answer_outside_labels_is_violation(self, sample_mcq_items):
        """Four options present but the answer label is not one of them."""
        sample_mcq_items[1]["correct_answer"] = "E"
        with pytest.raises(SchemaViolation, match="correct_answer"):
            self._contract().parse(json.dumps(sample_mcq_items))

    def test_missing_option_is_violation(self, sample_mcq_items):
        del sample_mcq_items[0]["options"]["D"]
        with pytest.raises(SchemaViolation):
            self._contract().parse(json.dumps(sample_mcq_items))

    def test_extra_option_is_violation(self, sample_mcq_items):
        sample_mcq_items[0]["options"]["E"] = "Fifth option"
        with pytest.raises(SchemaViolation):
            self._contract().parse(json.dumps(sample_mcq_items))

    def test_not_json(self):
        with pytest.raises(SchemaViolation):
            self._contract().parse("Here are your questions!")

    def test_empty_array(self):
        with pytest.raises(SchemaViolation, match="no items"):
            self._contract().parse("[]")


class TestDescriptiveContract:
    """Test validation of descriptive bank responses."""

    def test_points_within_band(self, descriptive_payload):
        contract = build(GenerationKind.descriptive(5), "content", Difficulty.MEDIUM).contract
        items = contract.parse(descriptive_payload(5, 6))
        assert [len(item.key_points) for item in items] == [6, 6]

    def test_points_below_band(self, descriptive_payload):
        contract = build(GenerationKind.descriptive(5), "content", Difficulty.MEDIUM).contract
        with pytest.raises(SchemaViolation, match="key points"):
            contract.parse(descriptive_payload(5, 3))

    def test_points_above_band(self, descriptive_payload):
        contract = build(GenerationKind.descriptive(2), "content", Difficulty.MEDIUM).contract
        with pytest.raises(SchemaViolation):
            contract.parse(descriptive_payload(2, 4))

    def test_marks_must_match(self, descriptive_payload):
        contract = build(GenerationKind.descriptive(3), "content", Difficulty.MEDIUM).contract
        with pytest.raises(SchemaViolation, match="marks"):
            contract.parse(descriptive_payload(5, 4))


class TestFreeTextContract:
    def test_strips_content(self):
        assert OutputContract.free_text("notes").parse("  ## Notes\n") == "## Notes"

    def test_empty_is_violation(self):
        with pytest.raises(SchemaViolation):
            OutputContract.free_text("notes").parse("   ")

    def test_serialize_items(self, sample_mcq_items):
        contract = build(GenerationKind.mcq(), "content", Difficulty.MEDIUM).contract
        content = contract.serialize(contract.parse(json.dumps(sample_mcq_items)))
        assert json.loads(content) == sample_mcq_items

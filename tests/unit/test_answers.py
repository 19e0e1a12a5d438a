"""Unit tests for answer formatting."""

import copy

from flow.answers import coerce_answers, first_answer, format_answers_for_json
from models.estimate_flow import AnswerEntry


class TestFormatAnswersForJson:
    """Tests for format_answers_for_json."""

    def test_empty_state(self):
        assert format_answers_for_json({}) == {}

    def test_none_state(self):
        assert format_answers_for_json(None) == {}

    def test_preserves_keys_and_fields(self, sample_answers):
        formatted = format_answers_for_json(sample_answers)

        assert set(formatted) == {"roofing"}
        assert set(formatted["roofing"]) == {"Q1", "Q2"}
        assert formatted["roofing"]["Q2"] == sample_answers["roofing"]["Q2"]

    def test_does_not_mutate_input(self, sample_answers):
        before = copy.deepcopy(sample_answers)

        formatted = format_answers_for_json(sample_answers)
        formatted["roofing"]["Q2"]["answers"].append("Ceiling")

        assert sample_answers == before

    def test_drops_extra_fields(self):
        answers = {"painting": {"Q1": {
            "question": "Interior or exterior?",
            "type": "single_choice",
            "answers": ["Interior"],
            "options": ["Interior", "Exterior"],
            "ui_hint": "radio",
        }}}

        formatted = format_answers_for_json(answers)

        assert set(formatted["painting"]["Q1"]) == {"question", "type", "answers", "options"}

    def test_accepts_models(self):
        answers = {"roofing": {"Q1": AnswerEntry(
            question="What kind of roof?",
            type="single_choice",
            answers=["Metal"],
            options=["Metal", "Tile"],
        )}}

        formatted = format_answers_for_json(answers)

        assert formatted == {"roofing": {"Q1": {
            "question": "What kind of roof?",
            "type": "single_choice",
            "answers": ["Metal"],
            "options": ["Metal", "Tile"],
        }}}

    def test_empty_category(self):
        assert format_answers_for_json({"roofing": None, "painting": {}}) == {
            "roofing": {},
            "painting": {},
        }


class TestAnswerHelpers:

    def test_first_answer(self, sample_answers):
        assert first_answer(sample_answers, "roofing") == "Asphalt shingle"
        assert first_answer(sample_answers, "roofing", "Q2") == "Attic"

    def test_first_answer_missing(self, sample_answers):
        assert first_answer(sample_answers, None) is None
        assert first_answer(sample_answers, "painting") is None
        assert first_answer({"roofing": {"Q1": {"answers": []}}}, "roofing") is None

    def test_coerce_answers(self, sample_answers):
        coerced = coerce_answers(sample_answers)

        assert isinstance(coerced["roofing"]["Q1"], AnswerEntry)
        assert coerced["roofing"]["Q2"].answers == ["Attic", "Chimney"]

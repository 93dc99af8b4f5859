"""
Unit tests for the Finalizer and feedback normalization.
"""

import json

import pytest

from conftest import FakeGemini
from voice_interview.app.finalizer import (
    DEFAULT_MARK,
    FALLBACK_MARK,
    Finalizer,
    clamp_mark,
    normalize_feedback,
    parse_feedback,
    render_conversation,
    strip_code_fences,
)
from voice_interview.core.domain.models import FinalFeedback, Role, Turn
from voice_interview.core.exceptions import LLMResponseError


FEEDBACK_FIELDS = {
    "overall_analysis",
    "notable_strengths",
    "areas_for_improvement",
    "overall_mark",
    "marks_cutdown_points",
    "final_tip",
}


@pytest.fixture
def transcript():
    return [
        Turn(Role.AI, "Tell me about yourself."),
        Turn(Role.USER, "I am a backend engineer."),
    ]


def assert_complete(feedback: FinalFeedback):
    data = feedback.to_dict()
    assert set(data) == FEEDBACK_FIELDS
    assert isinstance(data["overall_mark"], int)
    assert 0 <= data["overall_mark"] <= 100


class TestClampMark:
    """Tests for mark coercion."""

    @pytest.mark.parametrize("value,expected", [
        (82, 82),
        (82.7, 82),
        (0, 0),
        (100, 100),
        (150, 100),
        (-5, 0),
        (float("inf"), 100),
    ])
    def test_numeric(self, value, expected):
        assert clamp_mark(value) == expected

    @pytest.mark.parametrize("value", [None, "85", True, [], {}, float("nan")])
    def test_non_numeric_gets_default(self, value):
        assert clamp_mark(value) == DEFAULT_MARK


class TestParseFeedback:
    """Tests for turning model text into a FinalFeedback."""

    def test_full_object(self):
        text = json.dumps({
            "overall_analysis": "Solid.",
            "notable_strengths": ["APIs"],
            "areas_for_improvement": ["Testing"],
            "overall_mark": 78,
            "marks_cutdown_points": ["No metrics"],
            "final_tip": "Quantify impact.",
        })

        feedback = parse_feedback(text)

        assert feedback.overall_analysis == "Solid."
        assert feedback.notable_strengths == ["APIs"]
        assert feedback.overall_mark == 78
        assert feedback.final_tip == "Quantify impact."

    def test_code_fences_stripped(self):
        text = '```json\n{"overall_mark": 91, "final_tip": "Keep going"}\n```'

        feedback = parse_feedback(text)

        assert feedback.overall_mark == 91
        assert feedback.final_tip == "Keep going"

    def test_missing_fields_defaulted(self):
        feedback = parse_feedback('{"overall_analysis": "Short."}')

        assert_complete(feedback)
        assert feedback.overall_analysis == "Short."
        assert feedback.notable_strengths == ["Communication skills"]
        assert feedback.overall_mark == DEFAULT_MARK

    def test_out_of_range_mark_clamped(self):
        assert parse_feedback('{"overall_mark": 250}').overall_mark == 100

    def test_unparseable_text_defaults_every_field(self):
        feedback = parse_feedback("The candidate did fine overall.")

        assert_complete(feedback)
        assert feedback.overall_mark == DEFAULT_MARK

    def test_non_object_json_defaults(self):
        assert_complete(normalize_feedback(["not", "an", "object"]))

    def test_list_items_stringified(self):
        feedback = normalize_feedback({"notable_strengths": [1, "two"]})
        assert feedback.notable_strengths == ["1", "two"]


class TestHelpers:
    """Tests for prompt rendering helpers."""

    def test_render_conversation(self, transcript):
        assert render_conversation(transcript) == "AI: Tell me about yourself.\nUSER: I am a backend engineer."

    def test_strip_code_fences_without_fences(self):
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestGenerateFeedback:
    """Tests for the Finalizer model call."""

    @pytest.mark.asyncio
    async def test_uses_feedback_model_and_prompt(self, transcript):
        gemini = FakeGemini(['{"overall_mark": 88}'])

        feedback = await Finalizer(gemini).generate_feedback("Jane resume", transcript)

        assert feedback.overall_mark == 88
        call = gemini.calls[0]
        assert call["model_name"] == "gemini-2.0-flash"
        assert "USER: I am a backend engineer." in call["contents"]
        assert "Jane resume" in call["contents"]
        assert "JSON" in call["system_instruction"]

    @pytest.mark.asyncio
    async def test_call_failure_returns_fallback(self, transcript):
        gemini = FakeGemini([LLMResponseError("Unexpected AI response format")])

        feedback = await Finalizer(gemini).generate_feedback("resume", transcript)

        assert_complete(feedback)
        assert feedback.overall_mark == FALLBACK_MARK

    @pytest.mark.asyncio
    async def test_garbage_reply_still_complete(self, transcript):
        gemini = FakeGemini(["<html>oops</html>"])

        feedback = await Finalizer(gemini).generate_feedback("resume", transcript)

        assert_complete(feedback)
        assert feedback.overall_mark == DEFAULT_MARK

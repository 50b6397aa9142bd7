"""
Tests for the staged decode pipeline.
"""

import json

import pytest

from quizparse.config import get_settings
from quizparse.decoding import (
    DecodeOptions,
    DecodeResult,
    DecodeStage,
    StructuredOutputDecoder,
    decode,
    decode_as,
    decode_or_fallback,
    decode_strict,
    decode_with_trace,
    is_synthesized,
)
from quizparse.models import ConceptAnalysis, QuizQuestionSet, ShapeHint
from quizparse.utils.errors import NoStructuredContentError, ShapeValidationError


VALID_DOCUMENTS = [
    '{"a": 1}',
    "[1, 2, 3]",
    '"text"',
    "42",
    "true",
    "null",
    '{"nested": {"url": "http://x.com:8080/a", "time": "12:30"}}',
    '[{"q": "a, b: c"}]',
    '{"content": "x"}',
    '{"content": "Summary: fine"}',
    '{"content": "42"}',
    '{"content": ""}',
]

HOSTILE_INPUTS = [
    "",
    "\x00\x01\xff\xfe",
    "{" * 5000,
    "}" * 5000,
    "[" * 5000 + "]" * 5000,
    "a" * 200_000,
    '"' * 1001,
    "}{" * 1000,
    "```",
    "```json\n```",
    "Content: Content: Content:",
    "\\" * 99,
]


class TestScenarios:
    """Test the canonical decode scenarios."""

    def test_fenced_object(self):
        result = decode_with_trace('```json\n{"a":1}\n```')

        assert result.value == {"a": 1}
        assert result.stage == DecodeStage.NORMALIZED

    def test_doubled_prefix_and_trailing_comma(self):
        result = decode_with_trace('Content: Response: {"a":1,}')

        assert result.value == {"a": 1}
        assert result.stage == DecodeStage.REPAIRED

    def test_prefix_bare_keys_and_single_quotes(self):
        assert decode("Here is the JSON: {a: 1, b: 'x'}") == {"a": 1, "b": "x"}

    def test_envelope_with_fenced_payload(self):
        raw = json.dumps([{"generated_text": '```json\n{"keyConcepts": []}\n```'}])

        assert decode(raw) == {"keyConcepts": []}

    def test_empty_input_is_absent(self):
        result = decode_with_trace("")

        assert decode("") is None
        assert result == DecodeResult.absent()
        assert not result.found

    def test_truncated_object(self):
        result = decode_with_trace('{"a": 1')

        assert result.value == {"a": 1}
        assert result.stage == DecodeStage.REPAIRED


class TestAbsence:
    """Test the "no content" outcomes."""

    @pytest.mark.parametrize("text", ["[]", "  []  ", "   ", "```json\n[]\n```", None, 123])
    def test_empty_sentinels(self, text):
        assert not decode_with_trace(text).found

    def test_envelope_with_empty_text(self):
        assert not decode_with_trace(json.dumps([{"generated_text": ""}])).found
        assert not decode_with_trace(json.dumps([{"generated_text": "[]"}])).found

    def test_prose_is_absent(self):
        assert decode_with_trace("I could not generate any questions, sorry.").found is False

    def test_decoded_null_differs_from_absence(self):
        result = decode_with_trace("null")

        assert result.found
        assert result.value is None
        assert result.stage == DecodeStage.DIRECT


class TestEnvelopes:
    """Test inference envelopes seen by the pipeline."""

    def test_envelope_with_prose_is_returned_as_is(self):
        value = [{"generated_text": "Sorry, I cannot help with that."}]

        assert decode(json.dumps(value)) == value

    def test_envelope_behind_label(self):
        raw = "Response: " + json.dumps({"generated_text": '{"a": 1}'})

        assert decode(raw) == {"a": 1}

    def test_unwrap_can_be_disabled(self):
        value = [{"generated_text": "[1, 2]"}]
        options = DecodeOptions(unwrap_envelope=False)

        assert decode(json.dumps(value), options=options) == value

    def test_captured_envelope(self, captured_responses):
        assert decode(captured_responses["envelope"]) == {"overallScore": 8, "questionEvaluations": []}

    def test_labelled_lines_in_envelope_are_not_reconstructed(self):
        value = {"generated_text": "Score: 7"}

        result = decode_with_trace(json.dumps(value))

        assert result.value == value
        assert result.stage == DecodeStage.DIRECT

    def test_scalar_in_envelope_keeps_envelope(self):
        value = [{"generated_text": "42"}]

        assert decode(json.dumps(value)) == value


class TestExtraction:
    """Test payloads surrounded by prose."""

    def test_object_in_chatty_response(self, captured_responses):
        result = decode_with_trace(captured_responses["chatty"])

        assert result.value == {"keyConcepts": []}
        assert result.stage == DecodeStage.EXTRACTED

    def test_object_preferred_over_enclosing_array(self):
        text = 'Here are your questions:\n[{"question": "What is 2+2?"}]\nGood luck!'

        assert decode(text) == {"question": "What is 2+2?"}

    def test_array_preferred_when_configured(self):
        text = 'Here are your questions:\n[{"question": "What is 2+2?"}]\nGood luck!'
        options = DecodeOptions(prefer_object=False)

        assert decode(text, options=options) == [{"question": "What is 2+2?"}]

    def test_truncated_payload_after_prose(self):
        assert decode('Here you go: {"a": 1, "b": [1, 2') == {"a": 1, "b": [1, 2]}

    def test_pretty_printed_bare_keys_named_like_labels(self):
        text = 'Result: {\n  summary: "x",\n  score: 1\n}'

        assert decode(text) == {"summary": "x", "score": 1}


class TestFlatReconstruction:
    """Test the labelled-lines heuristic as the last stage."""

    def test_labelled_lines(self):
        result = decode_with_trace("Title: Photosynthesis\nDifficulty: basic")

        assert result.value == {"Title": "Photosynthesis", "Difficulty": "basic"}
        assert result.stage == DecodeStage.FLAT
        assert result.heuristic

    def test_flat_can_be_disabled(self):
        options = DecodeOptions(flat=False)

        assert decode("Title: Photosynthesis", options=options) is None


class TestProperties:
    """Test properties that hold across inputs."""

    @pytest.mark.parametrize("text", VALID_DOCUMENTS)
    def test_valid_json_matches_standard_parse(self, text):
        assert decode(text) == json.loads(text)

    @pytest.mark.parametrize("text", VALID_DOCUMENTS)
    def test_fenced_matches_inner(self, text):
        assert decode(f"```json\n{text}\n```") == decode(text)

    @pytest.mark.parametrize(
        "text",
        VALID_DOCUMENTS + ["Content: Response: {\"a\":1,}", "{a: 1", "Title: x", "prose only"],
    )
    def test_idempotent(self, text):
        assert decode_with_trace(text) == decode_with_trace(text)

    @pytest.mark.parametrize("text", HOSTILE_INPUTS)
    def test_never_raises(self, text):
        result = decode_with_trace(text)

        assert isinstance(result, DecodeResult)


class TestOptions:
    """Test stage selection."""

    def test_minimal_still_strips_fences(self):
        assert decode('```json\n{"a": 1}\n```', options=DecodeOptions.minimal()) == {"a": 1}

    def test_minimal_skips_repair(self):
        assert decode('{"a": 1,}', options=DecodeOptions.minimal()) is None

    def test_extraction_without_repair(self):
        options = DecodeOptions(repair=False)

        assert decode('Sure: {"a": 1} done', options=options) == {"a": 1}

    def test_options_from_settings(self, monkeypatch):
        monkeypatch.setenv("QUIZPARSE_ENABLE_FLAT", "false")
        monkeypatch.setenv("QUIZPARSE_PREFER_OBJECT", "no")

        options = DecodeOptions.from_settings(get_settings())

        assert options.flat is False
        assert options.prefer_object is False
        assert options.repair is True


class TestStrictAndShapes:
    """Test the raising and model-validating entry points."""

    def test_decode_strict_returns_value(self):
        assert decode_strict('{"a": 1}') == {"a": 1}

    def test_decode_strict_raises_with_bounded_preview(self):
        with pytest.raises(NoStructuredContentError) as exc_info:
            decode_strict("x" * 500)

        assert exc_info.value.details["length"] == 500
        assert len(exc_info.value.details["preview"]) == 203

    def test_decode_as_model(self):
        text = '```json\n{"keyConcepts": [{"concept": "Cells"}], "estimatedTime": 20}\n```'

        analysis = decode_as(text, ConceptAnalysis)

        assert analysis.key_concepts[0].concept == "Cells"
        assert analysis.estimated_time == 20

    def test_decode_as_wrong_shape(self):
        assert decode_as('{"questions": "not a list"}', QuizQuestionSet) is None

    def test_decode_as_wrong_shape_strict(self):
        with pytest.raises(ShapeValidationError) as exc_info:
            decode_as('{"questions": "not a list"}', QuizQuestionSet, strict=True)

        assert exc_info.value.details["shape"] == "QuizQuestionSet"
        assert exc_info.value.details["errors"]

    def test_decode_as_absent_strict(self):
        with pytest.raises(NoStructuredContentError):
            decode_as("", ConceptAnalysis, strict=True)


class TestFallback:
    """Test the explicit fallback entry point."""

    def test_decoded_value_is_not_replaced(self):
        result = decode_or_fallback('{"keyConcepts": []}')

        assert result.stage == DecodeStage.DIRECT
        assert not result.synthesized

    def test_placeholder_when_nothing_decodes(self):
        result = decode_or_fallback('{"keyConcepts": [{"concept": "Cells", "desc')

        assert result.found
        assert result.synthesized
        assert result.stage == DecodeStage.FALLBACK
        assert is_synthesized(result.value)
        assert "keyConcepts" in result.value

    def test_explicit_hint_and_topic(self):
        result = decode_or_fallback("", hint=ShapeHint.PROMPT_SPEC, topic="Cells")

        assert result.value["prompt"] == "Generate quiz questions about Cells."

    def test_pipeline_alone_never_synthesizes(self):
        decoder = StructuredOutputDecoder()

        assert decoder.decode('{"keyConcepts": [{"concept": "Cells", "desc') is None

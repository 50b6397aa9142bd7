"""
Tests for the command-line interface.
"""

import json
import logging

import pytest
from typer.testing import CliRunner

from quizparse.cli import app


@pytest.fixture
def runner():
    yield CliRunner()
    # The CLI callback installs handlers on the root logger
    for handler in logging.getLogger().handlers[:]:
        logging.getLogger().removeHandler(handler)


class TestDecodeCommand:
    """Test `quizparse decode`."""

    def test_decode_file(self, runner, tmp_path):
        source = tmp_path / "response.txt"
        source.write_text('```json\n{"a": 1}\n```', encoding="utf-8")

        result = runner.invoke(app, ["decode", str(source)])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"a": 1}

    def test_decode_stdin(self, runner):
        result = runner.invoke(app, ["decode"], input='Content: Response: {"a": 1,}')

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"a": 1}

    def test_nothing_decoded(self, runner):
        result = runner.invoke(app, ["decode"], input="")

        assert result.exit_code == 1

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(app, ["decode", str(tmp_path / "missing.txt")])

        assert result.exit_code == 1

    def test_fallback(self, runner):
        result = runner.invoke(
            app,
            ["decode", "--fallback", "--hint", "quiz_questions", "--topic", "Cells"],
            input="",
        )

        assert result.exit_code == 0
        assert '"_synthesized": true' in result.stdout
        assert '"questions"' in result.stdout

    def test_stage_switches(self, runner):
        result = runner.invoke(app, ["decode", "--no-repair", "--no-extract", "--no-flat"], input='{"a": 1,}')

        assert result.exit_code == 1

    def test_invalid_configuration(self, runner, monkeypatch):
        monkeypatch.setenv("QUIZPARSE_ENABLE_REPAIR", "sometimes")

        result = runner.invoke(app, ["decode"], input='{"a": 1}')

        assert result.exit_code == 2


class TestValidateOption:
    """Test `quizparse decode --validate`."""

    def test_hinted_shape(self, runner):
        result = runner.invoke(
            app,
            ["decode", "--validate", "--hint", "quiz_questions"],
            input='{"questions": [{"question": "What is ATP?"}]}',
        )

        assert result.exit_code == 0
        question = json.loads(result.stdout)["questions"][0]
        assert question["question"] == "What is ATP?"
        assert question["options"] == []

    def test_value_not_matching_shape(self, runner):
        result = runner.invoke(
            app,
            ["decode", "--validate", "--hint", "quiz_questions"],
            input='{"questions": "nope"}',
        )

        assert result.exit_code == 1

    def test_inferred_shape(self, runner):
        result = runner.invoke(app, ["decode", "--validate"], input='{"keyConcepts": []}')

        assert result.exit_code == 0
        assert json.loads(result.stdout)["difficulty"] == "intermediate"

    def test_unknown_shape(self, runner):
        result = runner.invoke(app, ["decode", "--validate"], input='{"a": 1}')

        assert result.exit_code == 1


class TestTextCommands:
    """Test the commands that print intermediate text."""

    def test_repair(self, runner):
        result = runner.invoke(app, ["repair"], input="{a: 1, b: 'x',}")

        assert result.exit_code == 0
        assert result.stdout.strip() == '{"a": 1, "b": "x"}'

    def test_normalize(self, runner):
        raw = json.dumps([{"generated_text": '```json\n{"a": 1}\n```'}])

        result = runner.invoke(app, ["normalize"], input=raw)

        assert result.exit_code == 0
        assert result.stdout.strip() == '{"a": 1}'

    def test_hint(self, runner):
        result = runner.invoke(app, ["hint"], input='{"keyConcepts": [')

        assert result.exit_code == 0
        assert result.stdout.strip() == "concept_analysis"

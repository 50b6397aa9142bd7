"""
Shared fixtures for the quizparse test suite.
"""

import json
import os

import pytest

from quizparse.config import reset_settings


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Run every test against default settings, ignoring the caller's environment."""
    for name in list(os.environ):
        if name.startswith("QUIZPARSE_"):
            monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def captured_responses():
    """Responses shaped like the ones the quiz agents get back from models."""
    return {
        "fenced": '```json\n{"keyConcepts": [{"concept": "Photosynthesis"}]}\n```',
        "prefixed": 'Content: Response: {"questions": [{"question": "What is ATP?"}],}',
        "envelope": json.dumps(
            [{"generated_text": '```json\n{"overallScore": 8, "questionEvaluations": []}\n```'}]
        ),
        "truncated": '{"prompt": "Generate five questions", "metadata": {"promptVersion": 1',
        "chatty": 'Sure! Here is what you asked for.\n{"keyConcepts": []}\nLet me know if you need more.',
    }

"""
quizparse

Resilient decoding of structured output from language models for the quiz
generation and evaluation agents.
"""

__version__ = "0.1.0"

from .decoding import (
    DecodeOptions,
    DecodeResult,
    DecodeStage,
    StructuredOutputDecoder,
    decode,
    decode_as,
    decode_or_fallback,
    decode_strict,
    decode_with_trace,
    synthesize_fallback,
)
from .models import (
    ConceptAnalysis,
    EvaluationReport,
    PromptSpec,
    QuizQuestionSet,
    ShapeHint,
)

__all__ = [
    "ConceptAnalysis",
    "DecodeOptions",
    "DecodeResult",
    "DecodeStage",
    "EvaluationReport",
    "PromptSpec",
    "QuizQuestionSet",
    "ShapeHint",
    "StructuredOutputDecoder",
    "decode",
    "decode_as",
    "decode_or_fallback",
    "decode_strict",
    "decode_with_trace",
    "synthesize_fallback",
]

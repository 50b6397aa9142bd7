"""
Fallback synthesizer: clearly-marked placeholders for callers that must
have a value even when nothing could be decoded.

The decode pipeline never calls into this module on its own. Callers opt in
explicitly (``synthesize_fallback`` or ``decode_or_fallback``), so "decoded",
"absent" and "placeholder" stay three separately observable outcomes.

Every placeholder carries ``SYNTHESIZED_KEY: True`` and a ``NOTE_KEY``
explaining why it exists; ``is_synthesized`` checks for the marker.
"""

from typing import Any, Dict, Optional, Tuple

from quizparse.models import (
    ConceptAnalysis,
    Difficulty,
    EvaluationFeedback,
    EvaluationReport,
    KeyConcept,
    PromptMetadata,
    PromptSpec,
    QuizQuestion,
    QuizQuestionSet,
    ShapeHint,
)
from quizparse.utils.logging import get_logger

logger = get_logger(__name__)

SYNTHESIZED_KEY = "_synthesized"
NOTE_KEY = "_note"
SHAPE_KEY = "_shape"

UNKNOWN_CONTENT_CHARS = 100

# Checked in order: the evaluation markers go before "questions" because an
# evaluation report routinely talks about the questions it grades.
SHAPE_MARKERS: Tuple[Tuple[ShapeHint, Tuple[str, ...]], ...] = (
    (ShapeHint.CONCEPT_ANALYSIS, ("keyConcepts", "key_concepts")),
    (ShapeHint.EVALUATION_REPORT, ("questionEvaluations", "overallScore", "question_evaluations", "overall_score")),
    (ShapeHint.QUIZ_QUESTIONS, ("questions",)),
    (ShapeHint.PROMPT_SPEC, ("prompt",)),
)


def infer_shape_hint(text: Any) -> ShapeHint:
    """Guess the expected shape from marker substrings in the raw text."""
    if not isinstance(text, str) or not text:
        return ShapeHint.UNKNOWN
    for hint, markers in SHAPE_MARKERS:
        if any(marker in text for marker in markers):
            return hint
    return ShapeHint.UNKNOWN


def _mark(payload: Dict[str, Any], hint: ShapeHint, note: str) -> Dict[str, Any]:
    payload[SYNTHESIZED_KEY] = True
    payload[NOTE_KEY] = note
    payload[SHAPE_KEY] = hint.value
    return payload


def _concept_analysis(topic: Optional[str]) -> Dict[str, Any]:
    if topic:
        words = topic.split()
        main_topic = " ".join(words[:2])
        concept = KeyConcept(
            concept=topic,
            description=f"The main topic covering {main_topic} concepts and applications.",
        )
        key_areas = [topic]
    else:
        concept = KeyConcept(
            concept="Extracted from incomplete JSON",
            description="The original JSON was incomplete and could not be parsed.",
        )
        key_areas = []
    analysis = ConceptAnalysis(
        key_concepts=[concept],
        suggested_topics=[],
        difficulty=Difficulty.INTERMEDIATE.value,
        estimated_time=30,
        key_areas=key_areas,
    )
    return analysis.to_payload()


def _quiz_questions(topic: Optional[str]) -> Dict[str, Any]:
    subject = f"'{topic}'" if topic else "the material"
    question = QuizQuestion(
        type="multipleChoice",
        difficulty=Difficulty.BASIC.value,
        question=f"What is the main topic being discussed in {subject}?",
        options=["Option A", "Option B", "Option C", "Option D"],
        correct_answer=0,
        explanation="This is a placeholder question due to JSON parsing error.",
    )
    return QuizQuestionSet(questions=[question]).to_payload()


def _evaluation_report(topic: Optional[str]) -> Dict[str, Any]:
    report = EvaluationReport(
        overall_score=0.0,
        feedback=EvaluationFeedback(
            strengths=[],
            weaknesses=["Evaluation output could not be parsed."],
            suggestions=["Re-run the evaluation."],
        ),
        question_evaluations=[],
        metadata={"criteriaUsed": [], "suggestedImprovements": []},
    )
    return report.to_payload()


def _prompt_spec(topic: Optional[str]) -> Dict[str, Any]:
    subject = topic or "the requested topic"
    prompt_spec = PromptSpec(
        prompt=f"Generate quiz questions about {subject}.",
        metadata=PromptMetadata(
            topic_complexity=Difficulty.INTERMEDIATE.value,
            estimated_question_count=0,
            prompt_version=1,
        ),
    )
    return prompt_spec.to_payload()


_BUILDERS = {
    ShapeHint.CONCEPT_ANALYSIS: _concept_analysis,
    ShapeHint.QUIZ_QUESTIONS: _quiz_questions,
    ShapeHint.EVALUATION_REPORT: _evaluation_report,
    ShapeHint.PROMPT_SPEC: _prompt_spec,
}


def synthesize_fallback(
    text: Any,
    hint: Optional[ShapeHint] = None,
    topic: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a minimal, structurally valid placeholder.

    Args:
        text: Raw model text that could not be decoded
        hint: Expected shape; inferred from ``text`` when omitted
        topic: Optional topic name woven into the placeholder content

    Returns:
        A marked placeholder dict for the hinted shape
    """
    if hint is None:
        hint = infer_shape_hint(text)

    builder = _BUILDERS.get(hint)
    if builder is None:
        content = text[:UNKNOWN_CONTENT_CHARS] if isinstance(text, str) else ""
        payload = {"error": "JSON parsing failed", "content": content}
    else:
        payload = builder(topic)

    logger.info(f"Synthesized {hint.value} placeholder")
    return _mark(payload, hint, f"Placeholder synthesized because no {hint.value} could be decoded.")


def is_synthesized(value: Any) -> bool:
    """True for placeholders produced by ``synthesize_fallback``."""
    return isinstance(value, dict) and value.get(SYNTHESIZED_KEY) is True

"""
Shape models for decoded model output.

These are the caller-side shapes the quiz system asks language models to
produce. Field names follow the camelCase keys the prompts request; the
models accept extra keys and default every field, because only structural
validity is checked here, never business-level completeness.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# Enums
# =============================================================================


class ShapeHint(str, Enum):
    """Expected payload shape, inferred from marker substrings."""

    CONCEPT_ANALYSIS = "concept_analysis"
    QUIZ_QUESTIONS = "quiz_questions"
    EVALUATION_REPORT = "evaluation_report"
    PROMPT_SPEC = "prompt_spec"
    UNKNOWN = "unknown"


class Difficulty(str, Enum):
    """Difficulty labels used across shapes."""

    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# =============================================================================
# Base Model
# =============================================================================


class ShapeModel(BaseModel):
    """Base model: camelCase aliases, populate by name, extra keys kept."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_payload(self) -> Dict[str, Any]:
        """Dump using the camelCase keys the model output uses."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Concept Analysis
# =============================================================================


class KeyConcept(ShapeModel):
    """A concept identified by the context analyzer."""

    concept: str = ""
    description: str = ""
    relationships: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


class ConceptAnalysis(ShapeModel):
    """Context-analysis output."""

    key_concepts: List[KeyConcept] = Field(default_factory=list)
    suggested_topics: List[str] = Field(default_factory=list)
    difficulty: str = Difficulty.INTERMEDIATE.value
    estimated_time: Optional[int] = None
    key_areas: List[str] = Field(default_factory=list)


# =============================================================================
# Quiz Questions
# =============================================================================


class QuizQuestion(ShapeModel):
    """One generated quiz question."""

    type: str = "multipleChoice"
    difficulty: str = Difficulty.BASIC.value
    question: str = ""
    options: List[str] = Field(default_factory=list)
    correct_answer: Optional[Union[int, str]] = None
    explanation: str = ""


class QuizQuestionSet(ShapeModel):
    """Quiz-generation output."""

    questions: List[QuizQuestion] = Field(default_factory=list)


# =============================================================================
# Evaluation Report
# =============================================================================


class EvaluationFeedback(ShapeModel):
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class QuestionEvaluation(ShapeModel):
    question_id: str = ""
    score: float = 0.0
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class EvaluationReport(ShapeModel):
    """Quiz-evaluator output."""

    overall_score: float = 0.0
    feedback: EvaluationFeedback = Field(default_factory=EvaluationFeedback)
    question_evaluations: List[QuestionEvaluation] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Prompt Builder Output
# =============================================================================


class PromptMetadata(ShapeModel):
    topic_complexity: str = Difficulty.INTERMEDIATE.value
    estimated_question_count: int = 0
    suggested_time_limit: Optional[int] = None
    prompt_version: int = 1


class PromptSpec(ShapeModel):
    """Prompt-builder output."""

    prompt: str = ""
    metadata: PromptMetadata = Field(default_factory=PromptMetadata)


SHAPE_MODELS = {
    ShapeHint.CONCEPT_ANALYSIS: ConceptAnalysis,
    ShapeHint.QUIZ_QUESTIONS: QuizQuestionSet,
    ShapeHint.EVALUATION_REPORT: EvaluationReport,
    ShapeHint.PROMPT_SPEC: PromptSpec,
}

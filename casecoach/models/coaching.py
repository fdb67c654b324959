"""Request and response models for the coaching operations.

Field names follow the camelCase JSON contract of the web client; Python
code uses the snake_case attributes. Response models double as the schema
the model output is validated against before it reaches a caller.
"""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Shared pieces
# =============================================================================


class QuestionAnswer(CamelModel):
    question: str
    answer: str = ""


class Suggestion(CamelModel):
    title: str
    detail: str = ""


# =============================================================================
# Framework evaluation
# =============================================================================


class EvaluationScores(CamelModel):
    """Rubric scores on a 0-5 scale (overall is the dimension average)"""

    overall: float = Field(ge=0, le=5)
    mece: float = Field(ge=0, le=5)
    case_fit: float = Field(ge=0, le=5)
    hypothesis_and_prioritization: float = Field(ge=0, le=5)
    depth: float = Field(ge=0, le=5)
    clarifying_questions: float = Field(ge=0, le=5)
    delivery: float = Field(ge=0, le=5)


class EvaluationFeedback(CamelModel):
    mece_comment: str
    case_fit_comment: str
    hypothesis_and_prioritization_comment: str
    depth_comment: str
    clarifying_questions_comment: str
    delivery_comment: str
    suggestions: List[Suggestion] = Field(default_factory=list)
    top_strength: str
    top_improvement: str


class EvaluationResult(CamelModel):
    scores: EvaluationScores
    feedback: EvaluationFeedback


class PreviousAttempt(CamelModel):
    """Summary of an earlier session on the same case"""

    scores: EvaluationScores
    feedback: EvaluationFeedback


class EvaluateRequest(CamelModel):
    case_prompt: str = Field(min_length=1)
    transcript: str = Field(min_length=1)
    framework_time: float = 0
    presentation_time: float = 0
    showed_transcript: bool = False
    clarifying_questions_viewed: List[Any] = Field(default_factory=list)
    clarifying_questions_asked: List[QuestionAnswer] = Field(default_factory=list)
    total_clarifying_questions: int = 0
    previous_attempt: Optional[PreviousAttempt] = None


# =============================================================================
# Clarifying-question coaching
# =============================================================================


class QuestionEvaluation(CamelModel):
    question: str
    rating: Literal["strong", "weak", "redundant"]
    feedback: str


class CoachQuestionsResult(CamelModel):
    evaluations: List[QuestionEvaluation]
    top_questions: List[str]
    coach_note: str


class CoachQuestionsRequest(CamelModel):
    case_prompt: str = Field(min_length=1)
    case_title: Optional[str] = None
    case_category: Optional[str] = None
    user_questions: List[str]

    @field_validator("user_questions")
    @classmethod
    def drop_blank_questions(cls, v: List[str]) -> List[str]:
        questions = [q for q in v if q.strip()]
        if not questions:
            raise ValueError("No questions provided")
        return questions


# =============================================================================
# Hypothesis drill
# =============================================================================


class HypothesisResult(CamelModel):
    score: float = Field(ge=0, le=5)
    comment: str
    suggestions: List[str] = Field(default_factory=list)


class HypothesisRequest(CamelModel):
    case_prompt: str = Field(min_length=1)
    hypothesis_transcript: str = Field(min_length=1)


# =============================================================================
# Interviewer answers to clarifying questions
# =============================================================================


class ClarifyResult(CamelModel):
    answer: str = Field(min_length=1)


class ClarifyRequest(CamelModel):
    case_prompt: str = Field(min_length=1)
    question: str = Field(min_length=1)
    previous_questions: List[QuestionAnswer] = Field(default_factory=list)


# =============================================================================
# Speech-to-text
# =============================================================================


class TranscriptionResult(CamelModel):
    transcript: str

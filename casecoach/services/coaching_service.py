"""
Coaching operations.

Requests arrive as validated models. Each operation builds its prompt,
picks its cascade policy and hands the rest to LLMService.
"""

from typing import Optional

import structlog

from casecoach.models.coaching import (
    ClarifyRequest,
    ClarifyResult,
    CoachQuestionsRequest,
    CoachQuestionsResult,
    EvaluateRequest,
    EvaluationResult,
    HypothesisRequest,
    HypothesisResult,
)
from casecoach.models.config import AppConfig
from casecoach.services.cache_service import make_cache_key, normalize_question
from casecoach.services.llm.prompt_builder import (
    COACH_SYSTEM_PROMPT,
    EVALUATOR_SYSTEM_PROMPT,
    INTERVIEWER_SYSTEM_PROMPT,
    PromptBuilder,
)
from casecoach.services.llm.service import LLMService

logger = structlog.get_logger()


def _plain_text_answer(text: str) -> ClarifyResult:
    return ClarifyResult(answer=text.strip())


class CoachingService:
    """Framework evaluation, question coaching, hypothesis drills and
    interviewer answers."""

    def __init__(
        self,
        llm_service: LLMService,
        config: AppConfig,
        prompt_builder: Optional[PromptBuilder] = None,
    ):
        self.llm = llm_service
        self.config = config
        self.prompts = prompt_builder or PromptBuilder()

    async def evaluate(self, request: EvaluateRequest) -> EvaluationResult:
        """Score a spoken framework against the rubric."""
        logger.info(
            "evaluation_requested",
            transcript_chars=len(request.transcript),
            retry=request.previous_attempt is not None,
        )
        return await self.llm.generate(
            self.config.policy("evaluate"),
            self.prompts.build_evaluation(request),
            EvaluationResult,
            system_prompt=EVALUATOR_SYSTEM_PROMPT,
        )

    async def coach_questions(
        self, request: CoachQuestionsRequest
    ) -> CoachQuestionsResult:
        """Rate the candidate's clarifying questions."""
        logger.info("question_coaching_requested", questions=len(request.user_questions))
        return await self.llm.generate(
            self.config.policy("coach_questions"),
            self.prompts.build_coach_questions(request),
            CoachQuestionsResult,
            system_prompt=COACH_SYSTEM_PROMPT,
        )

    async def evaluate_hypothesis(self, request: HypothesisRequest) -> HypothesisResult:
        """Score a hypothesis drill."""
        return await self.llm.generate(
            self.config.policy("evaluate_hypothesis"),
            self.prompts.build_hypothesis(request),
            HypothesisResult,
            system_prompt=EVALUATOR_SYSTEM_PROMPT,
        )

    async def clarify(self, request: ClarifyRequest) -> ClarifyResult:
        """Answer a clarifying question in the interviewer's voice.

        Answers are cached per case and normalized question, but only for
        the first question of a session: later answers depend on the
        earlier exchange.
        """
        cache_key = None
        if not request.previous_questions:
            cache_key = make_cache_key(
                "clarify", request.case_prompt.strip(), normalize_question(request.question)
            )

        return await self.llm.generate(
            self.config.policy("clarify"),
            self.prompts.build_clarify(request),
            ClarifyResult,
            system_prompt=INTERVIEWER_SYSTEM_PROMPT,
            cache_key=cache_key,
            text_fallback=_plain_text_answer,
        )

"""Prompt Builder Module

Builds the prompts for each coaching operation:
- Framework evaluation (rubric scoring + suggestions)
- Clarifying-question coaching
- Hypothesis drill scoring
- Interviewer answers to clarifying questions

Every prompt ends with the exact JSON shape expected back, which is the
same shape the response models in casecoach.models.coaching validate.
"""

import json
from typing import List, Optional

from casecoach.models.coaching import (
    ClarifyRequest,
    CoachQuestionsRequest,
    EvaluateRequest,
    HypothesisRequest,
    QuestionAnswer,
)

EVALUATOR_SYSTEM_PROMPT = (
    "You are an expert consulting interview evaluator. "
    "Always respond with valid JSON only, with no markdown and no code fences."
)

COACH_SYSTEM_PROMPT = (
    "You are an experienced case interview coach. "
    "Always respond with valid JSON only, with no markdown and no code fences."
)

INTERVIEWER_SYSTEM_PROMPT = (
    "You are a consulting interviewer answering a candidate's clarifying "
    "questions. Respond with a JSON object only."
)

_STYLE_RULES = """## Output Style
- Every dimension comment: one sentence on what the candidate did, then one sentence with a concrete action.
- Suggestion titles are single imperative sentences starting with "Add", "Remove", "Rename", "Split" or "Specify".
- Suggestion details are 2-3 sentences: why it matters in an interview, then phrasing the candidate could use.
- Never open with praise ("Great job!") and never use vague phrases without a referent from the transcript.
- Do not start sentences with "Overall,", "Also,", "Additionally," or "Furthermore,"."""

_RUBRIC = """## Scoring Rubric (1-5 per dimension, 3 is competent but unremarkable)
1. MECE: buckets do not overlap and together cover the problem.
2. Case Fit: the framework is built for this case rather than a memorized template.
3. Hypothesis & Prioritization: a clear hypothesis and a reasoned starting point.
4. Depth: sub-points are specific, actionable analyses rather than restated bucket names.
5. Clarifying Questions: questions asked before structuring removed real ambiguity.
6. Delivery: top-down, signposted, well-paced presentation.
Overall: the exact average of the six dimension scores, rounded to one decimal place."""


def _json_shape(shape: dict) -> str:
    return json.dumps(shape, indent=2)


def _format_qa(pairs: List[QuestionAnswer], answer_label: str = "A") -> str:
    return "\n\n".join(
        f"Q{i}: {qa.question}\n{answer_label}{i}: {qa.answer}"
        for i, qa in enumerate(pairs, start=1)
    )


class PromptBuilder:
    """Builds prompts for the coaching operations.

    Stateless; each method maps a validated request onto prompt text.
    """

    def build_evaluation(self, request: EvaluateRequest) -> str:
        asked = request.clarifying_questions_asked
        asked_count = len(asked) or len(request.clarifying_questions_viewed)

        sections = [
            "You are an expert consulting interview evaluator from a top strategy "
            "firm. Your feedback is direct, calibrated and specific to the "
            "candidate's actual words.",
            _STYLE_RULES,
            f"## Case Prompt\n{request.case_prompt}",
            f"## Candidate's Framework Presentation (transcribed)\n{request.transcript}",
            "## Session Metadata\n"
            f"- Time spent building framework: {request.framework_time:g} seconds\n"
            f"- Time spent presenting: {request.presentation_time:g} seconds\n"
            f"- Read the case transcript instead of listening: "
            f"{str(request.showed_transcript).lower()}\n"
            f"- Clarifying questions asked: {asked_count} out of "
            f"{request.total_clarifying_questions} available",
        ]
        if asked:
            sections.append(
                "## Clarifying Questions Asked by Candidate\n"
                + _format_qa(asked, answer_label="Interviewer response ")
            )
        sections.append(_RUBRIC)
        sections.append(
            "## Improvement Suggestions\n"
            "Provide exactly 5 suggestions, each a specific change to this "
            "candidate's framework. Cover MECE, case specificity and depth at "
            "least once each; do not repeat a theme."
        )

        previous = self._previous_attempt_section(request)
        if previous:
            sections.append(previous)

        sections.append(
            "Respond in this EXACT JSON format (no markdown, no code fences, just raw JSON):\n"
            + _json_shape(
                {
                    "scores": {
                        "overall": 0,
                        "mece": 0,
                        "caseFit": 0,
                        "hypothesisAndPrioritization": 0,
                        "depth": 0,
                        "clarifyingQuestions": 0,
                        "delivery": 0,
                    },
                    "feedback": {
                        "meceComment": "",
                        "caseFitComment": "",
                        "hypothesisAndPrioritizationComment": "",
                        "depthComment": "",
                        "clarifyingQuestionsComment": "",
                        "deliveryComment": "",
                        "suggestions": [{"title": "", "detail": ""}] * 5,
                        "topStrength": "",
                        "topImprovement": "",
                    },
                }
            )
        )
        return "\n\n".join(sections)

    def _previous_attempt_section(self, request: EvaluateRequest) -> Optional[str]:
        previous = request.previous_attempt
        if previous is None:
            return None
        titles = "\n".join(
            f"{i}. {s.title}" for i, s in enumerate(previous.feedback.suggestions, start=1)
        )
        return (
            "## Retry Attempt\n"
            "This is the candidate's second attempt on the same case. Their "
            f"previous overall score was {previous.scores.overall:g}/5.\n"
            f'Previous top strength: "{previous.feedback.top_strength}"\n'
            f'Previous top improvement: "{previous.feedback.top_improvement}"\n'
            f"Suggestions they received last time:\n{titles}\n\n"
            "Score this attempt on its own merits without inflating it. Where a "
            "previous suggestion was addressed, say so in that dimension's "
            'comment ("Compared to your first attempt, ..."); where feedback was '
            "ignored or a strength regressed, name it directly."
        )

    def build_coach_questions(self, request: CoachQuestionsRequest) -> str:
        questions = "\n".join(
            f"Q{i}: {q}" for i, q in enumerate(request.user_questions, start=1)
        )
        return "\n\n".join(
            [
                "You are an experienced case coach who has interviewed candidates "
                "at a top strategy firm for fifteen years. Give direct, calibrated "
                "feedback with no filler.",
                "## What Clarifying Questions Are For\n"
                "They make sure the candidate solves the right problem, defines "
                "success correctly and avoids building the wrong framework. The "
                "high-impact categories, in priority order: Objective, Time "
                "Horizon, Scope, Constraints, Success Definition.\n"
                'Litmus test: "If the answer changes, would my framework change?"',
                f"## Case Details\n**Title:** {request.case_title or 'Case Interview'}\n"
                f"**Category:** {request.case_category or 'general'}\n"
                f"**Prompt:** {request.case_prompt}",
                f"## Candidate's Clarifying Questions\n{questions}",
                "## Your Task\n"
                '1. Rate EACH question "strong", "weak" or "redundant" and give one '
                "sentence of feedback naming the flaw or strength plus a direct "
                "instruction.\n"
                "2. Give exactly 4 topQuestions an experienced associate would ask "
                "for THIS case, objective first, each under 25 words.\n"
                "3. Write a coachNote of 1-2 sentences naming the biggest pattern "
                "gap across all questions, referencing the categories above.",
                "Respond in this EXACT JSON format (no markdown, no code fences, just raw JSON):\n"
                + _json_shape(
                    {
                        "evaluations": [
                            {
                                "question": "the user's question text verbatim",
                                "rating": "strong | weak | redundant",
                                "feedback": "",
                            }
                        ],
                        "topQuestions": ["", "", "", ""],
                        "coachNote": "",
                    }
                ),
            ]
        )

    def build_hypothesis(self, request: HypothesisRequest) -> str:
        return "\n\n".join(
            [
                "You are an expert consulting interview evaluator. The candidate is "
                "doing a focused drill on the Hypothesis & Prioritization skill.",
                f"## Case Prompt\n{request.case_prompt}",
                f"## Candidate's Hypothesis (spoken aloud)\n{request.hypothesis_transcript}",
                "## What to Evaluate\n"
                "Score ONLY Hypothesis & Prioritization on a 1-5 scale:\n"
                "- 1: no hypothesis and no indication of where to start\n"
                "- 2: weak signal but no explicit prioritization\n"
                "- 3: a hypothesis or one priority area, with minimal reasoning\n"
                "- 4: a clear, case-specific hypothesis with a reason to start there\n"
                "- 5: crisp, insightful hypothesis with a logical order for all buckets",
                "## Output Style\n"
                "- comment: one sentence on what they said plus one concrete action.\n"
                "- Each suggestion: one imperative sentence with example phrasing.",
                "Respond in this EXACT JSON format (no markdown, no code fences, just raw JSON):\n"
                + _json_shape({"score": 0, "comment": "", "suggestions": ["", ""]}),
            ]
        )

    def build_clarify(self, request: ClarifyRequest) -> str:
        previous = (
            _format_qa(request.previous_questions)
            if request.previous_questions
            else "None yet."
        )
        return "\n\n".join(
            [
                "You are a consulting interviewer at a top firm. A candidate has "
                "read the case prompt and is asking clarifying questions before "
                "building their framework.",
                "## Your Role\n"
                "- Answer reasonable clarifying questions concisely (1-3 sentences).\n"
                "- If the question asks for analysis the candidate should do "
                "themselves, politely deflect.\n"
                "- Never reveal the answer or the key insight of the case.\n"
                "- Stay in character and keep it brief; this is a timed exercise.",
                f"## Case Prompt\n{request.case_prompt}",
                f"## Previous Questions in This Session\n{previous}",
                f"## Candidate's Current Question\n{request.question}",
                "Respond with ONLY a JSON object in this exact format "
                "(no markdown, no code fences, just raw JSON):\n"
                '{"answer": "Your concise interviewer response here"}',
            ]
        )

"""Gemini Provider Implementation

Calls the generateContent REST endpoint directly for text and for inline
audio transcription.
"""

import base64
import time
from typing import Any, Dict, Optional

from casecoach.models.llm import ProviderAttempt
from casecoach.services.llm.providers.base import LLMProvider, LLMResponse

TRANSCRIBE_INSTRUCTION = (
    "Transcribe this audio exactly as spoken. Return only the transcript "
    "text with no commentary, labels or formatting."
)


class GeminiProvider(LLMProvider):
    """Google Gemini provider.

    Gemini sometimes reports quota or overload through a status code
    other than 429/503 with RESOURCE_EXHAUSTED / UNAVAILABLE in the body,
    so the body is used as a secondary signal.
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
    body_has_semantic_codes = True

    @property
    def name(self) -> str:
        return "gemini"

    async def complete(
        self,
        attempt: ProviderAttempt,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        generation_config: Dict[str, Any] = {
            "temperature": attempt.temperature,
            "maxOutputTokens": attempt.max_tokens,
        }
        if json_mode:
            generation_config["responseMimeType"] = "application/json"

        payload: Dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        return await self._generate(attempt, payload)

    async def transcribe(
        self,
        attempt: ProviderAttempt,
        audio: bytes,
        mime_type: str,
        filename: str = "recording.webm",
    ) -> LLMResponse:
        payload = {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(audio).decode("ascii"),
                            }
                        },
                        {"text": TRANSCRIBE_INSTRUCTION},
                    ]
                }
            ],
            "generationConfig": {
                "temperature": attempt.temperature,
                "maxOutputTokens": attempt.max_tokens,
            },
        }
        return await self._generate(attempt, payload)

    async def _generate(
        self, attempt: ProviderAttempt, payload: Dict[str, Any]
    ) -> LLMResponse:
        started = time.perf_counter()
        data = await self._post(
            f"{self.BASE_URL}/models/{attempt.model}:generateContent",
            model=attempt.model,
            params={"key": self._api_key},
            json=payload,
        )

        candidates = data.get("candidates") or [{}]
        parts = (candidates[0].get("content") or {}).get("parts") or [{}]
        text = "".join(part.get("text", "") for part in parts)
        return self._build_response(
            text, attempt, started, finish_reason=candidates[0].get("finishReason")
        )

"""Groq Provider Implementation

OpenAI-compatible chat completions and Whisper transcription.
"""

import time
from typing import Any, Dict, List, Optional

import aiohttp

from casecoach.models.llm import ProviderAttempt
from casecoach.services.llm.providers.base import LLMProvider, LLMResponse


class GroqProvider(LLMProvider):
    """Groq provider (Llama chat models, Whisper speech-to-text).

    Errors are reported through the status line only, so no body
    inspection is done when classifying failures.
    """

    BASE_URL = "https://api.groq.com/openai/v1"

    @property
    def name(self) -> str:
        return "groq"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def complete(
        self,
        attempt: ProviderAttempt,
        prompt: str,
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": attempt.model,
            "messages": messages,
            "temperature": attempt.temperature,
            "max_tokens": attempt.max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        started = time.perf_counter()
        data = await self._post(
            f"{self.BASE_URL}/chat/completions",
            model=attempt.model,
            headers=self._headers(),
            json=payload,
        )

        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        return self._build_response(
            message.get("content"),
            attempt,
            started,
            finish_reason=choices[0].get("finish_reason"),
        )

    async def transcribe(
        self,
        attempt: ProviderAttempt,
        audio: bytes,
        mime_type: str,
        filename: str = "recording.webm",
    ) -> LLMResponse:
        form = aiohttp.FormData()
        form.add_field("file", audio, filename=filename, content_type=mime_type)
        form.add_field("model", attempt.model)
        form.add_field("response_format", "json")
        form.add_field("language", "en")

        started = time.perf_counter()
        data = await self._post(
            f"{self.BASE_URL}/audio/transcriptions",
            model=attempt.model,
            headers=self._headers(),
            data=form,
        )
        return self._build_response(data.get("text"), attempt, started)

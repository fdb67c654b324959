"""LLM Provider Implementations

- LLMProvider: Abstract base class defining the provider contract
- LLMResponse: Standardized response from any provider
- GroqProvider: Llama chat models and Whisper transcription
- GeminiProvider: Gemini text and audio models
"""

from typing import Dict

from casecoach.models.config import ProviderCredentials
from casecoach.services.llm.providers.base import LLMProvider, LLMResponse
from casecoach.services.llm.providers.gemini import GeminiProvider
from casecoach.services.llm.providers.groq import GroqProvider

PROVIDER_CLASSES = {
    "groq": GroqProvider,
    "gemini": GeminiProvider,
}


def build_providers(
    credentials: ProviderCredentials, timeout_seconds: float = 30.0
) -> Dict[str, LLMProvider]:
    """Instantiate a provider for every credential that is configured.

    Providers without a credential are left out; the cascade skips their
    attempts.
    """
    providers: Dict[str, LLMProvider] = {}
    for name, provider_cls in PROVIDER_CLASSES.items():
        api_key = credentials.for_provider(name)
        if api_key:
            providers[name] = provider_cls(api_key, timeout_seconds=timeout_seconds)
    return providers


__all__ = [
    "LLMProvider",
    "LLMResponse",
    "GroqProvider",
    "GeminiProvider",
    "build_providers",
]

"""LLM pipeline package.

This package provides:
- CascadeOrchestrator: ordered provider fallback shared by every operation
- Provider implementations (Groq, Gemini)
- JSON recovery and schema validation of model output
- LLMService: prompt in, validated response model out

Usage:
    from casecoach.services.llm import LLMService
    # or
    from casecoach.services.llm.service import LLMService
"""

from casecoach.services.llm.cascade import CascadeOrchestrator
from casecoach.services.llm.exceptions import (
    LLMProviderError,
    RateLimitError,
    AuthenticationError,
    ProviderRequestError,
    ProviderUnavailableError,
    ModelNotFoundError,
    classify_http_error,
)
from casecoach.services.llm.json_recovery import extract_json
from casecoach.services.llm.prompt_builder import PromptBuilder
from casecoach.services.llm.providers.base import LLMProvider, LLMResponse
from casecoach.services.llm.response_parser import ResponseParser
from casecoach.services.llm.service import LLMService

__all__ = [
    "CascadeOrchestrator",
    "LLMService",
    "PromptBuilder",
    "ResponseParser",
    "LLMProvider",
    "LLMResponse",
    "LLMProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ProviderRequestError",
    "ProviderUnavailableError",
    "ModelNotFoundError",
    "classify_http_error",
    "extract_json",
]

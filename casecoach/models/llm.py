"""LLM cascade data models

This module defines the data structures for:
- A single provider attempt (provider, model, temperature, token budget)
- Cascade policies (ordered attempts per operation)
- Cascade runtime settings (timeouts, same-provider retry backoff)
- Per-attempt results produced while a cascade runs
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

ProviderName = Literal["groq", "gemini"]


class ProviderAttempt(BaseModel):
    """One configured call target in a cascade.

    Immutable and hashable so a policy can be checked for duplicates.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: ProviderName = Field(description="Provider that serves the model")
    model: str = Field(min_length=1, description="Provider model identifier")
    temperature: float = Field(
        default=0.4, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_tokens: int = Field(
        default=2048, gt=0, le=32768, description="Output token budget"
    )
    retry_on_transient: bool = Field(
        default=False,
        description="Retry this attempt once after a fixed backoff on 429/503",
    )

    @property
    def label(self) -> str:
        return f"{self.provider}/{self.model}"

    @property
    def key(self) -> str:
        """Label plus temperature; unique within a policy."""
        return f"{self.label}@{self.temperature}"


class CascadePolicy(BaseModel):
    """Ordered list of attempts tried until one succeeds

    Each operation (evaluate, clarify, ...) supplies its own policy; the
    orchestrator itself holds no per-operation logic.
    """

    name: str = Field(min_length=1, description="Policy name used in logs/metrics")
    attempts: List[ProviderAttempt] = Field(
        min_length=1, description="Attempts in priority order"
    )
    json_mode: bool = Field(
        default=True,
        description="Ask structured-output-capable providers for strict JSON",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "evaluate",
                "json_mode": True,
                "attempts": [
                    {
                        "provider": "gemini",
                        "model": "gemini-2.0-flash",
                        "temperature": 0.7,
                        "max_tokens": 4096,
                    },
                    {
                        "provider": "groq",
                        "model": "llama-3.3-70b-versatile",
                        "temperature": 0.4,
                        "max_tokens": 4096,
                    },
                ],
            }
        }
    )

    @model_validator(mode="after")
    def reject_duplicate_attempts(self) -> "CascadePolicy":
        seen = set()
        for attempt in self.attempts:
            key = (attempt.provider, attempt.model, attempt.temperature)
            if key in seen:
                raise ValueError(
                    f"Policy '{self.name}' lists {attempt.label} "
                    f"at temperature {attempt.temperature} more than once"
                )
            seen.add(key)
        return self

    @property
    def providers(self) -> List[str]:
        """Distinct providers in first-use order."""
        ordered: List[str] = []
        for attempt in self.attempts:
            if attempt.provider not in ordered:
                ordered.append(attempt.provider)
        return ordered


class CascadeSettings(BaseModel):
    """Runtime settings shared by every cascade"""

    attempt_timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Upper bound for a single provider call",
    )
    retry_backoff_seconds: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Fixed delay before a same-provider retry",
    )


class AttemptOutcome(str, Enum):
    """Classification of a single attempt"""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    HARD = "hard"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CascadeResult:
    """Outcome of one attempt, kept only while the cascade runs.

    Attributes:
        attempt: The attempt that produced this result
        outcome: success / retryable / hard / skipped
        status_class: quota, overload, hard, no_credential, provider_failed
        status_code: HTTP status if a response was received
        detail: Short human-readable summary for logs and error details
    """

    attempt: ProviderAttempt
    outcome: AttemptOutcome
    status_class: Optional[str] = None
    status_code: Optional[int] = None
    detail: Optional[str] = None


_FLAGSHIP_CHAIN = [
    ("gemini", "gemini-2.0-flash", 0.7),
    ("groq", "llama-3.3-70b-versatile", 0.4),
    ("groq", "llama-3.1-8b-instant", 0.2),
    ("gemini", "gemini-1.5-flash", 0.4),
]


def _chain(
    name: str, max_tokens: int, first_temperature: Optional[float] = None
) -> CascadePolicy:
    attempts = []
    for index, (provider, model, temperature) in enumerate(_FLAGSHIP_CHAIN):
        if index == 0 and first_temperature is not None:
            temperature = first_temperature
        attempts.append(
            ProviderAttempt(
                provider=provider,
                model=model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        )
    return CascadePolicy(name=name, attempts=attempts)


def default_policies() -> Dict[str, CascadePolicy]:
    """Built-in cascade policies, used when the config file omits them."""
    return {
        "evaluate": _chain("evaluate", max_tokens=4096),
        "coach_questions": _chain("coach_questions", max_tokens=2048),
        "evaluate_hypothesis": _chain(
            "evaluate_hypothesis", max_tokens=512, first_temperature=0.5
        ),
        "clarify": CascadePolicy(
            name="clarify",
            attempts=[
                ProviderAttempt(
                    provider="gemini",
                    model="gemini-2.5-flash",
                    temperature=0.7,
                    max_tokens=512,
                    retry_on_transient=True,
                )
            ],
        ),
        "transcribe": CascadePolicy(
            name="transcribe",
            json_mode=False,
            attempts=[
                ProviderAttempt(
                    provider="groq",
                    model="whisper-large-v3-turbo",
                    temperature=0.0,
                    max_tokens=1024,
                ),
                ProviderAttempt(
                    provider="gemini",
                    model="gemini-2.0-flash",
                    temperature=0.0,
                    max_tokens=2048,
                ),
            ],
        ),
    }

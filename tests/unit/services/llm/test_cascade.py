"""Tests for the provider cascade orchestrator."""

from typing import Dict, List, Union
from unittest.mock import AsyncMock, MagicMock

import pytest
from structlog.testing import capture_logs

from casecoach.models.llm import CascadePolicy, CascadeSettings, ProviderAttempt
from casecoach.services.llm.cascade import CascadeOrchestrator
from casecoach.services.llm.exceptions import (
    AuthenticationError,
    ProviderRequestError,
    ProviderUnavailableError,
    RateLimitError,
)
from casecoach.services.llm.providers.base import LLMResponse
from casecoach.utils.exceptions import (
    AllProvidersFailedError,
    ProviderNotConfiguredError,
    ProvidersOverloadedError,
    QuotaExhaustedError,
)

Outcome = Union[str, Exception]


def make_provider(name: str, outcomes: Dict[str, Union[Outcome, List[Outcome]]]) -> MagicMock:
    """Provider double whose result depends on the attempt's model.

    A list of outcomes is consumed one call at a time.
    """

    def next_outcome(model: str) -> LLMResponse:
        outcome = outcomes[model]
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(content=outcome, model=model, provider=name, latency_ms=5.0)

    async def complete(attempt, prompt, system_prompt=None, json_mode=False):
        return next_outcome(attempt.model)

    async def transcribe(attempt, audio, mime_type, filename="recording.webm"):
        return next_outcome(attempt.model)

    provider = MagicMock()
    provider.name = name
    provider.complete = AsyncMock(side_effect=complete)
    provider.transcribe = AsyncMock(side_effect=transcribe)
    return provider


def make_policy(*attempts: tuple, name: str = "test") -> CascadePolicy:
    """Build a policy from (provider, model[, overrides]) tuples."""
    built = []
    for provider, model, *rest in attempts:
        overrides = rest[0] if rest else {}
        built.append(ProviderAttempt(provider=provider, model=model, **overrides))
    return CascadePolicy(name=name, attempts=built)


def called_models(provider: MagicMock) -> List[str]:
    return [c.args[0].model for c in provider.complete.await_args_list]


class TestCascadeScenarios:
    """Documented cascade scenarios."""

    @pytest.mark.asyncio
    async def test_skips_missing_credential_and_returns_next_success(self) -> None:
        """[A(429), B(no credential), C(200)] returns C's text."""
        groq = make_provider(
            "groq",
            {"model-a": RateLimitError(provider="groq"), "model-c": "ok"},
        )
        orchestrator = CascadeOrchestrator({"groq": groq})
        policy = make_policy(
            ("groq", "model-a"), ("gemini", "model-b"), ("groq", "model-c")
        )

        response = await orchestrator.complete(policy, "prompt")

        assert response.content == "ok"
        assert response.model == "model-c"
        assert called_models(groq) == ["model-a", "model-c"]

    @pytest.mark.asyncio
    async def test_last_retryable_outcome_decides_after_hard_failure(self) -> None:
        """[A(400), B(503), C(same provider as A)] ends as an overload."""
        groq = make_provider(
            "groq",
            {
                "model-a": ProviderRequestError("bad", provider="groq", status_code=400),
                "model-c": "never",
            },
        )
        gemini = make_provider(
            "gemini",
            {"model-b": ProviderUnavailableError(provider="gemini", status_code=503)},
        )
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})
        policy = make_policy(
            ("groq", "model-a"), ("gemini", "model-b"), ("groq", "model-c")
        )

        with pytest.raises(ProvidersOverloadedError) as exc_info:
            await orchestrator.complete(policy, "prompt")

        assert exc_info.value.status_code == 503
        assert called_models(groq) == ["model-a"]
        assert called_models(gemini) == ["model-b"]


class TestCascadeOrdering:
    """Attempts are tried in order and stop at the first success."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2, 3])
    async def test_first_success_after_n_retryable_failures(self, failures: int) -> None:
        models = [f"model-{i}" for i in range(5)]
        outcomes: Dict[str, Outcome] = {}
        for i, model in enumerate(models):
            if i < failures:
                outcomes[model] = (
                    RateLimitError(provider="groq")
                    if i % 2 == 0
                    else ProviderUnavailableError(provider="groq", status_code=503)
                )
            else:
                outcomes[model] = f"response {i}"
        groq = make_provider("groq", outcomes)
        orchestrator = CascadeOrchestrator({"groq": groq})

        response = await orchestrator.complete(
            make_policy(*[("groq", m) for m in models]), "prompt"
        )

        assert response.content == f"response {failures}"
        assert called_models(groq) == models[: failures + 1]

    @pytest.mark.asyncio
    async def test_hard_failure_skips_same_provider_only(self) -> None:
        groq = make_provider(
            "groq",
            {
                "llama-big": AuthenticationError(provider="groq"),
                "llama-small": "never",
            },
        )
        gemini = make_provider("gemini", {"gemini-flash": "from gemini"})
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})
        policy = make_policy(
            ("groq", "llama-big"), ("groq", "llama-small"), ("gemini", "gemini-flash")
        )

        response = await orchestrator.complete(policy, "prompt")

        assert response.content == "from gemini"
        assert called_models(groq) == ["llama-big"]

    @pytest.mark.asyncio
    async def test_passes_prompt_settings_to_provider(self) -> None:
        groq = make_provider("groq", {"llama": "ok"})
        orchestrator = CascadeOrchestrator({"groq": groq})
        policy = make_policy(("groq", "llama", {"temperature": 0.2, "max_tokens": 100}))

        await orchestrator.complete(policy, "the prompt", system_prompt="be brief")

        call = groq.complete.await_args
        assert call.args[0].temperature == 0.2
        assert call.args[0].max_tokens == 100
        assert call.args[1] == "the prompt"
        assert call.kwargs == {"system_prompt": "be brief", "json_mode": True}


class TestCascadeConfiguration:
    """Behaviour without usable credentials."""

    @pytest.mark.asyncio
    async def test_no_credentials_fails_without_calls(self) -> None:
        orchestrator = CascadeOrchestrator({})
        policy = make_policy(("groq", "llama"), ("gemini", "gemini-flash"))

        with pytest.raises(ProviderNotConfiguredError) as exc_info:
            await orchestrator.complete(policy, "prompt")
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_only_unrelated_provider_configured(self) -> None:
        groq = make_provider("groq", {})
        orchestrator = CascadeOrchestrator({"groq": groq})

        with pytest.raises(ProviderNotConfiguredError):
            await orchestrator.complete(make_policy(("gemini", "gemini-flash")), "p")
        groq.complete.assert_not_awaited()

    def test_is_configured(self) -> None:
        orchestrator = CascadeOrchestrator({"gemini": make_provider("gemini", {})})
        assert orchestrator.is_configured(make_policy(("groq", "a"), ("gemini", "b")))
        assert not orchestrator.is_configured(make_policy(("groq", "a")))


class TestCascadeExhaustion:
    """Classification of the terminal error."""

    @pytest.mark.asyncio
    async def test_last_retryable_quota_is_429(self) -> None:
        groq = make_provider(
            "groq", {"a": ProviderUnavailableError(provider="groq", status_code=503)}
        )
        gemini = make_provider("gemini", {"b": RateLimitError(provider="gemini")})
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})

        with pytest.raises(QuotaExhaustedError) as exc_info:
            await orchestrator.complete(make_policy(("groq", "a"), ("gemini", "b")), "p")

        assert exc_info.value.status_code == 429
        assert exc_info.value.policy == "test"

    @pytest.mark.asyncio
    async def test_last_retryable_overload_is_503(self) -> None:
        groq = make_provider("groq", {"a": RateLimitError(provider="groq")})
        gemini = make_provider(
            "gemini", {"b": ProviderUnavailableError("timed out", provider="gemini")}
        )
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})

        with pytest.raises(ProvidersOverloadedError):
            await orchestrator.complete(make_policy(("groq", "a"), ("gemini", "b")), "p")

    @pytest.mark.asyncio
    async def test_only_hard_failures_is_unclassified(self) -> None:
        groq = make_provider(
            "groq", {"a": ProviderRequestError("bad", provider="groq", status_code=400)}
        )
        gemini = make_provider("gemini", {"b": AuthenticationError(provider="gemini")})
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.complete(make_policy(("groq", "a"), ("gemini", "b")), "p")

        assert exc_info.value.status_code == 500
        assert set(exc_info.value.provider_errors) == {"groq/a@0.4", "gemini/b@0.4"}

    @pytest.mark.asyncio
    async def test_same_model_at_two_temperatures_keeps_both_errors(self) -> None:
        groq = make_provider(
            "groq",
            {
                "a": [
                    ProviderUnavailableError("first", provider="groq"),
                    ProviderUnavailableError("second", provider="groq"),
                ]
            },
        )
        orchestrator = CascadeOrchestrator({"groq": groq})
        policy = make_policy(
            ("groq", "a", {"temperature": 0.7}), ("groq", "a", {"temperature": 0.2})
        )

        with pytest.raises(ProvidersOverloadedError) as exc_info:
            await orchestrator.complete(policy, "p")

        errors = exc_info.value.provider_errors
        assert set(errors) == {"groq/a@0.7", "groq/a@0.2"}
        assert "first" in errors["groq/a@0.7"]
        assert "second" in errors["groq/a@0.2"]

    @pytest.mark.asyncio
    async def test_user_message_hides_provider_details(self) -> None:
        groq = make_provider(
            "groq",
            {"a": ProviderUnavailableError("secret upstream text", provider="groq")},
        )
        orchestrator = CascadeOrchestrator({"groq": groq})

        with pytest.raises(ProvidersOverloadedError) as exc_info:
            await orchestrator.complete(make_policy(("groq", "a")), "p")

        assert "secret upstream text" in str(exc_info.value)
        assert "secret upstream text" not in exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_exhaustion_is_logged_with_component(self) -> None:
        groq = make_provider("groq", {"a": RateLimitError(provider="groq")})
        orchestrator = CascadeOrchestrator({"groq": groq})

        with capture_logs() as logs:
            with pytest.raises(QuotaExhaustedError):
                await orchestrator.complete(make_policy(("groq", "a"), name="clarify"), "p")

        exhausted = [entry for entry in logs if entry["event"] == "cascade_exhausted"]
        assert len(exhausted) == 1
        assert exhausted[0]["component"] == "cascade"
        assert exhausted[0]["policy"] == "clarify"
        assert exhausted[0]["result"] == "quota"


class TestSameProviderRetry:
    """Optional single retry on a transient failure."""

    @pytest.mark.asyncio
    async def test_retries_once_after_backoff(self) -> None:
        gemini = make_provider(
            "gemini",
            {
                "gemini-2.5-flash": [
                    ProviderUnavailableError(provider="gemini", status_code=503),
                    "second time lucky",
                ]
            },
        )
        sleep = AsyncMock()
        orchestrator = CascadeOrchestrator(
            {"gemini": gemini},
            CascadeSettings(retry_backoff_seconds=1.5),
            sleep=sleep,
        )
        policy = make_policy(("gemini", "gemini-2.5-flash", {"retry_on_transient": True}))

        response = await orchestrator.complete(policy, "p")

        assert response.content == "second time lucky"
        assert gemini.complete.await_count == 2
        sleep.assert_awaited_once_with(1.5)

    @pytest.mark.asyncio
    async def test_retry_exhausted_classifies_last_error(self) -> None:
        gemini = make_provider(
            "gemini",
            {
                "gemini-2.5-flash": [
                    ProviderUnavailableError(provider="gemini", status_code=503),
                    RateLimitError(provider="gemini"),
                ]
            },
        )
        orchestrator = CascadeOrchestrator({"gemini": gemini}, sleep=AsyncMock())
        policy = make_policy(("gemini", "gemini-2.5-flash", {"retry_on_transient": True}))

        with pytest.raises(QuotaExhaustedError):
            await orchestrator.complete(policy, "p")
        assert gemini.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_hard_failure_is_not_retried(self) -> None:
        gemini = make_provider(
            "gemini",
            {"gemini-2.5-flash": [AuthenticationError(provider="gemini"), "unused"]},
        )
        sleep = AsyncMock()
        orchestrator = CascadeOrchestrator({"gemini": gemini}, sleep=sleep)
        policy = make_policy(("gemini", "gemini-2.5-flash", {"retry_on_transient": True}))

        with pytest.raises(AllProvidersFailedError):
            await orchestrator.complete(policy, "p")
        assert gemini.complete.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_retry_without_flag(self) -> None:
        gemini = make_provider(
            "gemini",
            {"flash": [ProviderUnavailableError(provider="gemini"), "unused"]},
        )
        orchestrator = CascadeOrchestrator({"gemini": gemini}, sleep=AsyncMock())

        with pytest.raises(ProvidersOverloadedError):
            await orchestrator.complete(make_policy(("gemini", "flash")), "p")
        assert gemini.complete.await_count == 1


class TestTranscribeCascade:
    """Transcription runs through the same loop."""

    @pytest.mark.asyncio
    async def test_falls_back_to_second_provider(self) -> None:
        groq = make_provider("groq", {"whisper": RateLimitError(provider="groq")})
        gemini = make_provider("gemini", {"flash": "hello world"})
        orchestrator = CascadeOrchestrator({"groq": groq, "gemini": gemini})
        policy = make_policy(("groq", "whisper"), ("gemini", "flash"))

        response = await orchestrator.transcribe(policy, b"audio", "audio/webm")

        assert response.content == "hello world"
        call = gemini.transcribe.await_args
        assert call.args[1:] == (b"audio", "audio/webm")
        assert call.kwargs == {"filename": "recording.webm"}

"""Provider cascade orchestrator.

Tries the attempts of a CascadePolicy one at a time, in order, and returns
the first usable response. Every operation (evaluation, coaching,
clarification, transcription) goes through this one loop and only supplies
its policy and the call to make.

Per attempt:
- no credential for the provider: skipped, not counted as a failure
- provider already hard-failed in this run: skipped
- 2xx with text: returned, nothing after it is called
- 429 / 503 / timeout / empty output: retryable, move on
- any other status: hard failure, scoped to that provider

When nothing succeeds the last retryable outcome decides the error
(quota -> 429, overload -> 503); with only hard failures the error is
unclassified (500). Without any credential the run fails before the first
network call.
"""

import asyncio
import time
from typing import Awaitable, Callable, Dict, List, Optional, Set

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from casecoach.models.llm import (
    AttemptOutcome,
    CascadePolicy,
    CascadeResult,
    CascadeSettings,
    ProviderAttempt,
)
from casecoach.observability.logging import get_logger
from casecoach.observability.metrics import (
    CASCADE_RESULTS,
    PROVIDER_ATTEMPTS,
    PROVIDER_LATENCY,
)
from casecoach.services.llm.exceptions import LLMProviderError
from casecoach.services.llm.providers.base import LLMProvider, LLMResponse
from casecoach.utils.exceptions import (
    AllProvidersFailedError,
    CascadeExhaustedError,
    ProviderNotConfiguredError,
    ProvidersOverloadedError,
    QuotaExhaustedError,
)

Invoke = Callable[[LLMProvider, ProviderAttempt], Awaitable[LLMResponse]]


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, LLMProviderError) and error.retryable


class CascadeOrchestrator:
    """Runs cascade policies against the configured providers.

    Holds no per-request state; one instance is shared by all requests.

    Args:
        providers: Provider instances keyed by name. A provider missing
            from the mapping has no credential.
        settings: Backoff used for the optional same-provider retry
        sleep: Coroutine used to wait before that retry
    """

    def __init__(
        self,
        providers: Dict[str, LLMProvider],
        settings: Optional[CascadeSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.providers = providers
        self.settings = settings or CascadeSettings()
        self._sleep = sleep

    def is_configured(self, policy: CascadePolicy) -> bool:
        """True when at least one attempt of the policy has a credential."""
        return any(attempt.provider in self.providers for attempt in policy.attempts)

    async def complete(
        self,
        policy: CascadePolicy,
        prompt: str,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Run a text-generation cascade."""

        async def invoke(provider: LLMProvider, attempt: ProviderAttempt) -> LLMResponse:
            return await provider.complete(
                attempt,
                prompt,
                system_prompt=system_prompt,
                json_mode=policy.json_mode,
            )

        return await self.execute(policy, invoke)

    async def transcribe(
        self,
        policy: CascadePolicy,
        audio: bytes,
        mime_type: str,
        filename: str = "recording.webm",
    ) -> LLMResponse:
        """Run a speech-to-text cascade."""

        async def invoke(provider: LLMProvider, attempt: ProviderAttempt) -> LLMResponse:
            return await provider.transcribe(attempt, audio, mime_type, filename=filename)

        return await self.execute(policy, invoke)

    async def execute(self, policy: CascadePolicy, invoke: Invoke) -> LLMResponse:
        """Try each attempt of the policy until one succeeds.

        Args:
            policy: Ordered attempts to try
            invoke: Makes the call for one provider/attempt pair

        Returns:
            The first successful LLMResponse

        Raises:
            ProviderNotConfiguredError: No attempt has a credential
            QuotaExhaustedError: Last retryable failure was a quota error
            ProvidersOverloadedError: Last retryable failure was an overload
            AllProvidersFailedError: Only hard failures occurred
        """
        log = get_logger("cascade", policy=policy.name)

        if not self.is_configured(policy):
            CASCADE_RESULTS.labels(policy=policy.name, result="not_configured").inc()
            log.error("cascade_not_configured", providers=policy.providers)
            raise ProviderNotConfiguredError()

        results: List[CascadeResult] = []
        hard_failed: Set[str] = set()

        for attempt in policy.attempts:
            provider = self.providers.get(attempt.provider)
            if provider is None or attempt.provider in hard_failed:
                reason = "no_credential" if provider is None else "provider_failed"
                results.append(
                    CascadeResult(
                        attempt=attempt,
                        outcome=AttemptOutcome.SKIPPED,
                        status_class=reason,
                    )
                )
                PROVIDER_ATTEMPTS.labels(provider=attempt.provider, outcome="skipped").inc()
                log.debug(
                    "attempt_skipped",
                    provider=attempt.provider,
                    model=attempt.model,
                    reason=reason,
                )
                continue

            started = time.perf_counter()
            try:
                response = await self._call(provider, attempt, invoke)
            except LLMProviderError as e:
                PROVIDER_LATENCY.labels(provider=attempt.provider).observe(
                    time.perf_counter() - started
                )
                result = CascadeResult(
                    attempt=attempt,
                    outcome=(
                        AttemptOutcome.RETRYABLE if e.retryable else AttemptOutcome.HARD
                    ),
                    status_class=e.status_class,
                    status_code=e.status_code,
                    detail=str(e),
                )
                results.append(result)
                PROVIDER_ATTEMPTS.labels(
                    provider=attempt.provider, outcome=result.outcome.value
                ).inc()
                if result.outcome is AttemptOutcome.HARD:
                    hard_failed.add(attempt.provider)

                log.warning(
                    "attempt_failed",
                    provider=attempt.provider,
                    model=attempt.model,
                    outcome=result.outcome.value,
                    status_class=e.status_class,
                    status_code=e.status_code,
                    body=e.body,
                    error=str(e),
                )
                continue

            PROVIDER_LATENCY.labels(provider=attempt.provider).observe(
                time.perf_counter() - started
            )
            PROVIDER_ATTEMPTS.labels(provider=attempt.provider, outcome="success").inc()
            CASCADE_RESULTS.labels(policy=policy.name, result="success").inc()
            log.info(
                "cascade_succeeded",
                provider=attempt.provider,
                model=attempt.model,
                failed_attempts=sum(
                    1 for r in results if r.outcome is not AttemptOutcome.SKIPPED
                ),
                latency_ms=round(response.latency_ms, 1),
            )
            return response

        raise self._exhausted(policy, results, log)

    async def _call(
        self, provider: LLMProvider, attempt: ProviderAttempt, invoke: Invoke
    ) -> LLMResponse:
        if not attempt.retry_on_transient:
            return await invoke(provider, attempt)

        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            get_logger("cascade").warning(
                "same_provider_retry",
                provider=attempt.provider,
                model=attempt.model,
                delay_seconds=self.settings.retry_backoff_seconds,
                error=str(error),
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(2),
            wait=wait_fixed(self.settings.retry_backoff_seconds),
            retry=retry_if_exception(_is_transient),
            sleep=self._sleep,
            before_sleep=log_retry,
            reraise=True,
        )
        async for retry_attempt in retrying:
            with retry_attempt:
                response = await invoke(provider, attempt)
        return response

    def _exhausted(
        self, policy: CascadePolicy, results: List[CascadeResult], log
    ) -> CascadeExhaustedError:
        provider_errors = {
            r.attempt.key: r.detail or r.outcome.value
            for r in results
            if r.outcome in (AttemptOutcome.RETRYABLE, AttemptOutcome.HARD)
        }
        retryable = [r for r in results if r.outcome is AttemptOutcome.RETRYABLE]

        error: CascadeExhaustedError
        if not retryable:
            error = AllProvidersFailedError(
                policy=policy.name, provider_errors=provider_errors
            )
            result = "failed"
        elif retryable[-1].status_class == "quota":
            error = QuotaExhaustedError(
                policy=policy.name, provider_errors=provider_errors
            )
            result = "quota"
        else:
            error = ProvidersOverloadedError(
                policy=policy.name, provider_errors=provider_errors
            )
            result = "overload"

        CASCADE_RESULTS.labels(policy=policy.name, result=result).inc()
        log.error(
            "cascade_exhausted",
            result=result,
            attempts=len(results),
            provider_errors=provider_errors,
        )
        return error

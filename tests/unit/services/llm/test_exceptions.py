"""Tests for provider exceptions and HTTP status classification."""

import pytest

from casecoach.services.llm.exceptions import (
    BODY_LOG_LIMIT,
    AuthenticationError,
    LLMProviderError,
    ModelNotFoundError,
    ProviderRequestError,
    ProviderUnavailableError,
    RateLimitError,
    classify_http_error,
)


class TestLLMProviderError:
    """Tests for base LLMProviderError."""

    def test_basic_message(self) -> None:
        error = LLMProviderError("Test error")
        assert str(error) == "Test error"
        assert error.provider is None
        assert error.retryable is False

    def test_body_is_truncated(self) -> None:
        error = LLMProviderError("Test", body="x" * 2000)
        assert len(error.body) == BODY_LOG_LIMIT


class TestRateLimitError:
    """Tests for RateLimitError."""

    def test_defaults(self) -> None:
        error = RateLimitError()
        assert "Rate limit exceeded" in str(error)
        assert error.status_code == 429
        assert error.retryable is True
        assert error.status_class == "quota"

    def test_with_retry_after(self) -> None:
        error = RateLimitError(retry_after=30.0)
        assert error.retry_after == 30.0
        assert "30.0s" in str(error)


class TestHardErrors:
    """Hard failures are not retryable."""

    def test_authentication(self) -> None:
        error = AuthenticationError(provider="groq")
        assert isinstance(error, ProviderRequestError)
        assert error.retryable is False
        assert error.status_code == 401

    def test_model_not_found(self) -> None:
        error = ModelNotFoundError("llama-9", provider="groq")
        assert error.model == "llama-9"
        assert "llama-9" in str(error)
        assert error.status_class == "hard"


class TestClassifyHttpError:
    """Tests for classify_http_error()."""

    def test_429_is_quota(self) -> None:
        error = classify_http_error(429, "", provider="groq", retry_after=5.0)
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 5.0

    def test_503_is_overload(self) -> None:
        error = classify_http_error(503, "", provider="gemini")
        assert isinstance(error, ProviderUnavailableError)
        assert error.status_code == 503

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_statuses(self, status: int) -> None:
        error = classify_http_error(status, "denied", provider="groq")
        assert isinstance(error, AuthenticationError)
        assert error.status_code == status

    def test_404_is_model_not_found(self) -> None:
        error = classify_http_error(404, "", provider="gemini", model="gemini-x")
        assert isinstance(error, ModelNotFoundError)
        assert error.model == "gemini-x"

    @pytest.mark.parametrize("status", [400, 422, 500, 502])
    def test_other_statuses_are_hard(self, status: int) -> None:
        error = classify_http_error(status, "bad request", provider="groq")
        assert type(error) is ProviderRequestError
        assert error.retryable is False

    def test_body_markers_ignored_without_semantic_codes(self) -> None:
        """Groq-style providers are classified by status only."""
        error = classify_http_error(400, "quota exceeded", provider="groq")
        assert type(error) is ProviderRequestError

    def test_resource_exhausted_body_is_quota(self) -> None:
        error = classify_http_error(
            400,
            '{"error": {"status": "RESOURCE_EXHAUSTED"}}',
            provider="gemini",
            body_has_semantic_codes=True,
        )
        assert isinstance(error, RateLimitError)
        assert error.status_code == 400

    def test_unavailable_body_is_overload(self) -> None:
        error = classify_http_error(
            500,
            '{"error": {"status": "UNAVAILABLE", "message": "The model is overloaded"}}',
            provider="gemini",
            body_has_semantic_codes=True,
        )
        assert isinstance(error, ProviderUnavailableError)

    def test_status_wins_over_body(self) -> None:
        """A 503 stays an overload even if the body mentions quota."""
        error = classify_http_error(
            503, "quota", provider="gemini", body_has_semantic_codes=True
        )
        assert isinstance(error, ProviderUnavailableError)

    def test_body_is_kept_for_logging(self) -> None:
        error = classify_http_error(400, "invalid temperature", provider="groq")
        assert error.body == "invalid temperature"
        assert error.provider == "groq"

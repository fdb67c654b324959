"""FastAPI application for the coaching API.

Provides HTTP endpoints for:
- POST /api/evaluate - Framework evaluation
- POST /api/coach-questions - Clarifying-question coaching
- POST /api/evaluate-hypothesis - Hypothesis drill scoring
- POST /api/clarify - Interviewer answer to a clarifying question
- POST /api/transcribe - Speech-to-text for a recorded answer
- GET /health - Provider configuration status
- GET /metrics - Prometheus metrics in text format

Errors are returned as {"error": "<message>"} with the status carried by
the pipeline exception (400, 429, 500, 502 or 503). Provider error bodies
are logged, never returned.

Usage:
    from casecoach.api.server import create_app
    app = create_app()
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, File, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from casecoach.models.coaching import (
    ClarifyRequest,
    ClarifyResult,
    CoachQuestionsRequest,
    CoachQuestionsResult,
    EvaluateRequest,
    EvaluationResult,
    HypothesisRequest,
    HypothesisResult,
    TranscriptionResult,
)
from casecoach.models.config import AppConfig, ProviderCredentials
from casecoach.observability.context import clear_correlation_id, set_correlation_id
from casecoach.observability.logging import bind_context, clear_context
from casecoach.observability.metrics import get_metrics_content_type, get_metrics_text
from casecoach.services.cache_service import DiskResponseCache, build_cache
from casecoach.services.coaching_service import CoachingService
from casecoach.services.llm.cascade import CascadeOrchestrator
from casecoach.services.llm.providers import build_providers
from casecoach.services.llm.service import LLMService
from casecoach.services.transcription_service import TranscriptionService
from casecoach.utils.exceptions import CoachingError

logger = structlog.get_logger()

API_VERSION = "1.0.0"


@dataclass
class AppServices:
    """Everything the route handlers need, built once per application."""

    coaching: CoachingService
    transcription: TranscriptionService
    credentials: ProviderCredentials
    cache: Optional[DiskResponseCache] = None


def build_services(config: AppConfig, credentials: ProviderCredentials) -> AppServices:
    """Wire providers, cascade, cache and services from configuration."""
    providers = build_providers(
        credentials, timeout_seconds=config.cascade.attempt_timeout_seconds
    )
    orchestrator = CascadeOrchestrator(providers, config.cascade)
    cache = build_cache(config.cache)

    logger.info(
        "services_built",
        providers=sorted(providers),
        cache_enabled=cache is not None,
    )
    return AppServices(
        coaching=CoachingService(LLMService(orchestrator, cache=cache), config),
        transcription=TranscriptionService(
            orchestrator,
            config.policy("transcribe"),
            max_bytes=config.server.max_audio_bytes,
        ),
        credentials=credentials,
        cache=cache,
    )


def _validation_message(exc: RequestValidationError) -> str:
    """First custom validation message, or the generic one."""
    for error in exc.errors():
        if error.get("type") == "value_error":
            ctx_error = (error.get("ctx") or {}).get("error")
            if ctx_error:
                return str(ctx_error)
    return "Missing required fields"


def create_app(
    config: Optional[AppConfig] = None,
    services: Optional[AppServices] = None,
    credentials: Optional[ProviderCredentials] = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        config: Application configuration (defaults when omitted)
        services: Prebuilt services, mainly for tests
        credentials: Provider credentials used when services are built here

    Returns:
        Configured FastAPI application
    """
    config = config or AppConfig()
    if services is None:
        services = build_services(config, credentials or ProviderCredentials())

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # pragma: no cover
        logger.info("api_server_starting", providers=services.credentials.configured_providers)
        yield
        if services.cache is not None:
            services.cache.close()
        logger.info("api_server_stopping")

    app = FastAPI(
        title="casecoach API",
        version=API_VERSION,
        description="Case interview coaching backed by a resilient LLM pipeline",
        lifespan=lifespan,
    )
    app.state.services = services

    if config.server.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.server.cors_origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        corr_id = set_correlation_id(request.headers.get("X-Request-ID"))
        bind_context(path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_context()
            clear_correlation_id()
        response.headers["X-Request-ID"] = corr_id
        return response

    @app.exception_handler(CoachingError)
    async def coaching_error_handler(request: Request, exc: CoachingError) -> JSONResponse:
        logger.warning(
            "request_failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            error=str(exc),
        )
        return JSONResponse({"error": exc.user_message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        message = _validation_message(exc)
        logger.info("request_invalid", path=request.url.path, error=message)
        return JSONResponse({"error": message}, status_code=status.HTTP_400_BAD_REQUEST)

    @app.post("/api/evaluate", response_model=EvaluationResult)
    async def evaluate(body: EvaluateRequest) -> EvaluationResult:
        return await services.coaching.evaluate(body)

    @app.post("/api/coach-questions", response_model=CoachQuestionsResult)
    async def coach_questions(body: CoachQuestionsRequest) -> CoachQuestionsResult:
        return await services.coaching.coach_questions(body)

    @app.post("/api/evaluate-hypothesis", response_model=HypothesisResult)
    async def evaluate_hypothesis(body: HypothesisRequest) -> HypothesisResult:
        return await services.coaching.evaluate_hypothesis(body)

    @app.post("/api/clarify", response_model=ClarifyResult)
    async def clarify(body: ClarifyRequest) -> ClarifyResult:
        return await services.coaching.clarify(body)

    @app.post("/api/transcribe", response_model=TranscriptionResult)
    async def transcribe(audio: UploadFile = File(...)) -> TranscriptionResult:
        content = await audio.read()
        return await services.transcription.transcribe(
            content,
            mime_type=audio.content_type or "audio/webm",
            filename=audio.filename or "recording.webm",
        )

    @app.get(
        "/health",
        response_model=None,
        summary="Health check",
        responses={
            200: {"description": "At least one provider is configured"},
            503: {"description": "No provider credentials configured"},
        },
    )
    async def health_check() -> Response:
        providers = services.credentials.configured_providers
        healthy = bool(providers)
        return JSONResponse(
            content={
                "status": "healthy" if healthy else "unhealthy",
                "version": API_VERSION,
                "providers": providers,
                "cache_enabled": services.cache is not None,
            },
            status_code=(
                status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE
            ),
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    @app.get("/", response_model=None, summary="Root endpoint")
    async def root() -> Dict[str, Any]:
        return {
            "name": "casecoach",
            "version": API_VERSION,
            "endpoints": [route.path for route in app.routes if route.path.startswith("/api")],
        }

    return app


def run_server(  # pragma: no cover
    config: Optional[AppConfig] = None,
    credentials: Optional[ProviderCredentials] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
) -> None:
    """Run the API server (blocking)."""
    import uvicorn

    config = config or AppConfig()
    app = create_app(config, credentials=credentials)
    host = host or config.server.host
    port = port or config.server.port
    logger.info("api_server_starting", host=host, port=port)
    uvicorn.run(app, host=host, port=port, log_level=config.server.log_level.lower())

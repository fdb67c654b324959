"""LLM Service

Prompt in, validated response model out:

    cache lookup -> provider cascade -> JSON recovery -> schema validation

Extraction and shape errors are terminal for the request; the network is
never retried because of them.
"""

from typing import Callable, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from casecoach.models.llm import CascadePolicy
from casecoach.services.cache_service import ResponseCache
from casecoach.services.llm.cascade import CascadeOrchestrator
from casecoach.services.llm.response_parser import ResponseParser
from casecoach.utils.exceptions import ExtractionError, SchemaMismatchError

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMService:
    """Runs structured-output requests through the cascade.

    Args:
        orchestrator: Cascade orchestrator bound to the configured providers
        parser: Response parser (a default one is created if omitted)
        cache: Optional response cache; None disables caching
    """

    def __init__(
        self,
        orchestrator: CascadeOrchestrator,
        parser: Optional[ResponseParser] = None,
        cache: Optional[ResponseCache] = None,
    ):
        self.orchestrator = orchestrator
        self.parser = parser or ResponseParser()
        self.cache = cache

    async def generate(
        self,
        policy: CascadePolicy,
        prompt: str,
        schema: Type[ModelT],
        system_prompt: Optional[str] = None,
        cache_key: Optional[str] = None,
        text_fallback: Optional[Callable[[str], ModelT]] = None,
    ) -> ModelT:
        """Generate a response and validate it against ``schema``.

        Args:
            policy: Cascade policy to run
            prompt: Rendered prompt
            schema: Response model the output must match
            system_prompt: Optional system instruction
            cache_key: Enables caching of the validated result under this key
            text_fallback: Builds a result from raw text when no JSON can be
                recovered (e.g. a plain-text interviewer answer)

        Raises:
            CoachingError subclasses from the cascade, ExtractionError,
            SchemaMismatchError
        """
        cached = self._cached(cache_key, schema)
        if cached is not None:
            return cached

        response = await self.orchestrator.complete(
            policy, prompt, system_prompt=system_prompt
        )

        try:
            result = self.parser.parse(response.content, schema)
        except SchemaMismatchError:
            raise
        except ExtractionError as e:
            if text_fallback is None:
                logger.error(
                    "llm_output_unparseable",
                    policy=policy.name,
                    provider=response.provider,
                    model=response.model,
                    reason=e.reason,
                    preview=response.content[:500],
                )
                raise
            logger.info(
                "llm_output_plain_text", policy=policy.name, provider=response.provider
            )
            result = text_fallback(response.content)

        if cache_key and self.cache is not None:
            self.cache.set(cache_key, result.model_dump(by_alias=True))
        return result

    def _cached(self, cache_key: Optional[str], schema: Type[ModelT]) -> Optional[ModelT]:
        if not cache_key or self.cache is None:
            return None

        data = self.cache.get(cache_key)
        if data is None:
            return None
        try:
            return schema.model_validate(data)
        except ValidationError:
            logger.warning("cache_entry_invalid", key=cache_key[:24])
            self.cache.evict(cache_key)
            return None

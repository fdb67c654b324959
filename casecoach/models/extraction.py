"""Result types for JSON recovery and schema validation."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)


class ExtractionStrategy(str, Enum):
    """Which recovery step produced the parsed value"""

    DIRECT = "direct"
    BALANCED = "balanced"
    REPAIRED = "repaired"


class ExtractionFailureReason(str, Enum):
    NO_JSON_FOUND = "no-json-found"
    MALFORMED_AFTER_REPAIR = "malformed-after-repair"
    TRUNCATED_UNRECOVERABLE = "truncated-unrecoverable"


@dataclass(frozen=True)
class ExtractionOutcome:
    """Either a parsed JSON value or a classified failure.

    Use the ``parsed``/``failed`` constructors rather than building it
    directly; exactly one of ``strategy`` and ``reason`` is set.
    """

    value: Any = None
    strategy: Optional[ExtractionStrategy] = None
    reason: Optional[ExtractionFailureReason] = None

    @classmethod
    def parsed(cls, value: Any, strategy: ExtractionStrategy) -> "ExtractionOutcome":
        return cls(value=value, strategy=strategy)

    @classmethod
    def failed(cls, reason: ExtractionFailureReason) -> "ExtractionOutcome":
        return cls(reason=reason)

    @property
    def ok(self) -> bool:
        return self.reason is None


@dataclass(frozen=True)
class SchemaValidation(Generic[ModelT]):
    """Parsed JSON checked against a response model.

    ``model`` is set when the shape matched; ``errors`` lists pydantic
    error dicts otherwise.
    """

    model: Optional[ModelT] = None
    errors: List[dict] = field(default_factory=list)

    @classmethod
    def valid(cls, model: ModelT) -> "SchemaValidation[ModelT]":
        return cls(model=model)

    @classmethod
    def shape_mismatch(cls, errors: List[dict]) -> "SchemaValidation[ModelT]":
        return cls(errors=errors)

    @property
    def ok(self) -> bool:
        return self.model is not None

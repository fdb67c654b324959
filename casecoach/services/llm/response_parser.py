"""Response Parser Module

Turns raw model text into a validated response model:
- JSON recovery (fences, surrounding prose, truncation)
- Schema validation against a pydantic model
- Classified errors instead of parse exceptions
"""

from typing import Any, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from casecoach.models.extraction import ExtractionOutcome, SchemaValidation
from casecoach.observability.metrics import EXTRACTION_RESULTS
from casecoach.services.llm.json_recovery import extract_json
from casecoach.utils.exceptions import ExtractionError, SchemaMismatchError

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class ResponseParser:
    """Parses model responses into response models.

    Parsing happens in two steps so each can be used on its own:
    extract() never raises and returns an ExtractionOutcome, validate()
    never raises and returns a SchemaValidation. parse() chains both and
    raises the pipeline error for whichever step failed.
    """

    def extract(self, text: str) -> ExtractionOutcome:
        outcome = extract_json(text)
        label = outcome.strategy.value if outcome.ok else outcome.reason.value
        EXTRACTION_RESULTS.labels(strategy=label).inc()
        return outcome

    def validate(self, data: Any, schema: Type[ModelT]) -> SchemaValidation[ModelT]:
        """Check parsed JSON against a response model.

        Args:
            data: Value produced by extract()
            schema: Pydantic model the caller expects

        Returns:
            SchemaValidation.valid(model) or SchemaValidation.shape_mismatch(errors)
        """
        if not isinstance(data, dict):
            return SchemaValidation.shape_mismatch(
                [{"type": "dict_type", "msg": f"Expected an object, got {type(data).__name__}"}]
            )
        try:
            return SchemaValidation.valid(schema.model_validate(data))
        except ValidationError as e:
            return SchemaValidation.shape_mismatch(
                e.errors(include_url=False, include_input=False)
            )

    def parse(self, text: str, schema: Type[ModelT]) -> ModelT:
        """Extract and validate in one go.

        Raises:
            ExtractionError: Text could not be turned into JSON
            SchemaMismatchError: JSON does not match the schema
        """
        outcome = self.extract(text)
        if not outcome.ok:
            raise ExtractionError(
                f"Could not recover JSON from model output ({outcome.reason.value})",
                reason=outcome.reason.value,
            )

        validation = self.validate(outcome.value, schema)
        if not validation.ok:
            logger.warning(
                "response_shape_mismatch",
                schema=schema.__name__,
                errors=validation.errors[:5],
            )
            raise SchemaMismatchError(
                f"Model output does not match {schema.__name__}",
                errors=validation.errors,
            )

        logger.debug(
            "response_parsed",
            schema=schema.__name__,
            strategy=outcome.strategy.value,
        )
        return validation.model

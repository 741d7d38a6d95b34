"""
Document validation callback.

Runs on every write phase (before insert, update, replace and upsert):

- pydantic models are re-validated from their current field values, which
  catches assignments made after construction (including by hooks);
- documents whose class defines `__json_schema__` are checked against it
  with jsonschema, using their stored (encoded) form.

Any failure raises DocumentValidationError and aborts the operation.
"""

import logging
from typing import Any, List

from jsonschema import SchemaError
from jsonschema import ValidationError as JsonSchemaValidationError
from jsonschema import validate as jsonschema_validate
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..codec import to_document
from ..exceptions import DocumentValidationError
from .operations import WRITE_PHASES, OperationType

logger = logging.getLogger(__name__)

SCHEMA_ATTRIBUTE = "__json_schema__"


def _pydantic_error_paths(error: PydanticValidationError) -> List[str]:
    return [".".join(str(part) for part in err.get("loc", ())) for err in error.errors()]


def validate_model(document: BaseModel) -> None:
    """Re-validate a pydantic model instance."""
    try:
        type(document).model_validate(document.model_dump(by_alias=True))
    except PydanticValidationError as e:
        raise DocumentValidationError(
            f"{type(document).__name__} failed validation: {e.error_count()} error(s)",
            error_paths=_pydantic_error_paths(e),
        ) from e


def validate_schema(document: Any, schema: dict) -> None:
    """Validate a document's stored form against a JSON schema."""
    try:
        jsonschema_validate(instance=to_document(document), schema=schema)
    except JsonSchemaValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path) or "$"
        raise DocumentValidationError(
            f"{type(document).__name__} failed schema validation: {e.message}",
            error_paths=[path],
        ) from e
    except SchemaError as e:
        raise DocumentValidationError(
            f"Invalid JSON schema on {type(document).__name__}: {e.message}",
        ) from e


def validate_document(ctx: Any, document: Any, op_type: OperationType, *opts: Any) -> None:
    """
    Middleware callback validating one document before it is written.

    Raises:
        DocumentValidationError: If the document is invalid
    """
    if op_type not in WRITE_PHASES or document is None:
        return

    if isinstance(document, BaseModel):
        validate_model(document)

    schema = getattr(type(document), SCHEMA_ATTRIBUTE, None)
    if schema is not None:
        logger.debug(f"Validating {type(document).__name__} against its JSON schema")
        validate_schema(document, schema)

"""
Unit tests for the validation callback.

Tests pydantic re-validation and JSON schema checks on write phases.
"""

from dataclasses import dataclass
from typing import Optional

import pytest
from pydantic import BaseModel, Field

from mdb_odm.context import OperationContext
from mdb_odm.exceptions import DocumentValidationError
from mdb_odm.hooks import OperationType, validate_document


class Profile(BaseModel):
    name: str
    age: int = Field(ge=0)


class Event(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    kind: str = Field(alias="type", min_length=1)


@dataclass
class Product:
    __json_schema__ = {
        "type": "object",
        "properties": {
            "sku": {"type": "string", "minLength": 3},
            "price": {"type": "number", "minimum": 0},
        },
        "required": ["sku", "price"],
    }

    sku: str = ""
    price: float = 0.0


@dataclass
class BrokenSchema:
    __json_schema__ = {"type": "not-a-type"}

    value: int = 0


@pytest.mark.unit
class TestPydanticValidation:
    """Test re-validation of pydantic documents."""

    def test_valid_model_passes(self):
        validate_document(OperationContext(), Profile(name="a", age=1), OperationType.BEFORE_INSERT)

    def test_invalid_assignment_is_caught(self):
        profile = Profile(name="a", age=1)
        profile.age = -5

        with pytest.raises(DocumentValidationError) as exc_info:
            validate_document(OperationContext(), profile, OperationType.BEFORE_UPDATE)
        assert exc_info.value.error_paths == ["age"]

    def test_aliased_fields_pass(self):
        validate_document(
            OperationContext(), Event(_id="e1", type="click"), OperationType.BEFORE_INSERT
        )

    def test_aliased_field_error_uses_stored_name(self):
        event = Event(type="click")
        event.kind = ""

        with pytest.raises(DocumentValidationError) as exc_info:
            validate_document(OperationContext(), event, OperationType.BEFORE_UPSERT)
        assert exc_info.value.error_paths == ["type"]

    def test_non_write_phases_are_skipped(self):
        profile = Profile(name="a", age=1)
        profile.age = -5
        validate_document(OperationContext(), profile, OperationType.AFTER_INSERT)
        validate_document(OperationContext(), profile, OperationType.BEFORE_REMOVE)


@pytest.mark.unit
class TestJsonSchemaValidation:
    """Test __json_schema__ checks."""

    def test_valid_document_passes(self):
        validate_document(
            OperationContext(), Product(sku="abc", price=1.5), OperationType.BEFORE_UPSERT
        )

    def test_invalid_document_reports_path(self):
        with pytest.raises(DocumentValidationError) as exc_info:
            validate_document(
                OperationContext(), Product(sku="ab", price=1.0), OperationType.BEFORE_INSERT
            )
        assert exc_info.value.error_paths == ["sku"]

    def test_invalid_schema(self):
        with pytest.raises(DocumentValidationError, match="Invalid JSON schema"):
            validate_document(OperationContext(), BrokenSchema(), OperationType.BEFORE_REPLACE)

    def test_plain_dicts_are_not_validated(self):
        validate_document(OperationContext(), {"anything": object()}, OperationType.BEFORE_INSERT)

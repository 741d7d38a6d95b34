"""
Document codec.

Converts documents between the shapes applications use (dicts, pydantic
models, dataclasses) and the dicts motor sends to and receives from MongoDB.

Dataclass fields are stored under their name unless the field metadata
carries a "bson" entry:

    @dataclass
    class Item:
        sku: str = field(metadata={"bson": "_id"})
"""

import dataclasses
import logging
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .constants import BSON_FIELD_METADATA, DEFAULT_ID_FIELD
from .exceptions import ResultTypeInconsistentError

logger = logging.getLogger(__name__)


def _stored_name(f: dataclasses.Field) -> str:
    return f.metadata.get(BSON_FIELD_METADATA, f.name)


def _encode_value(value: Any) -> Any:
    if isinstance(value, BaseModel) or (
        dataclasses.is_dataclass(value) and not isinstance(value, type)
    ):
        return to_document(value)
    if isinstance(value, list):
        return [_encode_value(v) for v in value]
    if isinstance(value, tuple):
        return [_encode_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode_value(v) for k, v in value.items()}
    return value


def to_document(document: Any) -> Dict[str, Any]:
    """
    Encode a document into the dict sent to the driver.

    An unset (None) `_id` is left out so the server or the driver assigns one.

    Raises:
        TypeError: If the document is not a dict, pydantic model or dataclass
    """
    if isinstance(document, dict):
        encoded = dict(document)
    elif isinstance(document, BaseModel):
        encoded = document.model_dump(by_alias=True)
    elif dataclasses.is_dataclass(document) and not isinstance(document, type):
        encoded = {
            _stored_name(f): _encode_value(getattr(document, f.name))
            for f in dataclasses.fields(document)
        }
    else:
        raise TypeError(
            f"Cannot encode {type(document).__name__}: expected a dict, "
            f"a pydantic model or a dataclass instance"
        )

    if DEFAULT_ID_FIELD in encoded and encoded[DEFAULT_ID_FIELD] is None:
        del encoded[DEFAULT_ID_FIELD]
    return encoded


def from_document(data: Dict[str, Any], document_class: Optional[Type[Any]] = None) -> Any:
    """
    Decode a driver result into `document_class` (a dict when None).

    Raises:
        ResultTypeInconsistentError: If the data does not fit the class
    """
    if document_class is None or document_class is dict:
        return dict(data)

    try:
        if isinstance(document_class, type) and issubclass(document_class, BaseModel):
            return document_class.model_validate(data)

        if dataclasses.is_dataclass(document_class):
            init_kwargs: Dict[str, Any] = {}
            late: Dict[str, Any] = {}
            for f in dataclasses.fields(document_class):
                name = _stored_name(f)
                if name not in data:
                    continue
                if f.init:
                    init_kwargs[f.name] = data[name]
                else:
                    late[f.name] = data[name]
            instance = document_class(**init_kwargs)
            for attr, value in late.items():
                setattr(instance, attr, value)
            return instance
    except (TypeError, ValueError, PydanticValidationError) as e:
        logger.debug(f"Failed to decode document into {document_class.__name__}: {e}")
        raise ResultTypeInconsistentError(
            f"Cannot decode document into {document_class.__name__}",
            expected_type=document_class.__name__,
        ) from e

    raise ResultTypeInconsistentError(
        f"Unsupported result type {getattr(document_class, '__name__', document_class)!r}",
        expected_type=getattr(document_class, "__name__", str(document_class)),
    )


def write_back_id(document: Any, inserted_id: Any) -> None:
    """Record a driver-assigned `_id` on a dict document that had none."""
    if isinstance(document, dict) and document.get(DEFAULT_ID_FIELD) is None:
        document[DEFAULT_ID_FIELD] = inserted_id

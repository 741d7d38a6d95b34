"""
Field Defaulting Engine

Fills identity and timestamp fields on documents before they are written.

Phase -> actions:
- before_insert, before_upsert: set id and creation time when unset,
  always refresh the update time.
- before_update, before_replace: always refresh the update time.
- any other phase: nothing.

Documents opt in either by implementing DefaultFieldHook (usually by
inheriting the DefaultField dataclass) or CustomFieldHook, which maps the
three roles to attributes that are resolved by name at call time.

This module is part of MDB_ODM.
"""

import logging
import typing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from bson import ObjectId

from ..constants import (BSON_FIELD_METADATA, DEFAULT_CREATE_AT_FIELD,
                         DEFAULT_ID_FIELD, DEFAULT_UPDATE_AT_FIELD)
from ..exceptions import FieldDefaultingError
from ..utils import new_object_id, now
from .interfaces import CustomFieldHook, CustomFields, DefaultFieldHook
from .operations import OperationType

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class DefaultField(DefaultFieldHook):
    """
    Default metadata fields for dataclass documents.

    Inherit it to have `_id`, `createAt` and `updateAt` maintained
    automatically on insert, upsert, update and replace.

    Example:
        @dataclass
        class User(DefaultField):
            name: str
            age: int = 0
    """

    id: Optional[ObjectId] = field(default=None, metadata={BSON_FIELD_METADATA: DEFAULT_ID_FIELD})
    create_at: Optional[datetime] = field(
        default=None, metadata={BSON_FIELD_METADATA: DEFAULT_CREATE_AT_FIELD}
    )
    update_at: Optional[datetime] = field(
        default=None, metadata={BSON_FIELD_METADATA: DEFAULT_UPDATE_AT_FIELD}
    )

    def default_id(self) -> None:
        if self.id is None:
            self.id = new_object_id()

    def default_create_at(self, now: datetime) -> None:
        if self.create_at is None:
            self.create_at = now

    def default_update_at(self, now: datetime) -> None:
        self.update_at = now


# ----------------------------------------------------------------------------
# Custom field assignment
# ----------------------------------------------------------------------------

_ID_KINDS = (ObjectId, str)
_TIME_KINDS = (datetime, int)


def _annotation_for(doc: Any, field_name: str) -> Any:
    """Return the class annotation of an attribute, or None."""
    try:
        hints = typing.get_type_hints(type(doc))
    except (NameError, TypeError):
        hints = getattr(type(doc), "__annotations__", {})
    return hints.get(field_name)


def _resolve_kind(doc: Any, field_name: str, role: str, supported: tuple) -> type:
    """
    Work out which supported type an attribute holds.

    The declared annotation wins; without one the current value decides and
    an unset value falls back to the first supported type.
    """
    if not hasattr(doc, field_name):
        raise FieldDefaultingError(
            f"{type(doc).__name__} has no field '{field_name}' mapped as {role}",
            field_name=field_name,
            role=role,
        )

    annotation = _annotation_for(doc, field_name)
    if annotation is not None:
        candidates = typing.get_args(annotation) or (annotation,)
        for kind in supported:
            # identity match, so a bool annotation is not taken for int
            if any(c is kind for c in candidates):
                return kind
        raise FieldDefaultingError(
            f"Field '{field_name}' of {type(doc).__name__} is declared as "
            f"{annotation!r}, which cannot hold a {role} value",
            field_name=field_name,
            role=role,
            context={"supported": [k.__name__ for k in supported]},
        )

    value = getattr(doc, field_name)
    if value is None:
        return supported[0]
    for kind in supported:
        if type(value) is kind:
            return kind
    raise FieldDefaultingError(
        f"Field '{field_name}' of {type(doc).__name__} holds a "
        f"{type(value).__name__}, which cannot hold a {role} value",
        field_name=field_name,
        role=role,
    )


def _assign(doc: Any, field_name: str, role: str, value: Any) -> None:
    try:
        setattr(doc, field_name, value)
    except (AttributeError, TypeError, ValueError) as e:
        raise FieldDefaultingError(
            f"Cannot assign {role} field '{field_name}' of {type(doc).__name__}",
            field_name=field_name,
            role=role,
        ) from e


def _is_unset(value: Any) -> bool:
    return value is None or value == "" or (type(value) is int and value == 0)


def set_custom_id(doc: Any, fields: CustomFields) -> None:
    """Assign a new id to the mapped field when it is unset."""
    name = fields.id_field
    if not name:
        return
    kind = _resolve_kind(doc, name, "id", _ID_KINDS)
    if not _is_unset(getattr(doc, name)):
        return
    object_id = new_object_id()
    _assign(doc, name, "id", object_id if kind is ObjectId else str(object_id))


def set_custom_time(
    doc: Any, field_name: Optional[str], role: str, current: datetime, overwrite: bool
) -> None:
    """Assign `current` to a mapped timestamp field (datetime or Unix seconds)."""
    if not field_name:
        return
    kind = _resolve_kind(doc, field_name, role, _TIME_KINDS)
    if not overwrite and not _is_unset(getattr(doc, field_name)):
        return
    _assign(
        doc,
        field_name,
        role,
        current if kind is datetime else int(current.timestamp()),
    )


# ----------------------------------------------------------------------------
# Phase handlers
# ----------------------------------------------------------------------------


def _custom_fields_of(doc: CustomFieldHook) -> CustomFields:
    fields = doc.custom_fields()
    if not isinstance(fields, CustomFields):
        raise FieldDefaultingError(
            f"{type(doc).__name__}.custom_fields() must return CustomFields, "
            f"got {type(fields).__name__}"
        )
    return fields


def _before_insert(doc: Any) -> None:
    current = now()
    if isinstance(doc, DefaultFieldHook):
        doc.default_id()
        doc.default_create_at(current)
        doc.default_update_at(current)
    if isinstance(doc, CustomFieldHook):
        fields = _custom_fields_of(doc)
        set_custom_id(doc, fields)
        set_custom_time(doc, fields.create_at_field, "create_at", current, overwrite=False)
        set_custom_time(doc, fields.update_at_field, "update_at", current, overwrite=True)


def _before_update(doc: Any) -> None:
    current = now()
    if isinstance(doc, DefaultFieldHook):
        doc.default_update_at(current)
    if isinstance(doc, CustomFieldHook):
        fields = _custom_fields_of(doc)
        set_custom_time(doc, fields.update_at_field, "update_at", current, overwrite=True)


_PHASE_HANDLERS: Dict[OperationType, Callable[[Any], None]] = {
    OperationType.BEFORE_INSERT: _before_insert,
    OperationType.BEFORE_UPSERT: _before_insert,
    OperationType.BEFORE_UPDATE: _before_update,
    OperationType.BEFORE_REPLACE: _before_update,
}


def apply_defaults(ctx: Any, document: Any, op_type: OperationType, *opts: Any) -> None:
    """
    Middleware callback applying default and custom fields to one document.

    Args:
        ctx: OperationContext (unused)
        document: A single document; the pipeline splits lists beforehand
        op_type: Current operation phase
        *opts: Ignored

    Raises:
        FieldDefaultingError: If a custom field mapping cannot be applied
    """
    handler = _PHASE_HANDLERS.get(op_type)
    if handler is None or document is None:
        return
    handler(document)
    logger.debug(f"Applied {op_type.value} field defaults to {type(document).__name__}")

"""
Capability interfaces a document class may implement.

- DefaultFieldHook: the document owns its identity, creation time and update
  time fields and knows how to default them (see hooks.fields.DefaultField).
- CustomFieldHook: the document nominates which of its own attributes play
  those three roles; the engine assigns them by name.
- OperationHook: phase-named methods (before_insert, after_query, ...) called
  by the hook dispatch callback. Each receives the OperationContext and may
  raise to abort the operation. Methods may be plain or async.

Documents may implement any combination of these.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional


class DefaultFieldHook(ABC):
    """Documents that default their own id/create/update fields."""

    @abstractmethod
    def default_id(self) -> None:
        """Set the identity field when it is unset."""

    @abstractmethod
    def default_create_at(self, now: datetime) -> None:
        """Set the creation time when it is unset."""

    @abstractmethod
    def default_update_at(self, now: datetime) -> None:
        """Set the update time unconditionally."""


class CustomFields:
    """
    Builder naming the attributes that play the id/create/update roles.

    Example:
        class User(CustomFieldHook):
            def custom_fields(self) -> CustomFields:
                return CustomFields().set_id("uid").set_create_at("created")
    """

    __slots__ = ("id_field", "create_at_field", "update_at_field")

    def __init__(self) -> None:
        self.id_field: Optional[str] = None
        self.create_at_field: Optional[str] = None
        self.update_at_field: Optional[str] = None

    def set_id(self, field_name: str) -> "CustomFields":
        self.id_field = field_name
        return self

    def set_create_at(self, field_name: str) -> "CustomFields":
        self.create_at_field = field_name
        return self

    def set_update_at(self, field_name: str) -> "CustomFields":
        self.update_at_field = field_name
        return self

    def __repr__(self) -> str:
        return (
            f"CustomFields(id={self.id_field!r}, create_at={self.create_at_field!r}, "
            f"update_at={self.update_at_field!r})"
        )


class CustomFieldHook(ABC):
    """Documents that map the id/create/update roles to their own attributes."""

    @abstractmethod
    def custom_fields(self) -> CustomFields:
        """Return the role -> attribute name mapping."""


class OperationHook:
    """
    Base class with no-op implementations of every phase method.

    Subclass and override the phases you care about. Any object defining a
    method with a phase name works the same way; subclassing is optional.
    """

    def before_insert(self, ctx: Any) -> None:
        pass

    def after_insert(self, ctx: Any) -> None:
        pass

    def before_update(self, ctx: Any) -> None:
        pass

    def after_update(self, ctx: Any) -> None:
        pass

    def before_replace(self, ctx: Any) -> None:
        pass

    def after_replace(self, ctx: Any) -> None:
        pass

    def before_upsert(self, ctx: Any) -> None:
        pass

    def after_upsert(self, ctx: Any) -> None:
        pass

    def before_remove(self, ctx: Any) -> None:
        pass

    def after_remove(self, ctx: Any) -> None:
        pass

    def before_query(self, ctx: Any) -> None:
        pass

    def after_query(self, ctx: Any) -> None:
        pass

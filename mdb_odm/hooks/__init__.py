"""
Document lifecycle hooks.

Capability interfaces documents may implement, the operation phases, and the
built-in middleware callbacks (hook dispatch, field defaulting, validation).
"""

from .dispatch import run_operation_hooks
from .fields import DefaultField, apply_defaults
from .interfaces import (CustomFieldHook, CustomFields, DefaultFieldHook,
                         OperationHook)
from .operations import WRITE_PHASES, OperationType
from .validation import validate_document

__all__ = [
    # Phases
    "OperationType",
    "WRITE_PHASES",
    # Capabilities
    "DefaultFieldHook",
    "CustomFieldHook",
    "CustomFields",
    "OperationHook",
    "DefaultField",
    # Built-in callbacks
    "run_operation_hooks",
    "apply_defaults",
    "validate_document",
]

"""
Operation types identifying the point in a document's lifecycle.
"""

from enum import Enum


class OperationType(str, Enum):
    """Lifecycle phase passed to every middleware callback."""

    BEFORE_INSERT = "before_insert"
    AFTER_INSERT = "after_insert"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_REPLACE = "before_replace"
    AFTER_REPLACE = "after_replace"
    BEFORE_UPSERT = "before_upsert"
    AFTER_UPSERT = "after_upsert"
    BEFORE_REMOVE = "before_remove"
    AFTER_REMOVE = "after_remove"
    BEFORE_QUERY = "before_query"
    AFTER_QUERY = "after_query"

    @property
    def hook_method(self) -> str:
        """Name of the document method called for this phase."""
        return self.value


# Phases that write a document and therefore default and validate it
WRITE_PHASES = frozenset(
    {
        OperationType.BEFORE_INSERT,
        OperationType.BEFORE_UPDATE,
        OperationType.BEFORE_REPLACE,
        OperationType.BEFORE_UPSERT,
    }
)

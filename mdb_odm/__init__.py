"""
MDB_ODM - MongoDB Object Document Mapper

Async query builder and document lifecycle middleware over motor:
filter/sort/projection compilation, field defaulting, validation and
operation hooks around every write.
"""

# Configuration
from .config import ConnectionConfig, Credential, ReadPref
from .context import OperationContext
# Database layer
from .database import (Aggregate, Collection, Connection, Database, IndexSpec,
                       Model, Session)
# Errors
from .exceptions import (DocumentNotFoundError, MdbOdmError,
                         TransactionRetryError)
# Hooks
from .hooks import (CustomFieldHook, CustomFields, DefaultField,
                    DefaultFieldHook, OperationHook, OperationType)
# Middleware
from .middleware import Pipeline, get_default_pipeline, register
# Query
from .query import Change, Cursor, Query
from .utils import is_dup, is_no_documents, new_object_id, now

__version__ = "0.1.0"

__all__ = [
    # Configuration
    "ConnectionConfig",
    "Credential",
    "ReadPref",
    "OperationContext",
    # Database
    "Connection",
    "Database",
    "Session",
    "Collection",
    "Aggregate",
    "IndexSpec",
    "Model",
    # Query
    "Query",
    "Change",
    "Cursor",
    # Hooks
    "OperationType",
    "DefaultField",
    "DefaultFieldHook",
    "CustomFieldHook",
    "CustomFields",
    "OperationHook",
    # Middleware
    "Pipeline",
    "get_default_pipeline",
    "register",
    # Errors
    "MdbOdmError",
    "DocumentNotFoundError",
    "TransactionRetryError",
    # Helpers
    "now",
    "new_object_id",
    "is_dup",
    "is_no_documents",
]

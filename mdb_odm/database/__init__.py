"""
Database layer: connection, collections, aggregation and models.
"""

from .aggregate import Aggregate
from .collection import Collection, IndexSpec, index_key_spec
from .connection import Connection, Database, Session
from .model import Model, ModelRegistry, model_name

__all__ = [
    "Aggregate",
    "Collection",
    "IndexSpec",
    "index_key_spec",
    "Connection",
    "Database",
    "Session",
    "Model",
    "ModelRegistry",
    "model_name",
]

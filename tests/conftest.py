"""
Pytest configuration and shared fixtures for MDB_ODM tests.

This module provides:
- Mock motor client, collection and cursor fixtures
- Isolated middleware pipelines
- Sample document classes
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorCollection,
                                 AsyncIOMotorCursor)

from mdb_odm.hooks import DefaultField
from mdb_odm.middleware import Pipeline
from mdb_odm.observability.metrics import get_metrics_collector


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without a MongoDB server")
    config.addinivalue_line("markers", "asyncio: coroutine test run by pytest-asyncio")


# ============================================================================
# MOCK MOTOR FIXTURES
# ============================================================================


def build_motor_cursor(documents: Optional[List[Dict[str, Any]]] = None) -> MagicMock:
    """Mock motor cursor yielding `documents` through next() and to_list()."""
    documents = list(documents or [])
    cursor = MagicMock(spec=AsyncIOMotorCursor)
    cursor.to_list = AsyncMock(return_value=[dict(d) for d in documents])
    cursor.next = AsyncMock(side_effect=[dict(d) for d in documents] + [StopAsyncIteration()])
    cursor.close = MagicMock(return_value=None)
    return cursor


@pytest.fixture
def make_motor_cursor() -> Callable[..., MagicMock]:
    """Factory for mock motor cursors."""
    return build_motor_cursor


def build_motor_collection(name: str = "users") -> MagicMock:
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = name
    collection.find = MagicMock(return_value=build_motor_cursor())
    collection.find_one = AsyncMock(return_value=None)
    collection.aggregate = MagicMock(return_value=build_motor_cursor())
    collection.count_documents = AsyncMock(return_value=0)
    collection.distinct = AsyncMock(return_value=[])
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.find_one_and_replace = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="new_id"))
    collection.insert_many = AsyncMock(return_value=MagicMock(inserted_ids=["id1", "id2"]))
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.update_many = AsyncMock(return_value=MagicMock(matched_count=2, modified_count=2))
    collection.replace_one = AsyncMock(
        return_value=MagicMock(matched_count=1, modified_count=1, upserted_id=None)
    )
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.create_indexes = AsyncMock(return_value=["name_1"])
    collection.drop_index = AsyncMock(return_value=None)
    collection.drop_indexes = AsyncMock(return_value=None)
    collection.drop = AsyncMock(return_value=None)
    return collection


@pytest.fixture
def mock_motor_collection() -> MagicMock:
    """Create a mock motor collection named 'users'."""
    return build_motor_collection()


@pytest.fixture
def mock_motor_client() -> MagicMock:
    """Create a mock motor client whose databases hand out mock collections."""
    client = MagicMock(spec=AsyncIOMotorClient)
    client.admin = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1, "version": "7.0.2"})
    client.topology_description = MagicMock(topology_type_name="ReplicaSetWithPrimary")
    client.start_session = AsyncMock()
    client.drop_database = AsyncMock()

    def get_database(name, **options):
        db = MagicMock()
        db.name = name
        db.client = client
        db.__getitem__.side_effect = build_motor_collection
        db.command = AsyncMock(return_value={"ok": 1})
        db.create_collection = AsyncMock()
        return db

    client.get_database = MagicMock(side_effect=get_database)
    return client


# ============================================================================
# PIPELINE FIXTURES
# ============================================================================


@pytest.fixture
def pipeline() -> Pipeline:
    """A fresh pipeline with the built-in callbacks only."""
    return Pipeline()


@pytest.fixture
def bare_pipeline() -> Pipeline:
    """A fresh pipeline without any callback."""
    return Pipeline(builtins=False)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


# ============================================================================
# SAMPLE DOCUMENTS
# ============================================================================


@dataclass
class User(DefaultField):
    name: str = ""
    age: int = 0
    tags: List[str] = field(default_factory=list)


@pytest.fixture
def user_class() -> type:
    return User

"""
Collection executor.

Thin CRUD layer over an AsyncIOMotorCollection. Every write runs the
middleware pipeline before and after the driver call:

    users = conn.collection("users")
    await users.insert_one(user)                       # before/after_insert
    await users.update_one({"name": "a"}, {"$set": {"age": 3}})
    await users.upsert({"name": "a"}, user)           # before/after_upsert
    await users.remove({"name": "a"})

An explicit `hook=` object replaces the document as the target of operation
hook dispatch. Update and remove calls have no document of their own, so only
their hook (when given) goes through the pipeline.

Driver errors propagate unchanged; use `utils.is_dup` to detect duplicate
key errors.

This module is part of MDB_ODM.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple, Type

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.errors import PyMongoError
from pymongo.results import (DeleteResult, InsertManyResult, InsertOneResult,
                             UpdateResult)

from ..codec import to_document, write_back_id
from ..constants import DEFAULT_ID_FIELD
from ..context import OperationContext, ensure_context
from ..exceptions import DocumentNotFoundError, InvalidInsertError
from ..hooks.operations import OperationType
from ..middleware import Pipeline, get_default_pipeline
from ..observability.metrics import timed_operation
from ..query.builder import Query
from ..query.change import check_replacement, check_update
from ..query.filters import Filter
from .aggregate import Aggregate

logger = logging.getLogger(__name__)


@dataclass
class IndexSpec:
    """
    Index definition.

    Attributes:
        keys: Field names, "-field" for descending order
        unique: Whether the index enforces uniqueness
        name: Index name (generated by the server when None)
        options: Extra index options passed to pymongo.IndexModel
    """

    keys: List[str]
    unique: bool = False
    name: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)

    def key_spec(self) -> List[Tuple[str, int]]:
        return index_key_spec(self.keys)

    def to_index_model(self) -> IndexModel:
        kwargs = dict(self.options)
        if self.unique:
            kwargs["unique"] = True
        if self.name:
            kwargs["name"] = self.name
        return IndexModel(self.key_spec(), **kwargs)


def index_key_spec(keys: Sequence[str]) -> List[Tuple[str, int]]:
    """
    Turn ["name", "-age"] into [("name", 1), ("age", -1)].

    Raises:
        ValueError: On an empty key list or an empty field name
    """
    if not keys:
        raise ValueError("Index needs at least one key")
    spec = []
    for key in keys:
        if key.startswith("-"):
            name, direction = key[1:], DESCENDING
        else:
            name, direction = key, ASCENDING
        if not name:
            raise ValueError(f"Invalid index key {key!r}")
        spec.append((name, direction))
    return spec


class Collection:
    """
    Handle on one MongoDB collection.

    Args:
        collection: Underlying motor collection
        pipeline: Middleware pipeline (process-wide default when None)
        document_class: Default class query results are decoded into
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        pipeline: Optional[Pipeline] = None,
        document_class: Optional[Type[Any]] = None,
    ):
        self._collection = collection
        self._pipeline = pipeline or get_default_pipeline()
        self._document_class = document_class

    @property
    def name(self) -> str:
        """Collection name."""
        return self._collection.name

    @property
    def motor_collection(self) -> AsyncIOMotorCollection:
        """The wrapped motor collection, for driver calls not covered here."""
        return self._collection

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def _context(self, ctx: Optional[OperationContext]) -> OperationContext:
        return ensure_context(ctx, self.name)

    async def _run_pipeline(
        self, ctx: OperationContext, document: Any, op_type: OperationType, hook: Any = None
    ) -> None:
        if hook is not None:
            await self._pipeline.run(ctx, document, op_type, hook)
        else:
            await self._pipeline.run(ctx, document, op_type)

    async def _execute(self, operation_name: str, call: Awaitable[Any]) -> Any:
        async with timed_operation(f"collection.{operation_name}", collection=self.name):
            try:
                return await call
            except PyMongoError as e:
                logger.error(
                    f"Database operation {operation_name} failed on '{self.name}': {e}"
                )
                raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(
        self,
        filter: Optional[Filter] = None,
        hook: Any = None,
        ctx: Optional[OperationContext] = None,
        document_class: Optional[Type[Any]] = None,
    ) -> Query:
        """
        Start a query.

        Args:
            filter: Starting filter document (refine with `where`)
            hook: Query hook object with before_query / after_query methods
            ctx: Operation context
            document_class: Class results are decoded into
        """
        return Query(
            self._collection,
            filter=filter,
            ctx=self._context(ctx),
            hook=hook,
            pipeline=self._pipeline,
            document_class=document_class or self._document_class,
        )

    def aggregate(
        self,
        pipeline: Sequence[Dict[str, Any]],
        ctx: Optional[OperationContext] = None,
        **options: Any,
    ) -> Aggregate:
        """Start an aggregation; options are passed to motor's aggregate()."""
        return Aggregate(
            self._collection,
            pipeline,
            ctx=self._context(ctx),
            options=options,
            document_class=self._document_class,
        )

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    async def insert_one(
        self, document: Any, ctx: Optional[OperationContext] = None, hook: Any = None
    ) -> InsertOneResult:
        """
        Insert one document.

        The driver-assigned `_id` is written back to dict documents that had none.
        """
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, document, OperationType.BEFORE_INSERT, hook)

        encoded = to_document(document)
        result = await self._execute(
            "insert_one",
            self._collection.insert_one(encoded, **ctx.driver_kwargs(time_limit_key=None)),
        )
        write_back_id(document, result.inserted_id)

        await self._run_pipeline(ctx, document, OperationType.AFTER_INSERT, hook)
        return result

    async def insert_many(
        self,
        documents: List[Any],
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
        ordered: bool = True,
    ) -> InsertManyResult:
        """
        Insert a non-empty list of documents.

        Raises:
            InvalidInsertError: If `documents` is not a non-empty list
        """
        if not isinstance(documents, list) or not documents:
            raise InvalidInsertError(context={"collection": self.name})

        ctx = self._context(ctx)
        await self._run_pipeline(ctx, documents, OperationType.BEFORE_INSERT, hook)

        encoded = [to_document(document) for document in documents]
        result = await self._execute(
            "insert_many",
            self._collection.insert_many(
                encoded, ordered=ordered, **ctx.driver_kwargs(time_limit_key=None)
            ),
        )
        for document, inserted_id in zip(documents, result.inserted_ids):
            write_back_id(document, inserted_id)

        await self._run_pipeline(ctx, documents, OperationType.AFTER_INSERT, hook)
        return result

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def update_one(
        self,
        filter: Filter,
        update: Any,
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
    ) -> UpdateResult:
        """
        Update the first document matching `filter`.

        Raises:
            UpdateRequiresOperatorsError: If `update` has keys without '$'
            DocumentNotFoundError: If nothing matched
        """
        check_update(update)
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, hook, OperationType.BEFORE_UPDATE)

        result = await self._execute(
            "update_one",
            self._collection.update_one(
                filter, update, **ctx.driver_kwargs(time_limit_key=None)
            ),
        )
        if result.matched_count == 0:
            raise DocumentNotFoundError(
                context={"collection": self.name, "operation": "update_one"}
            )

        await self._run_pipeline(ctx, hook, OperationType.AFTER_UPDATE)
        return result

    async def update_all(
        self,
        filter: Filter,
        update: Any,
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
    ) -> UpdateResult:
        """Update every document matching `filter`; matching nothing is not an error."""
        check_update(update)
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, hook, OperationType.BEFORE_UPDATE)

        result = await self._execute(
            "update_all",
            self._collection.update_many(
                filter, update, **ctx.driver_kwargs(time_limit_key=None)
            ),
        )

        await self._run_pipeline(ctx, hook, OperationType.AFTER_UPDATE)
        return result

    async def replace_one(
        self,
        filter: Filter,
        document: Any,
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
    ) -> UpdateResult:
        """
        Replace the first document matching `filter`.

        Raises:
            ReplacementContainsOperatorsError: If the replacement has '$' keys
            DocumentNotFoundError: If nothing matched
        """
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, document, OperationType.BEFORE_REPLACE, hook)

        replacement = to_document(document)
        check_replacement(replacement)
        result = await self._execute(
            "replace_one",
            self._collection.replace_one(
                filter, replacement, **ctx.driver_kwargs(time_limit_key=None)
            ),
        )
        if result.matched_count == 0:
            raise DocumentNotFoundError(
                context={"collection": self.name, "operation": "replace_one"}
            )

        await self._run_pipeline(ctx, document, OperationType.AFTER_REPLACE, hook)
        return result

    async def upsert(
        self,
        filter: Filter,
        document: Any,
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
    ) -> UpdateResult:
        """
        Replace the first document matching `filter`, inserting it when none does.

        Raises:
            ReplacementContainsOperatorsError: If the replacement has '$' keys
        """
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, document, OperationType.BEFORE_UPSERT, hook)

        replacement = to_document(document)
        check_replacement(replacement)
        result = await self._execute(
            "upsert",
            self._collection.replace_one(
                filter, replacement, upsert=True, **ctx.driver_kwargs(time_limit_key=None)
            ),
        )
        if result.upserted_id is not None:
            write_back_id(document, result.upserted_id)

        await self._run_pipeline(ctx, document, OperationType.AFTER_UPSERT, hook)
        return result

    # ------------------------------------------------------------------
    # Removes
    # ------------------------------------------------------------------

    async def remove(
        self, filter: Filter, ctx: Optional[OperationContext] = None, hook: Any = None
    ) -> DeleteResult:
        """
        Remove the first document matching `filter`.

        Raises:
            DocumentNotFoundError: If nothing matched
        """
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, hook, OperationType.BEFORE_REMOVE)

        result = await self._execute(
            "remove",
            self._collection.delete_one(filter, **ctx.driver_kwargs(time_limit_key=None)),
        )
        if result.deleted_count == 0:
            raise DocumentNotFoundError(
                context={"collection": self.name, "operation": "remove"}
            )

        await self._run_pipeline(ctx, hook, OperationType.AFTER_REMOVE)
        return result

    async def remove_id(
        self, id: Any, ctx: Optional[OperationContext] = None, hook: Any = None
    ) -> DeleteResult:
        """Remove the document with the given `_id`."""
        return await self.remove({DEFAULT_ID_FIELD: id}, ctx=ctx, hook=hook)

    async def remove_all(
        self, filter: Filter, ctx: Optional[OperationContext] = None, hook: Any = None
    ) -> DeleteResult:
        """Remove every document matching `filter`; matching nothing is not an error."""
        ctx = self._context(ctx)
        await self._run_pipeline(ctx, hook, OperationType.BEFORE_REMOVE)

        result = await self._execute(
            "remove_all",
            self._collection.delete_many(filter, **ctx.driver_kwargs(time_limit_key=None)),
        )

        await self._run_pipeline(ctx, hook, OperationType.AFTER_REMOVE)
        return result

    # ------------------------------------------------------------------
    # Indexes and collection management
    # ------------------------------------------------------------------

    async def create_indexes(
        self, indexes: Sequence[IndexSpec], ctx: Optional[OperationContext] = None
    ) -> List[str]:
        """
        Create indexes.

        Returns:
            The names of the created indexes
        """
        if not indexes:
            return []
        ctx = self._context(ctx)
        models = [index.to_index_model() for index in indexes]
        names = await self._execute(
            "create_indexes",
            self._collection.create_indexes(models, **ctx.driver_kwargs(time_limit_key=None)),
        )
        logger.info(f"Created indexes {names} on '{self.name}'")
        return names

    async def drop_indexes(
        self,
        indexes: Optional[Sequence[Sequence[str]]] = None,
        ctx: Optional[OperationContext] = None,
    ) -> None:
        """
        Drop indexes by their keys, e.g. [["name", "-age"]].

        With no argument every index except the one on `_id` is dropped.
        """
        ctx = self._context(ctx)
        kwargs = ctx.driver_kwargs(time_limit_key=None)
        if indexes is None:
            await self._execute("drop_indexes", self._collection.drop_indexes(**kwargs))
            logger.info(f"Dropped all indexes on '{self.name}'")
            return
        for keys in indexes:
            await self._execute(
                "drop_indexes", self._collection.drop_index(index_key_spec(keys), **kwargs)
            )
            logger.info(f"Dropped index {list(keys)} on '{self.name}'")

    async def drop(self, ctx: Optional[OperationContext] = None) -> None:
        """Drop the collection."""
        ctx = self._context(ctx)
        await self._execute(
            "drop", self._collection.drop(**ctx.driver_kwargs(time_limit_key=None))
        )
        logger.info(f"Dropped collection '{self.name}'")

    def clone(self, **options: Any) -> "Collection":
        """
        Copy of this collection handle with different driver options
        (codec_options, read_preference, write_concern, read_concern).
        """
        return Collection(
            self._collection.with_options(**options),
            pipeline=self._pipeline,
            document_class=self._document_class,
        )

    def __repr__(self) -> str:
        return f"Collection(name={self.name!r})"

"""
Chainable query builder and executor.

A Query accumulates a filter, a sort, a projection and scalar options, then
runs one of find_one / find / count_documents / distinct / findAndModify on
the underlying motor collection:

    users = await (
        conn.collection("users")
        .find()
        .where({"age >=": 18, "status in": ["active", "trial"]})
        .or_where({"role": "admin"})
        .sort("age desc", "name")
        .select("!password")
        .limit(20)
        .all(User)
    )

Query hooks (an object with before_query / after_query methods given to
`Collection.find(hook=...)`) run through the middleware pipeline around
`one()` and `all()`.

This module is part of MDB_ODM.
"""

import logging
from typing import Any, Dict, List, Optional, Type

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from ..codec import from_document, to_document
from ..constants import OP_AND, OP_OR
from ..context import OperationContext, ensure_context
from ..exceptions import (DocumentNotFoundError, QueryNotSliceError,
                          ResultTypeInconsistentError)
from ..hooks.operations import OperationType
from ..middleware import Pipeline, get_default_pipeline
from ..observability.metrics import timed_operation
from .change import Change, check_replacement, check_update
from .cursor import Cursor
from .fields import parse_select_field, parse_sort_field
from .filters import Filter, combine_filters, compile_filter, merge_filters

logger = logging.getLogger(__name__)


class Query:
    """
    Query on a single collection.

    Builder methods return the query itself so calls can be chained.
    Execution methods are coroutines.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        filter: Optional[Filter] = None,
        ctx: Optional[OperationContext] = None,
        hook: Any = None,
        pipeline: Optional[Pipeline] = None,
        document_class: Optional[Type[Any]] = None,
    ):
        """
        Initialize the query.

        Args:
            collection: Motor collection to query
            filter: Starting filter document, used as is
            ctx: Operation context (session, time limit)
            hook: Query hook object (before_query / after_query)
            pipeline: Middleware pipeline (process-wide default when None)
            document_class: Default class results are decoded into
        """
        self._collection = collection
        self._filter: Filter = dict(filter) if filter else {}
        self._sort: List[tuple] = []
        self._projection: Dict[str, int] = {}
        self._hint: Any = None
        self._limit: Optional[int] = None
        self._skip: Optional[int] = None
        self._batch_size: Optional[int] = None
        self._ctx = ensure_context(ctx, collection.name)
        self._hook = hook
        self._pipeline = pipeline or get_default_pipeline()
        self._document_class = document_class

    # ------------------------------------------------------------------
    # Builder
    # ------------------------------------------------------------------

    @property
    def filter(self) -> Filter:
        return self._filter

    @property
    def sort_spec(self) -> List[tuple]:
        return list(self._sort)

    @property
    def projection(self) -> Dict[str, int]:
        return dict(self._projection)

    def where(self, conditions: Dict[str, Any]) -> "Query":
        """Add conditions to the filter at its top level (AND)."""
        self._filter = merge_filters(self._filter, compile_filter(conditions))
        return self

    def and_where(self, conditions: Dict[str, Any]) -> "Query":
        """
        AND a new group of conditions with everything accumulated so far.

        The existing filter becomes the left child of a new $and node; with no
        filter yet this is the same as `where`.
        """
        return self._combine(OP_AND, conditions)

    def or_where(self, conditions: Dict[str, Any]) -> "Query":
        """OR a new group of conditions with everything accumulated so far."""
        return self._combine(OP_OR, conditions)

    def _combine(self, combinator: str, conditions: Dict[str, Any]) -> "Query":
        if not self._filter:
            return self.where(conditions)
        self._filter = combine_filters(combinator, self._filter, compile_filter(conditions))
        return self

    def sort(self, *fields: str) -> "Query":
        """
        Add sort keys: "age" or "age asc" ascending, "age desc" descending.

        Keys are applied in the order given.

        Raises:
            ValueError: On an empty field name
        """
        for spec in fields:
            key, direction = parse_sort_field(spec)
            if not key:
                raise ValueError("Sort: empty field name")
            self._sort.append((key, direction))
        return self

    def select(self, *fields: str) -> "Query":
        """
        Choose returned fields: "age" includes, "!age" excludes.

        Raises:
            ValueError: On an empty field name
        """
        for spec in fields:
            key, visible = parse_select_field(spec)
            if not key:
                raise ValueError("Select: empty field name")
            self._projection[key] = visible
        return self

    def skip(self, n: int) -> "Query":
        self._skip = n
        return self

    def limit(self, n: int) -> "Query":
        """
        Limit the number of documents returned; 0 means no limit.

        A negative limit behaves like a positive one but closes the cursor
        after the first batch.
        """
        self._limit = n
        return self

    def batch_size(self, n: int) -> "Query":
        """Maximum number of documents in each batch returned by the server."""
        self._batch_size = n
        return self

    def hint(self, hint: Any) -> "Query":
        """Index name or index specification the server should use."""
        self._hint = hint
        return self

    # ------------------------------------------------------------------
    # Driver options
    # ------------------------------------------------------------------

    def _find_kwargs(self, with_limit: bool = True) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = self._ctx.driver_kwargs(time_limit_key="max_time_ms")
        if self._sort:
            kwargs["sort"] = list(self._sort)
        if self._projection:
            kwargs["projection"] = dict(self._projection)
        if self._skip is not None:
            kwargs["skip"] = self._skip
        if self._hint is not None:
            kwargs["hint"] = self._hint
        if with_limit:
            if self._limit is not None:
                kwargs["limit"] = self._limit
            if self._batch_size is not None:
                kwargs["batch_size"] = self._batch_size
        return kwargs

    def _modify_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = self._ctx.driver_kwargs()
        if self._sort:
            kwargs["sort"] = list(self._sort)
        if self._projection:
            kwargs["projection"] = dict(self._projection)
        return kwargs

    def _result_class(self, document_class: Optional[Type[Any]]) -> Optional[Type[Any]]:
        return document_class if document_class is not None else self._document_class

    async def _run_query_hook(self, op_type: OperationType) -> None:
        if self._hook is not None:
            await self._pipeline.run(self._ctx, self._hook, op_type)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def one(self, document_class: Optional[Type[Any]] = None) -> Any:
        """
        Return the first document matching the query.

        Raises:
            DocumentNotFoundError: If nothing matches
            ResultTypeInconsistentError: If the document does not fit the class
        """
        await self._run_query_hook(OperationType.BEFORE_QUERY)

        async with timed_operation("query.one", collection=self._collection.name):
            raw = await self._collection.find_one(
                self._filter, **self._find_kwargs(with_limit=False)
            )

        if raw is None:
            raise DocumentNotFoundError(context={"collection": self._collection.name})
        result = from_document(raw, self._result_class(document_class))

        await self._run_query_hook(OperationType.AFTER_QUERY)
        return result

    async def all(self, document_class: Optional[Type[Any]] = None) -> List[Any]:
        """Return every document matching the query."""
        await self._run_query_hook(OperationType.BEFORE_QUERY)

        async with timed_operation("query.all", collection=self._collection.name):
            motor_cursor = self._collection.find(self._filter, **self._find_kwargs())
            results = await Cursor(
                motor_cursor, document_class=self._result_class(document_class)
            ).all([])

        await self._run_query_hook(OperationType.AFTER_QUERY)
        return results

    async def count(self) -> int:
        """Count matching documents, honouring skip and limit."""
        kwargs: Dict[str, Any] = self._ctx.driver_kwargs()
        if self._limit:
            kwargs["limit"] = abs(self._limit)
        if self._skip:
            kwargs["skip"] = self._skip
        if self._hint is not None:
            kwargs["hint"] = self._hint

        async with timed_operation("query.count", collection=self._collection.name):
            return await self._collection.count_documents(self._filter, **kwargs)

    async def distinct(
        self, key: str, result: List[Any], item_type: Optional[type] = None
    ) -> List[Any]:
        """
        Fill `result` with the distinct values of `key` among matching documents.

        Args:
            key: Field name
            result: List replaced in place with the values
            item_type: When given, every value must be an instance of it

        Returns:
            The same list

        Raises:
            QueryNotSliceError: If `result` is not a list (the server is not called)
            ResultTypeInconsistentError: If a value is not an `item_type`
        """
        if not isinstance(result, list):
            raise QueryNotSliceError(context={"result_type": type(result).__name__})

        async with timed_operation("query.distinct", collection=self._collection.name):
            values = await self._collection.distinct(
                key, self._filter, **self._ctx.driver_kwargs()
            )

        if item_type is not None:
            for value in values:
                if not isinstance(value, item_type):
                    raise ResultTypeInconsistentError(
                        f"Distinct value of '{key}' is a {type(value).__name__}, "
                        f"not a {item_type.__name__}",
                        expected_type=item_type.__name__,
                    )

        result[:] = values
        return result

    def cursor(self, document_class: Optional[Type[Any]] = None) -> Cursor:
        """
        Return a lazy Cursor over the matching documents.

        The caller must close it (or drain it with `all()`).
        """
        result_class = self._result_class(document_class)
        try:
            motor_cursor = self._collection.find(self._filter, **self._find_kwargs())
        except (PyMongoError, TypeError, ValueError) as e:
            logger.debug(f"Failed to open cursor on '{self._collection.name}': {e}")
            return Cursor(None, error=e, document_class=result_class)
        return Cursor(motor_cursor, document_class=result_class)

    async def apply(self, change: Change, document_class: Optional[Type[Any]] = None) -> Any:
        """
        Run findAndModify: remove, replace or update one matching document.

        Sort selects which document is modified when several match; select
        limits the returned fields. The original document is returned unless
        `change.return_new` is set.

        Returns:
            The decoded document, or None when an upsert that does not return
            the new document found nothing beforehand

        Raises:
            DocumentNotFoundError: If nothing matched (see above for upserts)
            ReplacementContainsOperatorsError: Replace payload has '$' keys
            UpdateRequiresOperatorsError: Update payload has plain keys
        """
        mode = change.mode
        kwargs = self._modify_kwargs()

        if mode == "remove":
            operation = self._collection.find_one_and_delete
            args: tuple = (self._filter,)
        else:
            if change.upsert:
                kwargs["upsert"] = True
            if change.return_new:
                kwargs["return_document"] = ReturnDocument.AFTER
            if mode == "replace":
                replacement = to_document(change.update)
                check_replacement(replacement)
                operation = self._collection.find_one_and_replace
                args = (self._filter, replacement)
            else:
                check_update(change.update)
                operation = self._collection.find_one_and_update
                args = (self._filter, change.update)

        async with timed_operation(f"query.apply.{mode}", collection=self._collection.name):
            raw = await operation(*args, **kwargs)

        if raw is None:
            if change.suppresses_not_found:
                return None
            raise DocumentNotFoundError(
                context={"collection": self._collection.name, "mode": mode}
            )
        return from_document(raw, self._result_class(document_class))

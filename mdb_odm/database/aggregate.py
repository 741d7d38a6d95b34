"""
Aggregation handle.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Type

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from ..context import OperationContext, ensure_context
from ..exceptions import DocumentNotFoundError
from ..observability.metrics import timed_operation
from ..query.cursor import Cursor

logger = logging.getLogger(__name__)


class Aggregate:
    """
    Aggregation pipeline bound to a collection, run lazily.

    Example:
        totals = await orders.aggregate([
            {"$match": {"status": "paid"}},
            {"$group": {"_id": "$customer", "total": {"$sum": "$amount"}}},
        ]).all()
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        pipeline: Sequence[Dict[str, Any]],
        ctx: Optional[OperationContext] = None,
        options: Optional[Dict[str, Any]] = None,
        document_class: Optional[Type[Any]] = None,
    ):
        self._collection = collection
        self._pipeline = list(pipeline)
        self._ctx = ensure_context(ctx, collection.name)
        self._options = dict(options or {})
        self._document_class = document_class

    @property
    def pipeline(self) -> List[Dict[str, Any]]:
        return list(self._pipeline)

    def _result_class(self, document_class: Optional[Type[Any]]) -> Optional[Type[Any]]:
        return document_class if document_class is not None else self._document_class

    def iter(self, document_class: Optional[Type[Any]] = None) -> Cursor:
        """Return a Cursor over the aggregation results; the caller closes it."""
        result_class = self._result_class(document_class)
        kwargs = {**self._options, **self._ctx.driver_kwargs()}
        try:
            motor_cursor = self._collection.aggregate(self._pipeline, **kwargs)
        except (PyMongoError, TypeError, ValueError) as e:
            logger.debug(f"Failed to start aggregation on '{self._collection.name}': {e}")
            return Cursor(None, error=e, document_class=result_class)
        return Cursor(motor_cursor, document_class=result_class)

    async def all(self, document_class: Optional[Type[Any]] = None) -> List[Any]:
        """Run the aggregation and return every result."""
        async with timed_operation("aggregate.all", collection=self._collection.name):
            return await self.iter(document_class).all([])

    async def one(self, document_class: Optional[Type[Any]] = None) -> Any:
        """
        Run the aggregation and return its first result.

        Raises:
            DocumentNotFoundError: If the aggregation produced nothing
        """
        async with timed_operation("aggregate.one", collection=self._collection.name):
            cursor = self.iter(document_class)
            try:
                document = await cursor.next()
            finally:
                await cursor.close()

        if document is None:
            if cursor.err is not None:
                raise cursor.err
            raise DocumentNotFoundError(context={"collection": self._collection.name})
        return document

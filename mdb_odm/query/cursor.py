"""
Lazy result sequence over a motor cursor.

A Cursor yields decoded documents one at a time and is not restartable.
`next()` returns None both at the end of the results and on failure; check
`err` afterwards to tell them apart. Always close a cursor you did not drain
with `all()`.
"""

import inspect
import logging
from typing import Any, List, Optional, Type

from motor.motor_asyncio import AsyncIOMotorCommandCursor, AsyncIOMotorCursor
from pymongo.errors import PyMongoError

from ..codec import from_document
from ..exceptions import QueryNotSliceError, ResultTypeInconsistentError

logger = logging.getLogger(__name__)


class Cursor:
    """
    Wrapper around AsyncIOMotorCursor / AsyncIOMotorCommandCursor.

    Example:
        cursor = users.find().where({"age >=": 18}).cursor()
        try:
            while (user := await cursor.next()) is not None:
                ...
            if cursor.err:
                raise cursor.err
        finally:
            await cursor.close()

        # or
        async for user in users.find().cursor():
            ...
    """

    def __init__(
        self,
        cursor: AsyncIOMotorCursor | AsyncIOMotorCommandCursor | None,
        error: Optional[BaseException] = None,
        document_class: Optional[Type[Any]] = None,
    ):
        """
        Initialize the cursor.

        Args:
            cursor: Underlying motor cursor (None when creation failed)
            error: Error raised while creating the cursor, if any
            document_class: Class results are decoded into (dicts when None)
        """
        self._cursor = cursor
        self._err = error
        self._document_class = document_class
        self._closed = False

    @property
    def err(self) -> Optional[BaseException]:
        """The last terminal error, or None."""
        return self._err

    async def next(self) -> Any:
        """
        Advance and decode one document.

        Returns:
            The next document, or None when exhausted or failed (see `err`)
        """
        if self._err is not None or self._cursor is None or self._closed:
            return None
        try:
            raw = await self._cursor.next()
        except StopAsyncIteration:
            return None
        except PyMongoError as e:
            logger.debug(f"Cursor failed: {e}")
            self._err = e
            return None

        try:
            return from_document(raw, self._document_class)
        except ResultTypeInconsistentError as e:
            self._err = e
            return None

    async def all(self, results: List[Any]) -> List[Any]:
        """
        Drain the remaining documents into `results` and close the cursor.

        Args:
            results: List extended in place

        Returns:
            The same list

        Raises:
            QueryNotSliceError: If `results` is not a list
            The creation or iteration error, if any
        """
        if not isinstance(results, list):
            raise QueryNotSliceError(context={"result_type": type(results).__name__})
        if self._err is not None:
            raise self._err
        if self._cursor is None:
            return results

        try:
            raw_documents = await self._cursor.to_list(length=None)
            results.extend(from_document(raw, self._document_class) for raw in raw_documents)
        except (PyMongoError, ResultTypeInconsistentError) as e:
            self._err = e
            raise
        finally:
            await self.close()
        return results

    async def close(self) -> None:
        """Release the server-side cursor. Safe to call more than once."""
        if self._closed or self._cursor is None:
            self._closed = True
            return
        self._closed = True
        result = self._cursor.close()
        if inspect.isawaitable(result):
            await result

    def __aiter__(self) -> "Cursor":
        return self

    async def __anext__(self) -> Any:
        document = await self.next()
        if document is None:
            await self.close()
            if self._err is not None:
                raise self._err
            raise StopAsyncIteration
        return document

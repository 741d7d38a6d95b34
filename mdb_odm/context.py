"""
Per-operation context threaded through the pipeline and into the driver.

An OperationContext is what callbacks receive as their first argument and
what every executor call forwards to motor: the client session (set inside
transactions) and an optional server-side time limit.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClientSession


@dataclass
class OperationContext:
    """
    Context for a single database operation.

    Attributes:
        session: Client session to run the operation in (transactions)
        max_time_ms: Server-side time limit passed as maxTimeMS
        collection_name: Collection the operation targets, set by the executor
        values: Free-form values for user callbacks (request ids, actors...)
    """

    session: Optional[AsyncIOMotorClientSession] = None
    max_time_ms: Optional[int] = None
    collection_name: Optional[str] = None
    values: Dict[str, Any] = field(default_factory=dict)

    def for_collection(self, collection_name: str) -> "OperationContext":
        """Return a copy of this context bound to a collection."""
        return OperationContext(
            session=self.session,
            max_time_ms=self.max_time_ms,
            collection_name=collection_name,
            values=self.values,
        )

    def driver_kwargs(self, time_limit_key: Optional[str] = "maxTimeMS") -> Dict[str, Any]:
        """
        Keyword arguments forwarded to motor collection methods.

        Args:
            time_limit_key: Name under which the time limit is passed
                ("max_time_ms" for find), or None for write methods that
                do not take one
        """
        kwargs: Dict[str, Any] = {}
        if self.session is not None:
            kwargs["session"] = self.session
        if time_limit_key and self.max_time_ms is not None:
            kwargs[time_limit_key] = self.max_time_ms
        return kwargs


def ensure_context(
    ctx: Optional[OperationContext], collection_name: Optional[str] = None
) -> OperationContext:
    """Return `ctx` (or a fresh context) bound to `collection_name`."""
    ctx = ctx or OperationContext()
    if collection_name is not None:
        return ctx.for_collection(collection_name)
    return ctx

"""
Document Lifecycle Middleware Pipeline

An ordered list of callbacks run before and after every insert, update,
replace, upsert, remove and query. Each callback has the signature

    callback(ctx, document, op_type, *opts)

and may be a plain function or a coroutine function. A callback aborts the
operation by raising; the exception reaches the caller unchanged and later
callbacks are not run. Side effects of callbacks that already ran are not
undone, so callbacks mutating the document should be idempotent.

Document shapes are resolved once, at the pipeline boundary:

- None: nothing to process, the run is a no-op;
- list or tuple: each callback runs on every element in order;
- anything else: each callback runs once on the document.

Built-in callbacks are registered first, in this order: operation hook
dispatch, field defaulting, validation. User callbacks always run after them.

Usage constraint: the default pipeline is process-wide and not locked.
Register callbacks during start-up, before operations run concurrently.
`register` racing with `run` is unsupported.

This module is part of MDB_ODM.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from .hooks.dispatch import run_operation_hooks
from .hooks.fields import apply_defaults
from .hooks.operations import OperationType
from .hooks.validation import validate_document

logger = logging.getLogger(__name__)

Callback = Callable[..., Union[None, Awaitable[None]]]

BUILTIN_CALLBACKS: tuple = (run_operation_hooks, apply_defaults, validate_document)


def document_elements(document: Any) -> Sequence[Any]:
    """Split a document argument into the elements callbacks receive."""
    if document is None:
        return ()
    if isinstance(document, (list, tuple)):
        return document
    return (document,)


class Pipeline:
    """
    Ordered, append-only registry of middleware callbacks.

    Example:
        pipeline = Pipeline()          # built-ins already registered
        pipeline.register(audit)       # runs after the built-ins
        await pipeline.run(ctx, doc, OperationType.BEFORE_INSERT)
    """

    def __init__(self, callbacks: Optional[Sequence[Callback]] = None, builtins: bool = True):
        """
        Initialize the pipeline.

        Args:
            callbacks: Extra callbacks registered after the built-ins
            builtins: Whether to pre-register the built-in callbacks
        """
        self._callbacks: List[Callback] = list(BUILTIN_CALLBACKS) if builtins else []
        for callback in callbacks or ():
            self.register(callback)

    @property
    def callbacks(self) -> tuple:
        return tuple(self._callbacks)

    def register(self, callback: Callback) -> None:
        """Append a callback; it runs after every callback registered before it."""
        if not callable(callback):
            raise TypeError(f"Middleware callback must be callable, got {type(callback).__name__}")
        self._callbacks.append(callback)
        logger.debug(f"Registered middleware callback {getattr(callback, '__name__', callback)!r}")

    async def run(
        self, ctx: Any, document: Any, op_type: OperationType, *opts: Any
    ) -> None:
        """
        Run every callback, in registration order, on every element.

        Raises:
            The first exception raised by a callback.
        """
        elements = document_elements(document)
        if not elements:
            return

        for callback in tuple(self._callbacks):
            for element in elements:
                result = callback(ctx, element, op_type, *opts)
                if inspect.isawaitable(result):
                    await result

    def __len__(self) -> int:
        return len(self._callbacks)


_default_pipeline = Pipeline()


def get_default_pipeline() -> Pipeline:
    """Return the process-wide pipeline used when none is given."""
    return _default_pipeline


def register(callback: Callback) -> None:
    """Register a callback on the process-wide pipeline (start-up only)."""
    _default_pipeline.register(callback)


async def run(ctx: Any, document: Any, op_type: OperationType, *opts: Any) -> None:
    """Run the process-wide pipeline."""
    await _default_pipeline.run(ctx, document, op_type, *opts)

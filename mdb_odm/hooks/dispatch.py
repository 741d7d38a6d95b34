"""
Operation hook dispatch.

Calls the phase-named method (before_insert, after_query, ...) of the hook
object for the current operation. The hook object is the explicit hook passed
as the first pipeline option when there is one, otherwise the document.
Objects without the method are skipped.
"""

import inspect
import logging
from typing import Any

from .operations import OperationType

logger = logging.getLogger(__name__)


async def run_operation_hooks(
    ctx: Any, document: Any, op_type: OperationType, *opts: Any
) -> None:
    """
    Middleware callback invoking the hook method for `op_type`.

    Args:
        ctx: OperationContext handed to the hook method
        document: The document being operated on
        op_type: Current operation phase
        *opts: opts[0], when not None, replaces the document as hook target

    Raises:
        Whatever the hook method raises; the operation is aborted.
    """
    target = opts[0] if opts and opts[0] is not None else document
    if target is None:
        return

    method = getattr(target, op_type.hook_method, None)
    if method is None or not callable(method):
        return

    logger.debug(f"Dispatching {op_type.value} hook on {type(target).__name__}")
    result = method(ctx)
    if inspect.isawaitable(result):
        await result

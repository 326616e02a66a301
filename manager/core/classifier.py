"""
Map driver exceptions raised by an operation onto the outcome taxonomy.

Patterns are checked in order and the first match wins:

    blocked by: [...] no master         -> fail / no-master
    document with the same primary key  -> fail / duplicate-key
    rejected execution                  -> info / rejected-execution (after a pause)

Anything else is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Optional

from common.models.outcome import ErrorTag, Operation, OpType
from manager.config import get_settings

logger = logging.getLogger(__name__)

PATTERNS: list[tuple[re.Pattern, ErrorTag]] = [
    (re.compile(r"blocked by: \[.*no master"), ErrorTag.NO_MASTER),
    (re.compile(r"document with the same primary key"), ErrorTag.DUPLICATE_KEY),
    (re.compile(r"rejected execution"), ErrorTag.REJECTED_EXECUTION),
]

OUTCOMES: dict[ErrorTag, OpType] = {
    ErrorTag.NO_MASTER: OpType.FAIL,
    ErrorTag.DUPLICATE_KEY: OpType.FAIL,
    # The server shed load; the write may or may not have applied.
    ErrorTag.REJECTED_EXECUTION: OpType.INFO,
}


def classify(message: str) -> Optional[ErrorTag]:
    """Return the error tag for a driver message, or None if unrecognized."""
    for pattern, tag in PATTERNS:
        if pattern.search(message):
            return tag
    return None


async def with_errors(
    op: Operation,
    fn: Callable[[], Awaitable[Operation]],
    *,
    errors: tuple[type[BaseException], ...] = (Exception,),
    overload_backoff: Optional[float] = None,
) -> Operation:
    """
    Run ``fn`` for ``op`` and turn recognized driver errors into results.

    Args:
        op: The invoked operation.
        fn: Coroutine factory performing the operation and returning the
            completed record.
        errors: Driver exception types to inspect. Others propagate.
        overload_backoff: Seconds to sleep before reporting
            ``rejected-execution``; defaults to the deployment setting.

    Returns:
        The record returned by ``fn``, or ``op`` completed as ``fail`` or
        ``info`` with its error tag.
    """
    try:
        return await fn()
    except errors as e:
        tag = classify(str(e))
        if tag is None:
            raise
        if tag == ErrorTag.REJECTED_EXECUTION:
            if overload_backoff is None:
                overload_backoff = get_settings().overload_backoff
            await asyncio.sleep(overload_backoff)
        logger.warning(f"{op.f} by process {op.process}: {tag.value}")
        return op.complete(OUTCOMES[tag], tag)

"""Combinators for partial-failure handling during capture.

Resource resolution follows one policy everywhere: try each source in
order, take the first one that yields a value, otherwise keep a fallback.
Fan-out is explicit and every task settles, so one failing resource never
cancels its siblings.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar('T')

Attempt = Callable[[], Awaitable[Optional[T]]]


async def first_available(*attempts: Attempt, fallback: Optional[T] = None) -> Optional[T]:
    """Run attempts in order and return the first non-None value.

    An attempt that raises is treated like one that returned None.

    Args:
        *attempts: Zero-argument coroutine functions
        fallback: Value returned when every attempt comes up empty

    Returns:
        First available value, or ``fallback``
    """
    for attempt in attempts:
        try:
            value = await attempt()
        except Exception as e:
            logger.debug(f"Resolution attempt failed: {e}")
            continue
        if value is not None:
            return value
    return fallback


async def gather_settled(*aws: Awaitable[Any]) -> List[Any]:
    """Await all tasks and return their results in order.

    Exceptions are returned in place of the failed task's result instead of
    being raised, so every sibling task runs to completion.
    """
    if not aws:
        return []
    return await asyncio.gather(*aws, return_exceptions=True)


def log_failures(results: List[Any], label: str) -> int:
    """Log exceptions captured by ``gather_settled`` and return how many there were."""
    failures = 0
    for result in results:
        if isinstance(result, BaseException):
            failures += 1
            logger.warning(f"{label} failed: {result}")
    return failures

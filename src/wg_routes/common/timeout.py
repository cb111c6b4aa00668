"""Deadline support for awaitable operations."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .exceptions import OperationTimeoutError
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def with_timeout(operation: Awaitable[T], timeout: float, label: str) -> T:
    """Await ``operation`` for at most ``timeout`` seconds.

    The pending operation is cancelled when the deadline passes, so its late
    result is never observed. A subprocess it spawned keeps running.

    Args:
        operation: Coroutine or future to wait for
        timeout: Deadline in seconds
        label: Operation name for the error message

    Returns:
        The operation's result

    Raises:
        OperationTimeoutError: If the deadline passes first
    """
    try:
        return await asyncio.wait_for(operation, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.debug("Operation timed out", operation=label, timeout=timeout)
        raise OperationTimeoutError(label, timeout) from e

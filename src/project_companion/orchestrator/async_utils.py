"""Timeout and retry helpers for awaited collaborator calls."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from project_companion.telemetry import get_logger
from project_companion.telemetry.events import OPERATION_RETRY

log = get_logger(__name__)

T = TypeVar("T")


class OperationTimeoutError(Exception):
    """Raised when an awaited operation exceeds its time budget."""

    def __init__(self, operation: str, timeout_s: float) -> None:
        super().__init__(f"Operation '{operation}' timed out after {timeout_s}s")
        self.operation = operation
        self.timeout_s = timeout_s


async def with_timeout(awaitable: Awaitable[T], timeout_s: float, operation: str = "operation") -> T:
    """Await ``awaitable`` for at most ``timeout_s`` seconds.

    Raises:
        OperationTimeoutError: If the deadline passes first (the awaitable is cancelled).
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except TimeoutError as e:
        raise OperationTimeoutError(operation, timeout_s) from e


async def with_retry(
    factory: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_s: float = 1.0,
    operation: str = "operation",
) -> T:
    """Call ``factory`` until it succeeds, at most ``max_retries + 1`` times.

    Waits ``base_delay_s * 2**attempt`` between attempts.

    Args:
        factory: Builds a fresh awaitable for every attempt.
        max_retries: Retries after the first attempt.
        base_delay_s: Delay before the first retry.
        operation: Name used in log lines.

    Returns:
        The first successful result.

    Raises:
        Exception: The last error once every attempt has failed.
    """
    attempt = 0
    while True:
        try:
            return await factory()
        except Exception as e:
            if attempt >= max_retries:
                raise
            delay = base_delay_s * 2**attempt
            log.warning(
                OPERATION_RETRY,
                operation=operation,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay_s=delay,
                error=str(e),
                error_type=type(e).__name__,
            )
            await asyncio.sleep(delay)
            attempt += 1

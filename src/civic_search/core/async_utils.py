"""
Async utilities for provider fan-out.

Provides:
- Parallel execution with asyncio.TaskGroup
- Per-call timeout with fallback value
- Circuit breaker for upstream HTTP clients
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from .exceptions import CircuitOpenError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# Parallel Execution with TaskGroup
# =============================================================================


async def gather_with_errors(
    *coros: Awaitable[T],
    return_exceptions: bool = False,
) -> list[T | Exception]:
    """
    Execute coroutines in parallel using TaskGroup.

    Results keep the order of the input coroutines. Cancellation of the
    caller cancels every pending child task.

    Args:
        *coros: Coroutines to execute
        return_exceptions: If True, return exceptions instead of raising

    Example:
        users, tags = await gather_with_errors(
            store.suggest_users("pet"),
            store.suggest_tags("pet"),
            return_exceptions=True,
        )
    """
    results: list[T | Exception] = [None] * len(coros)  # type: ignore[list-item]

    if return_exceptions:

        async def safe_run(coro: Awaitable[T], index: int) -> None:
            try:
                results[index] = await coro
            except Exception as e:
                results[index] = e

        async with asyncio.TaskGroup() as tg:
            for i, coro in enumerate(coros):
                tg.create_task(safe_run(coro, i))
    else:
        async with asyncio.TaskGroup() as tg:
            tasks = [tg.create_task(coro) for coro in coros]  # type: ignore[arg-type]
        results = [task.result() for task in tasks]

    return results


async def timeout_with_fallback(
    coro: Awaitable[T],
    timeout: float,
    fallback: T | Callable[[], T],
) -> T:
    """
    Execute coroutine with timeout and fallback.

    A timeout is not an error for the caller: it gets the fallback value
    (or the result of calling the fallback) instead.

    Args:
        coro: Coroutine to execute
        timeout: Timeout in seconds
        fallback: Value or callable to return on timeout
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except TimeoutError:
        logger.debug(f"Timed out after {timeout:.1f}s, using fallback")
        if callable(fallback):
            return fallback()
        return fallback


# =============================================================================
# Circuit Breaker Pattern
# =============================================================================


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for upstream API clients.

    States:
    - CLOSED: Normal operation
    - OPEN: Failing, reject requests immediately
    - HALF_OPEN: Testing if service recovered

    Example:
        breaker = CircuitBreaker(failure_threshold=5)

        async with breaker:
            result = await risky_api_call()
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    half_open_max_calls: int = 3

    _failure_count: int = field(init=False, default=0)
    _last_failure_time: float | None = field(init=False, default=None)
    _state: str = field(init=False, default="closed")
    _half_open_calls: int = field(init=False, default=0)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_open(self) -> bool:
        """Check if circuit is open (rejecting requests)."""
        if self._state == "open":
            if self._last_failure_time is not None:
                if time.monotonic() - self._last_failure_time > self.recovery_timeout:
                    return False  # Move to half-open
            return True
        return False

    async def __aenter__(self) -> CircuitBreaker:
        async with self._lock:
            if self.is_open:
                raise CircuitOpenError(retry_after=self.recovery_timeout)

            if self._state == "open":
                self._state = "half_open"
                self._half_open_calls = 0

            if self._state == "half_open":
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(
                        "Circuit breaker is half-open (max calls reached)",
                        retry_after=self.recovery_timeout / 2,
                    )
                self._half_open_calls += 1

        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        async with self._lock:
            if exc_val is not None and not isinstance(exc_val, asyncio.CancelledError):
                self._failure_count += 1
                self._last_failure_time = time.monotonic()

                if self._failure_count >= self.failure_threshold:
                    self._state = "open"
                    logger.warning(f"Circuit breaker opened after {self._failure_count} failures")
            elif exc_val is None:
                if self._state == "half_open":
                    self._state = "closed"
                    self._failure_count = 0
                    logger.info("Circuit breaker closed (recovered)")
                elif self._state == "closed":
                    self._failure_count = max(0, self._failure_count - 1)

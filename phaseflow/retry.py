"""Bounded-timeout execution with capped exponential backoff."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, Field

from .errors import TimeoutExceededError
from .utils import format_duration, print_info, print_warning

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]


class RetryPolicy(BaseModel):
    """How often and how long to try an operation."""

    max_attempts: int = Field(default=2, ge=1, description="Total attempts, including the first")
    timeout: float = Field(default=15.0, gt=0, description="Per-attempt bound in seconds")
    backoff_base: float = Field(default=1.0, ge=0, description="Delay after the first failure")
    backoff_cap: float = Field(default=5.0, ge=0, description="Upper bound for any delay")

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number *attempt* (1-based)."""
        return min(self.backoff_base * 2 ** (attempt - 1), self.backoff_cap)


class RetryExecutor:
    """Runs a coroutine factory until it succeeds or the attempts run out.

    Each attempt is wrapped in ``asyncio.wait_for``, so an attempt that
    overruns the timeout is cancelled rather than left running.  The
    cancellation is delivered at the operation's next ``await``, so a
    synchronous stretch between awaits always runs to its end.  Failures
    of intermediate attempts are reported as warnings; once the last
    attempt fails its error is re-raised unchanged.

    Args:
        policy: Attempt count, timeout and backoff settings.
        sleep: Awaitable used between attempts (injectable for tests).
        fatal: Exception types that are re-raised immediately, without retry.
        label: Operation name used in log messages.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
        fatal: tuple[type[Exception], ...] = (),
        label: str = "Transformation",
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self.fatal = fatal
        self.label = label
        self.attempts = 0
        self.delays: list[float] = []

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Execute *operation* under the retry policy.

        Args:
            operation: Zero-argument callable returning a fresh awaitable
                for every attempt.

        Returns:
            The result of the first successful attempt.

        Raises:
            TimeoutExceededError: If the final attempt timed out.
            Exception: The final attempt's error, for any other failure.
        """
        self.attempts = 0
        self.delays = []
        last_error: Exception | None = None

        for attempt in range(1, self.policy.max_attempts + 1):
            self.attempts = attempt
            try:
                return await self._attempt(operation)
            except self.fatal:
                raise
            except Exception as exc:
                last_error = exc
                print_warning(f"{self.label} attempt {attempt} failed: {exc}")

            if attempt < self.policy.max_attempts:
                delay = self.policy.delay_for(attempt)
                self.delays.append(delay)
                print_info(f"Retrying in {format_duration(delay)}...")
                await self._sleep(delay)

        assert last_error is not None
        raise last_error

    async def _attempt(self, operation: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(operation(), timeout=self.policy.timeout)
        except asyncio.TimeoutError as exc:
            raise TimeoutExceededError(self.policy.timeout) from exc

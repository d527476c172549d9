"""Retry with exponential backoff.

:class:`RetryPolicy` runs a fallible operation up to ``max_attempts`` times.
Attempt 1 runs immediately; after each failure the policy sleeps for the
current delay and doubles it, so the waits form the sequence
``initial, 2*initial, 4*initial, ...``.  There is no wait after the final
attempt.

When every attempt fails the caller receives :class:`RetryExhaustedError`
whose ``last_error`` (also its ``__cause__``) is the exception raised by the
last attempt.  Errors from earlier attempts are dropped.  A policy with
``max_attempts < 1`` is rejected with :class:`RetryConfigError` before any
attempt is made.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar, Union

from rich.console import Console

console = Console()

T = TypeVar("T")

Operation = Callable[[], Union[T, Awaitable[T]]]
SleepFunc = Callable[[float], Awaitable[None]]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class RetryError(Exception):
    """Base class for retry policy failures."""


class RetryConfigError(RetryError, ValueError):
    """Raised when the policy is configured with impossible bounds."""


class RetryExhaustedError(RetryError):
    """Raised when every attempt failed.

    Attributes:
        attempts: Number of attempts that were made.
        last_error: Exception raised by the final attempt.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Operation failed after {attempts} attempt(s): "
            f"{type(last_error).__name__}: {last_error}"
        )


# ---------------------------------------------------------------------------
# Attempt record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Attempt:
    """One failed, non-final attempt handed to ``on_retry`` callbacks."""

    number: int
    error: BaseException
    delay_ms: float


# ---------------------------------------------------------------------------
# RetryPolicy
# ---------------------------------------------------------------------------


def _validate(max_attempts: int, initial_delay_ms: float) -> None:
    if max_attempts < 1:
        raise RetryConfigError(f"max_attempts must be >= 1, got {max_attempts}")
    if initial_delay_ms < 0:
        raise RetryConfigError(f"initial_delay_ms must be >= 0, got {initial_delay_ms}")


class RetryPolicy:
    """Sequential retry with doubling delay.

    Parameters
    ----------
    max_attempts:
        Default upper bound on attempts for :meth:`run`.
    initial_delay_ms:
        Default wait after the first failure, in milliseconds.
    sleep:
        Coroutine used to wait between attempts.  Defaults to
        :func:`asyncio.sleep`; tests substitute a recorder.
    on_retry:
        Optional callback invoked with an :class:`Attempt` before each wait.
    quiet:
        Suppress the console line printed for each failed attempt.

    The policy holds no per-call state, so one instance may serve any number
    of concurrent :meth:`run` calls.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        initial_delay_ms: float = 1000,
        *,
        sleep: Optional[SleepFunc] = None,
        on_retry: Optional[Callable[[Attempt], None]] = None,
        quiet: bool = False,
    ) -> None:
        _validate(max_attempts, initial_delay_ms)
        self.max_attempts = max_attempts
        self.initial_delay_ms = initial_delay_ms
        self._sleep: SleepFunc = sleep or asyncio.sleep
        self.on_retry = on_retry
        self.quiet = quiet

    async def run(
        self,
        operation: Operation[T],
        max_attempts: Optional[int] = None,
        initial_delay_ms: Optional[float] = None,
    ) -> T:
        """Run *operation* until it succeeds or the attempts run out.

        *operation* is a zero-argument callable returning either a value or
        an awaitable.  ``max_attempts`` and ``initial_delay_ms`` override the
        policy defaults for this call only.

        Raises:
            RetryConfigError: ``max_attempts < 1`` or a negative delay.
            RetryExhaustedError: every attempt failed.
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        delay = self.initial_delay_ms if initial_delay_ms is None else initial_delay_ms
        _validate(attempts, delay)

        last_error: Optional[Exception] = None
        for number in range(1, attempts + 1):
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
                return result
            except Exception as exc:
                last_error = exc

            if number == attempts:
                break

            attempt = Attempt(number=number, error=last_error, delay_ms=delay)
            if not self.quiet:
                console.print(
                    f"[yellow]Attempt {number} failed, retrying in {delay:g}ms...[/yellow]"
                )
            if self.on_retry is not None:
                self.on_retry(attempt)
            await self._sleep(delay / 1000.0)
            delay *= 2

        assert last_error is not None
        raise RetryExhaustedError(attempts, last_error) from last_error


async def retry_with_backoff(
    operation: Operation[T],
    max_attempts: int = 3,
    initial_delay_ms: float = 1000,
) -> T:
    """Run *operation* under a one-off :class:`RetryPolicy`."""
    return await RetryPolicy(max_attempts, initial_delay_ms).run(operation)

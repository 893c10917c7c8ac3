from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

CANCELLED_MESSAGE = "Request cancelled"
UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    error: str

    @property
    def ok(self) -> bool:
        return False

    @property
    def cancelled(self) -> bool:
        return self.error == CANCELLED_MESSAGE


Outcome = Union[Success[T], Failure]


class RequestCancelled(Exception):
    """Raised inside the executor when a cancellation token fires."""


class CancellationToken:
    """Cooperative cancellation handle shared between a caller and the executor."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff base for one kind of call."""

    max_retries: int = 2
    retry_delay_ms: float = 1000

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_delay_ms < 0:
            raise ValueError("retry_delay_ms must be >= 0")

    @property
    def attempts(self) -> int:
        return self.max_retries + 1

    def backoff(self) -> wait_exponential:
        """Wait strategy giving d, 2d, 4d, ... seconds between attempts."""
        return wait_exponential(multiplier=self.retry_delay_ms / 1000.0, exp_base=2)


# Reads are polled frequently, so they give up sooner than mutating commands
LIST_POLICY = RetryPolicy(max_retries=1, retry_delay_ms=500)
COMMAND_POLICY = RetryPolicy(max_retries=2, retry_delay_ms=1000)


async def _race(aw: Awaitable[Any], token: CancellationToken | None) -> Any:
    """Await aw unless token fires first; raise RequestCancelled in that case."""
    task = asyncio.ensure_future(aw)
    if token is None:
        return await task

    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if token.cancelled:
        if not task.done():
            task.cancel()
        # The abandoned attempt's own result or error is irrelevant now
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await task
        raise RequestCancelled()
    return task.result()


def _is_retryable(error: BaseException) -> bool:
    # CancelledError is a BaseException and must reach the caller untouched
    return isinstance(error, Exception) and not isinstance(error, RequestCancelled)


class CallExecutor:
    """
    Runs a single network operation with retry, exponential backoff and
    cooperative cancellation.

    Every failure mode resolves to an Outcome; only cancellation of the
    caller's own task propagates.
    """

    def __init__(
        self, sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ) -> None:
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
        token: CancellationToken | None = None,
        name: str = "request",
    ) -> Outcome[T]:
        policy = policy or COMMAND_POLICY

        async def sleep(delay: float) -> None:
            await _race(self._sleep(delay), token)

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            logging.debug(
                "%s attempt %d/%d failed: %s",
                name,
                retry_state.attempt_number,
                policy.attempts,
                error,
            )

        retrying = AsyncRetrying(
            sleep=sleep,
            stop=stop_after_attempt(policy.attempts),
            wait=policy.backoff(),
            retry=retry_if_exception(_is_retryable),
            before_sleep=before_sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    return Success(await _race(operation(), token))
        except RequestCancelled:
            logging.debug("%s cancelled", name)
            return Failure(CANCELLED_MESSAGE)
        except Exception as e:
            message = str(e)
            logging.warning(
                "%s failed after %d attempts: %s", name, policy.attempts, message
            )
            return Failure(message or UNKNOWN_ERROR_MESSAGE)
        raise RuntimeError("retry loop ended without an outcome")  # pragma: no cover


# Module-level default instance
executor = CallExecutor()

"""Retry and polling utilities for LODE."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_fixed,
)

from lode.core.exceptions import ReadinessTimeoutError
from lode.utils.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")


def retry_on_exception(
    exceptions: tuple[type[Exception], ...] = (Exception,),
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
) -> Callable[[F], F]:
    """Decorator to retry a function on specific exceptions.

    Args:
        exceptions: Tuple of exception types to retry on
        max_attempts: Maximum number of retry attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)

    Returns:
        Decorated function with retry logic
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        """Log before sleeping between retries."""
        if retry_state.outcome and retry_state.outcome.failed:
            exception = retry_state.outcome.exception()
            logger.warning(
                "retry_attempt",
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                exception=type(exception).__name__,
                message=str(exception),
            )

    return retry(
        retry=retry_if_exception_type(exceptions),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        before_sleep=before_sleep,
        reraise=True,
    )


async def poll_until(
    check: Callable[[], Awaitable[T | None]],
    description: str,
    *,
    timeout: float | None = None,
    interval: float | None = None,
    max_attempts: int | None = None,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_on: tuple[type[Exception], ...] = (),
) -> T:
    """Await ``check`` until it returns a truthy value.

    Polls on a fixed ``interval`` when given, otherwise with exponential
    backoff between ``min_wait`` and ``max_wait``. Stops after ``timeout``
    seconds and/or ``max_attempts`` tries. Exceptions listed in ``retry_on``
    count as "not ready yet"; anything else propagates immediately.

    Args:
        check: Coroutine function returning a value, or None/False when not ready
        description: What is being waited for (used in logs and errors)
        timeout: Overall bound in seconds
        interval: Fixed delay between attempts
        max_attempts: Maximum number of attempts
        min_wait: Minimum backoff delay (seconds)
        max_wait: Maximum backoff delay (seconds)
        retry_on: Exception types treated as transient

    Returns:
        The first truthy value returned by ``check``

    Raises:
        ReadinessTimeoutError: If the bound is exhausted
    """
    if timeout is None and max_attempts is None:
        raise ValueError("poll_until needs a timeout or max_attempts bound")

    stop = None
    if timeout is not None:
        stop = stop_after_delay(timeout)
    if max_attempts is not None:
        by_attempts = stop_after_attempt(max_attempts)
        stop = by_attempts if stop is None else stop | by_attempts

    wait = (
        wait_fixed(interval)
        if interval is not None
        else wait_exponential(multiplier=1, min=min_wait, max=max_wait)
    )

    def before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        reason = "not_ready"
        if outcome is not None and outcome.failed:
            reason = type(outcome.exception()).__name__
        logger.debug(
            "poll_waiting",
            target=description,
            attempt=retry_state.attempt_number,
            reason=reason,
        )

    retry_condition = retry_if_result(lambda value: not value)
    if retry_on:
        retry_condition = retry_condition | retry_if_exception_type(retry_on)

    try:
        async for attempt in AsyncRetrying(
            stop=stop,
            wait=wait,
            retry=retry_condition,
            before_sleep=before_sleep,
        ):
            with attempt:
                value = await check()
            if not attempt.retry_state.outcome.failed:
                attempt.retry_state.set_result(value)
    except RetryError as e:
        last = e.last_attempt
        logger.error(
            "poll_exhausted",
            target=description,
            attempts=last.attempt_number,
        )
        detail = ""
        if last.failed:
            detail = f": {last.exception()}"
        raise ReadinessTimeoutError(
            f"Timed out waiting for {description} after {last.attempt_number} attempts{detail}"
        ) from e

    return value  # type: ignore[return-value]

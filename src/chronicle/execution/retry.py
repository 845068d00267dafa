"""Timeouts and exponential-backoff retries for external calls."""

from __future__ import annotations

import concurrent.futures
import time
from typing import Callable, Optional, TypeVar

from ..exceptions import RetriesExhausted, TransientError
from ..logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Failures worth another attempt; anything else is a bug or bad input
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (TransientError, TimeoutError, ConnectionError)

RetryCallback = Optional[Callable[[int, BaseException, float], None]]


def call_with_timeout(
    func: Callable[[], T],
    timeout: float,
    name: str,
    executor: Optional[concurrent.futures.Executor] = None,
) -> T:
    """Run ``func`` with a time limit.

    The worker thread is abandoned rather than joined on expiry, so the caller
    regains control after ``timeout`` seconds even if the call never returns.
    Pass a long-lived ``executor`` (see ``call_pool``) to reuse worker threads;
    without one a single-use executor is created for the call.

    Raises:
        TransientError: If the call exceeds ``timeout``
    """
    owned = executor is None
    if owned:
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="chronicle-call")
    future = executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        if not future.done():
            future.cancel()
            raise TransientError(name, f"exceeded {timeout}s timeout")
        raise
    finally:
        if owned:
            executor.shutdown(wait=False)


def call_pool(max_concurrency: int) -> concurrent.futures.ThreadPoolExecutor:
    """Shared executor for timed external calls during one run.

    Each period job makes its calls one at a time, so two workers per job
    leave room for a call abandoned on timeout.
    """
    return concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, max_concurrency) * 2, thread_name_prefix="chronicle-call"
    )


def backoff_delay(attempt: int, base: float, maximum: float) -> float:
    """Delay before retry number ``attempt`` (0-based): base * 2**attempt, capped."""
    return min(maximum, base * (2**attempt))


def retry_transient(
    func: Callable[[], T],
    max_retries: int = 3,
    backoff_base: float = 1.0,
    backoff_max: float = 30.0,
    on_retry: RetryCallback = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func``, retrying transient failures with exponential backoff.

    Args:
        func: Zero-argument callable
        max_retries: Retries after the first attempt
        backoff_base: Delay before the first retry
        backoff_max: Cap on any single delay
        on_retry: Called with (retry number, error, delay) before sleeping
        sleep: Injected for tests

    Raises:
        RetriesExhausted: When every attempt failed transiently
    """
    attempt = 0
    while True:
        try:
            return func()
        except TRANSIENT_ERRORS as e:
            if attempt >= max_retries:
                raise RetriesExhausted(attempt + 1, e) from e
            delay = backoff_delay(attempt, backoff_base, backoff_max)
            attempt += 1
            logger.debug(f"Transient failure ({e}); retry {attempt}/{max_retries} in {delay:.1f}s")
            if on_retry is not None:
                on_retry(attempt, e, delay)
            sleep(delay)

# WORKFLOW: Bounded retry helper shared by both oracle call sites.
# Used by: Page extraction orchestrator, code extraction orchestrator
# Functions:
# 1. call_with_retry() - Run a blocking oracle call in a thread with timeout and backoff
#
# Retry flow: attempt -> timeout/OracleError -> transient? -> sleep(backoff * attempt) -> attempt again
# Permanent errors and exhausted retries are raised to the caller, which degrades the unit.

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from services.oracles import OracleError, OracleErrorKind, classify_oracle_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[Any]]


async def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    max_retries: int,
    backoff_seconds: float,
    timeout: float,
    retry_timeouts: bool = True,
    sleep: SleepFunc = asyncio.sleep,
    label: str = "oracle call",
) -> T:
    """
    Run ``func(*args)`` in a worker thread, retrying transient failures.

    Args:
        func: Blocking oracle call
        max_retries: Retries allowed after the first attempt
        backoff_seconds: Delay unit; retry n waits ``backoff_seconds * n``
        timeout: Per-attempt timeout in seconds
        retry_timeouts: Whether timeouts count as transient
        sleep: Awaitable sleep, injectable for tests
        label: Unit description used in log messages

    Returns:
        The call result, raises OracleError when the unit must be given up

    Note:
        A timed-out attempt stops waiting but does not interrupt its worker thread.
        The HTTP call itself is bounded by the client timeout set in ``_build_client``.
    """
    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except asyncio.TimeoutError:
            error = OracleError(OracleErrorKind.TIMEOUT, f"no answer after {timeout:g}s")
        except Exception as e:
            error = classify_oracle_error(e)

        retryable = error.is_transient and (retry_timeouts or error.kind != OracleErrorKind.TIMEOUT)
        if not retryable or attempt >= max_retries:
            if retryable:
                logger.warning(f"{label}: giving up after {attempt + 1} attempts ({error})")
            else:
                logger.warning(f"{label}: permanent failure ({error})")
            raise error

        attempt += 1
        delay = backoff_seconds * attempt
        logger.info(f"{label}: {error.kind.value}, retry {attempt}/{max_retries} in {delay:g}s")
        await sleep(delay)

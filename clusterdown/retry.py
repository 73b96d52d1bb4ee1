"""
Bounded linear-backoff retries for calls against the engine.
"""

import time
from typing import Callable, Optional, TypeVar, Union
import logging

from .config import RetryPolicy
from .errors import NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _NotFound:
    """Marker returned instead of raising when the resource is absent."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()


def incremental_wait(initial: float, increment: float) -> Callable[[], float]:
    """
    Build a wait generator whose values grow by a fixed increment.

    Args:
        initial: First wait in seconds
        increment: Added to the wait after every call

    Returns:
        Callable returning the next wait each time it is invoked
    """
    state = {"next": initial}

    def next_wait() -> float:
        wait = state["next"]
        state["next"] = wait + increment
        return wait

    return next_wait


def call_with_retry(
    operation: Callable[[], T],
    policy: Optional[RetryPolicy] = None,
    description: str = "call",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Union[T, _NotFound]:
    """
    Run ``operation`` and retry it while it fails with a retryable error.

    Args:
        operation: Zero-argument callable performing one engine call
        policy: Retry policy; defaults to RetryPolicy()
        description: Human-readable name used in log lines
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        The operation's result, or NOT_FOUND if the engine reports the
        resource as absent

    Raises:
        Exception: The first non-retryable error, or the last retryable
            error once the total deadline would be exceeded
    """
    policy = policy or RetryPolicy()
    next_wait = incremental_wait(policy.initial_wait, policy.wait_increment)
    started = clock()
    attempt = 0

    while True:
        attempt += 1
        try:
            return operation()
        except NotFoundError as e:
            logger.debug(f"{description}: not found ({e})")
            return NOT_FOUND
        except Exception as e:
            if not policy.is_retryable(e):
                raise

            wait = next_wait()
            elapsed = clock() - started
            if elapsed + wait > policy.max_duration:
                logger.warning(f"{description}: giving up after {attempt} attempts ({elapsed:.1f}s): {e}")
                raise

            logger.info(f"{description} failed with retryable error, retrying in {wait:.1f}s: {e}")
            sleep(wait)

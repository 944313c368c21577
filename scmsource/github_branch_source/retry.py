"""
Bounded retry for values that an external service computes on demand.

GitHub computes some fields lazily (a pull request's ``mergeable`` flag is
``null`` until a background job finishes). retry_until_resolved() repeats a
fetch until the value is resolved or the attempt bound is reached, and
reports an unresolved terminal state instead of raising.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from .exceptions import ScanCancelledError

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryOutcome(Generic[T]):
    """
    Result of a bounded retry.

    Attributes:
        value: Value returned by the last attempt
        attempts: Number of attempts made (1 = first try resolved)
        resolved: False when the bound was reached with the value still unresolved
    """
    value: T
    attempts: int
    resolved: bool


def retry_until_resolved(
    attempt: Callable[[], T],
    is_resolved: Callable[[T], bool],
    max_attempts: int = 3,
    delay: float = 1.0,
    cancel_event: Optional[threading.Event] = None,
    description: str = 'value',
) -> RetryOutcome[T]:
    """
    Call ``attempt`` until ``is_resolved`` accepts its result.

    Exceptions raised by ``attempt`` propagate unchanged; only an unresolved
    value is retried.

    Args:
        attempt: Fetches a fresh value
        is_resolved: Returns True once the value has converged
        max_attempts: Total number of attempts (at least 1)
        delay: Seconds to wait between attempts
        cancel_event: Set by the caller to abort; waits wake immediately
        description: Used in log messages

    Returns:
        RetryOutcome with the last value

    Raises:
        ScanCancelledError: If cancel_event is set before or between attempts
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    value = None
    for attempt_num in range(1, max_attempts + 1):
        if cancel_event is not None and cancel_event.is_set():
            raise ScanCancelledError(f"Cancelled while resolving {description}")

        value = attempt()
        if is_resolved(value):
            if attempt_num > 1:
                logger.debug(f"Resolved {description} after {attempt_num} attempts")
            return RetryOutcome(value=value, attempts=attempt_num, resolved=True)

        if attempt_num < max_attempts:
            logger.debug(f"{description} not resolved yet (attempt {attempt_num}/{max_attempts}), "
                         f"retrying in {delay}s")
            if cancel_event is not None:
                if cancel_event.wait(delay):
                    raise ScanCancelledError(f"Cancelled while resolving {description}")
            elif delay > 0:
                time.sleep(delay)

    logger.info(f"Gave up resolving {description} after {max_attempts} attempts")
    return RetryOutcome(value=value, attempts=max_attempts, resolved=False)

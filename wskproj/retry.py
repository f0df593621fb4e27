"""
Fixed-interval retry for remote OpenWhisk calls.
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(max_attempts: int, interval: float, operation: Callable[[], T],
          retry_on: Tuple[Type[BaseException], ...] = (Exception,),
          sleep: Callable[[float], None] = time.sleep) -> T:
    """
    Run an operation up to ``max_attempts`` times.

    The wrapper does not decide which failures are fatal; callers narrow
    ``retry_on`` and wrap the final failure themselves.

    Args:
        max_attempts: Maximum number of invocations (at least one is made)
        interval: Seconds to wait between attempts
        operation: Zero-argument callable to invoke
        retry_on: Exception types that trigger another attempt
        sleep: Delay function, replaceable in tests

    Returns:
        Whatever the first successful invocation returns

    Raises:
        The exception raised by the last attempt once attempts are exhausted
    """
    attempts = max(1, max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except retry_on as e:
            if attempt == attempts:
                raise
            logger.warning(f"Attempt {attempt}/{attempts} failed: {e}; retrying in {interval}s")
            sleep(interval)

    # unreachable, the loop either returns or raises
    raise RuntimeError("retry loop exited without a result")

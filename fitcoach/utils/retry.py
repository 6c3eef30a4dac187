"""
RETRY WITH BACKOFF
==================

with_retry(fn) runs a zero-argument callable and re-runs it when it raises one
of the exception types in retry_on. Waits grow geometrically (initial_delay,
then x2 each time). Anything not listed in retry_on propagates on the first
raise, so callers choose which failures are transient.

ExerciseDB lookups retry connection errors and timeouts only; an HTTP 4xx/5xx
is answered straight away:

  response = with_retry(
      lambda: requests.get(url, params=query, timeout=10),
      max_retries=2,
      initial_delay=0.5,
      retry_on=(requests.ConnectionError, requests.Timeout),
  )
"""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar


logger = logging.getLogger("fitcoach")

T = TypeVar("T")


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    initial_delay: float = 1.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """
    Return fn() from the first attempt that does not raise a retry_on error.

    max_retries is the total number of attempts (at least one). When the last
    attempt fails its exception is re-raised unchanged.
    """
    attempts = max(1, max_retries)
    wait = initial_delay
    attempt = 1

    while True:
        try:
            return fn()
        except retry_on as e:
            if attempt >= attempts:
                logger.error("Giving up after %s attempts: %s", attempts, e)
                raise
            logger.warning("Attempt %s of %s failed, next try in %.2fs: %s", attempt, attempts, wait, e)

        time.sleep(wait)
        wait *= 2
        attempt += 1

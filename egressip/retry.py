"""Bounded retry with backoff for optimistic concurrency conflicts."""

import random
import time
from typing import Callable, TypeVar

from oslo_log import log as logging

from .exceptions import OptimisticConflict

LOG = logging.getLogger(__name__)

T = TypeVar("T")


def is_optimistic_conflict(error: Exception) -> bool:
    return isinstance(error, OptimisticConflict)


def retry_on_conflict(
    fn: Callable[[], T],
    is_conflict: Callable[[Exception], bool] = is_optimistic_conflict,
    steps: int = 5,
    interval: float = 0.01,
    factor: float = 1.0,
    jitter: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call fn until it stops raising a conflict or the attempts run out.

    fn must re-read whatever state it depends on, since every attempt after
    the first runs against data that another writer has changed.

    Args:
        fn: Side-effecting callable, retried as a whole
        is_conflict: Predicate selecting the exceptions worth retrying
        steps: Maximum number of calls to fn
        interval: Wait before the second call, in seconds
        factor: Multiplier applied to the wait after every conflict
        jitter: Random fraction of the wait added to every sleep
        sleep: Sleep function (replaced in tests)

    Returns:
        Whatever fn returns

    Raises:
        The last conflict once all attempts are spent; any other exception
        raised by fn immediately.
    """
    if steps < 1:
        raise ValueError("steps must be at least 1")

    wait = interval
    attempt = 1
    while True:
        try:
            return fn()
        except Exception as e:
            if not is_conflict(e) or attempt >= steps:
                raise
            LOG.debug("Conflict on attempt %d/%d, retrying: %s", attempt, steps, e)
        sleep(wait * (1 + random.random() * jitter) if jitter > 0 else wait)
        wait *= factor
        attempt += 1

"""
Bounded readiness polling.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

from polarbox.commands.constants import READY_POLL_INTERVAL
from polarbox.commands.errors import PolarboxError, ReadinessTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(
    condition: Callable[[], Optional[T]],
    timeout: float,
    interval: float = READY_POLL_INTERVAL,
    description: str = "condition",
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``condition`` until it returns a truthy value or time runs out.

    PolarboxError raised by the condition counts as "not yet"; the last one is
    attached to the timeout error. Any other exception propagates.

    Args:
        condition: Zero-argument callable; a truthy return ends the wait.
        timeout: Seconds to wait before giving up.
        interval: Seconds to sleep between attempts.
        description: Human-readable name used in the timeout message.
        sleep: Sleep function, replaceable in tests.
        clock: Monotonic clock, replaceable in tests.

    Returns:
        The first truthy value returned by ``condition``.

    Raises:
        ReadinessTimeoutError: If the condition never held within ``timeout``.
    """
    deadline = clock() + timeout
    last_error: Optional[PolarboxError] = None
    attempts = 0

    while True:
        attempts += 1
        try:
            result = condition()
            if result:
                logger.debug("%s ready after %d attempt(s)", description, attempts)
                return result
        except PolarboxError as e:
            last_error = e
            logger.debug("%s not ready yet: %s", description, e)

        if clock() >= deadline:
            break
        sleep(interval)

    details = {"attempts": attempts}
    if last_error is not None:
        details["last_error"] = str(last_error)
    raise ReadinessTimeoutError(
        f"Timed out after {timeout}s waiting for {description}",
        timeout_seconds=timeout,
        details=details,
    )

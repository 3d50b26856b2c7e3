"""
Polling wait primitive used for dynamically rendered pages.
"""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


class WaitOutcome(enum.Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"


def await_condition(
    predicate: Callable[[], bool],
    *,
    poll_interval: float,
    deadline: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> WaitOutcome:
    """
    Poll ``predicate`` until it returns true or ``clock()`` passes ``deadline``.

    A timeout is reported as ``WaitOutcome.TIMED_OUT``, never raised. An
    exception from the predicate counts as "not ready yet".
    """

    interval = max(0.0, poll_interval)
    while True:
        try:
            if predicate():
                return WaitOutcome.READY
        except Exception as exc:  # noqa: BLE001
            logger.debug("Wait predicate raised, treating as not ready: %s", exc)

        remaining = deadline - clock()
        if remaining <= 0:
            return WaitOutcome.TIMED_OUT
        sleep(min(interval, remaining))

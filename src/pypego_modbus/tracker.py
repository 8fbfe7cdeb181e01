"""Device liveness with a grace period."""

import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_S = 300.0


class ResponsivenessTracker:
    """
    Remembers when the device last answered a transaction.

    The device counts as responsive until no transaction has succeeded for
    `threshold_s` seconds, so a single dropped request on a noisy bus does not
    flip the state. The clock starts at construction.
    """

    def __init__(
        self,
        threshold_s: float = DEFAULT_THRESHOLD_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if threshold_s <= 0:
            raise ValueError(f"threshold_s must be positive, got {threshold_s}")
        self._threshold_s = threshold_s
        self._clock = clock
        self._last_success = clock()

    @property
    def threshold_s(self) -> float:
        return self._threshold_s

    @property
    def last_success(self) -> float:
        return self._last_success

    def record_success(self) -> None:
        self._last_success = self._clock()

    def seconds_since_success(self) -> float:
        return self._clock() - self._last_success

    def is_responsive(self) -> bool:
        elapsed = self.seconds_since_success()
        if elapsed >= self._threshold_s:
            logger.debug("No successful transaction for %.1fs (threshold %.1fs)", elapsed, self._threshold_s)
            return False
        return True

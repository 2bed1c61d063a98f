"""
Retry policy — exponential backoff with jitter for transient failures.

Used by the HTTP transport. The sleep function is injectable so tests
can run a full retry budget without waiting.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a transient failure is retried.

    Args:
        max_retries: Retries after the first attempt (0 disables retrying).
        base_delay: Delay before the first retry, in seconds.
        max_delay: Upper bound for the exponential part of the delay.
        sleep: Called with each computed delay.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based), jitter included."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        jitter = random.uniform(0, delay * 0.3)
        return delay + jitter

    def wait(self, attempt: int, reason: str = "") -> None:
        delay = self.delay(attempt)
        logger.debug(
            "Retry %d/%d in %.1fs%s",
            attempt,
            self.max_retries,
            delay,
            f" ({reason})" if reason else "",
        )
        self.sleep(delay)


NO_RETRY = RetryPolicy(max_retries=0)

"""Exponential backoff with full jitter for Gmail API retries."""

import random
import time
from typing import Callable, Optional

from ..utils import get_logger


logger = get_logger(__name__)


DEFAULT_BASE_DELAY_MS = 100
DEFAULT_WAIT_CAP_MS = 10000
DEFAULT_MAX_ATTEMPTS = 5


class RetryState:
    """
    Retry bookkeeping for one logical operation.

    Tracks how many attempts have failed and whether another attempt is
    allowed. The delay before a retry grows exponentially with the attempt
    count, is capped at `wait_cap_ms`, and is then drawn uniformly from
    `[0, cap]` so that concurrent clients spread across the whole window
    instead of retrying in lockstep.

    Google recommends this for all time-based quota errors:
    https://developers.google.com/gmail/api/guides/handle-errors#exponential-backoff

    A new RetryState is created per top-level operation and never reset.

    Attributes:
        retryable: True while attempt < max_attempts

    Example:
        >>> state = RetryState(max_attempts=3)
        >>> state.backoff()      # no-op before the first failure
        >>> state.advance()
        >>> state.attempt, state.retryable
        (1, True)
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        wait_cap_ms: int = DEFAULT_WAIT_CAP_MS,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize retry state.

        Args:
            max_attempts: Number of failed attempts after which retrying stops
            base_delay_ms: Base wait time in milliseconds
            wait_cap_ms: Upper bound for any single wait in milliseconds
            sleep: Blocking sleep function taking seconds
            rng: Random source for jitter (defaults to a fresh Random)
        """
        self._max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.wait_cap_ms = wait_cap_ms
        self._sleep = sleep
        self._rng = rng or random.Random()

        self._attempt = 0
        self.retryable = False
        self._update_retryable()

    @property
    def attempt(self) -> int:
        """Number of failed attempts recorded so far."""
        return self._attempt

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def wait_time(self, attempt: int) -> int:
        """
        Uncapped wait for an attempt, in milliseconds.

        The first retry waits the flat base delay; from attempt 2 onward the
        wait is 2^attempt times the base.

        Args:
            attempt: Attempt number (>= 1)

        Returns:
            Wait time in milliseconds
        """
        if attempt == 1:
            return self.base_delay_ms

        return (2 ** attempt) * self.base_delay_ms

    def capped_wait(self, attempt: int) -> int:
        """Wait time bounded by wait_cap_ms."""
        # 2^attempt already exceeds any sane cap long before this.
        if attempt >= 64:
            return self.wait_cap_ms if self.base_delay_ms > 0 else 0

        return min(self.wait_cap_ms, self.wait_time(attempt))

    def jittered_wait(self, attempt: int) -> int:
        """Uniform random wait in [0, capped_wait(attempt)]."""
        return self._rng.randint(0, self.capped_wait(attempt))

    def backoff(self) -> None:
        """
        Block for a jittered wait based on the current attempt.

        Does nothing before the first failure, so the first try of an
        operation never waits.
        """
        if self._attempt == 0:
            return

        wait_ms = self.jittered_wait(self._attempt)
        logger.debug(
            f"Backing off {wait_ms}ms before retry "
            f"(attempt {self._attempt}/{self._max_attempts})"
        )
        self._sleep(wait_ms / 1000.0)

    def advance(self) -> None:
        """Record a failed attempt and update retryable."""
        self._attempt += 1
        self._update_retryable()

    def _update_retryable(self) -> None:
        self.retryable = self._attempt < self._max_attempts

    def __repr__(self) -> str:
        return (
            f"RetryState(attempt={self._attempt}, "
            f"max_attempts={self._max_attempts}, "
            f"retryable={self.retryable})"
        )

"""
Retry delay policy for outbox delivery
"""

import random
from typing import Optional


class ExponentialBackoff:
    """
    Capped exponential backoff with jitter.

    The delay for attempt n is ``min(cap, base * 2 ** (n - 1))``; with jitter
    the result is drawn uniformly from the upper half of that range, so
    retries from many rows spread out without ever collapsing to zero.
    """

    def __init__(self, base_seconds: float = 0.5, cap_seconds: float = 60.0,
                 jitter: bool = True, rng: Optional[random.Random] = None):
        if base_seconds <= 0:
            raise ValueError('base_seconds must be positive')
        if cap_seconds < base_seconds:
            raise ValueError('cap_seconds must be >= base_seconds')
        self.base_seconds = base_seconds
        self.cap_seconds = cap_seconds
        self.jitter = jitter
        self._rng = rng or random.Random()

    def ceiling(self, attempt: int) -> float:
        exponent = max(attempt, 1) - 1
        # Avoid float overflow for very large attempt counts
        if exponent >= 64:
            return self.cap_seconds
        return min(self.cap_seconds, self.base_seconds * (2 ** exponent))

    def delay(self, attempt: int) -> float:
        """Seconds to wait before the retry that follows failed attempt ``attempt``"""
        ceiling = self.ceiling(attempt)
        if not self.jitter:
            return ceiling
        return self._rng.uniform(ceiling / 2, ceiling)

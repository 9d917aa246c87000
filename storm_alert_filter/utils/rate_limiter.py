"""
Rate limiting utilities for controlling outbound request frequency.

This module provides a sliding-window rate limiter keyed by logical
operation and query location, so that polling distinct locations does
not share a request budget.
"""

import time
from typing import Callable, Dict, List, Optional

from ..utils.logging import get_logger

logger = get_logger("rate_limiter")


def request_key(operation: str, latitude: float, longitude: float) -> str:
    """Build the rate limit key for an operation against a location."""
    return f"{operation}:{round(latitude, 4)},{round(longitude, 4)}"


class SlidingWindowRateLimiter:
    """Sliding-window rate limiter tracking request timestamps per key."""

    def __init__(
        self,
        max_requests: int = 50,
        time_window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum requests allowed per key in the time window
            time_window: Time window in seconds
            clock: Time source returning seconds
        """
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if time_window <= 0:
            raise ValueError("time_window must be positive")

        self.max_requests = max_requests
        self.time_window = time_window
        self._clock = clock
        self._requests: Dict[str, List[float]] = {}

    def _recent(self, key: str, now: float) -> List[float]:
        return [t for t in self._requests.get(key, []) if now - t < self.time_window]

    def can_make_request(self, key: str) -> bool:
        """
        Check whether a request is allowed for key, recording it if so.

        Args:
            key: Logical request key

        Returns:
            True if the request is allowed
        """
        now = self._clock()
        recent = self._recent(key, now)

        if len(recent) >= self.max_requests:
            self._requests[key] = recent
            logger.warning(
                "Rate limit exceeded",
                extra={"key": key, "max_requests": self.max_requests},
            )
            return False

        recent.append(now)
        self._requests[key] = recent
        return True

    def get_remaining_requests(self, key: str) -> int:
        """Report remaining requests for key without recording anything."""
        return max(0, self.max_requests - len(self._recent(key, self._clock())))

    def reset(self, key: Optional[str] = None) -> None:
        """Forget recorded requests for one key, or for all keys."""
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)

"""
Sliding-window request limiter for the weather service.

State is per process: several workers each keep their own windows, so the
effective global quota is ``max_requests`` times the worker count.
"""

import math
import time
from collections import deque
from typing import Callable, Deque, Dict

from fastapi import Request

from shared.errors import RateLimitError
from shared.logging import get_logger, set_client_context


class SlidingWindowRateLimiter:
    """Counts requests per client over a trailing window of ``window_ms``.

    This is a request-count window, not a token bucket: a client may spend
    its whole budget in a burst and then waits for old timestamps to age out.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_ms: int = 60000,
        *,
        cleanup_threshold: int = 1000,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_ms = window_ms
        self.cleanup_threshold = cleanup_threshold
        self.clock = clock
        self.logger = get_logger("weather.rate_limiter")
        self._windows: Dict[str, Deque[int]] = {}

    def _now_ms(self) -> int:
        return round(self.clock() * 1000)

    def _prune(self, timestamps: Deque[int], window_start: int) -> None:
        # Timestamps are appended in order, so expired ones sit at the left.
        while timestamps and timestamps[0] < window_start:
            timestamps.popleft()

    def admit(self, client_id: str) -> bool:
        """Record and accept a request for ``client_id``, or reject it without recording."""
        now = self._now_ms()
        window_start = now - self.window_ms

        timestamps = self._windows.get(client_id)
        if timestamps is None:
            timestamps = deque()
            self._windows[client_id] = timestamps
        self._prune(timestamps, window_start)

        if len(timestamps) >= self.max_requests:
            return False

        timestamps.append(now)

        if len(self._windows) > self.cleanup_threshold:
            self.cleanup(window_start)

        return True

    def cleanup(self, window_start: int) -> int:
        """Drop clients whose windows are empty. Returns how many were removed."""
        removed = 0
        for client_id in list(self._windows):
            timestamps = self._windows[client_id]
            self._prune(timestamps, window_start)
            if not timestamps:
                del self._windows[client_id]
                removed += 1
        if removed:
            self.logger.debug("Rate limiter housekeeping", removed=removed, tracked=len(self._windows))
        return removed

    def remaining(self, client_id: str) -> int:
        """Requests ``client_id`` may still make in the current window."""
        timestamps = self._windows.get(client_id)
        if not timestamps:
            return self.max_requests
        window_start = self._now_ms() - self.window_ms
        live = sum(1 for ts in timestamps if ts >= window_start)
        return max(0, self.max_requests - live)

    def retry_after_seconds(self, client_id: str) -> int:
        """Seconds until the oldest recorded request for ``client_id`` leaves the window."""
        timestamps = self._windows.get(client_id)
        if not timestamps:
            return 0
        wait_ms = timestamps[0] + self.window_ms - self._now_ms()
        return max(1, math.ceil(wait_ms / 1000))

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)


class RateLimitMiddleware:
    """Applies the limiter to incoming FastAPI requests."""

    def __init__(self, rate_limiter: SlidingWindowRateLimiter, *, trust_forwarded_headers: bool = False, metrics=None):
        self.rate_limiter = rate_limiter
        self.trust_forwarded_headers = trust_forwarded_headers
        self.metrics = metrics
        self.logger = get_logger("weather.rate_limit_middleware")

    def check_request(self, request: Request) -> Dict[str, int]:
        """Admit the request or raise ``RateLimitError`` when the caller is over budget.

        Returns the limit and the requests remaining in the window.
        """
        client_id = self._get_client_id(request)
        set_client_context(client_id)
        request.state.client_id = client_id

        if self.rate_limiter.admit(client_id):
            return {
                "limit": self.rate_limiter.max_requests,
                "remaining": self.rate_limiter.remaining(client_id),
            }

        self.logger.warning(
            "Rate limit exceeded",
            client_id=client_id,
            endpoint=request.url.path,
            limit=self.rate_limiter.max_requests,
            window_ms=self.rate_limiter.window_ms,
        )
        if self.metrics:
            self.metrics.increment_counter("rate_limit_rejections_total", endpoint=request.url.path)

        raise RateLimitError(
            error=self._describe_limit(),
            retry_after=self.rate_limiter.retry_after_seconds(client_id),
        )

    def _describe_limit(self) -> str:
        window_ms = self.rate_limiter.window_ms
        if window_ms == 60000:
            period = "minute"
        else:
            period = f"{window_ms / 1000:g} seconds"
        return f"Rate limit exceeded. Maximum {self.rate_limiter.max_requests} requests per {period} allowed."

    def _get_client_id(self, request: Request) -> str:
        """Extract client ID from request."""
        if self.trust_forwarded_headers:
            forwarded_for = request.headers.get('X-Forwarded-For')
            if forwarded_for:
                return forwarded_for.split(',')[0].strip()

            real_ip = request.headers.get('X-Real-IP')
            if real_ip:
                return real_ip

        return request.client.host if request.client else 'unknown'

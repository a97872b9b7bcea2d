"""
Rate limiting package for the weather service.

Holds the in-process sliding-window limiter and the request adapter that
derives a client identity and turns rejections into 429 responses.
"""

from .sliding_window import RateLimitMiddleware, SlidingWindowRateLimiter

__all__ = ["RateLimitMiddleware", "SlidingWindowRateLimiter"]

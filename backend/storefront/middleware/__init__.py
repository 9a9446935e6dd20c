"""Request-level concerns: rate limiting and request logging."""
from .rate_limit import FixedWindowRateLimiter, RateLimitRule, get_rule, limiter
from .request_logging import setup_request_logging

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitRule",
    "get_rule",
    "limiter",
    "setup_request_logging",
]

"""
Fixed-window rate limiting kept in process memory.

Each (rule, client) pair gets a counter that resets when its window ends.
Rules are rebuilt from settings on every lookup so configuration changes
(and test overrides) apply without a restart.
"""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict

from fastapi import Request, Response

from storefront.config.settings import settings
from storefront.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

FIFTEEN_MINUTES = 15 * 60
ONE_HOUR = 60 * 60


@dataclass(frozen=True)
class RateLimitRule:
    name: str
    max_requests: int
    window_seconds: int
    message: str = "Too many requests, please try again later"


def get_rule(name: str) -> RateLimitRule:
    rules = {
        "api": RateLimitRule(
            "api",
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
            "Too many requests from this IP, please try again later",
        ),
        "login": RateLimitRule(
            "login",
            settings.rate_limit_login_max,
            FIFTEEN_MINUTES,
            "Too many login attempts, please try again in 15 minutes",
        ),
        "register": RateLimitRule(
            "register",
            settings.rate_limit_register_max,
            ONE_HOUR,
            "Too many accounts created from this IP, please try again later",
        ),
        "checkout": RateLimitRule(
            "checkout",
            10,
            FIFTEEN_MINUTES,
            "Too many checkout attempts, please try again later",
        ),
        "admin": RateLimitRule("admin", 200, FIFTEEN_MINUTES),
    }
    if name not in rules:
        raise KeyError(f"Unknown rate limit rule: {name}")
    return rules[name]


class FixedWindowRateLimiter:
    """Thread-safe in-memory fixed-window counters.

    Expired windows are dropped every ``prune_every`` checks so the table
    stays proportional to the clients seen in the current window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, prune_every: int = 1000):
        self._clock = clock
        self.prune_every = prune_every
        self._checks = 0
        self._windows: Dict[str, list] = {}  # {key: [count, window_started_at, window_seconds]}
        self._lock = threading.Lock()

    def _key(self, rule: RateLimitRule, client_id: str) -> str:
        return f"{rule.name}:{client_id}"

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def _prune_locked(self, now: float) -> int:
        expired = [key for key, (_, started, seconds) in self._windows.items() if now - started >= seconds]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def prune_expired(self) -> int:
        """Remove windows that have ended. Returns the number removed."""
        with self._lock:
            removed = self._prune_locked(self._clock())
        if removed:
            logger.debug(f"Pruned {removed} expired rate limit windows")
        return removed

    def check(self, rule: RateLimitRule, client_id: str) -> Dict[str, Any]:
        """
        Count one request against ``rule`` for ``client_id``.

        Returns:
            Dict with allowed, limit, remaining, current_count and reset_in_seconds
        """
        now = self._clock()
        key = self._key(rule, client_id)

        with self._lock:
            self._checks += 1
            if self.prune_every and self._checks % self.prune_every == 0:
                self._prune_locked(now)

            window = self._windows.get(key)
            if window is None or now - window[1] >= rule.window_seconds:
                window = [0, now, rule.window_seconds]
                self._windows[key] = window

            reset_in = max(0, math.ceil(rule.window_seconds - (now - window[1])))

            if window[0] >= rule.max_requests:
                logger.warning(f"Rate limit exceeded: rule={rule.name} client={client_id} count={window[0]}")
                return {
                    "allowed": False,
                    "limit": rule.max_requests,
                    "remaining": 0,
                    "current_count": window[0],
                    "reset_in_seconds": reset_in,
                }

            window[0] += 1
            return {
                "allowed": True,
                "limit": rule.max_requests,
                "remaining": max(0, rule.max_requests - window[0]),
                "current_count": window[0],
                "reset_in_seconds": reset_in,
            }

    def refund(self, rule: RateLimitRule, client_id: str) -> None:
        """Give back one request, e.g. so successful logins do not count."""
        with self._lock:
            window = self._windows.get(self._key(rule, client_id))
            if window and window[0] > 0:
                window[0] -= 1

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._checks = 0


limiter = FixedWindowRateLimiter()


def client_identifier(request: Request) -> str:
    """The socket address, or the first X-Forwarded-For hop when TRUST_PROXY is on."""
    if settings.trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def rate_limit(rule_name: str) -> Callable[[Request, Response], None]:
    """
    Dependency factory applying ``rule_name`` to the caller's IP.

    Example:
        >>> app.include_router(router, dependencies=[Depends(rate_limit("api"))])
    """

    def dependency(request: Request, response: Response) -> None:
        if not settings.rate_limit_enabled:
            return

        rule = get_rule(rule_name)
        result = limiter.check(rule, client_identifier(request))

        response.headers["RateLimit-Limit"] = str(result["limit"])
        response.headers["RateLimit-Remaining"] = str(result["remaining"])
        response.headers["RateLimit-Reset"] = str(result["reset_in_seconds"])

        if not result["allowed"]:
            raise RateLimitExceeded(rule.message, retry_after=result["reset_in_seconds"])

    return dependency

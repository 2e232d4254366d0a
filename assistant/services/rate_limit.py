# assistant/services/rate_limit.py
# Purpose:
# Fixed-window, per-user limit for AI endpoints (Django cache backed).

from __future__ import annotations

from django.conf import settings
from django.core.cache import cache


class RateLimitExceeded(Exception):
    def __init__(self, retry_after: int):
        super().__init__("Too many AI requests. Try again in %d seconds." % retry_after)
        self.retry_after = retry_after


def _window() -> int:
    return int(getattr(settings, "AI_RATE_LIMIT_WINDOW_SECONDS", 60))


def _limit() -> int:
    return int(getattr(settings, "AI_RATE_LIMIT_MAX", 20))


def check_rate_limit(*, user_id: int, scope: str = "ai") -> bool:
    key = f"pd:rate:{scope}:{user_id}"
    now_count = cache.get(key)
    if now_count is None:
        cache.set(key, 1, timeout=_window())
        return True
    if int(now_count) >= _limit():
        return False
    try:
        cache.incr(key)
    except ValueError:
        cache.set(key, int(now_count) + 1, timeout=_window())
    return True


def enforce_rate_limit(*, user_id: int, scope: str = "ai") -> None:
    if not check_rate_limit(user_id=user_id, scope=scope):
        raise RateLimitExceeded(_window())

import threading
import time

from functools import wraps

from flask import current_app, request

from kanban.errors import TooManyRequests


class RateLimitStore:
    """Attempt timestamps per key. Subclass to back it with a shared cache."""

    def allow(self, key: str, now: float, window: float, limit: int) -> bool:
        """Record an attempt unless ``limit`` attempts already fall inside
        the trailing ``window`` seconds."""
        raise NotImplementedError

    def reset(self, key: str = None):
        raise NotImplementedError


class InMemoryRateLimitStore(RateLimitStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._attempts = {}
        self._swept = None

    def allow(self, key: str, now: float, window: float, limit: int) -> bool:
        with self._lock:
            recent = [t for t in self._attempts.get(key, [])
                      if now - t < window]
            self._sweep(now, window)
            if len(recent) >= limit:
                self._attempts[key] = recent
                return False
            recent.append(now)
            self._attempts[key] = recent
            return True

    def _sweep(self, now: float, window: float):
        # Drop clients whose attempts have all expired, once per window
        if self._swept is not None and now - self._swept < window:
            return
        self._swept = now
        for key in [k for k, times in self._attempts.items()
                    if not times or now - times[-1] >= window]:
            del self._attempts[key]

    def __len__(self):
        with self._lock:
            return len(self._attempts)

    def reset(self, key: str = None):
        with self._lock:
            if key is None:
                self._attempts.clear()
            else:
                self._attempts.pop(key, None)


def rate_limited(scope: str):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            store = current_app.extensions['rate_limit_store']
            limit = current_app.config['AUTH_RATE_LIMIT']
            window = current_app.config['AUTH_RATE_WINDOW']
            key = f'{scope}_{request.remote_addr}'
            if not store.allow(key, time.monotonic(), window, limit):
                current_app.logger.info(f"rate limit hit for {key}")
                raise TooManyRequests()
            return fn(*args, **kwargs)
        return wrapper
    return decorator

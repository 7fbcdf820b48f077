import logging
import threading
import time
from collections.abc import Callable
from typing import Union

from .errors import RateLimited
from .state import RateWindow
from .store import KeyValueStore, dump_json, load_json
from .types import RateLimitConfig

RATE_LIMIT_PREFIX = "rate_limit_"


class RateLimiter:
    """Fixed-window request counter per endpoint.

    ``is_limited`` and ``record`` are kept for inspection and manual use; the
    client goes through ``attempt``, which checks and increments under one
    per-endpoint lock so concurrent callers cannot undercount.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Union[RateLimitConfig, None] = None,
        clock: Union[Callable[[], float], None] = None,
    ):
        self._store = store
        self.config = config or RateLimitConfig()
        self._clock = clock or time.time
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._logger = logging.getLogger("zewed")

    def _now(self) -> float:
        return self._clock()

    def _lock_for(self, endpoint: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(endpoint)
            if lock is None:
                lock = self._locks[endpoint] = threading.Lock()
            return lock

    def _load(self, endpoint: str) -> Union[RateWindow, None]:
        raw = load_json(self._store, RATE_LIMIT_PREFIX + endpoint)
        if not isinstance(raw, dict):
            return None
        try:
            return RateWindow.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            return None

    def _save(self, endpoint: str, window: RateWindow) -> None:
        dump_json(self._store, RATE_LIMIT_PREFIX + endpoint, window.to_dict())

    def _limited(self, window: Union[RateWindow, None], now: float) -> bool:
        return (
            window is not None and window.is_open(now) and window.count >= self.config.ceiling
        )

    def _increment(self, endpoint: str, window: Union[RateWindow, None], now: float) -> RateWindow:
        if window is None or not window.is_open(now):
            window = RateWindow(count=1, reset_at=now + self.config.window)
        else:
            window.count += 1
        self._save(endpoint, window)
        return window

    def window(self, endpoint: str) -> Union[RateWindow, None]:
        return self._load(endpoint)

    def is_limited(self, endpoint: str) -> bool:
        return self._limited(self._load(endpoint), self._now())

    def record(self, endpoint: str) -> RateWindow:
        with self._lock_for(endpoint):
            return self._increment(endpoint, self._load(endpoint), self._now())

    def attempt(self, endpoint: str) -> RateWindow:
        """Count one dispatch for endpoint, or raise RateLimited without counting it."""
        with self._lock_for(endpoint):
            now = self._now()
            window = self._load(endpoint)
            if self._limited(window, now):
                self._logger.warning(
                    f"endpoint={endpoint} rate limited; {window.count}/{self.config.ceiling} "
                    f"until {window.reset_at:.0f}"
                )
                raise RateLimited(endpoint, window.reset_at)
            return self._increment(endpoint, window, now)

    def reset(self, endpoint: Union[str, None] = None) -> None:
        if endpoint is not None:
            self._store.delete(RATE_LIMIT_PREFIX + endpoint)
            return
        for k in list(self._store.keys()):
            if k.startswith(RATE_LIMIT_PREFIX):
                self._store.delete(k)

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Union

from .state import CacheEntry
from .store import KeyValueStore, dump_json, load_json

CACHE_PREFIX = "cache_"


class CacheLayer:
    """TTL cache of GET results kept in a KeyValueStore.

    Entries are stored under ``cache_<endpoint>:<sorted-json-params>``. Expiry
    is not enforced on read; callers check ``is_expired``.
    """

    def __init__(self, store: KeyValueStore, clock: Union[Callable[[], float], None] = None):
        self._store = store
        self._clock = clock or time.time
        self._logger = logging.getLogger("zewed")

    def _now(self) -> float:
        return self._clock()

    @staticmethod
    def key(endpoint: str, params: Union[Mapping[str, Any], None] = None) -> str:
        ordered = {k: params[k] for k in sorted(params)} if params else {}
        return f"{endpoint}:{json.dumps(ordered, separators=(',', ':'), default=str)}"

    def get(self, key: str) -> Union[CacheEntry, None]:
        raw = load_json(self._store, CACHE_PREFIX + key)
        if not isinstance(raw, dict):
            return None
        try:
            return CacheEntry.from_dict(raw)
        except (KeyError, TypeError):
            self._logger.warning(f"discarding malformed cache entry key={key}")
            self._store.delete(CACHE_PREFIX + key)
            return None

    def is_expired(self, entry: CacheEntry) -> bool:
        return self._now() > entry.expires_at

    def put(self, key: str, data: Any, ttl_seconds: float) -> Union[CacheEntry, None]:
        now = self._now()
        entry = CacheEntry(data=data, stored_at=now, expires_at=now + ttl_seconds)
        try:
            dump_json(self._store, CACHE_PREFIX + key, entry.to_dict())
        except TypeError:
            # binary or otherwise non-JSON payloads are served but not cached
            self._logger.info(f"not caching non-serializable response key={key}")
            return None
        return entry

    def clear(self, pattern: str = "") -> int:
        removed = 0
        for k in list(self._store.keys()):
            if k.startswith(CACHE_PREFIX) and pattern in k:
                self._store.delete(k)
                removed += 1
        self._logger.debug(f"cache cleared pattern={pattern!r} removed={removed}")
        return removed

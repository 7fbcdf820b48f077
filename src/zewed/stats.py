import threading
from datetime import datetime, timezone

from .store import KeyValueStore, dump_json, load_json
from .types import ApiStats

STATS_KEY = "api_stats"


class UsageStats:
    """Request counters persisted under ``api_stats``."""

    def __init__(self, store: KeyValueStore):
        self._store = store
        self._lock = threading.Lock()

    def record(self, success: bool) -> None:
        with self._lock:
            raw = load_json(self._store, STATS_KEY) or {}
            raw["totalRequests"] = raw.get("totalRequests", 0) + 1
            field = "successfulRequests" if success else "failedRequests"
            raw[field] = raw.get(field, 0) + 1
            raw["lastRequest"] = datetime.now(timezone.utc).isoformat()
            dump_json(self._store, STATS_KEY, raw)

    def read(self) -> ApiStats:
        raw = load_json(self._store, STATS_KEY) or {}
        return ApiStats(
            total_requests=raw.get("totalRequests", 0),
            successful_requests=raw.get("successfulRequests", 0),
            failed_requests=raw.get("failedRequests", 0),
            last_request=raw.get("lastRequest"),
        )

    def reset(self) -> None:
        self._store.delete(STATS_KEY)

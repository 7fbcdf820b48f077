import json
import logging
import os
import threading
from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger("zewed")


@runtime_checkable
class KeyValueStore(Protocol):
    """String key/value persistence. Values are serialized strings."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class JsonFileStore(MemoryStore):
    """MemoryStore mirrored to a JSON file so values survive restarts."""

    def __init__(self, path: str):
        self.path = path
        initial: dict[str, str] = {}
        if os.path.exists(path):
            with open(path, encoding="utf-8") as f:
                raw = f.read()
            if raw.strip():
                initial = {str(k): str(v) for k, v in json.loads(raw).items()}
        super().__init__(initial)

    def _flush(self) -> None:
        tmp = f"{self.path}.tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self._data, f)
        os.replace(tmp, self.path)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value
            self._flush()

    def delete(self, key: str) -> None:
        with self._lock:
            if self._data.pop(key, None) is not None:
                self._flush()


def load_json(store: KeyValueStore, key: str) -> Any:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning(f"discarding unreadable value for key={key}")
        store.delete(key)
        return None


def dump_json(store: KeyValueStore, key: str, value: Any) -> None:
    store.set(key, json.dumps(value, separators=(",", ":")))

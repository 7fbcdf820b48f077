import logging
import threading

from .store import KeyValueStore

TOKEN_KEY = "auth_token"


class TokenStore:
    """Holds the bearer credential and mirrors it into the store and default headers."""

    def __init__(self, store: KeyValueStore, default_headers: dict[str, str] | None = None):
        self._store = store
        self._headers = default_headers if default_headers is not None else {}
        self._token: str | None = None
        self._restored = False
        self._lock = threading.Lock()
        self._logger = logging.getLogger("zewed")

    @property
    def headers(self) -> dict[str, str]:
        return self._headers

    def _restore(self) -> None:
        if self._restored:
            return
        self._restored = True
        token = self._store.get(TOKEN_KEY)
        if token:
            self._token = token
            self._headers["Authorization"] = f"Bearer {token}"

    def get(self) -> str | None:
        with self._lock:
            self._restore()
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._restored = True
            self._token = token
            self._store.set(TOKEN_KEY, token)
            self._headers["Authorization"] = f"Bearer {token}"

    def clear(self) -> None:
        with self._lock:
            self._restored = True
            had_token = self._token is not None
            self._token = None
            self._store.delete(TOKEN_KEY)
            self._headers.pop("Authorization", None)
        if had_token:
            self._logger.info("credential cleared")

    def snapshot_headers(self) -> dict[str, str]:
        """Copy of the default headers, taken under the credential lock."""
        with self._lock:
            self._restore()
            return dict(self._headers)

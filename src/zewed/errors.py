"""Classified failures raised by the client.

Every failure a caller can see derives from ``ZewedError`` and carries a
``kind`` plus, for HTTP failures, the status and the parsed error payload.
"""

from typing import Any


class ZewedError(Exception):
    kind = "error"

    def __init__(self, message: str, status: int | None = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "status": self.status,
            "payload": self.payload,
            "message": self.message,
        }


class HttpError(ZewedError):
    """The server answered with a non-2xx status."""

    kind = "http"

    def __init__(self, status: int, payload: Any = None, message: str | None = None):
        super().__init__(message or f"HTTP {status}", status=status, payload=payload)


class Offline(ZewedError):
    kind = "offline"


class Unreachable(ZewedError):
    kind = "unreachable"


class Exhausted(ZewedError):
    """A retried operation failed on its last permitted attempt."""

    kind = "exhausted"

    def __init__(self, last_error: BaseException, attempts: int):
        super().__init__(
            f"Max retries ({attempts}) exceeded. Last error: {last_error}",
            status=getattr(last_error, "status", None),
            payload=getattr(last_error, "payload", None),
        )
        self.last_error = last_error
        self.attempts = attempts


class RateLimited(ZewedError):
    kind = "rate_limited"

    def __init__(self, endpoint: str, reset_at: float):
        super().__init__(f"Rate limit reached for {endpoint}; window resets at {reset_at:.0f}")
        self.endpoint = endpoint
        self.reset_at = reset_at


class TransportFailure(Exception):
    """Raised by transport adapters when no response was received at all."""

    def __init__(self, message: str, original: BaseException | None = None):
        super().__init__(message)
        self.original = original

"""Pure mapping from responses and transport failures to classified errors."""

import json
from typing import Any

from .errors import HttpError, Offline, TransportFailure, Unreachable

OFFLINE_MESSAGE = "You are offline. Please check your internet connection."
UNREACHABLE_MESSAGE = "Unable to connect to server. Please try again later."


def error_payload(status: int, reason: str, body: bytes) -> Any:
    """Parse an error body as JSON, or synthesize a status summary."""
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return {"message": f"HTTP {status}: {reason}", "status": status}


def classify_response(status: int, reason: str, body: bytes) -> HttpError:
    payload = error_payload(status, reason, body)
    message = None
    if isinstance(payload, dict):
        message = payload.get("message")
    return HttpError(status, payload=payload, message=message or "API request failed")


def classify_transport_failure(error: TransportFailure, online: bool) -> Offline | Unreachable:
    if not online:
        return Offline(OFFLINE_MESSAGE)
    return Unreachable(UNREACHABLE_MESSAGE, payload={"detail": str(error)})


def decode_body(content_type: str | None, body: bytes, encoding: str = "utf-8") -> Any:
    """JSON to structured data, text/* to str, anything else as bytes."""
    ct = (content_type or "").lower()
    if "application/json" in ct:
        return json.loads(body) if body else None
    if "text/" in ct:
        try:
            return body.decode(_charset(ct) or encoding, errors="replace")
        except LookupError:
            return body.decode(encoding, errors="replace")
    return body


def _charset(content_type: str) -> str | None:
    for part in content_type.split(";")[1:]:
        name, _, value = part.strip().partition("=")
        if name == "charset" and value:
            return value.strip('"')
    return None

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, Union

from .errors import TransportFailure

logger = logging.getLogger("zewed")


@dataclass
class TransportRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: Union[dict[str, Any], None] = None
    content: Union[bytes, None] = None
    data: Union[dict[str, Any], None] = None
    files: Union[list[tuple[str, Any]], None] = None
    timeout: Union[float, None] = None


@dataclass
class TransportResponse:
    status_code: int
    reason: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    content: bytes = b""

    def __post_init__(self):
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300  # noqa: PLR2004

    def header(self, name: str, default: Union[str, None] = None) -> Union[str, None]:
        return self.headers.get(name.lower(), default)


class Transport(Protocol):
    async def send(self, request: TransportRequest) -> TransportResponse: ...

    async def aclose(self) -> None: ...


# ---------- httpx (async, default) ----------
class HttpxTransport:
    def __init__(self, client=None, **client_kwargs):
        self.client = client
        self._client_kwargs = client_kwargs
        self._own_client = client is None

    def _ensure_client(self):
        if self.client is None:
            import httpx  # noqa: PLC0415

            self.client = httpx.AsyncClient(**self._client_kwargs)
        return self.client

    async def send(self, request: TransportRequest) -> TransportResponse:
        import httpx  # noqa: PLC0415

        client = self._ensure_client()
        timeout = httpx.USE_CLIENT_DEFAULT if request.timeout is None else request.timeout
        try:
            resp = await client.request(
                request.method,
                request.url,
                headers=request.headers,
                params=request.params or None,
                content=request.content,
                data=request.data,
                files=request.files,
                timeout=timeout,
            )
        except httpx.TransportError as e:
            logger.warning(f"transport error method={request.method} url={request.url}: {e!r}")
            raise TransportFailure(str(e) or type(e).__name__, e) from e
        return TransportResponse(
            status_code=resp.status_code,
            reason=resp.reason_phrase,
            headers=dict(resp.headers),
            content=resp.content,
        )

    async def aclose(self) -> None:
        if self._own_client and self.client is not None:
            with contextlib.suppress(Exception):
                await self.client.aclose()
            self.client = None

    async def __aenter__(self):
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False


# ---------- requests (sync session, run off the event loop) ----------
class RequestsTransport:
    def __init__(self, session=None):
        self.session = session
        self._own_session = session is None

    def _ensure_session(self):
        if self.session is None:
            import requests  # noqa: PLC0415

            self.session = requests.Session()
        return self.session

    def _send_sync(self, request: TransportRequest) -> TransportResponse:
        import requests  # noqa: PLC0415

        sess = self._ensure_session()
        try:
            resp = sess.request(
                request.method,
                request.url,
                headers=request.headers,
                params=request.params or None,
                data=request.content if request.content is not None else request.data,
                files=request.files,
                timeout=request.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"transport error method={request.method} url={request.url}: {e!r}")
            raise TransportFailure(str(e) or type(e).__name__, e) from e
        return TransportResponse(
            status_code=resp.status_code,
            reason=resp.reason or "",
            headers=dict(resp.headers),
            content=resp.content,
        )

    async def send(self, request: TransportRequest) -> TransportResponse:
        return await asyncio.to_thread(self._send_sync, request)

    async def aclose(self) -> None:
        if self._own_session and self.session is not None:
            with contextlib.suppress(Exception):
                self.session.close()
            self.session = None

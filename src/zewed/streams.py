"""Streaming endpoints over aiohttp: a duplex WebSocket and a one-way SSE feed."""

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, Union

from .errors import Unreachable

logger = logging.getLogger("zewed")


def websocket_url(base_url: str, endpoint: str) -> str:
    if endpoint.startswith(("ws://", "wss://")):
        return endpoint
    if endpoint.startswith(("http://", "https://")):
        return "ws" + endpoint[len("http") :]
    return base_url.replace("http", "ws", 1) + endpoint


@dataclass
class ServerEvent:
    data: str
    event: str = "message"
    id: Union[str, None] = None
    retry: Union[int, None] = None

    def json(self) -> Any:
        return json.loads(self.data)


class DuplexStream:
    """WebSocket connection that authenticates itself once opened.

    Usage:
        async with client.create_websocket("/chat") as ws:
            await ws.send_json({"type": "ping"})
            async for message in ws:
                ...
    """

    def __init__(self, url: str, token: Union[str, None] = None, session=None, headers=None):
        self.url = url
        self.token = token
        self.session = session
        self.headers = headers or {}
        self._own_session = session is None
        self._ws = None

    async def __aenter__(self):
        import aiohttp  # noqa: PLC0415

        if self.session is None:
            self.session = aiohttp.ClientSession()
        try:
            self._ws = await self.session.ws_connect(self.url, headers=self.headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"websocket connect failed url={self.url}: {e!r}")
            await self._close_session()
            raise Unreachable(f"Unable to open stream {self.url}") from e
        if self.token:
            await self._ws.send_json({"type": "auth", "token": self.token})
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False

    @property
    def closed(self) -> bool:
        return self._ws is None or self._ws.closed

    async def send_json(self, data: Any) -> None:
        await self._ws.send_json(data)

    async def send_str(self, data: str) -> None:
        await self._ws.send_str(data)

    async def receive_json(self) -> Any:
        return await self._ws.receive_json()

    async def __aiter__(self):
        import aiohttp  # noqa: PLC0415

        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning(f"websocket error url={self.url}: {self._ws.exception()!r}")
                break

    async def close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        await self._close_session()

    async def _close_session(self) -> None:
        if self._own_session and self.session is not None:
            with contextlib.suppress(Exception):
                await self.session.close()
            self.session = None


class EventStream:
    """Server-Sent Events reader. Any transport error closes the stream and raises Unreachable."""

    def __init__(self, url: str, session=None, headers=None):
        self.url = url
        self.session = session
        self.headers = {"Accept": "text/event-stream", **(headers or {})}
        self._own_session = session is None
        self._resp = None
        self.closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False

    async def _open(self):
        import aiohttp  # noqa: PLC0415

        if self.session is None:
            self.session = aiohttp.ClientSession()
        resp = await self.session.get(self.url, headers=self.headers)
        if resp.status != 200:  # noqa: PLR2004
            resp.release()
            raise aiohttp.ClientResponseError(
                resp.request_info, resp.history, status=resp.status, message=resp.reason or ""
            )
        self._resp = resp
        return resp

    async def __aiter__(self) -> AsyncIterator[ServerEvent]:
        import aiohttp  # noqa: PLC0415

        try:
            resp = self._resp or await self._open()
            fields: dict[str, Any] = {}
            data_lines: list[str] = []
            async for raw in resp.content:
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if not line:
                    if data_lines:
                        yield ServerEvent(data="\n".join(data_lines), **fields)
                    fields, data_lines = {}, []
                    continue
                if line.startswith(":"):
                    continue
                name, _, value = line.partition(":")
                value = value[1:] if value.startswith(" ") else value
                if name == "data":
                    data_lines.append(value)
                elif name == "event":
                    fields["event"] = value
                elif name == "id":
                    fields["id"] = value
                elif name == "retry" and value.isdigit():
                    fields["retry"] = int(value)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"event stream error url={self.url}: {e!r}")
            await self.close()
            raise Unreachable(f"Event stream {self.url} failed") from e

    async def close(self) -> None:
        self.closed = True
        if self._resp is not None:
            self._resp.release()
            self._resp = None
        if self._own_session and self.session is not None:
            with contextlib.suppress(Exception):
                await self.session.close()
            self.session = None

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from zewed import ApiClient, Unreachable
from zewed.streams import websocket_url


def test_websocket_url():
    assert websocket_url("https://api.test", "/chat") == "wss://api.test/chat"
    assert websocket_url("http://api.test", "/chat") == "ws://api.test/chat"
    assert websocket_url("https://api.test", "https://rt.test/x") == "wss://rt.test/x"


@pytest.mark.asyncio
async def test_websocket_sends_auth_message_on_open():
    ws = AsyncMock()
    ws.closed = False
    session = AsyncMock()
    session.ws_connect.return_value = ws

    client = ApiClient("https://api.test")
    client.set_token("T")
    async with client.create_websocket("/chat", session=session) as stream:
        await stream.send_json({"type": "ping"})
    args, _ = session.ws_connect.call_args
    assert args[0] == "wss://api.test/chat"
    assert ws.send_json.await_args_list[0].args[0] == {"type": "auth", "token": "T"}
    assert ws.send_json.await_args_list[1].args[0] == {"type": "ping"}
    ws.close.assert_awaited_once()
    session.close.assert_not_called()


@pytest.mark.asyncio
async def test_websocket_without_token_skips_auth():
    ws = AsyncMock()
    ws.closed = False
    session = AsyncMock()
    session.ws_connect.return_value = ws
    async with ApiClient("https://api.test").create_websocket("/chat", session=session):
        pass
    ws.send_json.assert_not_awaited()


class FakeContent:
    def __init__(self, lines, error=None):
        self.lines = lines
        self.error = error

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for line in self.lines:
            yield line
        if self.error is not None:
            raise self.error


def _sse_session(content, status=200):
    resp = MagicMock()
    resp.status = status
    resp.content = content
    session = MagicMock()
    session.get = AsyncMock(return_value=resp)
    return session, resp


@pytest.mark.asyncio
async def test_event_source_parses_events():
    content = FakeContent(
        [
            b": keep-alive\n",
            b"event: job\n",
            b"id: 7\n",
            b'data: {"id": 7}\n',
            b"\n",
            b"data: line one\n",
            b"data: line two\n",
            b"\n",
        ]
    )
    session, resp = _sse_session(content)
    client = ApiClient("https://api.test")
    client.set_token("T")
    events = []
    async with client.create_event_source("/jobs/stream", session=session) as stream:
        async for event in stream:
            events.append(event)
    assert events[0].event == "job"
    assert events[0].id == "7"
    assert events[0].json() == {"id": 7}
    assert events[1].event == "message"
    assert events[1].data == "line one\nline two"
    _, kwargs = session.get.call_args
    assert kwargs["headers"]["Accept"] == "text/event-stream"
    assert kwargs["headers"]["Authorization"] == "Bearer T"
    resp.release.assert_called_once()


@pytest.mark.asyncio
async def test_event_source_closes_on_transport_error():
    content = FakeContent([b"data: one\n", b"\n"], error=aiohttp.ClientPayloadError("reset"))
    session, resp = _sse_session(content)
    stream = ApiClient("https://api.test").create_event_source("/feed", session=session)
    received = []
    with pytest.raises(Unreachable):
        async for event in stream:
            received.append(event.data)
    assert received == ["one"]
    assert stream.closed
    resp.release.assert_called_once()


@pytest.mark.asyncio
async def test_event_source_timeout_closes_stream():
    content = FakeContent([b"data: one\n", b"\n"], error=asyncio.TimeoutError())
    session, resp = _sse_session(content)
    stream = ApiClient("https://api.test").create_event_source("/feed", session=session)
    with pytest.raises(Unreachable) as exc:
        async for _ in stream:
            pass
    assert isinstance(exc.value.__cause__, asyncio.TimeoutError)
    assert stream.closed
    resp.release.assert_called_once()


@pytest.mark.asyncio
async def test_event_source_tolerates_invalid_utf8():
    content = FakeContent([b"data: caf\xe9\n", b"\n", b"data: ok\n", b"\n"])
    session, _ = _sse_session(content)
    stream = ApiClient("https://api.test").create_event_source("/feed", session=session)
    received = [event.data async for event in stream]
    assert received == ["caf\ufffd", "ok"]

import json

import httpx
import pytest

from zewed import ApiClient, HttpxTransport


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def json_response(status: int, payload, headers=None) -> httpx.Response:
    return httpx.Response(
        status,
        content=json.dumps(payload).encode(),
        headers={"Content-Type": "application/json", **(headers or {})},
    )


def make_client(handler, **kwargs) -> ApiClient:
    transport = HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    kwargs.setdefault("rate_limit_enabled", False)
    return ApiClient("https://api.test", transport=transport, **kwargs)


@pytest.fixture
def clock():
    return FakeClock()

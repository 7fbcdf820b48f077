import httpx
import pytest
from conftest import json_response, make_client

from zewed import Exhausted, HttpError, RetryConfig, RetryPolicy


class Sleeps:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.mark.asyncio
async def test_backoff_schedule_and_exhausted_after_third_failure():
    sleeps = Sleeps()
    policy = RetryPolicy(sleep=sleeps)
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        raise ValueError(f"boom {calls['n']}")

    with pytest.raises(Exhausted) as exc:
        await policy.execute(op, max_attempts=3, base_delay=1.0)
    assert calls["n"] == 3  # noqa: PLR2004
    # no wait after the final attempt
    assert sleeps.delays == [1.0, 2.0]
    assert isinstance(exc.value.last_error, ValueError)
    assert str(exc.value.last_error) == "boom 3"
    assert exc.value.__cause__ is exc.value.last_error


@pytest.mark.asyncio
async def test_recovers_silently_within_budget():
    sleeps = Sleeps()
    policy = RetryPolicy(RetryConfig(max_attempts=4, base_delay=0.5), sleep=sleeps)
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        if calls["n"] < 3:  # noqa: PLR2004
            raise RuntimeError("transient")
        return "ok"

    assert await policy.execute(op) == "ok"
    assert sleeps.delays == [0.5, 1.0]


@pytest.mark.asyncio
async def test_non_retryable_propagates_immediately():
    sleeps = Sleeps()
    policy = RetryPolicy(RetryConfig(retry_on=(ConnectionError,)), sleep=sleeps)

    async def op():
        raise KeyError("nope")

    with pytest.raises(KeyError):
        await policy.execute(op)
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_client_request_with_retry_wraps_http_error():
    sleeps = Sleeps()
    statuses = iter([503, 503, 200])

    def handler(request):
        return json_response(next(statuses), {"message": "busy"})

    client = make_client(handler, sleep=sleeps)
    assert await client.get("/jobs", retry=True) == {"message": "busy"}
    assert sleeps.delays == [1.0, 2.0]

    def always_down(request):
        return json_response(503, {"message": "busy"})

    client = make_client(always_down, sleep=sleeps, retry_base_delay=0.1)
    with pytest.raises(Exhausted) as exc:
        await client.get("/jobs", retry=2)
    assert isinstance(exc.value.last_error, HttpError)
    assert exc.value.status == 503  # noqa: PLR2004


@pytest.mark.asyncio
async def test_client_retry_helper():
    sleeps = Sleeps()
    client = make_client(lambda request: httpx.Response(200), sleep=sleeps)
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("first")
        return calls["n"]

    assert await client.retry(op, max_attempts=3, base_delay=2.0) == 2  # noqa: PLR2004
    assert sleeps.delays == [2.0]

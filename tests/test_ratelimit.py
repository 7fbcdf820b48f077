import asyncio
import json

import pytest
from conftest import json_response, make_client

from zewed import MemoryStore, RateLimitConfig, RateLimited, RateLimiter


def test_eleventh_call_in_window_is_limited(clock):
    limiter = RateLimiter(MemoryStore(), clock=clock)
    assert not limiter.is_limited("/jobs")
    for _ in range(10):
        limiter.record("/jobs")
    assert limiter.is_limited("/jobs")
    assert not limiter.is_limited("/courses")


def test_window_resets_after_reset_at(clock):
    store = MemoryStore()
    limiter = RateLimiter(store, clock=clock)
    for _ in range(10):
        limiter.record("/jobs")
    raw = json.loads(store.get("rate_limit_/jobs"))
    assert raw == {"count": 10, "resetAt": clock.now + 60}
    clock.advance(60)
    assert not limiter.is_limited("/jobs")
    window = limiter.record("/jobs")
    assert window.count == 1
    assert window.reset_at == clock.now + 60


def test_attempt_raises_without_counting(clock):
    limiter = RateLimiter(MemoryStore(), RateLimitConfig(ceiling=2, window=5), clock=clock)
    limiter.attempt("/x")
    limiter.attempt("/x")
    with pytest.raises(RateLimited) as exc:
        limiter.attempt("/x")
    assert exc.value.endpoint == "/x"
    assert limiter.window("/x").count == 2  # noqa: PLR2004
    clock.advance(5)
    assert limiter.attempt("/x").count == 1


def test_reset_single_and_all(clock):
    limiter = RateLimiter(MemoryStore(), clock=clock)
    limiter.record("/a")
    limiter.record("/b")
    limiter.reset("/a")
    assert limiter.window("/a") is None
    assert limiter.window("/b") is not None
    limiter.reset()
    assert limiter.window("/b") is None


@pytest.mark.asyncio
async def test_concurrent_attempts_never_exceed_ceiling(clock):
    limiter = RateLimiter(MemoryStore(), clock=clock)

    def hit():
        try:
            limiter.attempt("/jobs")
            return True
        except RateLimited:
            return False

    outcomes = await asyncio.gather(*(asyncio.to_thread(hit) for _ in range(25)))
    assert sum(outcomes) == 10  # noqa: PLR2004
    assert limiter.window("/jobs").count == 10  # noqa: PLR2004


@pytest.mark.asyncio
async def test_client_denies_before_transport(clock):
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return json_response(200, {})

    client = make_client(handler, clock=clock, rate_limit_enabled=True)
    for _ in range(10):
        await client.get("/jobs", {"page": 1})
    with pytest.raises(RateLimited):
        await client.get("/jobs", {"page": 2})
    assert calls["n"] == 10  # noqa: PLR2004
    # other endpoints have their own window
    await client.get("/courses")
    assert calls["n"] == 11  # noqa: PLR2004


@pytest.mark.asyncio
async def test_cached_reads_share_the_endpoint_window(clock):
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return json_response(200, {"n": calls["n"]})

    client = make_client(handler, clock=clock, rate_limit_enabled=True)
    assert await client.get_with_cache("/jobs") == {"n": 1}
    for _ in range(9):
        await client.get("/jobs")
    assert client.rate_limiter.window("/jobs").count == 10  # noqa: PLR2004
    # a fresh cache entry exists, but the window is full
    with pytest.raises(RateLimited):
        await client.get_with_cache("/jobs")
    assert calls["n"] == 10  # noqa: PLR2004

    clock.advance(60)
    assert await client.get_with_cache("/jobs") == {"n": 1}
    assert client.rate_limiter.window("/jobs").count == 1


@pytest.mark.asyncio
async def test_cache_miss_counts_once(clock):
    def handler(request):
        return json_response(200, {"ok": True})

    client = make_client(handler, clock=clock, rate_limit_enabled=True)
    await client.get_with_cache("/jobs")
    assert client.rate_limiter.window("/jobs").count == 1

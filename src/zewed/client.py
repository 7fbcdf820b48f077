import contextlib
import hashlib
import hmac
import json
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Union

from .adapters import HttpxTransport, Transport
from .batch import BatchDispatcher
from .cache import CacheLayer
from .credentials import TokenStore
from .env import load_client_config_from_env
from .errors import ZewedError
from .events import ClientEvents
from .executor import RequestExecutor
from .forms import FileInput, FormPayload, to_form_data, upload_form
from .ratelimit import RateLimiter
from .retry import RetryPolicy
from .stats import UsageStats
from .store import KeyValueStore, MemoryStore
from .streams import DuplexStream, EventStream, websocket_url
from .types import (
    ApiStats,
    BatchItem,
    BatchResult,
    ClientConfig,
    HealthStatus,
    RateLimitConfig,
    RetryConfig,
)

RetryOption = Union[bool, int, RetryConfig, None]


def _endpoint_name(endpoint: str) -> str:
    return endpoint.split("?", 1)[0]


class ApiClient:
    def __init__(
        self,
        base_url: Union[str, None] = None,
        store: Union[KeyValueStore, None] = None,
        transport: Union[Transport, None] = None,
        events: Union[ClientEvents, None] = None,
        log_level: Union[int, None] = None,
        **kwargs,
    ):
        """Initialize an ApiClient.

        Construct one per process and pass it to whoever needs it.

        Args:
            base_url (str | None, optional): prefix for relative endpoints
            store (KeyValueStore | None, optional): persistence for token, cache,
                rate windows and stats; in-memory when omitted
            transport (Transport | None, optional): HTTP transport; httpx when omitted
            events (ClientEvents | None, optional): notify/navigate side channel
            log_level (int | None, optional): level for the "zewed" logger
            kwargs:
            - config: ClientConfig object
            - retry_config: RetryConfig object
            - retry_attempts: int
            - retry_base_delay: float
            - rate_limit_config: RateLimitConfig object
            - rate_limit_enabled: bool
            - rate_limit_ceiling: int
            - rate_limit_window: float
            - cache_ttl: float
            - timeout: float
            - webhook_secret: str
            - user_agent: str
            - clock: () -> float, seconds
            - sleep: async (seconds) -> None, used for retry backoff
            - is_online: () -> bool
            - current_path: () -> str
            - stream_session: aiohttp.ClientSession shared by streams
        """
        self.config = self._resolve_config(base_url, kwargs)
        self._logger = logging.getLogger("zewed")
        if log_level is not None:
            with contextlib.suppress(Exception):
                self._logger.setLevel(log_level)

        clock = kwargs.get("clock")
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self.events = events or ClientEvents(current_path=kwargs.get("current_path"))
        self.tokens = TokenStore(self.store, dict(self.config.default_headers))
        self.cache = CacheLayer(self.store, clock=clock)
        self.rate_limiter = RateLimiter(self.store, self.config.rate_limit, clock=clock)
        self._sleep = kwargs.get("sleep")
        self.retry_policy = RetryPolicy(self.config.retry, sleep=self._sleep)
        self.stats = UsageStats(self.store)
        self.transport: Transport = transport or HttpxTransport()
        self.executor = RequestExecutor(
            self.config.base_url,
            self.transport,
            self.tokens,
            self.events,
            stats=self.stats,
            is_online=kwargs.get("is_online"),
            timeout=self.config.timeout,
        )
        self.batcher = BatchDispatcher(self._dispatch_item)
        self._stream_session = kwargs.get("stream_session")

    @staticmethod
    def _resolve_config(base_url: Union[str, None], kwargs: dict[str, Any]) -> ClientConfig:
        # Prefer config objects, then individual keywords, finally defaults
        cfg: ClientConfig = kwargs.get("config") or ClientConfig()
        if base_url is not None:
            cfg = replace(cfg, base_url=base_url)
        for name in ("cache_ttl", "timeout", "webhook_secret", "user_agent"):
            if name in kwargs:
                cfg = replace(cfg, **{name: kwargs[name]})

        retry: RetryConfig = kwargs.get("retry_config") or cfg.retry
        if "retry_attempts" in kwargs:
            retry = replace(retry, max_attempts=max(1, int(kwargs["retry_attempts"])))
        if "retry_base_delay" in kwargs:
            retry = replace(retry, base_delay=float(kwargs["retry_base_delay"]))

        rate: RateLimitConfig = kwargs.get("rate_limit_config") or cfg.rate_limit
        if "rate_limit_enabled" in kwargs:
            rate = replace(rate, enabled=bool(kwargs["rate_limit_enabled"]))
        if "rate_limit_ceiling" in kwargs:
            rate = replace(rate, ceiling=int(kwargs["rate_limit_ceiling"]))
        if "rate_limit_window" in kwargs:
            rate = replace(rate, window=float(kwargs["rate_limit_window"]))
        return replace(cfg, retry=retry, rate_limit=rate)

    @classmethod
    def from_env(cls, prefix: str = "ZEWED_", env_path: Union[str, None] = None, **kwargs):
        """Create an ApiClient configured from environment variables (see load_client_config_from_env)."""
        config = load_client_config_from_env(
            prefix=prefix, env_path=env_path, base=kwargs.pop("config", None)
        )
        return cls(config=config, **kwargs)

    async def aclose(self) -> None:
        await self.transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    # ---------- credential ----------
    @property
    def token(self) -> Union[str, None]:
        return self.tokens.get()

    def set_token(self, token: str) -> None:
        self.tokens.set(token)

    def clear_token(self) -> None:
        self.tokens.clear()

    # ---------- core request ----------
    def _retry_for(self, retry: RetryOption) -> Union[tuple[RetryPolicy, Union[int, None]], None]:
        if retry is None or retry is False:
            return None
        if retry is True:
            return self.retry_policy, None
        if isinstance(retry, RetryConfig):
            return RetryPolicy(retry, sleep=self._sleep), None
        return self.retry_policy, int(retry)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        *,
        retry: RetryOption = None,
        rate_limit: Union[bool, None] = None,
        **options,
    ) -> Any:
        """Perform one logical request.

        ``options`` are passed to RequestExecutor.execute (headers, params, body,
        content, form, timeout). ``retry`` is True for the client's policy, an
        int for a number of attempts, or a RetryConfig.
        """
        gated = self.config.rate_limit.enabled if rate_limit is None else rate_limit
        if gated:
            self.rate_limiter.attempt(_endpoint_name(endpoint))

        async def _once():
            return await self.executor.execute(endpoint, method, **options)

        plan = self._retry_for(retry)
        if plan is None:
            return await _once()
        policy, attempts = plan
        return await policy.execute(_once, max_attempts=attempts)

    async def get(self, endpoint: str, params: Union[dict[str, Any], None] = None, **options):
        return await self.request(endpoint, "GET", params=params or None, **options)

    async def post(self, endpoint: str, data: Any = None, **options):
        return await self.request(endpoint, "POST", body={} if data is None else data, **options)

    async def put(self, endpoint: str, data: Any = None, **options):
        return await self.request(endpoint, "PUT", body={} if data is None else data, **options)

    async def patch(self, endpoint: str, data: Any = None, **options):
        return await self.request(endpoint, "PATCH", body={} if data is None else data, **options)

    async def delete(self, endpoint: str, **options):
        return await self.request(endpoint, "DELETE", **options)

    # ---------- forms & uploads ----------
    async def upload(self, endpoint: str, file: FileInput, field_name: str = "file", **options):
        return await self.request(endpoint, "POST", form=upload_form(file, field_name), **options)

    async def upload_multiple(
        self,
        endpoint: str,
        files: Union[FileInput, list[FileInput]],
        field_name: str = "files",
        **options,
    ):
        return await self.request(endpoint, "POST", form=upload_form(files, field_name), **options)

    @staticmethod
    def to_form_data(obj: dict[str, Any]) -> FormPayload:
        return to_form_data(obj)

    async def post_form(self, endpoint: str, obj: dict[str, Any], **options):
        return await self.request(endpoint, "POST", form=to_form_data(obj), **options)

    async def graphql(
        self, query: str, variables: Union[dict[str, Any], None] = None, **options
    ) -> Any:
        body = {"query": query, "variables": variables or {}}
        return await self.request("/graphql", "POST", body=body, **options)

    # ---------- caching ----------
    async def get_with_cache(
        self,
        endpoint: str,
        params: Union[dict[str, Any], None] = None,
        cache_ttl: Union[float, None] = None,
        *,
        rate_limit: Union[bool, None] = None,
        **options,
    ) -> Any:
        gated = self.config.rate_limit.enabled if rate_limit is None else rate_limit
        if gated:
            # cache hits count toward the window too
            self.rate_limiter.attempt(_endpoint_name(endpoint))
        key = self.cache.key(endpoint, params)
        cached = self.cache.get(key)
        if cached is not None and not self.cache.is_expired(cached):
            self._logger.debug(f"cache hit key={key}")
            return cached.data
        data = await self.get(endpoint, params, rate_limit=False, **options)
        self.cache.put(key, data, self.config.cache_ttl if cache_ttl is None else cache_ttl)
        return data

    def clear_cache(self, pattern: str = "") -> int:
        return self.cache.clear(pattern)

    # ---------- retry & batch ----------
    async def retry(
        self,
        operation: Callable[[], Awaitable[Any]],
        max_attempts: Union[int, None] = None,
        base_delay: Union[float, None] = None,
    ) -> Any:
        return await self.retry_policy.execute(operation, max_attempts, base_delay)

    async def _dispatch_item(self, item: BatchItem) -> Any:
        options = dict(item.options)
        method = options.pop("method", item.method)
        return await self.request(item.endpoint, method, **options)

    async def batch(self, items: Sequence[Union[BatchItem, dict[str, Any]]]) -> list[BatchResult]:
        normalized = [
            item
            if isinstance(item, BatchItem)
            else BatchItem(
                endpoint=item["endpoint"],
                method=item.get("method", "GET"),
                options=dict(item.get("options") or {}),
            )
            for item in items
        ]
        return await self.batcher.run(normalized)

    # ---------- health & stats ----------
    async def health_check(self) -> HealthStatus:
        try:
            response = await self.get(
                self.config.health_endpoint,
                timeout=self.config.health_timeout,
                rate_limit=False,
            )
        except ZewedError as e:
            self._logger.warning(f"health check failed: {e.message}")
            return HealthStatus(status="unhealthy", error=e.message)
        except Exception as e:
            # never propagates; unclassified failures still report unhealthy
            self._logger.warning(f"health check failed: {e!r}")
            return HealthStatus(status="unhealthy", error=str(e) or type(e).__name__)
        return HealthStatus(status="healthy", response=response)

    def api_stats(self) -> ApiStats:
        return self.stats.read()

    def reset_api_stats(self) -> None:
        self.stats.reset()

    # ---------- analytics & webhooks ----------
    async def track_event(self, event_name: str, properties: Union[dict[str, Any], None] = None):
        payload = {
            "event": event_name,
            "properties": {
                **(properties or {}),
                "url": self.events.current_path(),
                "userAgent": self.config.user_agent,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        }
        return await self.post("/analytics/events", payload)

    def webhook_signature(self, payload: bytes) -> str:
        secret = self.config.webhook_secret.encode("utf-8")
        return hmac.new(secret, payload, hashlib.sha256).hexdigest()

    async def simulate_webhook(self, url: str, data: Any, **options):
        content = json.dumps(data).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Signature": self.webhook_signature(content),
            **(options.pop("headers", None) or {}),
        }
        return await self.request(url, "POST", content=content, headers=headers, **options)

    # ---------- streams ----------
    def create_websocket(self, endpoint: str, session=None) -> DuplexStream:
        return DuplexStream(
            websocket_url(self.config.base_url, endpoint),
            token=self.tokens.get(),
            session=session or self._stream_session,
        )

    def create_event_source(self, endpoint: str, session=None) -> EventStream:
        headers = {}
        token = self.tokens.get()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return EventStream(
            self.executor.resolve_url(endpoint),
            session=session or self._stream_session,
            headers=headers,
        )

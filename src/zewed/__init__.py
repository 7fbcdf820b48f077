from .adapters import HttpxTransport, RequestsTransport, TransportRequest, TransportResponse
from .batch import BatchDispatcher
from .cache import CacheLayer
from .client import ApiClient
from .credentials import TokenStore
from .env import load_client_config_from_env
from .errors import (
    Exhausted,
    HttpError,
    Offline,
    RateLimited,
    TransportFailure,
    Unreachable,
    ZewedError,
)
from .events import ClientEvents
from .executor import RequestExecutor
from .forms import FormPayload, to_form_data
from .ratelimit import RateLimiter
from .retry import RetryPolicy
from .store import JsonFileStore, KeyValueStore, MemoryStore
from .streams import DuplexStream, EventStream, ServerEvent
from .types import (
    ApiStats,
    BatchItem,
    BatchResult,
    ClientConfig,
    HealthStatus,
    NavigationHint,
    RateLimitConfig,
    RetryConfig,
    Severity,
)

__all__ = [
    "ApiClient",
    "ClientConfig",
    "RetryConfig",
    "RateLimitConfig",
    "load_client_config_from_env",
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "TokenStore",
    "CacheLayer",
    "RateLimiter",
    "RetryPolicy",
    "RequestExecutor",
    "BatchDispatcher",
    "BatchItem",
    "BatchResult",
    "HealthStatus",
    "ApiStats",
    "ClientEvents",
    "Severity",
    "NavigationHint",
    "HttpxTransport",
    "RequestsTransport",
    "TransportRequest",
    "TransportResponse",
    "DuplexStream",
    "EventStream",
    "ServerEvent",
    "FormPayload",
    "to_form_data",
    "ZewedError",
    "HttpError",
    "Offline",
    "Unreachable",
    "Exhausted",
    "RateLimited",
    "TransportFailure",
]

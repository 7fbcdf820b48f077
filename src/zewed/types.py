from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

DEFAULT_BASE_URL = "https://api.zewedjobs.com"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NavigationHint(str, Enum):
    LOGIN = "/login"
    NOT_FOUND = "/404"


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 3
    # Seconds before the second attempt; doubles for each later attempt.
    base_delay: float = 1.0
    retry_on: tuple[type[BaseException], ...] = (Exception,)


@dataclass(frozen=True)
class RateLimitConfig:
    enabled: bool = True
    ceiling: int = 10
    window: float = 60.0


@dataclass(frozen=True)
class ClientConfig:
    base_url: str = DEFAULT_BASE_URL
    default_headers: dict[str, str] = field(
        default_factory=lambda: {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )
    timeout: float | None = 30.0
    cache_ttl: float = 300.0
    health_endpoint: str = "/health"
    health_timeout: float = 5.0
    webhook_secret: str = "your-secret-key"
    user_agent: str = "zewed-client"
    retry: RetryConfig = field(default_factory=RetryConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


@dataclass
class BatchItem:
    endpoint: str
    method: str = "GET"
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class BatchResult:
    request: BatchItem
    status: Literal["fulfilled", "rejected"]
    data: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"


@dataclass(frozen=True)
class HealthStatus:
    status: Literal["healthy", "unhealthy"]
    response: Any = None
    error: str | None = None

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


@dataclass(frozen=True)
class ApiStats:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    last_request: str | None = None

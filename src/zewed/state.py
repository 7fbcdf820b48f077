from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    stored_at: float
    expires_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "storedAt": self.stored_at, "expiresAt": self.expires_at}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CacheEntry":
        return cls(data=raw.get("data"), stored_at=raw["storedAt"], expires_at=raw["expiresAt"])


@dataclass
class RateWindow:
    count: int
    reset_at: float

    def is_open(self, now: float) -> bool:
        return now < self.reset_at

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "resetAt": self.reset_at}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RateWindow":
        return cls(count=int(raw["count"]), reset_at=float(raw["resetAt"]))


@dataclass
class RetryState:
    attempt: int = 0
    last_error: BaseException | None = None

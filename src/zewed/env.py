import os
from dataclasses import replace

from .types import DEFAULT_BASE_URL, ClientConfig, RateLimitConfig, RetryConfig


def _parse_env_file(env_path: str) -> dict[str, str]:
    """Parse a simple .env file into a dict without modifying os.environ.

    Supports basic KEY=VALUE pairs, ignoring comments and blank lines.
    Surrounding single/double quotes are stripped if present.
    """
    values: dict[str, str] = {}
    try:
        with open(env_path) as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, val = line.split("=", 1)
                key = key.strip()
                if key.startswith("export "):
                    key = key[len("export ") :].strip()
                val = val.strip().strip('"').strip("'")
                if key:
                    values[key] = val
    except FileNotFoundError:
        # a missing file just means nothing to augment
        pass
    return values


def _as_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_client_config_from_env(
    prefix: str = "ZEWED_",
    env_path: str | None = None,
    base: ClientConfig | None = None,
) -> ClientConfig:
    """Build a ClientConfig from environment variables.

    Each setting is looked up as ``<prefix><NAME>``; ``API_URL`` and
    ``WEBHOOK_SECRET`` also fall back to their unprefixed names. Variables in
    ``env_path`` augment the environment, and the real environment wins.

    Recognized names: API_URL, WEBHOOK_SECRET, TIMEOUT, CACHE_TTL, USER_AGENT,
    RETRY_ATTEMPTS, RETRY_BASE_DELAY, RATE_LIMIT_ENABLED, RATE_LIMIT,
    RATE_LIMIT_WINDOW.
    """
    file_env = _parse_env_file(env_path) if env_path else {}
    env_map: dict[str, str] = {**file_env, **os.environ}
    cfg = base or ClientConfig()

    def lookup(name: str, fallback: bool = False) -> str | None:
        val = env_map.get(f"{prefix}{name}")
        if not val and fallback:
            val = env_map.get(name)
        return val or None

    base_url = lookup("API_URL", fallback=True)
    secret = lookup("WEBHOOK_SECRET", fallback=True)
    timeout = lookup("TIMEOUT")
    cache_ttl = lookup("CACHE_TTL")
    user_agent = lookup("USER_AGENT")
    cfg = replace(
        cfg,
        base_url=base_url or cfg.base_url or DEFAULT_BASE_URL,
        webhook_secret=secret or cfg.webhook_secret,
        timeout=float(timeout) if timeout else cfg.timeout,
        cache_ttl=float(cache_ttl) if cache_ttl else cfg.cache_ttl,
        user_agent=user_agent or cfg.user_agent,
    )

    attempts = lookup("RETRY_ATTEMPTS")
    delay = lookup("RETRY_BASE_DELAY")
    retry: RetryConfig = cfg.retry
    if attempts or delay:
        retry = replace(
            retry,
            max_attempts=max(1, int(attempts)) if attempts else retry.max_attempts,
            base_delay=float(delay) if delay else retry.base_delay,
        )

    enabled = lookup("RATE_LIMIT_ENABLED")
    ceiling = lookup("RATE_LIMIT")
    window = lookup("RATE_LIMIT_WINDOW")
    rate: RateLimitConfig = cfg.rate_limit
    if enabled or ceiling or window:
        rate = replace(
            rate,
            enabled=_as_bool(enabled) if enabled else rate.enabled,
            ceiling=int(ceiling) if ceiling else rate.ceiling,
            window=float(window) if window else rate.window,
        )

    return replace(cfg, retry=retry, rate_limit=rate)

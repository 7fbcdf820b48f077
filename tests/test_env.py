from zewed import ApiClient, load_client_config_from_env


def test_env_prefix_and_unprefixed_fallback(monkeypatch):
    monkeypatch.delenv("ZEWED_API_URL", raising=False)
    monkeypatch.setenv("API_URL", "https://staging.test")
    monkeypatch.setenv("ZEWED_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("ZEWED_RATE_LIMIT", "20")
    monkeypatch.setenv("ZEWED_RATE_LIMIT_ENABLED", "false")
    cfg = load_client_config_from_env()
    assert cfg.base_url == "https://staging.test"
    assert cfg.retry.max_attempts == 5  # noqa: PLR2004
    assert cfg.retry.base_delay == 1.0
    assert cfg.rate_limit.ceiling == 20  # noqa: PLR2004
    assert cfg.rate_limit.enabled is False


def test_env_file_augments_and_environment_wins(monkeypatch, tmp_path):
    envp = tmp_path / ".env"
    envp.write_text(
        "# comment\nAPP_API_URL='https://file.test'\nexport APP_WEBHOOK_SECRET=\"s3\"\n"
        "APP_CACHE_TTL=60\n"
    )
    monkeypatch.setenv("APP_CACHE_TTL", "30")
    cfg = load_client_config_from_env(prefix="APP_", env_path=str(envp))
    assert cfg.base_url == "https://file.test"
    assert cfg.webhook_secret == "s3"
    assert cfg.cache_ttl == 30  # noqa: PLR2004


def test_missing_env_file_uses_defaults(tmp_path, monkeypatch):
    for name in ("API_URL", "NOPE_API_URL"):
        monkeypatch.delenv(name, raising=False)
    cfg = load_client_config_from_env(prefix="NOPE_", env_path=str(tmp_path / "missing"))
    assert cfg.base_url == "https://api.zewedjobs.com"


def test_client_from_env(monkeypatch):
    monkeypatch.setenv("ZEWED_API_URL", "https://env.test")
    monkeypatch.setenv("ZEWED_TIMEOUT", "2.5")
    client = ApiClient.from_env(rate_limit_enabled=False)
    assert client.config.base_url == "https://env.test"
    assert client.executor.base_url == "https://env.test"
    assert client.config.timeout == 2.5  # noqa: PLR2004
    assert client.config.rate_limit.enabled is False

from __future__ import annotations

import pytest

from connectpay_console.config import ConfigError, load_config

_KEYS = (
    "CONNECTPAY_ENV",
    "CONNECTPAY_API_BASE_URL",
    "CONNECTPAY_API_BASE_URL_DEV",
    "CONNECTPAY_API_BASE_URL_STAGING",
    "CONNECTPAY_PAGE_SIZE",
    "CONNECTPAY_POLL_SECONDS",
    "CONNECTPAY_VERIFY_SSL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_load_config_requires_base_url() -> None:
    with pytest.raises(ConfigError, match="CONNECTPAY_API_BASE_URL"):
        load_config()


def test_load_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONNECTPAY_API_BASE_URL", "https://api.example.com/")
    cfg = load_config()
    assert cfg.env_name == "dev"
    assert cfg.api_base_url == "https://api.example.com"
    assert cfg.default_page_size == 25
    assert cfg.default_poll_seconds == 60.0
    assert cfg.verify_ssl is True


def test_load_config_profile(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONNECTPAY_ENV", "staging")
    monkeypatch.setenv("CONNECTPAY_API_BASE_URL", "https://fallback.example.com")
    monkeypatch.setenv("CONNECTPAY_API_BASE_URL_STAGING", "https://staging.example.com")
    cfg = load_config()
    assert cfg.api_base_url == "https://staging.example.com"
    assert cfg.normalized_env == "staging"


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("CONNECTPAY_TIMEOUT_SECONDS", "0"),
        ("CONNECTPAY_RETRIES", "-1"),
        ("CONNECTPAY_MAX_CONNECTIONS", "0"),
        ("CONNECTPAY_PAGE_SIZE", "0"),
        ("CONNECTPAY_POLL_SECONDS", "abc"),
    ],
)
def test_load_config_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv("CONNECTPAY_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError, match=key):
        load_config()


def test_verify_ssl_can_be_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONNECTPAY_API_BASE_URL", "https://api.example.com")
    monkeypatch.setenv("CONNECTPAY_VERIFY_SSL", "false")
    assert load_config().verify_ssl is False

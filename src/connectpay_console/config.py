from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, TypeVar

from dotenv import load_dotenv

PREFIX = "CONNECTPAY_"

N = TypeVar("N", int, float)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 2
    retry_backoff_seconds: float = 0.3
    max_connections: int = 10
    verify_ssl: bool = True
    default_page_size: int = 25
    default_poll_seconds: float = 60.0

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _env(key: str) -> str | None:
    value = os.getenv(PREFIX + key)
    return value.strip() if value is not None else None


def _number(key: str, default: N, cast: Callable[[str], N], *, minimum: N, strict: bool = False) -> N:
    raw = _env(key)
    if raw is None or raw == "":
        value = default
    else:
        try:
            value = cast(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid {PREFIX}{key}: expected a {cast.__name__}, got {raw!r}") from exc
    if value < minimum or (strict and value == minimum):
        bound = ">" if strict else ">="
        raise ConfigError(f"Invalid {PREFIX}{key}: expected {bound} {minimum}, got {value}")
    return value


def _flag(key: str, default: bool) -> bool:
    raw = _env(key)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def load_config(env_file: str | None = None) -> ClientConfig:
    """Build the client config from ``CONNECTPAY_*`` variables.

    ``env_file`` (or a ``.env`` found by python-dotenv) fills in variables that
    are not already set. ``CONNECTPAY_API_BASE_URL_<ENV>`` wins over the
    plain base URL so one shell can hold several profiles.
    """
    load_dotenv(env_file)

    env_name = _env("ENV") or "dev"
    api_base_url = _env(f"API_BASE_URL_{env_name.upper()}") or _env("API_BASE_URL")
    if not api_base_url:
        raise ConfigError(f"Missing required config value: {PREFIX}API_BASE_URL")

    timeout = _number("TIMEOUT_SECONDS", 10.0, float, minimum=0.0, strict=True)
    connect_timeout = _number("CONNECT_TIMEOUT_SECONDS", min(timeout, 5.0), float, minimum=0.0, strict=True)
    read_timeout = _number("READ_TIMEOUT_SECONDS", max(timeout, connect_timeout), float, minimum=0.0, strict=True)

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        connect_timeout_seconds=connect_timeout,
        read_timeout_seconds=read_timeout,
        retries=_number("RETRIES", 2, int, minimum=0),
        retry_backoff_seconds=_number("RETRY_BACKOFF_SECONDS", 0.3, float, minimum=0.0),
        max_connections=_number("MAX_CONNECTIONS", 10, int, minimum=1),
        verify_ssl=_flag("VERIFY_SSL", True),
        default_page_size=_number("PAGE_SIZE", 25, int, minimum=1),
        default_poll_seconds=_number("POLL_SECONDS", 60.0, float, minimum=0.0, strict=True),
    )

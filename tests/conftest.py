from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = BASE_DIR / "src"

sys.path.insert(0, str(SRC_DIR))

from connectpay_console.config import ClientConfig  # noqa: E402
from connectpay_console.http_client import HttpClient  # noqa: E402

API = "https://api.example.com"


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(env_name="test", api_base_url=API, retries=2, retry_backoff_seconds=0.0)


@pytest.fixture()
def http(config: ClientConfig) -> HttpClient:
    return HttpClient(config=config, sleep=lambda _seconds: None)


class DeferredRunner:
    """Holds submitted work until the test decides which response lands."""

    def __init__(self) -> None:
        self.pending: list[tuple] = []

    def submit(self, work, on_success, on_error) -> None:
        self.pending.append((work, on_success, on_error))

    def complete(self, index: int = 0) -> None:
        work, on_success, on_error = self.pending.pop(index)
        try:
            value = work()
        except Exception as exc:
            on_error(exc)
        else:
            on_success(value)


@pytest.fixture()
def deferred_runner() -> DeferredRunner:
    return DeferredRunner()

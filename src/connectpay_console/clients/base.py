from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from ..http_client import HttpClient, Payload

TokenProvider = Callable[[], str | None]


@dataclass
class BaseClient:
    http: HttpClient
    access_token: str | None = None
    token_provider: TokenProvider | None = None
    module: str = "api"

    def bearer_token(self) -> str | None:
        # read per request so a renewed session token reaches long-lived clients
        if self.token_provider is not None:
            return self.token_provider()
        return self.access_token

    def _request(self, method: str, path: str, *, operation: str | None = None, **kwargs: Any) -> Payload:
        headers = dict(kwargs.pop("headers", None) or {})
        token = self.bearer_token()
        if token:
            headers.setdefault("Authorization", f"Bearer {token}")
        kwargs.setdefault("module", self.module)
        return self.http.request(method, path, headers=headers, operation=operation or self.module, **kwargs)

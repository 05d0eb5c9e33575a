from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

from .config import ClientConfig
from .error_mapper import map_error
from .exceptions import NetworkError

RequestHook = Callable[[str, str, dict[str, Any]], None]
ResponseHook = Callable[[requests.Response], None]
Payload = dict[str, Any] | list[Any] | None

TRACE_HEADERS = ("X-Trace-ID", "X-Trace-Id", "X-Request-ID")
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD"})


@dataclass
class LastOperation:
    module: str
    operation: str
    duration_ms: int
    result: str
    trace_id: str | None


@dataclass
class HttpClient:
    """JSON-over-HTTP transport shared by every resource client.

    Reads are retried on transport errors and 5xx answers with exponential
    backoff. Writes go out exactly once.
    """

    config: ClientConfig
    session: requests.Session | None = None
    before_request: RequestHook | None = None
    after_response: ResponseHook | None = None
    sleep: Callable[[float], None] = time.sleep
    last_operation: LastOperation | None = None

    def __post_init__(self) -> None:
        if self.session is not None:
            return
        pool = HTTPAdapter(pool_connections=self.config.max_connections, pool_maxsize=self.config.max_connections)
        self.session = requests.Session()
        for scheme in ("http://", "https://"):
            self.session.mount(scheme, pool)

    def url_for(self, path: str) -> str:
        return urljoin(self.config.api_base_url.rstrip("/") + "/", path.lstrip("/"))

    def request(
        self,
        method: str,
        path: str,
        *,
        headers: Mapping[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        module: str = "unknown",
        operation: str = "unknown",
    ) -> Payload:
        verb = method.upper()
        url = self.url_for(path)
        outgoing = {"Accept": "application/json", **(headers or {})}
        if self.before_request:
            self.before_request(verb, url, {"headers": outgoing, "json_body": json_body, "params": params})

        started = time.monotonic()
        try:
            response = self._send(verb, url, outgoing, json_body, params)
        except NetworkError:
            self._finish(module, operation, started, "error", None)
            raise

        if self.after_response:
            self.after_response(response)
        trace_id = _trace_id(response.headers)
        if not response.ok:
            self._finish(module, operation, started, "error", trace_id)
            body, structured = _error_body(response)
            raise map_error(response.status_code, body, trace_id, structured=structured)
        self._finish(module, operation, started, "success", trace_id)
        return _decode(response, trace_id)

    def _send(
        self,
        verb: str,
        url: str,
        headers: dict[str, str],
        json_body: dict[str, Any] | None,
        params: dict[str, Any] | None,
    ) -> requests.Response:
        # a replayed debit could be applied twice
        attempts = self.config.retries + 1 if verb in IDEMPOTENT_METHODS else 1
        timeout = (self.config.connect_timeout_seconds, self.config.read_timeout_seconds)
        for attempt in range(1, attempts + 1):
            last_attempt = attempt == attempts
            try:
                response = self.session.request(
                    verb,
                    url,
                    headers=headers,
                    json=json_body,
                    params=params,
                    timeout=timeout,
                    verify=self.config.verify_ssl,
                )
            except requests.RequestException as exc:
                if last_attempt:
                    raise NetworkError(
                        code="NETWORK_ERROR",
                        message=f"Could not reach the server: {exc}",
                        details={"type": type(exc).__name__, "attempts": attempts},
                        trace_id=None,
                        status_code=0,
                    ) from exc
            else:
                if response.status_code < 500 or last_attempt:
                    return response
            self.sleep(self.config.retry_backoff_seconds * 2 ** (attempt - 1))
        raise RuntimeError("retry loop exited without a response")

    def _finish(self, module: str, operation: str, started: float, result: str, trace_id: str | None) -> None:
        elapsed = int((time.monotonic() - started) * 1000)
        self.last_operation = LastOperation(module, operation, elapsed, result, trace_id)


def _trace_id(headers: Mapping[str, str]) -> str | None:
    return next((headers[key] for key in TRACE_HEADERS if headers.get(key)), None)


def _decode(response: requests.Response, trace_id: str | None) -> Payload:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise NetworkError(
            code="INVALID_RESPONSE",
            message="Server returned a response that is not JSON",
            details={"status": response.status_code},
            trace_id=trace_id,
            status_code=response.status_code,
            raw_payload=response.text,
        ) from exc


def _error_body(response: requests.Response) -> tuple[dict[str, Any], bool]:
    """Return the error payload and whether the server sent a JSON object."""
    try:
        body = response.json()
    except (json.JSONDecodeError, ValueError):
        return {"message": response.text or response.reason or "Request failed"}, False
    if isinstance(body, dict):
        return body, True
    return {"message": str(body)}, False

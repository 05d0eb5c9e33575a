from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ApiError(Exception):
    code: str
    message: str
    details: object | None
    trace_id: str | None
    status_code: int
    raw_payload: object | None = None

    def __str__(self) -> str:
        trace = f" trace_id={self.trace_id}" if self.trace_id else ""
        return f"[{self.status_code}] {self.code}: {self.message}{trace}"


class AuthError(ApiError):
    """Credential missing or expired; the session layer must re-authenticate."""


class PermissionError(ApiError):
    """Authorization denied server-side."""


class NotFoundError(ApiError):
    pass


class ValidationError(ApiError):
    """Server rejected the request payload (400/422)."""


class ConflictError(ApiError):
    pass


class RateLimitError(ApiError):
    pass


class ServerError(ApiError):
    """5xx server-side failures."""


class NetworkError(ApiError):
    """Transport failure, or a non-2xx response without a structured body."""

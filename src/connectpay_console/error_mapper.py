from __future__ import annotations

from typing import Mapping

from .exceptions import (
    ApiError,
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    PermissionError,
    RateLimitError,
    ServerError,
    ValidationError,
)

_STATUS_CLASSES: dict[int, type[ApiError]] = {
    401: AuthError,
    403: PermissionError,
    404: NotFoundError,
    400: ValidationError,
    422: ValidationError,
    409: ConflictError,
    429: RateLimitError,
}


def map_error(
    status_code: int,
    payload: Mapping[str, object] | None,
    trace_id: str | None,
    *,
    structured: bool = True,
) -> ApiError:
    payload = payload or {}
    code = str(payload.get("code") or "HTTP_ERROR")
    message = str(payload.get("message") or payload.get("error") or "Request failed")
    details = payload.get("details")
    payload_trace_id = payload.get("trace_id")
    resolved_trace_id = str(payload_trace_id) if payload_trace_id is not None else trace_id

    mapped = _STATUS_CLASSES.get(status_code)
    if mapped is None:
        if not structured:
            mapped = NetworkError
            code = "NETWORK_ERROR"
        elif status_code >= 500:
            mapped = ServerError
        else:
            mapped = ApiError
    if mapped is AuthError:
        code = str(payload.get("code") or "SESSION_EXPIRED")
    return mapped(
        code=code,
        message=message,
        details=details,
        trace_id=resolved_trace_id,
        status_code=status_code,
        raw_payload=dict(payload),
    )

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import ApiError, AuthError, NetworkError, ServerError
from .models import BulkActionResult, MutationResult
from .validation import ClientValidationError

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
NETWORK_MESSAGE = "Could not reach the server. Check your connection and try again."
SERVER_MESSAGE = "The server could not complete the request. Try again shortly."


class ViewStatus(str, Enum):
    LOADING = "loading"
    EMPTY = "empty"
    READY = "ready"
    ERROR = "error"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class ViewState:
    status: ViewStatus
    message: str

    def render(self) -> dict[str, Any]:
        return {"status": self.status.value, "message": self.message}


def resolve_view_state(*, loading: bool, has_data: bool, error: str | None, session_expired: bool = False) -> ViewState:
    if session_expired:
        return ViewState(status=ViewStatus.SESSION_EXPIRED, message=SESSION_EXPIRED_MESSAGE)
    if loading and not has_data:
        return ViewState(status=ViewStatus.LOADING, message="Loading")
    if error:
        return ViewState(status=ViewStatus.ERROR, message=error)
    if not has_data:
        return ViewState(status=ViewStatus.EMPTY, message="No records")
    return ViewState(status=ViewStatus.READY, message="Ready")


@dataclass(frozen=True)
class UserFacingError:
    message: str
    code: str
    details: str | None = None
    trace_id: str | None = None


def to_user_facing_error(exc: Exception) -> UserFacingError:
    if isinstance(exc, ClientValidationError):
        return UserFacingError(message=exc.message, code=exc.code)
    if isinstance(exc, AuthError):
        return UserFacingError(message=SESSION_EXPIRED_MESSAGE, code=exc.code, trace_id=exc.trace_id)
    if isinstance(exc, NetworkError):
        return UserFacingError(message=NETWORK_MESSAGE, code=exc.code, details=exc.message, trace_id=exc.trace_id)
    if isinstance(exc, ApiError):
        primary = exc.message.strip() or "Request failed"
        if isinstance(exc, ServerError) and primary == "Request failed":
            primary = SERVER_MESSAGE
        details = f"{exc.code} (HTTP {exc.status_code})"
        if exc.details:
            details = f"{details}: {exc.details}"
        return UserFacingError(message=primary, code=exc.code, details=details, trace_id=exc.trace_id)
    return UserFacingError(message="Unexpected error while processing the response", code="UNEXPECTED", details=str(exc))


@dataclass(frozen=True)
class Feedback:
    level: str
    message: str
    details: dict[str, Any] | None = None


def summarize_bulk_result(result: BulkActionResult) -> Feedback:
    if result.error_count == 0:
        return Feedback(level="success", message=f"Bulk {result.action} completed for {result.success_count} item(s).")
    if result.is_total_failure:
        return Feedback(
            level="error",
            message=f"Bulk {result.action} failed for all {result.error_count} item(s).",
            details=dict(result.per_item_errors),
        )
    return Feedback(
        level="warning",
        message=(
            f"Bulk {result.action} partially completed: "
            f"{result.success_count} successful, {result.error_count} failed."
        ),
        details=dict(result.per_item_errors),
    )


def summarize_mutation_result(result: MutationResult) -> Feedback:
    verb = "credited" if result.direction.value == "credit" else "debited"
    if not result.ok:
        return Feedback(level="error", message=result.message or f"Could not {result.direction.value} account")
    balance = f" New balance: {result.new_balance}." if result.new_balance is not None else ""
    return Feedback(level="success", message=f"Successfully {verb} {result.amount}.{balance}")

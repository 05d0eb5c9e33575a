from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    reason: str
    code: str = "VALIDATION_ERROR"


class ClientValidationError(ValueError):
    """Rejected locally, before any network call."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__(self._format_message())

    @property
    def code(self) -> str:
        return self.issues[0].code if self.issues else "VALIDATION_ERROR"

    @property
    def message(self) -> str:
        return self._format_message()

    def _format_message(self) -> str:
        if not self.issues:
            return "Validation failed"
        issue = self.issues[0]
        return f"{issue.field}: {issue.reason}"


class ConfirmationRequired(ClientValidationError):
    def __init__(self, action: str, prompt: str) -> None:
        self.action = action
        self.prompt = prompt
        super().__init__([ValidationIssue(field="action", reason=prompt, code="CONFIRMATION_REQUIRED")])


class DuplicateSubmissionError(ClientValidationError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            [ValidationIssue(field="operation", reason=f"{operation} is already being submitted", code="SUBMISSION_IN_FLIGHT")]
        )


def raise_issue(field: str, reason: str, code: str = "VALIDATION_ERROR") -> None:
    raise ClientValidationError([ValidationIssue(field=field, reason=reason, code=code)])


def parse_positive_amount(value: Any, field: str = "amount") -> Decimal:
    if value is None or isinstance(value, bool):
        raise_issue(field, "is required", "INVALID_AMOUNT")
    raw = value.strip() if isinstance(value, str) else value
    if raw == "":
        raise_issue(field, "is required", "INVALID_AMOUNT")
    try:
        amount = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise_issue(field, "must be a number", "INVALID_AMOUNT")
    if not amount.is_finite():
        raise_issue(field, "must be a number", "INVALID_AMOUNT")
    if amount <= 0:
        raise_issue(field, "must be greater than 0", "INVALID_AMOUNT")
    return amount


def parse_balance(value: Any, field: str = "current_balance") -> Decimal:
    """Read a displayed wallet balance. Missing means zero; zero and overdrawn are allowed."""
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise_issue(field, "must be a number", "INVALID_BALANCE")
    raw = value.strip() if isinstance(value, str) else value
    try:
        balance = raw if isinstance(raw, Decimal) else Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise_issue(field, f"is not a usable balance ({value!r})", "INVALID_BALANCE")
    if not balance.is_finite():
        raise_issue(field, f"is not a usable balance ({value!r})", "INVALID_BALANCE")
    return balance


def require_non_empty(value: str | None, field: str, code: str = "VALIDATION_ERROR") -> str:
    if value is None or not str(value).strip():
        raise_issue(field, "is required", code)
    return str(value).strip()

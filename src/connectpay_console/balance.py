"""Credit/debit form submission for a single wallet.

Inputs are validated locally before anything goes on the wire. After a
successful mutation the balance shown comes from the server response and the
views that display it are re-fetched; nothing is recomputed client-side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

from .clients.ledger import LedgerClient
from .events import AccountBalanceChanged, EventBus
from .exceptions import ApiError, AuthError, NetworkError, ServerError
from .logging_utils import get_logger, log_action
from .loop import BackgroundRunner, InlineRunner, Submission
from .models import MutationDirection, MutationResult, WalletMutation
from .validation import (
    DuplicateSubmissionError,
    parse_balance,
    parse_positive_amount,
    raise_issue,
    require_non_empty,
)
from .view_state import Feedback, summarize_mutation_result, to_user_facing_error

logger = get_logger(__name__)

Invalidator = Callable[[MutationResult], object]


def _coerce_direction(direction: MutationDirection | str) -> MutationDirection:
    try:
        return MutationDirection(direction.value if isinstance(direction, MutationDirection) else str(direction).lower())
    except ValueError:
        raise_issue("direction", f"must be credit or debit (got {direction!r})", "INVALID_DIRECTION")
        raise


@dataclass
class BalanceMutationGuard:
    ledger: LedgerClient
    runner: BackgroundRunner = field(default_factory=InlineRunner)
    bus: EventBus | None = None
    on_auth_failure: Callable[[str, AuthError], None] | None = None
    submitting: bool = False
    last_result: MutationResult | None = None
    last_feedback: Feedback | None = None
    _invalidators: list[Invalidator] = field(default_factory=list, repr=False)

    def on_success(self, callback: Invalidator) -> Callable[[], None]:
        """Register a view to refresh after a committed mutation."""
        self._invalidators.append(callback)

        def _unsubscribe() -> None:
            if callback in self._invalidators:
                self._invalidators.remove(callback)

        return _unsubscribe

    def validate(
        self,
        account_id: str,
        direction: MutationDirection | str,
        amount: Any,
        reason: str | None,
        current_balance: Decimal | int | float | str | None,
        reference: str | None = None,
    ) -> WalletMutation:
        account = require_non_empty(account_id, "account_id", "MISSING_ACCOUNT")
        resolved = _coerce_direction(direction)
        value = parse_positive_amount(amount)
        note = require_non_empty(reason, "reason", "EMPTY_REASON")
        if resolved is MutationDirection.DEBIT:
            balance = parse_balance(current_balance)
            if value > balance:
                raise_issue("amount", f"exceeds available balance of {balance}", "INSUFFICIENT_BALANCE")
        return WalletMutation(
            account_id=account,
            direction=resolved,
            amount=value,
            reason=note,
            reference=(reference or "").strip() or None,
        )

    def submit(
        self,
        account_id: str,
        direction: MutationDirection | str,
        amount: Any,
        reason: str | None,
        current_balance: Decimal | int | float | str | None,
        reference: str | None = None,
    ) -> Submission:
        if self.submitting:
            raise DuplicateSubmissionError(f"{direction} for {account_id}")
        mutation = self.validate(account_id, direction, amount, reason, current_balance, reference)

        self.submitting = True
        operation = f"ledger.{mutation.direction.value}"
        submission = Submission(operation=operation)
        log_action(logger, "ledger", mutation.direction.value, "submitted", account_id=mutation.account_id)
        self.runner.submit(
            lambda: self.ledger.apply(mutation),
            lambda result: self._on_applied(submission, result),
            lambda exc: self._on_error(submission, mutation, exc),
        )
        return submission

    def submit_mutation(self, mutation: WalletMutation, current_balance: Decimal | int | float | str | None) -> Submission:
        return self.submit(
            mutation.account_id,
            mutation.direction,
            mutation.amount,
            mutation.reason,
            current_balance,
            mutation.reference,
        )

    def _on_applied(self, submission: Submission, result: MutationResult) -> None:
        self.submitting = False
        self.last_result = result
        self.last_feedback = summarize_mutation_result(result)
        submission.resolve(result)
        log_action(
            logger,
            "ledger",
            result.direction.value,
            "success",
            account_id=result.account_id,
            new_balance=str(result.new_balance) if result.new_balance is not None else None,
        )
        if self.bus is not None:
            self.bus.publish(
                AccountBalanceChanged(
                    account_id=result.account_id,
                    direction=result.direction.value,
                    new_balance=result.new_balance,
                )
            )
        for callback in list(self._invalidators):
            callback(result)

    def _on_error(self, submission: Submission, mutation: WalletMutation, error: Exception) -> None:
        self.submitting = False
        presented = to_user_facing_error(error)
        log_action(
            logger,
            "ledger",
            mutation.direction.value,
            "error",
            account_id=mutation.account_id,
            code=presented.code,
        )
        if _is_rejection(error):
            result = MutationResult(
                ok=False,
                account_id=mutation.account_id,
                direction=mutation.direction,
                amount=mutation.amount,
                message=presented.message,
                error_code=presented.code,
            )
            self.last_result = result
            self.last_feedback = summarize_mutation_result(result)
            submission.resolve(result)
            return
        self.last_feedback = Feedback(level="error", message=presented.message, details={"code": presented.code})
        submission.fail(error)
        if isinstance(error, AuthError) and self.on_auth_failure is not None:
            self.on_auth_failure("ledger", error)


def _is_rejection(error: Exception) -> bool:
    # a 4xx answer with a body is the server saying no, not the call failing
    return isinstance(error, ApiError) and not isinstance(error, (AuthError, NetworkError, ServerError))

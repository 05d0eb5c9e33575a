from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Sequence

from .events import BulkActionCompleted, EventBus
from .exceptions import AuthError
from .logging_utils import get_logger, log_action
from .loop import BackgroundRunner, Submission
from .models import BulkActionResult
from .selection import SelectionSet
from .validation import ClientValidationError, ConfirmationRequired, DuplicateSubmissionError, raise_issue
from .view_state import Feedback, summarize_bulk_result, to_user_facing_error

logger = get_logger(__name__)

DEFAULT_DESTRUCTIVE_ACTIONS = frozenset({"delete", "suspend", "deactivate"})

BulkSender = Callable[[str, Sequence[str], str | None], BulkActionResult]


@dataclass(frozen=True)
class ConfirmationPolicy:
    destructive_actions: frozenset[str] = DEFAULT_DESTRUCTIVE_ACTIONS

    def requires_confirmation(self, action: str) -> bool:
        return action in self.destructive_actions

    def prompt(self, action: str, count: int) -> str:
        return f"Are you sure you want to {action} {count} item(s)?"


@dataclass
class BulkActionDispatcher:
    resource: str
    send: BulkSender
    selection: SelectionSet
    runner: BackgroundRunner
    allowed_actions: Iterable[str] | None = None
    policy: ConfirmationPolicy = field(default_factory=ConfirmationPolicy)
    bus: EventBus | None = None
    refresh: Callable[[], object] | None = None
    reason_required: Iterable[str] = ()
    on_auth_failure: Callable[[str, AuthError], None] | None = None
    submitting: bool = False
    last_result: BulkActionResult | None = None
    last_feedback: Feedback | None = None

    def __post_init__(self) -> None:
        if self.allowed_actions is not None:
            self.allowed_actions = frozenset(self.allowed_actions)
        self.reason_required = frozenset(self.reason_required)

    def dispatch(
        self,
        action: str,
        ids: Sequence[str] | None = None,
        *,
        reason: str | None = None,
        confirmed: bool = False,
    ) -> Submission:
        # a repeated id would be counted twice against one server outcome
        targets = list(dict.fromkeys(self.selection.ids() if ids is None else ids))
        note = (reason or "").strip() or None
        try:
            self._precheck(action, targets, note, confirmed)
        except ConfirmationRequired:
            raise
        except ClientValidationError as exc:
            self.last_feedback = Feedback(level="error", message=to_user_facing_error(exc).message)
            raise

        self.submitting = True
        submission = Submission(operation=f"{self.resource}.bulk.{action}")
        log_action(logger, self.resource, f"bulk.{action}", "submitted", count=len(targets))
        self.runner.submit(
            lambda: self.send(action, targets, note),
            lambda result: self._on_success(submission, result),
            lambda exc: self._on_error(submission, action, exc),
        )
        return submission

    def _precheck(self, action: str, targets: list[str], reason: str | None, confirmed: bool) -> None:
        if self.submitting:
            raise DuplicateSubmissionError(f"bulk {action}")
        if not targets:
            raise_issue("ids", "nothing selected", "NOTHING_SELECTED")
        if self.allowed_actions is not None and action not in self.allowed_actions:
            raise_issue("action", f"{action} is not supported for {self.resource}", "UNKNOWN_ACTION")
        if action in self.reason_required and reason is None:
            raise_issue("reason", f"{action} needs a reason", "REASON_REQUIRED")
        if self.policy.requires_confirmation(action) and not confirmed:
            raise ConfirmationRequired(action, self.policy.prompt(action, len(targets)))

    def _on_success(self, submission: Submission, result: BulkActionResult) -> None:
        self.submitting = False
        self.last_result = result
        self.last_feedback = summarize_bulk_result(result)
        submission.resolve(result)
        log_action(
            logger,
            self.resource,
            f"bulk.{result.action}",
            "partial" if result.error_count else "success",
            success_count=result.success_count,
            error_count=result.error_count,
        )
        self.selection.clear()
        if self.bus is not None:
            self.bus.publish(
                BulkActionCompleted(
                    resource=self.resource,
                    action=result.action,
                    success_count=result.success_count,
                    error_count=result.error_count,
                )
            )
        if self.refresh is not None:
            self.refresh()

    def _on_error(self, submission: Submission, action: str, error: Exception) -> None:
        self.submitting = False
        presented = to_user_facing_error(error)
        self.last_feedback = Feedback(level="error", message=f"Failed to perform bulk {action}: {presented.message}")
        submission.fail(error)
        log_action(logger, self.resource, f"bulk.{action}", "error", code=presented.code)
        if isinstance(error, AuthError) and self.on_auth_failure is not None:
            self.on_auth_failure(self.resource, error)

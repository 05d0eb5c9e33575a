"""One controller for every list panel.

``ResourceConsole`` ties a ``ResourceDefinition`` to the session: the query
feeds the fetcher, every applied page resets the selection, bulk actions and
wallet mutations re-fetch from the server once they land.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

from .balance import BalanceMutationGuard
from .bulk import DEFAULT_DESTRUCTIVE_ACTIONS, BulkActionDispatcher, ConfirmationPolicy
from .events import ShowTicketRequested
from .exceptions import AuthError
from .export import DEFAULT_EXPORT_DIR, export_rows
from .fetcher import ResourceFetcher
from .logging_utils import get_logger, log_action
from .loop import Submission
from .modal_stack import ModalKind, ModalStack, ModalStackEntry
from .models import MutationDirection, MutationResult, ResourcePage
from .query_state import QueryState
from .resources import ResourceDefinition
from .selection import SelectionSet
from .session import ConsoleSession
from .validation import raise_issue
from .view_state import UserFacingError, ViewState, to_user_facing_error

logger = get_logger(__name__)

_BALANCE_FORMS = {ModalKind.CREDIT: MutationDirection.CREDIT, ModalKind.DEBIT: MutationDirection.DEBIT}


class ResourceConsole:
    def __init__(
        self,
        definition: ResourceDefinition,
        session: ConsoleSession,
        *,
        page_size: int | None = None,
        show_tickets: bool = False,
    ) -> None:
        self.definition = definition
        self.session = session
        self.client = session.resource_client(definition)
        size = page_size or definition.default_page_size or session.config.default_page_size
        self.query = QueryState(definition.default_query(size), allowed_filters=definition.filter_keys or None)
        self.selection = SelectionSet()
        self.modals = ModalStack()
        self.detail_error: UserFacingError | None = None
        self.mounted = False
        self.closed = False
        self._show_tickets = show_tickets
        self._unsubscribers: list[Callable[[], None]] = []

        self.fetcher: ResourceFetcher[ResourcePage[Any]] = ResourceFetcher(
            definition.name,
            self.client.list,
            loop=session.loop,
            runner=session.runner,
            query=self.query,
            bus=session.bus,
            on_auth_failure=session.expire,
        )
        self.fetcher.on_result(self._on_page)

        self.stats: ResourceFetcher[Any] | None = None
        if definition.stats_path:
            stats_client = session.snapshot_client({"stats": definition.stats_path}, module=definition.name)
            self.stats = ResourceFetcher(
                f"{definition.name}.stats",
                lambda _descriptor: stats_client.read("stats"),
                loop=session.loop,
                runner=session.runner,
                fallback=lambda _descriptor: {},
                bus=session.bus,
                on_auth_failure=session.expire,
            )

        self.dispatcher = BulkActionDispatcher(
            resource=definition.name,
            send=lambda action, ids, reason: self.client.bulk(action, ids, reason=reason),
            selection=self.selection,
            runner=session.runner,
            allowed_actions=definition.action_names,
            policy=ConfirmationPolicy(DEFAULT_DESTRUCTIVE_ACTIONS | definition.destructive_actions),
            bus=session.bus,
            refresh=self.refresh,
            reason_required=definition.reason_required_actions,
            on_auth_failure=session.expire,
        )

        self.guard: BalanceMutationGuard | None = None
        if definition.supports_balance:
            self.guard = BalanceMutationGuard(
                ledger=session.ledger_client(definition.ledger_path),
                runner=session.runner,
                bus=session.bus,
                on_auth_failure=session.expire,
            )
            self.guard.on_success(self._after_mutation)

        self.modals.on_refresh(definition.detail_kind, self._reload_detail)

    @property
    def page(self) -> ResourcePage[Any] | None:
        return self.fetcher.result

    def rows(self) -> list[dict[str, str]]:
        page = self.page
        if page is None:
            return []
        return [self.definition.row(item) for item in page.items]

    def view_state(self) -> ViewState:
        return self.fetcher.view_state()

    def headers(self) -> list[str]:
        return self.definition.headers()

    def mount(self, poll: bool = True) -> None:
        if self.closed:
            raise RuntimeError(f"{self.definition.name} console is closed")
        if self.mounted:
            return
        self.mounted = True
        log_action(logger, self.definition.name, "mount", "start", poll=poll)
        if self._show_tickets:
            self._unsubscribers.append(self.session.bus.subscribe(ShowTicketRequested, self._on_ticket_requested))
        for fetcher in self._fetchers():
            fetcher.resume()
        self.refresh()
        if poll:
            interval = self.definition.poll_interval or self.session.config.default_poll_seconds
            self.fetcher.start_polling(interval)

    def unmount(self) -> None:
        """Detach from the screen; a later ``mount`` loads and polls again."""
        for fetcher in self._fetchers():
            fetcher.suspend()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self.modals.clear()
        self.mounted = False
        log_action(logger, self.definition.name, "unmount", "done")

    def close(self) -> None:
        self.unmount()
        for fetcher in self._fetchers():
            fetcher.dispose()
        self.closed = True

    def refresh(self) -> None:
        for fetcher in self._fetchers():
            fetcher.refetch()

    def bulk(self, action: str, *, reason: str | None = None, confirmed: bool = False) -> Submission:
        return self.dispatcher.dispatch(action, reason=reason, confirmed=confirmed)

    def export_selection(self, output_dir: str | Path = DEFAULT_EXPORT_DIR) -> Path:
        """Write the selected rows of the loaded page to a CSV file."""
        page = self.page
        chosen = set(self.selection.ids())
        if page is None or not chosen:
            raise_issue("ids", "nothing selected", "NOTHING_SELECTED")
        labels = self.headers()
        rows = [
            dict(zip(labels, self.definition.row(item).values()))
            for item_id, item in zip(page.ids(), page.items)
            if item_id in chosen
        ]
        return export_rows(
            resource=self.definition.name,
            rows=rows,
            headers=labels,
            output_dir=output_dir,
            filters=self.query.current.filters,
        )

    def open_detail(self, item_id: str) -> Submission:
        submission = Submission(operation=f"{self.definition.name}.get")
        self.detail_error = None
        self.session.runner.submit(
            lambda: self.client.get(item_id),
            lambda detail: self._show_detail(submission, detail),
            lambda exc: self._detail_failed(submission, exc),
        )
        return submission

    def open_balance_form(self, direction: MutationDirection | str) -> ModalStackEntry:
        if self.guard is None:
            raise_issue("direction", f"{self.definition.name} has no wallet", "BALANCE_NOT_SUPPORTED")
        kind = ModalKind(MutationDirection(direction).value)
        parent = self.modals.current()
        if parent is None or parent.kind is not self.definition.detail_kind:
            raise_issue("modal", f"{kind.value} needs an open {self.definition.name} detail", "NO_PARENT_MODAL")
        return self.modals.open_subform(kind, parent.payload)

    def submit_balance_form(self, amount: Any, reason: str | None, reference: str | None = None) -> Submission:
        form = self.modals.current()
        if self.guard is None or form is None or form.kind not in _BALANCE_FORMS:
            raise_issue("modal", "no credit or debit form is open", "NO_BALANCE_FORM")
        account = form.payload
        return self.guard.submit(
            str(account.id),
            _BALANCE_FORMS[form.kind],
            amount,
            reason,
            getattr(account, "wallet_balance", None),
            reference,
        )

    def cancel_modal(self) -> ModalStackEntry | None:
        return self.modals.pop()

    def _on_page(self, page: ResourcePage[Any] | None) -> None:
        self.selection.replace_page(page.ids() if page is not None else [])

    def _show_detail(self, submission: Submission, detail: Any) -> None:
        submission.resolve(detail)
        if not self.mounted:
            return
        self.modals.push(ModalStackEntry(kind=self.definition.detail_kind, payload=detail))

    def _detail_failed(self, submission: Submission, error: Exception) -> None:
        submission.fail(error)
        self.detail_error = to_user_facing_error(error)
        log_action(logger, self.definition.name, "get", "error", code=self.detail_error.code)
        if isinstance(error, AuthError):
            self.session.expire(self.definition.name, error)

    def _reload_detail(self, entry: ModalStackEntry) -> None:
        item_id = getattr(entry.payload, "id", None)
        if item_id is None:
            return

        def _replace(detail: Any) -> None:
            # the operator may have moved on while the detail was re-read
            if self.mounted and self.modals.current() is entry:
                self.modals.replace_current(ModalStackEntry(kind=entry.kind, payload=detail, context=entry.context))

        self.session.runner.submit(
            lambda: self.client.get(str(item_id)),
            _replace,
            lambda exc: self._detail_failed(Submission(operation=f"{self.definition.name}.get"), exc),
        )

    def _after_mutation(self, result: MutationResult) -> None:
        form = self.modals.current()
        if form is not None and form.kind in _BALANCE_FORMS:
            self.modals.pop(submitted=True)
        self.refresh()

    def _fetchers(self) -> list[ResourceFetcher[Any]]:
        return [self.fetcher] if self.stats is None else [self.fetcher, self.stats]

    def _on_ticket_requested(self, event: ShowTicketRequested) -> None:
        self.modals.push(ModalStackEntry(kind=ModalKind.TICKET_DETAIL, payload=event.ticket_id, context=dict(event.context)))

"""Polling fetcher with stale-response suppression.

Each request is tagged with a sequence number and the descriptor it was
issued for. A response is applied only when it belongs to the newest request
and that descriptor is still the current one; everything else is dropped on
arrival.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Generic, TypeVar

from .events import EventBus, FetchFailed, ResourceRefreshed
from .exceptions import ApiError, AuthError
from .logging_utils import get_logger, log_action
from .loop import BackgroundRunner, UiLoop
from .models import QueryDescriptor, ResourcePage
from .query_state import QueryState
from .view_state import UserFacingError, ViewState, resolve_view_state, to_user_facing_error

logger = get_logger(__name__)

T = TypeVar("T")
Loader = Callable[[QueryDescriptor], T]
AuthFailureHandler = Callable[[str, AuthError], None]


@dataclass
class FetchTicket(Generic[T]):
    request_id: int
    descriptor: QueryDescriptor
    done: bool = False
    applied: bool = False
    value: T | None = None
    error: Exception | None = None


@dataclass
class FetchState(Generic[T]):
    result: T | None = None
    loading: bool = False
    error: UserFacingError | None = None
    session_expired: bool = False
    last_updated: datetime | None = None
    applied_descriptor: QueryDescriptor | None = None
    discarded: int = field(default=0)


class ResourceFetcher(Generic[T]):
    def __init__(
        self,
        name: str,
        load: Loader[T],
        *,
        loop: UiLoop,
        runner: BackgroundRunner,
        query: QueryState | None = None,
        fallback: Callable[[QueryDescriptor], T] | None = None,
        bus: EventBus | None = None,
        on_auth_failure: AuthFailureHandler | None = None,
        auto_fetch: bool = True,
    ) -> None:
        self.name = name
        self._load = load
        self.loop = loop
        self.runner = runner
        self.query = query
        self._fallback = fallback or (lambda descriptor: ResourcePage.empty(descriptor.page))
        self.bus = bus
        self._on_auth_failure = on_auth_failure
        self.state: FetchState[T] = FetchState()
        self._seq = 0
        self._latest: FetchTicket[T] | None = None
        self._listeners: list[Callable[[T], None]] = []
        self._poll_handle: Any = None
        self._poll_interval: float | None = None
        self._disposed = False
        self._suspended = False
        self._auto_fetch = auto_fetch
        self._unsubscribe_query: Callable[[], None] | None = None
        self._follow_query()

    @property
    def result(self) -> T | None:
        return self.state.result

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> UserFacingError | None:
        return self.state.error

    @property
    def in_flight(self) -> bool:
        return self._latest is not None and not self._latest.done

    @property
    def polling(self) -> bool:
        return self._poll_handle is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def suspended(self) -> bool:
        return self._suspended

    def current_descriptor(self) -> QueryDescriptor:
        if self.query is not None:
            return self.query.current
        if self._latest is not None:
            return self._latest.descriptor
        return QueryDescriptor()

    def on_result(self, listener: Callable[[T], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def fetch(self, descriptor: QueryDescriptor | None = None) -> FetchTicket[T] | None:
        if self._disposed or self._suspended:
            return None
        target = descriptor or self.current_descriptor()
        self._seq += 1
        ticket: FetchTicket[T] = FetchTicket(request_id=self._seq, descriptor=target)
        self._latest = ticket
        self.state.loading = True
        self.runner.submit(
            lambda: self._load(target),
            lambda value: self._complete(ticket, value, None),
            lambda exc: self._complete(ticket, None, exc),
        )
        return ticket

    def refetch(self) -> FetchTicket[T] | None:
        return self.fetch(self.current_descriptor())

    def start_polling(self, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("poll interval must be greater than 0")
        if self._disposed or self._suspended:
            return
        self.stop_polling()
        self._poll_interval = interval_seconds
        self._schedule_poll()

    def stop_polling(self) -> None:
        if self._poll_handle is not None:
            self.loop.cancel(self._poll_handle)
        self._poll_handle = None
        self._poll_interval = None

    def suspend(self) -> None:
        """Stop polling and following the query until ``resume``.

        A response still in flight is dropped when it lands. The last result
        and the result listeners are kept.
        """
        self.stop_polling()
        self._suspended = True
        self._release_query()
        self._latest = None
        self.state.loading = False

    def resume(self) -> None:
        if self._disposed or not self._suspended:
            return
        self._suspended = False
        self._follow_query()

    def dispose(self) -> None:
        self.suspend()
        self._disposed = True
        self._listeners.clear()

    def _follow_query(self) -> None:
        if self.query is not None and self._auto_fetch and self._unsubscribe_query is None:
            self._unsubscribe_query = self.query.subscribe(self.fetch)

    def _release_query(self) -> None:
        if self._unsubscribe_query is not None:
            self._unsubscribe_query()
            self._unsubscribe_query = None

    def view_state(self) -> ViewState:
        return resolve_view_state(
            loading=self.state.loading,
            has_data=_has_data(self.state.result),
            error=self.state.error.message if self.state.error else None,
            session_expired=self.state.session_expired,
        )

    def _schedule_poll(self) -> None:
        if self._poll_interval is None or self._disposed or self._suspended:
            return
        self._poll_handle = self.loop.call_later(self._poll_interval, self._poll_tick)

    def _poll_tick(self) -> None:
        self._poll_handle = None
        if self._disposed or self._poll_interval is None:
            return
        if self.in_flight:
            log_action(logger, self.name, "poll", "skipped_in_flight")
        else:
            self.fetch(self.current_descriptor())
        self._schedule_poll()

    def _is_current(self, ticket: FetchTicket[T]) -> bool:
        if self._latest is not ticket:
            return False
        if self.query is not None and ticket.descriptor != self.query.current:
            return False
        return True

    def _complete(self, ticket: FetchTicket[T], value: T | None, error: Exception | None) -> None:
        ticket.done = True
        ticket.value = value
        ticket.error = error
        if self._disposed:
            return
        if not self._is_current(ticket):
            self.state.discarded += 1
            log_action(logger, self.name, "fetch", "stale_discarded", request_id=ticket.request_id)
            return
        ticket.applied = True
        self.state.loading = False
        if error is None:
            self._apply_success(ticket, value)
        else:
            self._apply_failure(ticket, error)

    def _apply_success(self, ticket: FetchTicket[T], value: T | None) -> None:
        self.state.result = value
        self.state.error = None
        self.state.session_expired = False
        self.state.last_updated = datetime.now(timezone.utc)
        self.state.applied_descriptor = ticket.descriptor
        log_action(logger, self.name, "fetch", "success", request_id=ticket.request_id)
        if self.bus is not None and isinstance(value, ResourcePage):
            self.bus.publish(ResourceRefreshed(resource=self.name, page=value.page, total_count=value.total_count))
        self._notify(value)

    def _apply_failure(self, ticket: FetchTicket[T], error: Exception) -> None:
        self.state.result = self._fallback(ticket.descriptor)
        self.state.applied_descriptor = ticket.descriptor
        self.state.error = to_user_facing_error(error)
        if isinstance(error, ApiError):
            log_action(logger, self.name, "fetch", "error", code=error.code, status=error.status_code)
        else:
            logger.error("%s fetch failed with unexpected error", self.name, exc_info=error)
        if isinstance(error, AuthError):
            self.state.session_expired = True
            if self._on_auth_failure is not None:
                self._on_auth_failure(self.name, error)
        if self.bus is not None:
            self.bus.publish(FetchFailed(resource=self.name, code=self.state.error.code, message=self.state.error.message))
        self._notify(self.state.result)

    def _notify(self, value: T | None) -> None:
        for listener in list(self._listeners):
            listener(value)


def _has_data(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, ResourcePage):
        return bool(value.items)
    if isinstance(value, (list, dict)):
        return bool(value)
    return True

"""Session-scoped typed event channel.

Panels talk to each other (and to the excluded session/notification layers)
by publishing event dataclasses on the bus owned by their ``ConsoleSession``.
Subscribers register per event type; a subscriber for a base class receives
every subclass.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, TypeVar

from .logging_utils import get_logger, log_action

logger = get_logger(__name__)

E = TypeVar("E", bound="ConsoleEvent")


@dataclass(frozen=True)
class ConsoleEvent:
    pass


@dataclass(frozen=True)
class SessionExpired(ConsoleEvent):
    source: str
    reason: str
    trace_id: str | None = None


@dataclass(frozen=True)
class ResourceRefreshed(ConsoleEvent):
    resource: str
    page: int
    total_count: int


@dataclass(frozen=True)
class FetchFailed(ConsoleEvent):
    resource: str
    code: str
    message: str


@dataclass(frozen=True)
class BulkActionCompleted(ConsoleEvent):
    resource: str
    action: str
    success_count: int
    error_count: int


@dataclass(frozen=True)
class AccountBalanceChanged(ConsoleEvent):
    account_id: str
    direction: str
    new_balance: Decimal | None


@dataclass(frozen=True)
class ShowTicketRequested(ConsoleEvent):
    ticket_id: str
    context: dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Any], None]


class EventBus:
    def __init__(self) -> None:
        self._handlers: dict[type[ConsoleEvent], list[Handler]] = defaultdict(list)
        self.history: list[ConsoleEvent] = []
        self.history_limit = 50

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> Callable[[], None]:
        self._handlers[event_type].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: ConsoleEvent) -> int:
        self.history.append(event)
        del self.history[: -self.history_limit]
        delivered = 0
        for event_type in type(event).__mro__:
            for handler in list(self._handlers.get(event_type, [])):
                try:
                    handler(event)
                except Exception:
                    # one broken subscriber must not starve the others
                    logger.exception("event handler failed for %s", type(event).__name__)
                else:
                    delivered += 1
        log_action(logger, "events", type(event).__name__, "published", subscribers=delivered)
        return delivered

    def clear(self) -> None:
        self._handlers.clear()
        self.history.clear()

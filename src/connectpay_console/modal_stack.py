from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .logging_utils import get_logger, log_action
from .validation import raise_issue

logger = get_logger(__name__)


class ModalKind(str, Enum):
    USER_DETAIL = "user_detail"
    TRANSACTION_DETAIL = "transaction_detail"
    SERVICE_DETAIL = "service_detail"
    SETTLEMENT_DETAIL = "settlement_detail"
    CREDIT = "credit"
    DEBIT = "debit"
    CONFIRM = "confirm"
    TICKET_DETAIL = "ticket_detail"


DETAIL_KINDS = frozenset(
    {
        ModalKind.USER_DETAIL,
        ModalKind.TRANSACTION_DETAIL,
        ModalKind.SERVICE_DETAIL,
        ModalKind.SETTLEMENT_DETAIL,
        ModalKind.TICKET_DETAIL,
    }
)


@dataclass(frozen=True)
class ModalStackEntry:
    kind: ModalKind
    payload: Any = None
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def is_detail(self) -> bool:
        return self.kind in DETAIL_KINDS


RefreshHandler = Callable[[ModalStackEntry], object]


class ModalStack:
    """Overlays stacked on top of a panel.

    A sub-form (credit, debit, confirm) sits on the detail that opened it;
    closing it hands control back to that detail, re-fetched when the
    sub-form committed something.
    """

    def __init__(self) -> None:
        self._entries: list[ModalStackEntry] = []
        self._refresh_handlers: dict[ModalKind, RefreshHandler] = {}

    @property
    def depth(self) -> int:
        return len(self._entries)

    @property
    def is_open(self) -> bool:
        return bool(self._entries)

    def entries(self) -> list[ModalStackEntry]:
        return list(self._entries)

    def current(self) -> ModalStackEntry | None:
        return self._entries[-1] if self._entries else None

    def on_refresh(self, kind: ModalKind, handler: RefreshHandler) -> None:
        self._refresh_handlers[kind] = handler

    def push(self, entry: ModalStackEntry) -> ModalStackEntry:
        self._entries.append(entry)
        log_action(logger, "modal", "push", entry.kind.value, depth=self.depth)
        return entry

    def open_subform(self, kind: ModalKind | str, payload: Any = None, **context: Any) -> ModalStackEntry:
        parent = self.current()
        if parent is None or not parent.is_detail:
            raise_issue("modal", f"{ModalKind(kind).value} needs an open detail view", "NO_PARENT_MODAL")
        return self.push(ModalStackEntry(kind=ModalKind(kind), payload=payload, context=dict(context)))

    def replace_current(self, entry: ModalStackEntry) -> ModalStackEntry:
        if self._entries:
            self._entries[-1] = entry
            return entry
        return self.push(entry)

    def pop(self, *, submitted: bool = False, refresh: bool = False) -> ModalStackEntry | None:
        if not self._entries:
            return None
        closed = self._entries.pop()
        restored = self.current()
        log_action(logger, "modal", "pop", closed.kind.value, depth=self.depth, submitted=submitted)
        if restored is not None and (submitted or refresh):
            handler = self._refresh_handlers.get(restored.kind)
            if handler is not None:
                handler(restored)
        return closed

    def clear(self) -> None:
        self._entries.clear()

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping

from .models import QueryDescriptor, SortOrder
from .validation import raise_issue

Listener = Callable[[QueryDescriptor], None]


def clean_filters(filters: Mapping[str, Any]) -> dict[str, str]:
    return {key: str(value).strip() for key, value in filters.items() if value is not None and str(value).strip() != ""}


class QueryState:
    """Owns the current query descriptor of one panel.

    Every mutator returns the new descriptor; anything but a page change
    sends the user back to page 1.
    """

    def __init__(self, defaults: QueryDescriptor | None = None, allowed_filters: Iterable[str] | None = None) -> None:
        self.defaults = defaults or QueryDescriptor()
        self.allowed_filters = frozenset(allowed_filters) if allowed_filters is not None else None
        self._current = self.defaults
        self._listeners: list[Listener] = []

    @property
    def current(self) -> QueryDescriptor:
        return self._current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_search(self, text: str | None) -> QueryDescriptor:
        return self._replace(search=(text or "").strip(), page=1)

    def set_filter(self, key: str, value: Any) -> QueryDescriptor:
        if not key:
            raise_issue("filter", "filter key is required")
        self._check_filter_keys([key])
        filters = dict(self._current.filters)
        filters[key] = value
        return self._replace(filters=clean_filters(filters), page=1)

    def set_filters(self, filters: Mapping[str, Any]) -> QueryDescriptor:
        self._check_filter_keys(filters)
        return self._replace(filters=clean_filters(filters), page=1)

    def set_sort(self, field: str, order: SortOrder | str | None = None) -> QueryDescriptor:
        if not field:
            raise_issue("sort_field", "is required")
        resolved = self._current.sort_order if order is None else _coerce_order(order)
        return self._replace(sort_field=field, sort_order=resolved, page=1)

    def set_page_size(self, page_size: int) -> QueryDescriptor:
        if page_size <= 0:
            raise_issue("page_size", "must be greater than 0")
        return self._replace(page_size=page_size, page=1)

    def set_page(self, page: int) -> QueryDescriptor:
        return self._replace(page=max(1, int(page)))

    def next_page(self, has_next: bool | None = None) -> QueryDescriptor:
        if has_next is False:
            return self._current
        return self.set_page(self._current.page + 1)

    def prev_page(self) -> QueryDescriptor:
        return self.set_page(self._current.page - 1)

    def reset(self) -> QueryDescriptor:
        return self._commit(self.defaults)

    def _check_filter_keys(self, keys: Iterable[str]) -> None:
        if self.allowed_filters is None:
            return
        unknown = sorted(key for key in keys if key not in self.allowed_filters)
        if unknown:
            raise_issue("filter", f"unsupported filter {unknown[0]!r}", "UNKNOWN_FILTER")

    def _replace(self, **changes: Any) -> QueryDescriptor:
        return self._commit(self._current.model_copy(update=changes))

    def _commit(self, descriptor: QueryDescriptor) -> QueryDescriptor:
        if descriptor == self._current:
            return self._current
        self._current = descriptor
        for listener in list(self._listeners):
            listener(descriptor)
        return descriptor


def _coerce_order(order: SortOrder | str) -> SortOrder:
    try:
        return SortOrder(order.value if isinstance(order, SortOrder) else str(order).lower())
    except ValueError:
        raise_issue("sort_order", f"must be one of asc, desc (got {order!r})")
        raise

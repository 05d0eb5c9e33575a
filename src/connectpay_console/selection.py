from __future__ import annotations

from typing import Iterable, Iterator

from .validation import raise_issue


class SelectionSet:
    """Selected row ids, scoped to the page currently on screen."""

    def __init__(self, page_ids: Iterable[str] = ()) -> None:
        self._page_ids: list[str] = [str(item) for item in page_ids]
        self._selected: set[str] = set()

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._selected

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())

    @property
    def page_ids(self) -> list[str]:
        return list(self._page_ids)

    def ids(self) -> list[str]:
        order = {item: index for index, item in enumerate(self._page_ids)}
        return sorted(self._selected, key=lambda item: order.get(item, len(order)))

    def is_selected(self, item_id: str) -> bool:
        return item_id in self._selected

    def toggle(self, item_id: str) -> bool:
        if item_id not in self._page_ids:
            raise_issue("selection", f"{item_id} is not on the current page", "SELECTION_OUT_OF_PAGE")
        if item_id in self._selected:
            self._selected.discard(item_id)
            return False
        self._selected.add(item_id)
        return True

    def select_all(self, ids: Iterable[str] | None = None) -> set[str]:
        targets = {str(item) for item in (self._page_ids if ids is None else ids)}
        outside = targets.difference(self._page_ids)
        if outside:
            raise_issue("selection", f"{sorted(outside)} are not on the current page", "SELECTION_OUT_OF_PAGE")
        if targets and self._selected == targets:
            self._selected.clear()
        else:
            self._selected = set(targets)
        return set(self._selected)

    def all_selected(self) -> bool:
        return bool(self._page_ids) and self._selected == set(self._page_ids)

    def clear(self) -> None:
        self._selected.clear()

    def replace_page(self, page_ids: Iterable[str]) -> None:
        # a new page invalidates the whole selection, even ids that reappear
        self._page_ids = [str(item) for item in page_ids]
        self._selected.clear()

from __future__ import annotations

import pytest

from connectpay_console.models import QueryDescriptor, SortOrder
from connectpay_console.query_state import QueryState
from connectpay_console.validation import ClientValidationError


def _on_page_three() -> QueryState:
    state = QueryState()
    state.set_page(3)
    assert state.current.page == 3
    return state


@pytest.mark.parametrize(
    "change",
    [
        lambda state: state.set_search("ada"),
        lambda state: state.set_filter("status", "active"),
        lambda state: state.set_filters({"kycLevel": "2"}),
        lambda state: state.set_sort("name", "asc"),
        lambda state: state.set_page_size(50),
    ],
)
def test_non_page_changes_reset_to_first_page(change) -> None:
    state = _on_page_three()
    change(state)
    assert state.current.page == 1


def test_to_params_renders_wire_query() -> None:
    state = QueryState()
    state.set_search("  ada ")
    state.set_filters({"status": "active", "kycLevel": "", "accountType": None})
    state.set_page(2)

    assert state.current.to_params() == {
        "search": "ada",
        "status": "active",
        "page": 2,
        "limit": 25,
        "sortBy": "createdAt",
        "sortOrder": "desc",
    }


def test_listeners_only_hear_real_changes() -> None:
    state = QueryState()
    seen: list[QueryDescriptor] = []
    unsubscribe = state.subscribe(seen.append)

    state.set_page(1)
    state.set_search("")
    state.set_search("bob")
    unsubscribe()
    state.set_search("carol")

    assert [item.search for item in seen] == ["bob"]


def test_page_navigation_is_clamped() -> None:
    state = QueryState()
    state.prev_page()
    assert state.current.page == 1
    state.next_page(has_next=False)
    assert state.current.page == 1
    state.next_page()
    assert state.current.page == 2


def test_invalid_inputs_are_rejected() -> None:
    state = QueryState()
    with pytest.raises(ClientValidationError):
        state.set_page_size(0)
    with pytest.raises(ClientValidationError):
        state.set_sort("createdAt", "sideways")
    with pytest.raises(ClientValidationError):
        state.set_filter("", "x")


def test_reset_restores_defaults() -> None:
    defaults = QueryDescriptor(page_size=10, sort_field="name", sort_order=SortOrder.ASC)
    state = QueryState(defaults)
    state.set_search("x")
    state.set_page(4)
    assert state.reset() == defaults


def test_filters_outside_the_schema_are_rejected() -> None:
    state = QueryState(allowed_filters=("status", "kycLevel"))
    seen: list[QueryDescriptor] = []
    state.subscribe(seen.append)

    with pytest.raises(ClientValidationError) as excinfo:
        state.set_filters({"status": "active", "colour": "red"})

    assert excinfo.value.code == "UNKNOWN_FILTER"
    assert seen == []
    assert state.set_filter("kycLevel", 2).filters == {"kycLevel": "2"}

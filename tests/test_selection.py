from __future__ import annotations

import pytest

from connectpay_console.selection import SelectionSet
from connectpay_console.validation import ClientValidationError


def test_toggle_and_order() -> None:
    selection = SelectionSet(["u1", "u2", "u3"])
    assert selection.toggle("u3") is True
    assert selection.toggle("u1") is True
    assert selection.ids() == ["u1", "u3"]
    assert selection.toggle("u3") is False
    assert list(selection) == ["u1"]


def test_select_all_twice_clears() -> None:
    selection = SelectionSet(["u1", "u2"])
    assert selection.select_all() == {"u1", "u2"}
    assert selection.all_selected()
    assert selection.select_all() == set()
    assert len(selection) == 0


def test_ids_outside_the_page_are_rejected() -> None:
    selection = SelectionSet(["u1"])
    with pytest.raises(ClientValidationError) as excinfo:
        selection.toggle("u9")
    assert excinfo.value.code == "SELECTION_OUT_OF_PAGE"


def test_replace_page_clears_selection() -> None:
    selection = SelectionSet(["u1", "u2"])
    selection.select_all()
    selection.replace_page(["u2", "u3"])
    assert len(selection) == 0
    assert selection.page_ids == ["u2", "u3"]
    assert set(selection.ids()) <= set(selection.page_ids)

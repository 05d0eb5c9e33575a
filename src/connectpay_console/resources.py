"""Resource definitions driving the generic console.

Each admin panel (users, transactions, services, settlements) is a
``ResourceDefinition``: where it lives on the API, which models parse it,
which filters and bulk actions it offers and how often it polls.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel

from .modal_stack import ModalKind
from .models import (
    QueryDescriptor,
    ServiceSummary,
    SettlementSummary,
    SortOrder,
    TransactionDetail,
    TransactionSummary,
    UserDetail,
    UserSummary,
)


@dataclass(frozen=True)
class ColumnDef:
    key: str
    label: str
    formatter: Callable[[object], str] | None = None

    def render(self, row: BaseModel) -> str:
        value = getattr(row, self.key, None)
        if self.formatter is not None:
            return self.formatter(value)
        return "" if value is None else str(value)


@dataclass(frozen=True)
class ActionDef:
    name: str
    label: str = ""
    destructive: bool = False
    needs_reason: bool = False


@dataclass(frozen=True)
class ResourceDefinition:
    name: str
    path: str
    summary_model: type[BaseModel]
    list_path: str | None = None
    stats_path: str | None = None
    detail_model: type[BaseModel] | None = None
    detail_kind: ModalKind = ModalKind.USER_DETAIL
    list_keys: tuple[str, ...] = ("items",)
    filter_keys: tuple[str, ...] = ()
    default_sort: str = "createdAt"
    default_order: SortOrder = SortOrder.DESC
    default_page_size: int | None = None
    poll_interval: float | None = None
    columns: tuple[ColumnDef, ...] = ()
    actions: tuple[ActionDef, ...] = ()
    supports_balance: bool = False
    ledger_path: str = "/ledger"

    def default_query(self, page_size: int | None = None) -> QueryDescriptor:
        return QueryDescriptor(
            page=1,
            page_size=page_size or self.default_page_size or 25,
            sort_field=self.default_sort,
            sort_order=self.default_order,
        )

    def action(self, name: str) -> ActionDef | None:
        return next((item for item in self.actions if item.name == name), None)

    @property
    def action_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self.actions)

    @property
    def destructive_actions(self) -> frozenset[str]:
        return frozenset(item.name for item in self.actions if item.destructive)

    @property
    def reason_required_actions(self) -> frozenset[str]:
        return frozenset(item.name for item in self.actions if item.needs_reason)

    def headers(self) -> list[str]:
        return [column.label for column in self.columns]

    def row(self, item: BaseModel) -> dict[str, str]:
        return {column.key: column.render(item) for column in self.columns}


def _money(value: object) -> str:
    if value is None:
        return "-"
    return f"{value:,.2f}" if not isinstance(value, str) else value


def _flag(value: object) -> str:
    if value is None:
        return "-"
    return "yes" if value else "no"


USERS = ResourceDefinition(
    name="users",
    path="/api/users/management",
    list_path="/api/users/management/list",
    stats_path="/api/users/management/stats",
    summary_model=UserSummary,
    detail_model=UserDetail,
    detail_kind=ModalKind.USER_DETAIL,
    list_keys=("users",),
    default_page_size=25,
    filter_keys=("status", "kycLevel", "accountType"),
    columns=(
        ColumnDef("name", "Name"),
        ColumnDef("email", "Email"),
        ColumnDef("phone", "Phone"),
        ColumnDef("status", "Status"),
        ColumnDef("wallet_balance", "Balance", _money),
        ColumnDef("kyc_level", "KYC"),
        ColumnDef("created_at", "Joined"),
    ),
    actions=(
        ActionDef("activate", "Activate"),
        ActionDef("suspend", "Suspend", destructive=True, needs_reason=True),
        ActionDef("deactivate", "Deactivate", destructive=True),
        ActionDef("delete", "Delete", destructive=True),
    ),
    supports_balance=True,
)

TRANSACTIONS = ResourceDefinition(
    name="transactions",
    path="/api/admin/transactions",
    summary_model=TransactionSummary,
    detail_model=TransactionDetail,
    detail_kind=ModalKind.TRANSACTION_DETAIL,
    list_keys=("transactions",),
    default_page_size=20,
    filter_keys=("status", "type", "category", "dateFrom", "dateTo"),
    poll_interval=60.0,
    columns=(
        ColumnDef("reference", "Reference"),
        ColumnDef("user_id", "User"),
        ColumnDef("type", "Type"),
        ColumnDef("amount", "Amount", _money),
        ColumnDef("status", "Status"),
        ColumnDef("created_at", "Date"),
    ),
    actions=(
        ActionDef("retry", "Retry"),
        ActionDef("notify", "Notify"),
        ActionDef("delete", "Delete", destructive=True),
    ),
)

SERVICES = ResourceDefinition(
    name="services",
    path="/api/admin/services",
    summary_model=ServiceSummary,
    detail_kind=ModalKind.SERVICE_DETAIL,
    list_keys=("services",),
    filter_keys=("category", "status"),
    default_sort="name",
    default_order=SortOrder.ASC,
    columns=(
        ColumnDef("name", "Service"),
        ColumnDef("category", "Category"),
        ColumnDef("provider", "Provider"),
        ColumnDef("enabled", "Enabled", _flag),
        ColumnDef("status", "Status"),
    ),
    actions=(
        ActionDef("enable", "Enable"),
        ActionDef("disable", "Disable"),
        ActionDef("delete", "Delete", destructive=True),
    ),
)

SETTLEMENTS = ResourceDefinition(
    name="settlements",
    path="/api/admin/financial/settlements",
    summary_model=SettlementSummary,
    detail_kind=ModalKind.SETTLEMENT_DETAIL,
    list_keys=("settlements",),
    filter_keys=("status", "bank"),
    poll_interval=120.0,
    columns=(
        ColumnDef("reference", "Reference"),
        ColumnDef("amount", "Amount", _money),
        ColumnDef("bank", "Bank"),
        ColumnDef("status", "Status"),
        ColumnDef("created_at", "Date"),
    ),
    actions=(
        ActionDef("approve", "Approve"),
        ActionDef("reject", "Reject", destructive=True, needs_reason=True),
    ),
)

DEFINITIONS: dict[str, ResourceDefinition] = {
    definition.name: definition for definition in (USERS, TRANSACTIONS, SERVICES, SETTLEMENTS)
}


def get_definition(name: str) -> ResourceDefinition:
    try:
        return DEFINITIONS[name]
    except KeyError:
        raise KeyError(f"Unknown resource: {name}") from None

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class MutationDirection(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class QueryDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    search: str = ""
    filters: dict[str, str] = Field(default_factory=dict)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=25, gt=0)
    sort_field: str = "createdAt"
    sort_order: SortOrder = SortOrder.DESC

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if self.search:
            params["search"] = self.search
        for key in sorted(self.filters):
            value = self.filters[key]
            if value not in (None, ""):
                params[key] = value
        params["page"] = self.page
        params["limit"] = self.page_size
        if self.sort_field:
            params["sortBy"] = self.sort_field
        params["sortOrder"] = self.sort_order.value
        return params


class ApiRecord(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))


class UserSummary(ApiRecord):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    status: str | None = None
    is_active: bool | None = None
    wallet_balance: Decimal | None = None
    kyc_level: str | int | None = None
    account_type: str | None = None
    created_at: datetime | None = None


class UserDetail(UserSummary):
    last_login_at: datetime | None = None
    suspension_reason: str | None = None
    transaction_count: int | None = None
    total_spent: Decimal | None = None


class TransactionSummary(ApiRecord):
    reference: str | None = None
    user_id: str | None = None
    type: str | None = None
    category: str | None = None
    amount: Decimal | None = None
    status: str | None = None
    created_at: datetime | None = None


class TransactionDetail(TransactionSummary):
    description: str | None = None
    previous_balance: Decimal | None = None
    new_balance: Decimal | None = None
    metadata: dict[str, Any] | None = None


class ServiceSummary(ApiRecord):
    name: str | None = None
    category: str | None = None
    provider: str | None = None
    enabled: bool | None = None
    status: str | None = None


class SettlementSummary(ApiRecord):
    reference: str | None = None
    amount: Decimal | None = None
    status: str | None = None
    bank: str | None = None
    created_at: datetime | None = None


T = TypeVar("T")


class ResourcePage(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_count: int = 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def ids(self) -> list[str]:
        return [str(getattr(item, "id", None) or item.get("id")) for item in self.items]

    @classmethod
    def empty(cls, page: int = 1) -> "ResourcePage[Any]":
        return cls(items=[], page=page, total_pages=0, total_count=0)


class BulkActionResult(BaseModel):
    action: str
    success_count: int = 0
    error_count: int = 0
    per_item_errors: dict[str, str] = Field(default_factory=dict)
    succeeded_ids: list[str] = Field(default_factory=list)
    message: str | None = None

    @property
    def total(self) -> int:
        return self.success_count + self.error_count

    @property
    def is_partial(self) -> bool:
        return self.success_count > 0 and self.error_count > 0

    @property
    def is_total_failure(self) -> bool:
        return self.success_count == 0 and self.error_count > 0


class WalletMutation(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_id: str = Field(min_length=1)
    direction: MutationDirection
    amount: Decimal = Field(gt=0)
    reason: str = Field(min_length=1)
    reference: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "accountId": self.account_id,
            "amount": str(self.amount),
            "reason": self.reason,
        }
        if self.reference:
            payload["reference"] = self.reference
        return payload


class MutationResult(BaseModel):
    ok: bool
    account_id: str
    direction: MutationDirection
    amount: Decimal
    new_balance: Decimal | None = None
    message: str | None = None
    transaction_reference: str | None = None
    error_code: str | None = None

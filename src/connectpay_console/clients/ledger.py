from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from ..models import MutationResult, WalletMutation
from .base import BaseClient

_BALANCE_KEYS = ("balance", "newBalance", "walletBalance", "new_balance")


@dataclass
class LedgerClient(BaseClient):
    base_path: str = "/ledger"
    module: str = "ledger"

    def apply(self, mutation: WalletMutation) -> MutationResult:
        direction = mutation.direction.value
        payload = self._request(
            "POST",
            f"{self.base_path.rstrip('/')}/{direction}",
            json_body=mutation.to_payload(),
            module=self.module,
            operation=f"{self.module}.{direction}",
        )
        body = payload if isinstance(payload, dict) else {}
        return MutationResult(
            ok=True,
            account_id=mutation.account_id,
            direction=mutation.direction,
            amount=mutation.amount,
            new_balance=extract_balance(body),
            message=body.get("message") if isinstance(body.get("message"), str) else None,
            transaction_reference=_extract_reference(body),
        )


def extract_balance(body: Mapping[str, Any]) -> Decimal | None:
    candidates: list[Mapping[str, Any]] = [body]
    for key in ("data", "wallet", "account"):
        nested = body.get(key)
        if isinstance(nested, dict):
            candidates.append(nested)
    for candidate in candidates:
        for key in _BALANCE_KEYS:
            value = candidate.get(key)
            if value is None or isinstance(value, bool):
                continue
            try:
                return Decimal(str(value))
            except InvalidOperation:
                continue
    return None


def _extract_reference(body: Mapping[str, Any]) -> str | None:
    reference = body.get("reference")
    if reference:
        return str(reference)
    transaction = body.get("transaction")
    if isinstance(transaction, dict):
        value = transaction.get("reference") or transaction.get("_id") or transaction.get("id")
        return str(value) if value else None
    return None

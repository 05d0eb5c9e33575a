from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Generic, Iterable, Mapping, Sequence, TypeVar

from pydantic import BaseModel

from ..logging_utils import get_logger, log_action
from ..models import BulkActionResult, QueryDescriptor, ResourcePage
from .base import BaseClient

logger = get_logger(__name__)

S = TypeVar("S", bound=BaseModel)
D = TypeVar("D", bound=BaseModel)

NOT_PROCESSED = "Not processed by server"
_TOTAL_KEYS = ("totalCount", "total", "totalItems", "count")
_DETAIL_KEYS = ("item", "data", "user", "transaction", "service", "settlement")


@dataclass
class ResourceClient(BaseClient, Generic[S, D]):
    path: str = ""
    list_path: str | None = None
    summary_model: type[S] | None = None
    detail_model: type[D] | None = None
    list_keys: tuple[str, ...] = ("items",)
    module: str = "resource"

    def list(self, descriptor: QueryDescriptor) -> ResourcePage[S]:
        payload = self._request(
            "GET",
            self.list_path or self.path,
            params=descriptor.to_params(),
            module=self.module,
            operation=f"{self.module}.list",
        )
        return parse_page(payload, self.summary_model, descriptor, self.list_keys)

    def get(self, item_id: str) -> D:
        payload = self._request(
            "GET",
            f"{self.path.rstrip('/')}/{item_id}",
            module=self.module,
            operation=f"{self.module}.get",
        )
        if not isinstance(payload, dict):
            raise ValueError(f"Expected {self.module} detail response to be a JSON object")
        body = _unwrap_detail(payload)
        model = self.detail_model or self.summary_model
        return model.model_validate(body) if model else body

    def bulk(self, action: str, ids: Sequence[str], *, reason: str | None = None) -> BulkActionResult:
        body: dict[str, Any] = {"action": action, "ids": list(dict.fromkeys(ids))}
        if reason:
            body["reason"] = reason
        payload = self._request(
            "POST",
            f"{self.path.rstrip('/')}/bulk",
            json_body=body,
            module=self.module,
            operation=f"{self.module}.bulk.{action}",
        )
        if not isinstance(payload, dict):
            raise ValueError("Expected bulk response to be a JSON object")
        return parse_bulk_result(action, ids, payload)


def parse_page(
    payload: Any,
    item_model: type[S] | None,
    descriptor: QueryDescriptor,
    list_keys: Iterable[str] = ("items",),
) -> ResourcePage[S]:
    if isinstance(payload, list):
        raw_items, pagination = payload, {}
    elif isinstance(payload, dict):
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        raw_items = next((data[key] for key in ("items", *list_keys) if isinstance(data.get(key), list)), [])
        pagination = data.get("pagination") or payload.get("pagination") or {}
    else:
        raise ValueError("Expected list response to be a JSON object or array")

    items = [item_model.model_validate(item) for item in raw_items] if item_model else list(raw_items)
    page = int(pagination.get("page") or pagination.get("currentPage") or descriptor.page)
    total_count = _first_int(pagination, (*_TOTAL_KEYS, *_legacy_total_keys(pagination)))
    if total_count is None:
        total_count = len(items)
    total_pages = _first_int(pagination, ("totalPages", "pages"))
    if total_pages is None:
        total_pages = math.ceil(total_count / descriptor.page_size) if total_count else 0
    return ResourcePage[Any](items=items, page=page, total_pages=total_pages, total_count=total_count)


def parse_bulk_result(action: str, ids: Sequence[str], payload: Mapping[str, Any]) -> BulkActionResult:
    """Reconcile the server's report with the ids that were sent.

    Every target id ends up either succeeded or in ``per_item_errors``; ids the
    server never mentions count as failures.
    """
    report = payload.get("results") if isinstance(payload.get("results"), dict) else payload
    targets = list(dict.fromkeys(str(item) for item in ids))
    server_errors = _collect_errors(report)
    errors = {item: server_errors[item] for item in targets if item in server_errors}

    successful = _collect_ids(report.get("successful") or report.get("succeeded"))
    if successful is not None:
        succeeded = [item for item in targets if item in successful and item not in errors]
    else:
        succeeded = [item for item in targets if item not in errors]
        reported = report.get("successCount")
        if isinstance(reported, int) and reported != len(succeeded):
            log_action(
                logger,
                "bulk",
                action,
                "count_mismatch",
                server_success_count=reported,
                reconciled_success_count=len(succeeded),
            )
    for item in targets:
        if item not in errors and item not in succeeded:
            errors[item] = NOT_PROCESSED

    return BulkActionResult(
        action=action,
        success_count=len(succeeded),
        error_count=len(errors),
        per_item_errors=errors,
        succeeded_ids=succeeded,
        message=payload.get("message") if isinstance(payload.get("message"), str) else None,
    )


@dataclass
class SnapshotClient(BaseClient):
    """Reads non-paginated dashboard payloads (stats, feeds, balances)."""

    module: str = "dashboard"
    paths: dict[str, str] = field(default_factory=dict)

    def read(self, feed: str) -> Any:
        path = self.paths.get(feed)
        if path is None:
            raise KeyError(f"Unknown dashboard feed: {feed}")
        payload = self._request("GET", path, module=self.module, operation=f"{self.module}.{feed}")
        if isinstance(payload, dict) and isinstance(payload.get("data"), (dict, list)):
            return payload["data"]
        return payload


def _unwrap_detail(payload: dict[str, Any]) -> dict[str, Any]:
    for key in _DETAIL_KEYS:
        nested = payload.get(key)
        if isinstance(nested, dict):
            return nested
    return payload


def _legacy_total_keys(pagination: Mapping[str, Any]) -> tuple[str, ...]:
    # older endpoints name totals per resource: totalUsers, totalTransactions...
    return tuple(key for key in pagination if key.startswith("total") and key not in {"totalPages", *_TOTAL_KEYS})


def _first_int(source: Mapping[str, Any], keys: Iterable[str]) -> int | None:
    for key in keys:
        value = source.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def _collect_errors(report: Mapping[str, Any]) -> dict[str, str]:
    errors: dict[str, str] = {}
    per_item = report.get("perItemErrors")
    if isinstance(per_item, dict):
        errors.update({str(key): str(value) for key, value in per_item.items()})
    failed = report.get("failed")
    if isinstance(failed, list):
        for entry in failed:
            if isinstance(entry, dict):
                item_id = entry.get("id") or entry.get("userId") or entry.get("_id")
                if item_id is not None:
                    errors[str(item_id)] = str(entry.get("error") or entry.get("message") or "Failed")
            else:
                errors[str(entry)] = "Failed"
    return errors


def _collect_ids(entries: Any) -> set[str] | None:
    if not isinstance(entries, list):
        return None
    collected: set[str] = set()
    for entry in entries:
        if isinstance(entry, dict):
            item_id = entry.get("id") or entry.get("userId") or entry.get("_id")
            if item_id is not None:
                collected.add(str(item_id))
        else:
            collected.add(str(entry))
    return collected

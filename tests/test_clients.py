from __future__ import annotations

from decimal import Decimal

import pytest
import responses
from responses import matchers

from connectpay_console.clients import ResourceClient, SnapshotClient
from connectpay_console.http_client import HttpClient
from connectpay_console.models import QueryDescriptor, TransactionSummary, UserDetail, UserSummary

API = "https://api.example.com"


def _users(http: HttpClient) -> ResourceClient:
    return ResourceClient(
        http=http,
        access_token="tkn",
        path="/api/users/management",
        list_path="/api/users/management/list",
        summary_model=UserSummary,
        detail_model=UserDetail,
        list_keys=("users",),
        module="users",
    )


@responses.activate
def test_list_sends_canonical_query_and_parses_legacy_page(http: HttpClient) -> None:
    descriptor = QueryDescriptor(search="ada", filters={"status": "active"}, page=2)
    responses.add(
        responses.GET,
        f"{API}/api/users/management/list",
        json={
            "success": True,
            "data": {
                "users": [
                    {"_id": "u1", "name": "Ada", "walletBalance": 1500, "kycLevel": 2},
                    {"_id": "u2", "name": "Bola", "walletBalance": "0"},
                ],
                "pagination": {"currentPage": 2, "totalPages": 3, "totalUsers": 52},
            },
        },
        status=200,
        match=[
            matchers.query_param_matcher(
                {"search": "ada", "status": "active", "page": "2", "limit": "25", "sortBy": "createdAt", "sortOrder": "desc"}
            ),
            matchers.header_matcher({"Authorization": "Bearer tkn"}),
        ],
    )

    page = _users(http).list(descriptor)

    assert page.ids() == ["u1", "u2"]
    assert page.items[0].wallet_balance == Decimal("1500")
    assert page.page == 2
    assert page.total_pages == 3
    assert page.total_count == 52
    assert page.has_next and page.has_prev


@responses.activate
def test_list_contract_shape_derives_total_pages(http: HttpClient) -> None:
    responses.add(
        responses.GET,
        f"{API}/api/admin/transactions",
        json={"items": [{"id": "t1", "amount": "100.00", "status": "pending"}], "pagination": {"page": 1, "totalCount": 30}},
        status=200,
    )
    client = ResourceClient(http=http, path="/api/admin/transactions", summary_model=TransactionSummary, module="transactions")

    page = client.list(QueryDescriptor(page_size=25))

    assert page.total_pages == 2
    assert page.items[0].amount == Decimal("100.00")


@responses.activate
def test_get_unwraps_detail(http: HttpClient) -> None:
    responses.add(
        responses.GET,
        f"{API}/api/users/management/u1",
        json={"success": True, "user": {"_id": "u1", "name": "Ada", "walletBalance": 300, "suspensionReason": None}},
        status=200,
    )

    detail = _users(http).get("u1")

    assert isinstance(detail, UserDetail)
    assert detail.wallet_balance == Decimal("300")


@responses.activate
def test_bulk_posts_action_ids_and_reason(http: HttpClient) -> None:
    responses.add(
        responses.POST,
        f"{API}/api/users/management/bulk",
        json={"message": "Bulk suspend completed", "successCount": 2, "errorCount": 0},
        status=200,
        match=[matchers.json_params_matcher({"action": "suspend", "ids": ["u1", "u2"], "reason": "fraud"})],
    )

    result = _users(http).bulk("suspend", ["u1", "u2"], reason="fraud")

    assert result.success_count == 2
    assert result.message == "Bulk suspend completed"


@responses.activate
def test_snapshot_client_reads_feeds(http: HttpClient) -> None:
    responses.add(responses.GET, f"{API}/api/dashboard/stats", json={"data": {"totalUsers": 10}}, status=200)
    client = SnapshotClient(http=http, paths={"stats": "/api/dashboard/stats"})

    assert client.read("stats") == {"totalUsers": 10}
    with pytest.raises(KeyError):
        client.read("unknown")


@responses.activate
def test_token_provider_is_read_on_every_request(http: HttpClient) -> None:
    tokens = iter(["first", "second"])
    responses.add(
        responses.GET,
        f"{API}/api/dashboard/stats",
        json={"totalUsers": 1},
        status=200,
        match=[matchers.header_matcher({"Authorization": "Bearer first"})],
    )
    responses.add(
        responses.GET,
        f"{API}/api/dashboard/stats",
        json={"totalUsers": 2},
        status=200,
        match=[matchers.header_matcher({"Authorization": "Bearer second"})],
    )
    client = SnapshotClient(
        http=http,
        access_token="ignored",
        token_provider=lambda: next(tokens),
        paths={"stats": "/api/dashboard/stats"},
    )

    assert client.read("stats") == {"totalUsers": 1}
    assert client.read("stats") == {"totalUsers": 2}


@responses.activate
def test_bulk_sends_each_id_once(http: HttpClient) -> None:
    responses.add(
        responses.POST,
        f"{API}/api/users/management/bulk",
        json={"perItemErrors": {"u1": "Admin account"}},
        status=200,
        match=[matchers.json_params_matcher({"action": "suspend", "ids": ["u1", "u2"], "reason": "fraud"})],
    )

    result = _users(http).bulk("suspend", ["u1", "u1", "u2"], reason="fraud")

    assert result.success_count == 1
    assert result.error_count == 1
    assert result.succeeded_ids == ["u2"]

from __future__ import annotations

import pytest
import requests
import responses
from responses import matchers

from connectpay_console.exceptions import AuthError, NetworkError, ServerError, ValidationError
from connectpay_console.http_client import HttpClient

API = "https://api.example.com"


@responses.activate
def test_get_retries_server_errors_then_succeeds(http: HttpClient) -> None:
    responses.add(responses.GET, f"{API}/api/users/management", json={"message": "busy"}, status=503)
    responses.add(responses.GET, f"{API}/api/users/management", json={"items": []}, status=200)

    payload = http.request("GET", "/api/users/management", module="users", operation="users.list")

    assert payload == {"items": []}
    assert len(responses.calls) == 2
    assert http.last_operation is not None
    assert http.last_operation.result == "success"
    assert http.last_operation.operation == "users.list"


@responses.activate
def test_mutations_are_never_retried(http: HttpClient) -> None:
    responses.add(responses.POST, f"{API}/ledger/debit", json={"message": "ledger down"}, status=500)

    with pytest.raises(ServerError):
        http.request("POST", "/ledger/debit", json_body={"amount": "10"})

    assert len(responses.calls) == 1


@responses.activate
def test_transport_failure_becomes_network_error(http: HttpClient) -> None:
    for _ in range(3):
        responses.add(responses.GET, f"{API}/api/dashboard/stats", body=requests.ConnectionError("refused"))

    with pytest.raises(NetworkError) as excinfo:
        http.request("GET", "/api/dashboard/stats")

    assert excinfo.value.code == "NETWORK_ERROR"
    assert excinfo.value.status_code == 0
    assert len(responses.calls) == 3


@responses.activate
def test_auth_header_and_trace_id_are_carried(http: HttpClient) -> None:
    responses.add(
        responses.GET,
        f"{API}/api/admin/profile",
        json={"message": "Token expired"},
        status=401,
        headers={"X-Request-ID": "req-42"},
        match=[matchers.header_matcher({"Authorization": "Bearer tkn"})],
    )

    with pytest.raises(AuthError) as excinfo:
        http.request("GET", "/api/admin/profile", headers={"Authorization": "Bearer tkn"})

    assert excinfo.value.trace_id == "req-42"
    assert len(responses.calls) == 1


@responses.activate
def test_unstructured_error_body_maps_to_network_error(http: HttpClient) -> None:
    responses.add(responses.GET, f"{API}/api/services/stats", body="<html>gateway</html>", status=502)

    with pytest.raises(NetworkError):
        http.request("GET", "/api/services/stats")


@responses.activate
def test_validation_error_and_empty_success(http: HttpClient) -> None:
    responses.add(responses.POST, f"{API}/ledger/credit", json={"message": "Amount too large"}, status=400)
    responses.add(responses.POST, f"{API}/api/users/management/bulk", body="", status=204)

    with pytest.raises(ValidationError) as excinfo:
        http.request("POST", "/ledger/credit", json_body={"amount": "1"})
    assert excinfo.value.message == "Amount too large"

    assert http.request("POST", "/api/users/management/bulk", json_body={}) is None


@responses.activate
def test_non_json_success_is_invalid_response(http: HttpClient) -> None:
    responses.add(responses.GET, f"{API}/api/admin/transactions", body="ok", status=200)

    with pytest.raises(NetworkError) as excinfo:
        http.request("GET", "/api/admin/transactions")

    assert excinfo.value.code == "INVALID_RESPONSE"

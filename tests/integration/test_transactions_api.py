"""Integration tests for transaction endpoints"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient


def _post(client: TestClient, headers: dict, **overrides) -> dict:
    payload = {
        "kind": "expense",
        "amount": "250.50",
        "category": "Food",
        "payment_method": "cash",
        "occurred_at": "2024-03-05T10:00:00",
        **overrides,
    }
    response = client.post("/v1/transactions", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _create_loan(client: TestClient, headers: dict) -> dict:
    response = client.post(
        "/v1/loans",
        json={
            "counterparty_name": "Asha",
            "role": "lent",
            "principal": "1000",
            "start_date": "2024-01-01",
            "due_date": "2024-04-01",
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_create_manual_transaction(client: TestClient, auth_headers):
    data = _post(client, auth_headers, note="Dinner")

    assert data["kind"] == "expense"
    assert Decimal(data["amount"]) == Decimal("250.50")
    assert data["origin"] == "manual"
    assert data["loan_id"] is None
    assert data["is_principal"] is False
    assert data["note"] == "Dinner"

    fetched = client.get(f"/v1/transactions/{data['id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["category"] == "Food"


@pytest.mark.parametrize(
    "override",
    [
        {"amount": "0"},
        {"amount": "-5"},
        {"kind": "transfer"},
        {"category": ""},
        {"payment_method": "   "},
    ],
)
def test_create_rejects_invalid_transaction(client: TestClient, auth_headers, override):
    payload = {"kind": "expense", "amount": "10", "category": "Food", "payment_method": "cash", **override}

    response = client.post("/v1/transactions", json=payload, headers=auth_headers)

    assert response.status_code == 422
    assert client.get("/v1/transactions", headers=auth_headers).json() == []


def test_list_filters(client: TestClient, auth_headers):
    _post(client, auth_headers, payment_method="Online")
    _post(client, auth_headers, payment_method="UPI", category="Travel")
    _post(client, auth_headers, kind="income", category="Salary", payment_method="bank")
    _post(client, auth_headers, occurred_at="2024-04-02T09:00:00")

    def listed(**params):
        response = client.get("/v1/transactions", params=params, headers=auth_headers)
        assert response.status_code == 200
        return response.json()

    assert len(listed()) == 4
    assert len(listed(payment_method="upi")) == 2
    assert len(listed(kind="income")) == 1
    assert len(listed(category="travel")) == 1
    assert len(listed(year=2024, month=3)) == 3
    assert len(listed(year=2024)) == 4
    assert listed()[0]["occurred_at"].startswith("2024-04-02")


def test_month_filter_requires_year(client: TestClient, auth_headers):
    response = client.get("/v1/transactions", params={"month": 3}, headers=auth_headers)
    assert response.status_code == 422


def test_update_manual_transaction(client: TestClient, auth_headers):
    entry_id = _post(client, auth_headers)["id"]

    response = client.put(
        f"/v1/transactions/{entry_id}",
        json={"amount": "99", "category": "Groceries"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert Decimal(response.json()["amount"]) == Decimal("99")
    assert response.json()["category"] == "Groceries"
    assert response.json()["payment_method"] == "cash"


def test_loan_entries_are_read_only(client: TestClient, auth_headers):
    entry_id = _create_loan(client, auth_headers)["entry"]["id"]

    response = client.put(f"/v1/transactions/{entry_id}", json={"amount": "5"}, headers=auth_headers)

    assert response.status_code == 422


def test_delete_manual_transaction(client: TestClient, auth_headers):
    entry_id = _post(client, auth_headers)["id"]

    response = client.delete(f"/v1/transactions/{entry_id}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Transaction deleted"
    assert client.get(f"/v1/transactions/{entry_id}", headers=auth_headers).status_code == 404


def test_delete_loan_entry_cascades_to_loan(client: TestClient, auth_headers):
    """Deleting any loan-linked entry takes the loan and its siblings with it"""
    created = _create_loan(client, auth_headers)
    loan_id = created["loan"]["id"]
    client.post(f"/v1/loans/{loan_id}/settle", json={"paid_amount": "1100"}, headers=auth_headers)
    manual_id = _post(client, auth_headers)["id"]

    response = client.delete(f"/v1/transactions/{created['entry']['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Transaction & related loan deleted"
    assert client.get(f"/v1/loans/{loan_id}", headers=auth_headers).status_code == 404

    remaining = client.get("/v1/transactions", headers=auth_headers).json()
    assert [e["id"] for e in remaining] == [manual_id]


def test_other_owner_cannot_touch_transactions(client: TestClient, auth_headers, other_headers):
    entry_id = _post(client, auth_headers)["id"]

    assert client.get(f"/v1/transactions/{entry_id}", headers=other_headers).status_code == 404
    assert client.put(f"/v1/transactions/{entry_id}", json={"amount": "1"}, headers=other_headers).status_code == 404
    assert client.delete(f"/v1/transactions/{entry_id}", headers=other_headers).status_code == 404
    assert client.get("/v1/transactions", headers=other_headers).json() == []
    assert client.get(f"/v1/transactions/{entry_id}", headers=auth_headers).status_code == 200


def test_create_rejects_sub_cent_amount(client: TestClient, auth_headers):
    payload = {"kind": "expense", "amount": "10.001", "category": "Food", "payment_method": "cash"}

    response = client.post("/v1/transactions", json=payload, headers=auth_headers)

    assert response.status_code == 422
    assert client.get("/v1/transactions", headers=auth_headers).json() == []

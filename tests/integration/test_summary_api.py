"""Integration tests for dashboard and analytics endpoints"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from finance_tracker.domain.exceptions import RatesAPIError
from finance_tracker.infrastructure.database.models import LedgerEntryRecord


def _post(client: TestClient, headers: dict, kind: str, amount: str, method: str, category: str = "General"):
    response = client.post(
        "/v1/transactions",
        json={
            "kind": kind,
            "amount": amount,
            "category": category,
            "payment_method": method,
            "occurred_at": "2024-03-10T12:00:00",
        },
        headers=headers,
    )
    assert response.status_code == 201


def _lend(client: TestClient, headers: dict, principal: str = "1000") -> str:
    response = client.post(
        "/v1/loans",
        json={
            "counterparty_name": "Asha",
            "role": "lent",
            "principal": principal,
            "start_date": "2024-03-01",
            "due_date": "2024-06-01",
        },
        headers=headers,
    )
    return response.json()["loan"]["id"]


def _summary(client: TestClient, headers: dict, **params) -> dict:
    response = client.get("/v1/summary", params={"anchor": "2024-03-15", **params}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_loan_principal_stays_out_of_summary(client: TestClient, auth_headers):
    """Salary in the bank plus 1000 lent: only the salary shows up"""
    _post(client, auth_headers, "income", "5000", "bank")
    _lend(client, auth_headers)

    data = _summary(client, auth_headers)

    assert {k: Decimal(v) for k, v in data["balances_by_method"].items()} == {"bank": Decimal("5000")}
    assert Decimal(data["total_balance"]) == Decimal("5000")
    assert Decimal(data["monthly_income"]) == Decimal("5000")
    assert Decimal(data["monthly_expense"]) == Decimal("0")
    assert Decimal(data["loan_exposure"]["total_lent"]) == Decimal("1000")
    assert data["currency"] == "INR"


def test_summary_merges_payment_method_synonyms(client: TestClient, auth_headers):
    _post(client, auth_headers, "income", "300", "Online")
    _post(client, auth_headers, "expense", "100", "UPI")

    data = _summary(client, auth_headers)

    assert list(data["balances_by_method"]) == ["upi"]
    assert Decimal(data["balances_by_method"]["upi"]) == Decimal("200")


def test_summary_refreshes_after_changes(client: TestClient, auth_headers):
    """Cached summaries are dropped when the owner's data changes"""
    _post(client, auth_headers, "income", "100", "cash")
    assert Decimal(_summary(client, auth_headers)["total_balance"]) == Decimal("100")

    _post(client, auth_headers, "expense", "40", "cash")
    assert Decimal(_summary(client, auth_headers)["total_balance"]) == Decimal("60")

    loan_id = _lend(client, auth_headers)
    assert Decimal(_summary(client, auth_headers)["loan_exposure"]["total_lent"]) == Decimal("1000")

    client.post(f"/v1/loans/{loan_id}/settle", json={"paid_amount": "1200"}, headers=auth_headers)
    data = _summary(client, auth_headers)
    assert Decimal(data["loan_exposure"]["total_lent"]) == Decimal("0")


def test_summary_is_per_owner(client: TestClient, auth_headers, other_headers):
    _post(client, auth_headers, "income", "100", "cash")
    _summary(client, auth_headers)

    data = _summary(client, other_headers)

    assert data["balances_by_method"] == {}
    assert Decimal(data["total_balance"]) == Decimal("0")


@patch("finance_tracker.infrastructure.clients.rates.RatesClient.get_rate", new_callable=AsyncMock)
def test_summary_display_currency(mock_rate: AsyncMock, client: TestClient, auth_headers):
    mock_rate.return_value = Decimal("0.012")
    _post(client, auth_headers, "income", "5000", "bank")

    data = _summary(client, auth_headers, display_currency="usd")

    assert data["currency"] == "USD"
    assert Decimal(data["monthly_income"]) == Decimal("60.00")
    assert Decimal(data["balances_by_method"]["bank"]) == Decimal("60.00")
    mock_rate.assert_awaited_once_with("INR", "USD")

    # stored amounts are untouched
    assert Decimal(_summary(client, auth_headers)["monthly_income"]) == Decimal("5000")


@patch("finance_tracker.infrastructure.clients.rates.RatesClient.get_rate", new_callable=AsyncMock)
def test_summary_rates_unavailable(mock_rate: AsyncMock, client: TestClient, auth_headers):
    mock_rate.side_effect = RatesAPIError("Rates API timeout after 5.0s")

    response = client.get(
        "/v1/summary",
        params={"anchor": "2024-03-15", "display_currency": "USD"},
        headers=auth_headers,
    )

    assert response.status_code == 503


def test_monthly_breakdown(client: TestClient, auth_headers):
    _post(client, auth_headers, "income", "5000", "bank")
    _post(client, auth_headers, "investment", "700", "bank")
    _lend(client, auth_headers)

    response = client.get("/v1/analytics/monthly", params={"year": 2024}, headers=auth_headers)

    assert response.status_code == 200
    months = response.json()["months"]
    assert len(months) == 12
    assert Decimal(months[2]["income"]) == Decimal("5000")
    assert Decimal(months[2]["investment"]) == Decimal("700")
    assert all(Decimal(m["expense"]) == Decimal("0") for m in months)


def test_category_breakdown(client: TestClient, auth_headers):
    _post(client, auth_headers, "expense", "100", "cash", category="Food")
    _post(client, auth_headers, "expense", "300", "cash", category="Rent")
    _post(client, auth_headers, "expense", "50", "upi", category="Food")
    _lend(client, auth_headers)

    response = client.get("/v1/analytics/categories", params={"year": 2024, "month": 3}, headers=auth_headers)

    assert response.status_code == 200
    categories = response.json()["categories"]
    assert list(categories) == ["Rent", "Food"]
    assert Decimal(categories["Food"]) == Decimal("150")


def test_unreadable_amount_is_left_out_of_reads(client: TestClient, db, auth_headers):
    """One entry whose ciphertext no longer decrypts must not take the dashboard down"""
    payload = {"kind": "income", "category": "Salary", "occurred_at": "2024-03-10T12:00:00"}
    broken = client.post(
        "/v1/transactions", json={**payload, "amount": "100", "payment_method": "bank"}, headers=auth_headers
    ).json()["id"]
    client.post("/v1/transactions", json={**payload, "amount": "50", "payment_method": "cash"}, headers=auth_headers)

    db.query(LedgerEntryRecord).filter(LedgerEntryRecord.id == uuid.UUID(broken)).update(
        {LedgerEntryRecord.amount: "enc1:corrupted"}, synchronize_session=False
    )
    db.commit()
    db.expire_all()

    data = _summary(client, auth_headers)
    assert Decimal(data["total_balance"]) == Decimal("50")
    assert {k: Decimal(v) for k, v in data["balances_by_method"].items()} == {"cash": Decimal("50")}

    listed = client.get("/v1/transactions", headers=auth_headers)
    assert listed.status_code == 200
    assert [Decimal(e["amount"]) for e in listed.json()] == [Decimal("50")]

    monthly = client.get("/v1/analytics/monthly", params={"year": 2024}, headers=auth_headers)
    assert monthly.status_code == 200

    assert client.delete(f"/v1/transactions/{broken}", headers=auth_headers).status_code == 200
    assert db.query(LedgerEntryRecord).filter(LedgerEntryRecord.id == uuid.UUID(broken)).count() == 0

"""Integration tests for API endpoints"""

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient


@pytest.fixture
def client_id(client: TestClient, auth_headers: dict) -> str:
    response = client.post(
        "/v1/clients",
        json={"name": "Maria Souza", "phone": "555-0101"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


def create_loan(client: TestClient, headers: dict, client_id: str, **overrides) -> dict:
    body = {
        "principal": 1000,
        "start_date": "2024-01-01",
        "interest_mode": "percentage",
        "interest_value": 1,
        "term_days": 30,
        "daily_installment": 43.33,
    }
    body.update(overrides)
    response = client.post(f"/v1/clients/{client_id}/loans", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "loan_tracker_payments_recorded_total" in response.text


def test_request_id_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_requires_bearer_token(client: TestClient):
    assert client.get("/v1/clients").status_code == 401
    assert client.get("/v1/clients", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/v1/dashboard", headers={"Authorization": "Basic abc"}).status_code == 401


def test_auth_flow(client: TestClient, auth_headers: dict):
    """Login issues a new token, logout revokes it"""
    response = client.post("/v1/auth/login", json={"email": "lender@example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    headers = {"Authorization": f"Bearer {response.json()['token']}"}

    assert client.post("/v1/auth/logout", headers=headers).status_code == 200
    assert client.get("/v1/clients", headers=headers).status_code == 401
    assert client.get("/v1/clients", headers=auth_headers).status_code == 200


def test_login_wrong_password(client: TestClient, auth_headers: dict):
    response = client.post("/v1/auth/login", json={"email": "lender@example.com", "password": "wrong-pass"})
    assert response.status_code == 401


def test_register_short_password(client: TestClient):
    response = client.post("/v1/auth/register", json={"email": "x@example.com", "password": "123"})
    assert response.status_code == 422


@patch("loan_tracker.infrastructure.clients.notifier.PasswordResetNotifier.send_password_reset", new_callable=AsyncMock)
def test_password_reset(mock_send: AsyncMock, client: TestClient, auth_headers: dict):
    """Reset token goes to the mail webhook; confirming it sets the new password"""
    response = client.post("/v1/auth/password-reset", json={"email": "Lender@example.com"})
    assert response.status_code == 202

    mock_send.assert_called_once()
    email, reset_token = mock_send.call_args.args
    assert email == "lender@example.com"

    response = client.post(
        "/v1/auth/password-reset/confirm",
        json={"reset_token": reset_token, "new_password": "new-pass-1"},
    )
    assert response.status_code == 200
    assert client.get("/v1/clients", headers=auth_headers).status_code == 401

    response = client.post("/v1/auth/login", json={"email": "lender@example.com", "password": "new-pass-1"})
    assert response.status_code == 200


def test_password_reset_unknown_email(client: TestClient):
    response = client.post("/v1/auth/password-reset", json={"email": "nobody@example.com"})
    assert response.status_code == 404


def test_clients_crud(client: TestClient, auth_headers: dict, client_id: str):
    client.post("/v1/clients", json={"name": "Bruno Lima"}, headers=auth_headers)

    response = client.get("/v1/clients", headers=auth_headers)
    assert [c["name"] for c in response.json()] == ["Bruno Lima", "Maria Souza"]

    response = client.get("/v1/clients", params={"q": "mar"}, headers=auth_headers)
    assert [c["id"] for c in response.json()] == [client_id]

    response = client.put(
        f"/v1/clients/{client_id}",
        json={"name": "Maria S. Souza", "address": "Rua A, 10"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["address"] == "Rua A, 10"
    assert response.json()["phone"] == ""


def test_create_client_blank_name(client: TestClient, auth_headers: dict):
    response = client.post("/v1/clients", json={"name": "  "}, headers=auth_headers)
    assert response.status_code == 422


def test_clients_isolated_between_accounts(client: TestClient, client_id: str):
    response = client.post("/v1/auth/register", json={"email": "other@example.com", "password": "other-pass"})
    other = {"Authorization": f"Bearer {response.json()['token']}"}

    assert client.get("/v1/clients", headers=other).json() == []
    assert client.get(f"/v1/clients/{client_id}/loans", headers=other).status_code == 404


def test_create_loan_derives_totals(client: TestClient, auth_headers: dict, client_id: str):
    loan = create_loan(client, auth_headers, client_id)

    assert loan["total_amount"] == pytest.approx(1300)
    assert loan["remaining_balance"] == pytest.approx(1300)
    assert loan["total_paid"] == 0
    assert loan["status"] == "active"
    assert loan["end_date"] == "2024-01-31"

    loans = client.get(f"/v1/clients/{client_id}/loans", headers=auth_headers).json()
    assert [item["id"] for item in loans] == [loan["id"]]


def test_create_loan_invalid(client: TestClient, auth_headers: dict, client_id: str):
    response = client.post(
        f"/v1/clients/{client_id}/loans",
        json={"principal": 1000, "start_date": "2024-01-01", "interest_value": 1, "term_days": 30},
        headers=auth_headers,
    )
    assert response.status_code == 422
    assert "daily_installment" in response.json()["detail"]


def test_create_loan_unknown_client(client: TestClient, auth_headers: dict):
    response = client.post(
        "/v1/clients/missing/loans",
        json={"principal": 1000, "start_date": "2024-01-01", "interest_value": 1, "term_days": 30, "daily_installment": 40},
        headers=auth_headers,
    )
    assert response.status_code == 404


def test_quote(client: TestClient, auth_headers: dict):
    response = client.post(
        "/v1/loans/quote",
        json={"principal": 500, "interest_mode": "flat", "interest_value": 10, "term_days": 20},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"total_amount": 700.0, "suggested_daily_installment": 35.0}


def test_payment_updates_loan_and_locks_terms(client: TestClient, auth_headers: dict, client_id: str):
    loan = create_loan(client, auth_headers, client_id)
    payments_url = f"/v1/clients/{client_id}/loans/{loan['id']}/payments"

    response = client.post(payments_url, json={"payment_date": "2024-01-10", "amount": 300}, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["payment_date"] == "2024-01-10"

    response = client.put(
        f"/v1/clients/{client_id}/loans/{loan['id']}",
        json={"principal": 5000, "notes": "agreed to pay weekly"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["principal"] == 1000
    assert updated["total_paid"] == pytest.approx(300)
    assert updated["remaining_balance"] == pytest.approx(1000)
    assert updated["notes"] == "agreed to pay weekly"

    payments = client.get(payments_url, headers=auth_headers).json()
    assert [p["amount"] for p in payments] == [300]


def test_payment_invalid_amount(client: TestClient, auth_headers: dict, client_id: str):
    loan = create_loan(client, auth_headers, client_id)
    response = client.post(
        f"/v1/clients/{client_id}/loans/{loan['id']}/payments",
        json={"payment_date": "2024-01-10", "amount": 0},
        headers=auth_headers,
    )
    assert response.status_code == 422


def test_payment_unknown_loan(client: TestClient, auth_headers: dict, client_id: str):
    response = client.post(
        f"/v1/clients/{client_id}/loans/missing/payments",
        json={"payment_date": "2024-01-10", "amount": 10},
        headers=auth_headers,
    )
    assert response.status_code == 404


def test_payment_settles_loan(client: TestClient, auth_headers: dict, client_id: str):
    loan = create_loan(client, auth_headers, client_id, principal=500, interest_mode="flat", interest_value=10, term_days=20)
    client.post(
        f"/v1/clients/{client_id}/loans/{loan['id']}/payments",
        json={"payment_date": "2024-01-15", "amount": 700},
        headers=auth_headers,
    )

    loans = client.get(f"/v1/clients/{client_id}/loans", headers=auth_headers).json()
    assert loans[0]["status"] == "settled"
    assert loans[0]["remaining_balance"] == pytest.approx(0)


def test_dashboard(client: TestClient, auth_headers: dict, client_id: str):
    create_loan(client, auth_headers, client_id)

    response = client.get("/v1/dashboard", params={"today": "2024-01-15"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["active_principal_outstanding"] == pytest.approx(1000)
    assert data["due_today_total"] == pytest.approx(43.33)
    assert data["counts_by_status"] == {"active": 1, "overdue": 0, "settled": 0}
    assert data["due_today"][0]["client_name"] == "Maria Souza"
    assert data["overdue_list"] == []


def test_dashboard_bad_date(client: TestClient, auth_headers: dict):
    response = client.get("/v1/dashboard", params={"today": "15-01-2024"}, headers=auth_headers)
    assert response.status_code == 422


def test_period_report(client: TestClient, auth_headers: dict, client_id: str):
    """Disbursed 1500 and received 700 in January -> net -800"""
    first = create_loan(client, auth_headers, client_id)
    second = create_loan(
        client, auth_headers, client_id, principal=500, start_date="2024-01-20", interest_mode="flat", interest_value=10, term_days=20
    )
    for loan, day, amount in [(first, "2024-01-10", 300), (second, "2024-01-31", 400), (second, "2024-02-02", 99)]:
        client.post(
            f"/v1/clients/{client_id}/loans/{loan['id']}/payments",
            json={"payment_date": day, "amount": amount},
            headers=auth_headers,
        )

    response = client.get("/v1/reports/period", params={"start": "2024-01-01", "end": "2024-01-31"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["principal_disbursed"] == pytest.approx(1500)
    assert data["amount_received"] == pytest.approx(700)
    assert data["net"] == pytest.approx(-800)


def test_client_report(client: TestClient, auth_headers: dict, client_id: str):
    loan = create_loan(client, auth_headers, client_id)
    client.post(
        f"/v1/clients/{client_id}/loans/{loan['id']}/payments",
        json={"payment_date": "2024-01-10", "amount": 300},
        headers=auth_headers,
    )

    data = client.get(f"/v1/reports/clients/{client_id}", headers=auth_headers).json()

    assert data == {
        "client_id": client_id,
        "lifetime_disbursed": 1000.0,
        "lifetime_received": 300.0,
        "current_balance": 1000.0,
    }
    assert client.get("/v1/reports/clients/missing", headers=auth_headers).status_code == 404

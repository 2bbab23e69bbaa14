from datetime import date

import pytest

from tests.conftest import category_id


@pytest.fixture
def salary(client, auth):
    resp = client.post(
        "/api/v1/recurring-incomes",
        json={"name": "Salário", "amount": 5000, "day_of_month": 5, "start_date": "2024-01-01",
              "category_id": category_id(client, auth, "Salário", "INCOME")},
        headers=auth,
    )
    assert resp.status_code == 201
    return resp.get_json()


class TestRecurringIncomes:
    """Tests for recurring incomes and their apply actions."""

    def test_created_active(self, salary):
        assert salary["active"] is True
        assert salary["day_of_month"] == 5

    def test_create_all_transactions_skips_inactive(self, client, auth, salary):
        other = client.post(
            "/api/v1/recurring-incomes",
            json={"name": "Aluguel recebido", "amount": 800, "day_of_month": 10, "start_date": "2024-01-01",
                  "active": False},
            headers=auth,
        ).get_json()
        assert other["active"] is False

        resp = client.post("/api/v1/recurring-incomes/create-all-transactions", headers=auth)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["created"] == 1
        tx = body["transactions"][0]
        assert tx["type"] == "INCOME"
        assert tx["amount"] == 5000
        assert tx["date"] == date.today().isoformat()
        assert tx["category"]["name"] == "Salário"

    def test_create_transaction_from_item(self, client, auth, salary):
        resp = client.post(f"/api/v1/recurring-incomes/{salary['id']}/create-transaction", headers=auth)
        assert resp.status_code == 201
        assert resp.get_json()["description"] == "Salário"

    def test_inactive_item_cannot_create_transaction(self, client, auth, salary):
        client.put(f"/api/v1/recurring-incomes/{salary['id']}", json={"active": False}, headers=auth)
        resp = client.post(f"/api/v1/recurring-incomes/{salary['id']}/create-transaction", headers=auth)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Este item está inativo"

    def test_invalid_day_of_month(self, client, auth):
        resp = client.post(
            "/api/v1/recurring-incomes",
            json={"name": "X", "amount": 1, "day_of_month": 32, "start_date": "2024-01-01"},
            headers=auth,
        )
        assert resp.status_code == 400

    def test_end_before_start_rejected(self, client, auth):
        resp = client.post(
            "/api/v1/recurring-incomes",
            json={"name": "X", "amount": 1, "day_of_month": 1, "start_date": "2024-05-01", "end_date": "2024-01-01"},
            headers=auth,
        )
        assert resp.status_code == 400


class TestRecurringExpenses:
    def test_expense_without_category_uses_fallback(self, client, auth):
        item = client.post(
            "/api/v1/recurring-expenses",
            json={"name": "Internet", "amount": 99.9, "day_of_month": 15, "start_date": "2024-01-01"},
            headers=auth,
        ).get_json()
        resp = client.post(f"/api/v1/recurring-expenses/{item['id']}/create-transaction", headers=auth)
        tx = resp.get_json()
        assert tx["type"] == "EXPENSE"
        assert tx["category"]["name"] == "Não especificado"

    def test_delete(self, client, auth):
        item = client.post(
            "/api/v1/recurring-expenses",
            json={"name": "Internet", "amount": 99.9, "day_of_month": 15, "start_date": "2024-01-01"},
            headers=auth,
        ).get_json()
        assert client.delete(f"/api/v1/recurring-expenses/{item['id']}", headers=auth).status_code == 204
        assert client.get("/api/v1/recurring-expenses", headers=auth).get_json() == []

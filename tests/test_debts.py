"""Debt lifecycle: OPEN / OVERDUE / PAID and the generated payment transaction."""

from datetime import date, timedelta

import pytest

from tests.conftest import category_id


def iso(days):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def make_debt(client, auth):
    def _make(due_in=10, **extra):
        payload = {"creditor_name": "Banco", "total_amount": 300, "start_date": iso(-30), "due_date": iso(due_in)}
        payload.update(extra)
        resp = client.post("/api/v1/debts", json=payload, headers=auth)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    return _make


class TestDebtStatus:
    """Tests for status derivation."""

    def test_future_debt_is_open(self, make_debt):
        assert make_debt(due_in=5)["status"] == "OPEN"

    def test_due_today_is_still_open(self, make_debt):
        assert make_debt(due_in=0)["status"] == "OPEN"

    def test_past_debt_is_overdue(self, make_debt):
        assert make_debt(due_in=-1)["status"] == "OVERDUE"

    def test_list_reports_overdue_even_if_stored_open(self, app, client, auth, make_debt):
        debt = make_debt(due_in=5)
        # simulate time passing by moving the due date behind the stored status
        with app.app_context():
            from xfin import db

            db.execute_db("UPDATE debts SET due_date=? WHERE id=?", (iso(-3), debt["id"]))

        listed = client.get("/api/v1/debts", headers=auth).get_json()
        assert listed[0]["status"] == "OVERDUE"

    def test_list_order_overdue_first(self, client, auth, make_debt):
        make_debt(due_in=20, creditor_name="Later")
        make_debt(due_in=-2, creditor_name="Late")
        make_debt(due_in=3, creditor_name="Soon")
        names = [d["creditor_name"] for d in client.get("/api/v1/debts", headers=auth).get_json()]
        assert names == ["Late", "Soon", "Later"]


class TestDebtPayment:
    """Tests for mark-paid / unmark-paid."""

    def test_mark_paid_creates_expense(self, client, auth, make_debt):
        debt = make_debt()
        resp = client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        assert resp.status_code == 200
        paid = resp.get_json()
        assert paid["status"] == "PAID"
        assert paid["paid_at"]
        assert paid["transaction_id"]

        txs = client.get("/api/v1/transactions", headers=auth).get_json()
        assert len(txs) == 1
        assert txs[0]["type"] == "EXPENSE"
        assert txs[0]["amount"] == 300
        assert txs[0]["description"] == "Pagamento de dívida: Banco"
        assert txs[0]["category"]["name"] == "Não especificado"

    def test_mark_paid_uses_debt_category(self, client, auth, make_debt):
        housing = category_id(client, auth, "Moradia", "EXPENSE")
        debt = make_debt(category_id=housing)
        client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        txs = client.get("/api/v1/transactions", headers=auth).get_json()
        assert txs[0]["category_id"] == housing

    def test_mark_paid_twice_rejected(self, client, auth, make_debt):
        debt = make_debt()
        client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        resp = client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        assert resp.status_code == 400
        assert len(client.get("/api/v1/transactions", headers=auth).get_json()) == 1

    def test_unmark_restores_status_and_removes_transaction(self, client, auth, make_debt):
        debt = make_debt(due_in=-4)
        client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        resp = client.patch(f"/api/v1/debts/{debt['id']}/unmark-paid", headers=auth)
        assert resp.status_code == 200
        reopened = resp.get_json()
        assert reopened["status"] == "OVERDUE"
        assert reopened["paid_at"] is None
        assert reopened["transaction_id"] is None
        assert client.get("/api/v1/transactions", headers=auth).get_json() == []

    def test_unmark_open_debt_rejected(self, client, auth, make_debt):
        debt = make_debt()
        resp = client.patch(f"/api/v1/debts/{debt['id']}/unmark-paid", headers=auth)
        assert resp.status_code == 400

    def test_paid_debt_cannot_be_edited(self, client, auth, make_debt):
        debt = make_debt()
        client.patch(f"/api/v1/debts/{debt['id']}/mark-paid", headers=auth)
        resp = client.put(f"/api/v1/debts/{debt['id']}", json={"total_amount": 10}, headers=auth)
        assert resp.status_code == 400


class TestDebtCrud:
    def test_update_due_date_recomputes_status(self, client, auth, make_debt):
        debt = make_debt(due_in=5)
        resp = client.put(f"/api/v1/debts/{debt['id']}", json={"due_date": iso(-1)}, headers=auth)
        assert resp.get_json()["status"] == "OVERDUE"

    def test_income_category_rejected(self, client, auth, make_debt):
        salary = category_id(client, auth, "Salário", "INCOME")
        resp = client.post(
            "/api/v1/debts",
            json={"creditor_name": "X", "total_amount": 1, "start_date": iso(0), "due_date": iso(1),
                  "category_id": salary},
            headers=auth,
        )
        assert resp.status_code == 400

    def test_delete(self, client, auth, make_debt):
        debt = make_debt()
        assert client.delete(f"/api/v1/debts/{debt['id']}", headers=auth).status_code == 204
        assert client.get(f"/api/v1/debts/{debt['id']}", headers=auth).status_code == 404

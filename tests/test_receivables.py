from datetime import date, timedelta

import pytest


def iso(days):
    return (date.today() + timedelta(days=days)).isoformat()


@pytest.fixture
def receivable(client, auth):
    resp = client.post(
        "/api/v1/receivables",
        json={"debtor_name": "João", "total_amount": 120.5, "due_date": iso(3)},
        headers=auth,
    )
    assert resp.status_code == 201
    return resp.get_json()


class TestReceivables:
    """Tests for the receivable lifecycle."""

    def test_created_open(self, receivable):
        assert receivable["status"] == "OPEN"
        assert receivable["received_at"] is None

    def test_mark_received_creates_income(self, client, auth, receivable):
        resp = client.patch(f"/api/v1/receivables/{receivable['id']}/mark-received", headers=auth)
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "RECEIVED"

        txs = client.get("/api/v1/transactions", headers=auth).get_json()
        assert [(t["type"], t["amount"]) for t in txs] == [("INCOME", 120.5)]
        assert txs[0]["description"] == "Recebimento: João"

    def test_mark_received_twice_rejected(self, client, auth, receivable):
        client.patch(f"/api/v1/receivables/{receivable['id']}/mark-received", headers=auth)
        resp = client.patch(f"/api/v1/receivables/{receivable['id']}/mark-received", headers=auth)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Este recebível já está marcado como recebido"

    def test_unmark_received(self, client, auth, receivable):
        client.patch(f"/api/v1/receivables/{receivable['id']}/mark-received", headers=auth)
        resp = client.patch(f"/api/v1/receivables/{receivable['id']}/unmark-received", headers=auth)
        assert resp.get_json()["status"] == "OPEN"
        assert client.get("/api/v1/transactions", headers=auth).get_json() == []

    def test_overdue_on_create(self, client, auth):
        resp = client.post(
            "/api/v1/receivables",
            json={"debtor_name": "Maria", "total_amount": 50, "due_date": iso(-10)},
            headers=auth,
        )
        assert resp.get_json()["status"] == "OVERDUE"

    def test_missing_fields(self, client, auth):
        resp = client.post("/api/v1/receivables", json={"debtor_name": "Maria"}, headers=auth)
        assert resp.status_code == 400

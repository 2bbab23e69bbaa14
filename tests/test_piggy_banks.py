import pytest


@pytest.fixture
def piggy(client, auth):
    resp = client.post(
        "/api/v1/piggy-banks",
        json={"name": "Viagem", "target_amount": 1000, "amount_per_period": 100, "period_type": "month"},
        headers=auth,
    )
    assert resp.status_code == 201
    return resp.get_json()


def move(client, auth, piggy_id, amount, kind, description=None):
    return client.post(
        f"/api/v1/piggy-banks/{piggy_id}/transactions",
        json={"amount": amount, "type": kind, "description": description},
        headers=auth,
    )


class TestPiggyBanks:
    """Tests for piggy-bank balances and movements."""

    def test_created_empty(self, piggy):
        assert piggy["current_amount"] == 0
        assert piggy["period_type"] == "MONTH"
        assert piggy["transactions"] == []

    def test_deposit_and_withdraw(self, client, auth, piggy):
        assert move(client, auth, piggy["id"], 300, "DEPOSIT").status_code == 201
        assert move(client, auth, piggy["id"], 50, "WITHDRAWAL").status_code == 201
        current = client.get(f"/api/v1/piggy-banks/{piggy['id']}", headers=auth).get_json()
        assert current["current_amount"] == 250
        assert current["progress_percent"] == 25.0
        assert [t["type"] for t in current["transactions"]] == ["WITHDRAWAL", "DEPOSIT"]

    def test_overdraw_rejected_and_balance_untouched(self, client, auth, piggy):
        move(client, auth, piggy["id"], 40, "DEPOSIT")
        resp = move(client, auth, piggy["id"], 41, "WITHDRAWAL")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Saldo insuficiente na caixinha"
        current = client.get(f"/api/v1/piggy-banks/{piggy['id']}", headers=auth).get_json()
        assert current["current_amount"] == 40
        assert len(current["transactions"]) == 1

    def test_list_previews_five_latest(self, client, auth, piggy):
        for amount in range(1, 8):
            move(client, auth, piggy["id"], amount, "DEPOSIT")
        listed = client.get("/api/v1/piggy-banks", headers=auth).get_json()
        assert len(listed[0]["transactions"]) == 5
        assert listed[0]["transactions"][0]["amount"] == 7

        history = client.get(f"/api/v1/piggy-banks/{piggy['id']}/transactions", headers=auth).get_json()
        assert len(history) == 7

    def test_current_amount_not_editable(self, client, auth, piggy):
        resp = client.put(
            f"/api/v1/piggy-banks/{piggy['id']}", json={"current_amount": 999, "name": "Praia"}, headers=auth
        )
        assert resp.status_code == 200
        assert resp.get_json()["current_amount"] == 0
        assert resp.get_json()["name"] == "Praia"

    def test_invalid_period_type(self, client, auth):
        resp = client.post(
            "/api/v1/piggy-banks", json={"name": "X", "amount_per_period": 10, "period_type": "YEAR"}, headers=auth
        )
        assert resp.status_code == 400

    def test_delete(self, client, auth, piggy):
        assert client.delete(f"/api/v1/piggy-banks/{piggy['id']}", headers=auth).status_code == 204
        assert client.get(f"/api/v1/piggy-banks/{piggy['id']}", headers=auth).status_code == 404

    def test_withdraw_whole_balance(self, client, auth, piggy):
        move(client, auth, piggy["id"], 40.1, "DEPOSIT")
        resp = move(client, auth, piggy["id"], 40.1, "WITHDRAWAL")
        assert resp.status_code == 201
        current = client.get(f"/api/v1/piggy-banks/{piggy['id']}", headers=auth).get_json()
        assert current["current_amount"] == 0

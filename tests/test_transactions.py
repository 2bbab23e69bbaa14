import pytest

from xfin.errors import ValidationError
from xfin.transactions import installment_dates, split_installments
from tests.conftest import category_id


@pytest.fixture
def food(client, auth):
    return category_id(client, auth, "Alimentação", "EXPENSE")


def create(client, auth, **payload):
    return client.post("/api/v1/transactions", json=payload, headers=auth)


class TestInstallmentMath:
    def test_split_sums_to_total(self):
        shares = split_installments(100.0, 3)
        assert len(shares) == 3
        assert round(sum(shares), 2) == 100.0
        assert shares == [33.34, 33.33, 33.33]

    def test_small_amount_over_many_installments(self):
        shares = split_installments(1.2, 120)
        assert shares == [0.01] * 120
        assert all(share > 0 for share in shares)

    def test_leftover_cents_go_on_first_share(self):
        shares = split_installments(1.0, 3)
        assert shares == [0.34, 0.33, 0.33]

    def test_more_installments_than_cents_rejected(self):
        with pytest.raises(ValidationError):
            split_installments(1.0, 120)

    def test_dates_clamp_to_month_end(self):
        from datetime import date

        dates = installment_dates(date(2024, 1, 31), 3)
        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]


class TestTransactions:
    """Tests for the transactions endpoints."""

    def test_create_simple(self, client, auth, food):
        resp = create(client, auth, type="EXPENSE", amount="25,50", date="2024-05-10", category_id=food,
                      description="Padaria", payment_method="pix")
        assert resp.status_code == 201
        tx = resp.get_json()
        assert tx["amount"] == 25.5
        assert tx["payment_method"] == "PIX"
        assert tx["category"]["name"] == "Alimentação"
        assert tx["is_installment"] is False

    def test_installments_create_n_rows(self, client, auth, food):
        resp = create(client, auth, type="EXPENSE", amount=1000, date="2024-01-15", category_id=food,
                      is_installment=True, installments_total=3)
        assert resp.status_code == 201
        head = resp.get_json()
        assert head["installment_index"] == 1

        rows = client.get("/api/v1/transactions", headers=auth).get_json()
        assert len(rows) == 3
        assert round(sum(r["amount"] for r in rows), 2) == 1000
        assert sorted(r["date"] for r in rows) == ["2024-01-15", "2024-02-15", "2024-03-15"]
        assert all(r["parent_id"] == head["id"] for r in rows if r["id"] != head["id"])

    def test_deleting_installment_head_removes_all(self, client, auth, food):
        head = create(client, auth, type="EXPENSE", amount=90, date="2024-01-15", category_id=food,
                      is_installment=True, installments_total=3).get_json()
        resp = client.delete(f"/api/v1/transactions/{head['id']}", headers=auth)
        assert resp.status_code == 204
        assert client.get("/api/v1/transactions", headers=auth).get_json() == []

    def test_category_type_must_match(self, client, auth, food):
        resp = create(client, auth, type="INCOME", amount=10, date="2024-01-01", category_id=food)
        assert resp.status_code == 400

    def test_rejects_non_positive_amount(self, client, auth, food):
        resp = create(client, auth, type="EXPENSE", amount=0, date="2024-01-01", category_id=food)
        assert resp.status_code == 400

    def test_filters(self, client, auth, food):
        salary = category_id(client, auth, "Salário", "INCOME")
        create(client, auth, type="EXPENSE", amount=10, date="2024-01-05", category_id=food, is_important=True)
        create(client, auth, type="EXPENSE", amount=20, date="2024-02-05", category_id=food)
        create(client, auth, type="INCOME", amount=3000, date="2024-02-01", category_id=salary)

        by_type = client.get("/api/v1/transactions?type=INCOME", headers=auth).get_json()
        assert [t["amount"] for t in by_type] == [3000]

        by_range = client.get(
            "/api/v1/transactions?start_date=2024-02-01&end_date=2024-02-28", headers=auth
        ).get_json()
        assert len(by_range) == 2

        important = client.get("/api/v1/transactions?is_important=true", headers=auth).get_json()
        assert [t["amount"] for t in important] == [10]

    def test_update(self, client, auth, food):
        tx = create(client, auth, type="EXPENSE", amount=10, date="2024-01-05", category_id=food).get_json()
        resp = client.put(f"/api/v1/transactions/{tx['id']}", json={"amount": 15, "description": "Feira"},
                          headers=auth)
        assert resp.status_code == 200
        assert resp.get_json()["amount"] == 15
        assert resp.get_json()["description"] == "Feira"

    def test_not_found(self, client, auth):
        resp = client.delete("/api/v1/transactions/999", headers=auth)
        assert resp.status_code == 404

    def test_installments_never_negative(self, client, auth, food):
        resp = create(client, auth, type="EXPENSE", amount=1, date="2024-01-15", category_id=food,
                      is_installment=True, installments_total=100)
        assert resp.status_code == 201
        amounts = [t["amount"] for t in client.get("/api/v1/transactions", headers=auth).get_json()]
        assert len(amounts) == 100
        assert all(a > 0 for a in amounts)
        assert round(sum(amounts), 2) == 1.0

    def test_installments_smaller_than_a_cent_rejected(self, client, auth, food):
        resp = create(client, auth, type="EXPENSE", amount=1, date="2024-01-15", category_id=food,
                      is_installment=True, installments_total=120)
        assert resp.status_code == 400
        assert client.get("/api/v1/transactions", headers=auth).get_json() == []

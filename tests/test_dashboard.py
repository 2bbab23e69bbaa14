from datetime import date, timedelta

from tests.conftest import category_id


def iso(days):
    return (date.today() + timedelta(days=days)).isoformat()


class TestOnboarding:
    def test_set_initial_balance(self, client, auth):
        resp = client.post("/api/v1/onboarding/initial-balance", json={"initial_balance": "-150.5"}, headers=auth)
        assert resp.status_code == 200
        assert resp.get_json()["initial_balance"] == -150.5
        assert resp.get_json()["initial_balance_set_at"]

    def test_invalid_initial_balance(self, client, auth):
        resp = client.post("/api/v1/onboarding/initial-balance", json={"initial_balance": "abc"}, headers=auth)
        assert resp.status_code == 400


class TestDashboard:
    """Tests for the dashboard summary."""

    def test_requires_initial_balance(self, client, auth):
        resp = client.get("/api/v1/dashboard/summary", headers=auth)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Valor inicial não definido"}

    def test_empty_summary(self, client, onboarded):
        summary = client.get("/api/v1/dashboard/summary", headers=onboarded).get_json()
        assert summary["current_balance"] == 1000
        assert summary["balance_evolution"] == 0
        assert summary["pending_debts"] == []
        assert summary["month_expenses_by_category"] == []

    def test_totals(self, client, onboarded):
        h = onboarded
        food = category_id(client, h, "Alimentação", "EXPENSE")
        salary = category_id(client, h, "Salário", "INCOME")
        today = date.today().isoformat()
        client.post("/api/v1/transactions", json={"type": "INCOME", "amount": 3000, "date": today,
                                                  "category_id": salary}, headers=h)
        client.post("/api/v1/transactions", json={"type": "EXPENSE", "amount": 200, "date": today,
                                                  "category_id": food}, headers=h)
        # outside the current month
        client.post("/api/v1/transactions", json={"type": "EXPENSE", "amount": 100, "date": "2000-01-01",
                                                  "category_id": food}, headers=h)
        client.post("/api/v1/recurring-expenses", json={"name": "Aluguel", "amount": 900, "day_of_month": 5,
                                                        "start_date": "2024-01-01"}, headers=h)
        client.post("/api/v1/recurring-incomes", json={"name": "Bolsa", "amount": 400, "day_of_month": 5,
                                                       "start_date": "2024-01-01"}, headers=h)

        summary = client.get("/api/v1/dashboard/summary", headers=h).get_json()
        assert summary["total_income"] == 3000
        assert summary["total_expenses"] == 300
        assert summary["current_balance"] == 3700
        assert summary["balance_evolution"] == 2700
        assert summary["month_income"] == 3000
        assert summary["month_expense"] == 200
        assert summary["total_recurring_income"] == 400
        assert summary["total_recurring_expense"] == 900
        assert summary["month_projection"] == 3000 + 400 - 200 - 900
        assert summary["month_expenses_by_category"] == [
            {"category_id": food, "category_name": "Alimentação", "total": 200.0, "percent": 100.0}
        ]

    def test_obligations(self, client, onboarded):
        h = onboarded
        for name, due in [("A", 0), ("B", -2), ("C", 5)]:
            client.post("/api/v1/debts", json={"creditor_name": name, "total_amount": 100, "start_date": iso(-30),
                                               "due_date": iso(due)}, headers=h)
        paid = client.post("/api/v1/debts", json={"creditor_name": "Paid", "total_amount": 50,
                                                  "start_date": iso(-30), "due_date": iso(0)}, headers=h).get_json()
        client.patch(f"/api/v1/debts/{paid['id']}/mark-paid", headers=h)
        client.post("/api/v1/receivables", json={"debtor_name": "R", "total_amount": 70, "due_date": iso(0)},
                    headers=h)

        summary = client.get("/api/v1/dashboard/summary", headers=h).get_json()
        assert summary["total_debts"] == 300
        assert summary["total_receivables"] == 70
        assert [d["creditor_name"] for d in summary["pending_debts"]] == ["B", "A", "C"]
        assert summary["pending_debts"][0]["status"] == "OVERDUE"
        due_today = {(item["kind"], item.get("creditor_name") or item.get("debtor_name")) for item in summary["due_today"]}
        assert due_today == {("DEBT", "A"), ("RECEIVABLE", "R")}
        # paying the debt moved money out of the balance
        assert summary["current_balance"] == 950

# xfin/dashboard.py
import pandas as pd
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from . import db
from .debts import debts
from .errors import ValidationError
from .receivables import receivables
from .utils import current_user_id, today

dashboard_bp = Blueprint("dashboard", __name__)

PENDING_LIMIT = 5


def _total(query, args):
    row = db.query_db(query, args, one=True)
    return round(float(row["total"] or 0), 2)


def _transactions_total(user_id, tx_type, start=None, end=None):
    query = "SELECT SUM(amount) AS total FROM transactions WHERE user_id=? AND type=?"
    args = [user_id, tx_type]
    if start:
        query += " AND date >= ? AND date <= ?"
        args += [start.isoformat(), end.isoformat()]
    return _total(query, args)


def _pending(lifecycle, user_id, limit=PENDING_LIMIT):
    rows = db.query_db(
        f"""SELECT * FROM {lifecycle.table} WHERE user_id=? AND status IN ('OPEN', 'OVERDUE')
        ORDER BY due_date ASC, id ASC LIMIT ?""",
        (user_id, limit),
    )
    return [lifecycle.serializer(r) for r in rows]


def _due_today(lifecycle, user_id, kind):
    rows = db.query_db(
        f"SELECT * FROM {lifecycle.table} WHERE user_id=? AND status != ? AND due_date = ? ORDER BY id",
        (user_id, lifecycle.settled_status, today().isoformat()),
    )
    return [dict(lifecycle.serializer(r), kind=kind) for r in rows]


def month_bounds(day):
    start = day.replace(day=1)
    end = (pd.Timestamp(start) + pd.offsets.MonthEnd(0)).date()
    return start, end


def expenses_by_category(user_id, start, end):
    rows = db.query_db(
        """SELECT c.id AS category_id, c.name AS category_name, SUM(t.amount) AS total
        FROM transactions t JOIN categories c ON c.id = t.category_id
        WHERE t.user_id=? AND t.type='EXPENSE' AND t.date >= ? AND t.date <= ?
        GROUP BY c.id, c.name ORDER BY total DESC""",
        (user_id, start.isoformat(), end.isoformat()),
    )
    results = [dict(r) for r in rows]
    month_total = sum(float(r["total"] or 0) for r in results)
    for r in results:
        r["total"] = round(float(r["total"]), 2)
        r["percent"] = round(r["total"] / month_total * 100, 2) if month_total else 0
    return results


def get_summary(user_id):
    user = db.query_db("SELECT initial_balance FROM users WHERE id=?", (user_id,), one=True)
    if not user or user["initial_balance"] is None:
        raise ValidationError("Valor inicial não definido")

    # statuses must be current before the open/overdue aggregates below
    debts.refresh_overdue(user_id)
    receivables.refresh_overdue(user_id)

    initial_balance = round(float(user["initial_balance"]), 2)
    total_income = _transactions_total(user_id, "INCOME")
    total_expenses = _transactions_total(user_id, "EXPENSE")
    current_balance = round(initial_balance + total_income - total_expenses, 2)

    total_debts = _total(
        "SELECT SUM(total_amount) AS total FROM debts WHERE user_id=? AND status IN ('OPEN', 'OVERDUE')", (user_id,)
    )
    total_receivables = _total(
        "SELECT SUM(total_amount) AS total FROM receivables WHERE user_id=? AND status IN ('OPEN', 'OVERDUE')",
        (user_id,),
    )

    start, end = month_bounds(today())
    month_income = _transactions_total(user_id, "INCOME", start, end)
    month_expense = _transactions_total(user_id, "EXPENSE", start, end)
    total_recurring_income = _total(
        "SELECT SUM(amount) AS total FROM recurring_incomes WHERE user_id=? AND active=1", (user_id,)
    )
    total_recurring_expense = _total(
        "SELECT SUM(amount) AS total FROM recurring_expenses WHERE user_id=? AND active=1", (user_id,)
    )

    return {
        "current_balance": current_balance,
        "initial_balance": initial_balance,
        "balance_evolution": round(current_balance - initial_balance, 2),
        "total_income": total_income,
        "total_expenses": total_expenses,
        "total_debts": total_debts,
        "total_receivables": total_receivables,
        "month_income": month_income,
        "month_expense": month_expense,
        "total_recurring_income": total_recurring_income,
        "total_recurring_expense": total_recurring_expense,
        "month_projection": round(
            month_income + total_recurring_income - month_expense - total_recurring_expense, 2
        ),
        "pending_debts": _pending(debts, user_id),
        "pending_receivables": _pending(receivables, user_id),
        "due_today": _due_today(debts, user_id, "DEBT") + _due_today(receivables, user_id, "RECEIVABLE"),
        "month_expenses_by_category": expenses_by_category(user_id, start, end),
    }


@dashboard_bp.route("/summary", methods=["GET"])
@jwt_required()
def summary_route():
    return jsonify(get_summary(current_user_id()))

# xfin/seed.py
"""Demo account with a month of sample data. Safe to run more than once."""

import logging
from datetime import timedelta

import click
from flask import current_app
from flask.cli import with_appcontext

from . import db
from .auth import hash_secret
from .utils import today

logger = logging.getLogger("xfin-backend")

DEMO_EMAIL = "demo@xfin.com"
DEMO_PASSWORD = "demo123"


def _category_id(name, cat_type):
    row = db.query_db(
        "SELECT id FROM categories WHERE name=? AND type=? AND is_default=1", (name, cat_type), one=True
    )
    return row["id"]


def seed_demo():
    """Create the demo user and its sample data. Returns False when the user already exists."""
    if db.query_db("SELECT id FROM users WHERE email=?", (DEMO_EMAIL,), one=True):
        logger.info("Demo user already exists")
        return False

    day = today()
    conn = db.get_db()
    with conn:
        user_id = conn.execute(
            "INSERT INTO users (name, email, password_hash, initial_balance, initial_balance_set_at) "
            "VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)",
            ("Usuário Demo", DEMO_EMAIL, hash_secret(DEMO_PASSWORD), 1500.0),
        ).lastrowid

        transactions = [
            ("INCOME", 5000.0, 0, "Salário", "Salário do mês", "BANK_TRANSFER"),
            ("EXPENSE", 350.75, 2, "Alimentação", "Supermercado", "CARD"),
            ("EXPENSE", 1200.0, 5, "Moradia", "Aluguel", "PIX"),
            ("EXPENSE", 89.9, 8, "Transporte", "Combustível", "CARD"),
            ("INCOME", 800.0, 12, "Freelance", "Projeto de site", "PIX"),
            ("EXPENSE", 150.0, 15, "Lazer", "Cinema e jantar", "CASH"),
        ]
        for tx_type, amount, days_ago, category, description, method in transactions:
            conn.execute(
                "INSERT INTO transactions (user_id, category_id, type, amount, date, description, payment_method) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (user_id, _category_id(category, tx_type), tx_type, amount,
                 (day - timedelta(days=days_ago)).isoformat(), description, method),
            )

        conn.execute(
            "INSERT INTO debts (user_id, creditor_name, description, total_amount, start_date, due_date, priority, "
            "status, category_id) VALUES (?, ?, ?, ?, ?, ?, 'HIGH', 'OPEN', ?)",
            (user_id, "Banco XYZ", "Empréstimo pessoal", 2000.0, (day - timedelta(days=30)).isoformat(),
             (day + timedelta(days=10)).isoformat(), _category_id("Impostos", "EXPENSE")),
        )
        conn.execute(
            "INSERT INTO receivables (user_id, debtor_name, description, total_amount, due_date, status) "
            "VALUES (?, ?, ?, ?, ?, 'OPEN')",
            (user_id, "João Silva", "Empréstimo para amigo", 500.0, (day + timedelta(days=7)).isoformat()),
        )
        conn.execute(
            "INSERT INTO wishlist_items (user_id, name, priority, estimated_price, utility_note, purchase_links) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, "Notebook novo", 5, 4500.0, "Para trabalho", '["https://example.com/notebook"]'),
        )
        conn.execute(
            "INSERT INTO wishlist_items (user_id, name, priority, estimated_price) VALUES (?, ?, ?, ?)",
            (user_id, "Fone de ouvido", 2, 300.0),
        )
        conn.execute(
            "INSERT INTO recurring_incomes (user_id, name, amount, day_of_month, start_date, category_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, "Salário", 5000.0, 5, day.replace(day=1).isoformat(), _category_id("Salário", "INCOME")),
        )
        conn.execute(
            "INSERT INTO recurring_expenses (user_id, name, amount, day_of_month, start_date, category_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (user_id, "Aluguel", 1200.0, 10, day.replace(day=1).isoformat(), _category_id("Moradia", "EXPENSE")),
        )
        conn.execute(
            "INSERT INTO piggy_banks (user_id, name, description, target_amount, amount_per_period, period_type) "
            "VALUES (?, ?, ?, ?, ?, 'MONTH')",
            (user_id, "Viagem", "Férias de fim de ano", 3000.0, 250.0),
        )
    logger.info(f"Demo user created - ID: {user_id}")
    return True


@click.command("seed-demo")
@with_appcontext
def seed_demo_command():
    """Create the demo user with sample data."""
    db.init_db()
    if seed_demo():
        click.echo(f"Demo user created: {DEMO_EMAIL} / {DEMO_PASSWORD}")
    else:
        click.echo(f"Demo user already exists in {current_app.config['DATABASE']}")


if __name__ == "__main__":
    from .app import create_app

    with create_app().app_context():
        seed_demo()

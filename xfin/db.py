# xfin/db.py
import logging
import os
import sqlite3

import click
from flask import current_app, g
from flask.cli import with_appcontext

logger = logging.getLogger("xfin-backend")

SCHEMA_FILE = os.path.join(os.path.dirname(__file__), "schema.sql")

DEFAULT_CATEGORIES = [
    ("Alimentação", "EXPENSE"),
    ("Transporte", "EXPENSE"),
    ("Saúde", "EXPENSE"),
    ("Moradia", "EXPENSE"),
    ("Lazer", "EXPENSE"),
    ("Educação", "EXPENSE"),
    ("Impostos", "EXPENSE"),
    ("Investimentos", "EXPENSE"),
    ("Salário", "INCOME"),
    ("Freelance", "INCOME"),
    ("Investimentos", "INCOME"),
    ("Outros", "INCOME"),
]


def _connect(path):
    if path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def get_db():
    db = getattr(g, "_database", None)
    if db is None:
        db = g._database = _connect(current_app.config["DATABASE"])
    return db


def close_db(exception=None):
    db = g.pop("_database", None)
    if db is not None:
        try:
            db.close()
        except sqlite3.Error:
            logger.exception("Error closing DB connection")


def query_db(query, args=(), one=False):
    cur = get_db().execute(query, args)
    rv = cur.fetchall()
    cur.close()
    return (rv[0] if rv else None) if one else rv


def execute_db(query, args=()):
    conn = get_db()
    cur = conn.cursor()
    cur.execute(query, args)
    conn.commit()
    last = cur.lastrowid
    cur.close()
    return last


def init_db(path=None):
    """
    Create the schema and the system default categories.
    Idempotent, so it runs at every app startup.
    """
    path = path or current_app.config["DATABASE"]
    conn = _connect(path)
    try:
        with open(SCHEMA_FILE, "r", encoding="utf-8") as f:
            conn.executescript(f.read())
        for name, cat_type in DEFAULT_CATEGORIES:
            exists = conn.execute(
                "SELECT 1 FROM categories WHERE name=? AND type=? AND is_default=1",
                (name, cat_type),
            ).fetchone()
            if not exists:
                conn.execute(
                    "INSERT INTO categories (name, type, user_id, is_default) VALUES (?, ?, NULL, 1)",
                    (name, cat_type),
                )
        conn.commit()
    finally:
        conn.close()


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create tables and system categories."""
    init_db()
    click.echo(f"Database initialized at {current_app.config['DATABASE']}")


def init_app(app):
    app.teardown_appcontext(close_db)
    app.cli.add_command(init_db_command)

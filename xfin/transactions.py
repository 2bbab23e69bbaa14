# xfin/transactions.py

import logging

import pandas as pd
from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from . import db
from .categories import get_visible_category
from .errors import NotFoundError, ValidationError
from .utils import (
    current_user_id,
    get_payload,
    optional_text,
    parse_amount,
    parse_bool,
    parse_choice,
    parse_date,
    parse_int,
    row_to_dict,
)

logger = logging.getLogger("xfin-backend")

bp = Blueprint("transactions", __name__)

TRANSACTION_TYPES = ("INCOME", "EXPENSE")
PAYMENT_METHODS = ("CASH", "CARD", "PIX", "BANK_TRANSFER", "OTHER")
MAX_INSTALLMENTS = 120

SELECT_WITH_CATEGORY = """
    SELECT t.*, c.name AS category_name, c.type AS category_type
    FROM transactions t JOIN categories c ON c.id = t.category_id
"""


def serialize_transaction(row):
    tx = row_to_dict(row)
    for flag in ("is_important", "is_installment"):
        tx[flag] = bool(tx[flag])
    if "category_name" in tx:
        tx["category"] = {
            "id": tx["category_id"],
            "name": tx.pop("category_name"),
            "type": tx.pop("category_type"),
        }
    return tx


def split_installments(amount, count):
    """Cent-exact shares that add up to amount; the leftover cents go on the first."""
    cents = int(round(amount * 100))
    if count > cents:
        raise ValidationError("Valor insuficiente para o número de parcelas")
    base, rem = divmod(cents, count)
    return [(base + rem) / 100] + [base / 100] * (count - 1)


def installment_dates(first_date, count):
    # DateOffset clamps to the month's last day (Jan 31 -> Feb 28)
    start = pd.Timestamp(first_date)
    return [(start + pd.DateOffset(months=i)).date() for i in range(count)]


def insert_transaction(conn, user_id, tx_type, amount, tx_date, category_id, description=None,
                       is_important=False, payment_method=None, is_installment=False,
                       installments_total=None, installment_index=None, parent_id=None):
    """Low level insert on a caller-managed connection, so it can join a larger unit of work."""
    cur = conn.execute(
        """INSERT INTO transactions
        (user_id, category_id, type, amount, date, description, is_important, payment_method,
         is_installment, installments_total, installment_index, parent_id)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            user_id,
            category_id,
            tx_type,
            amount,
            tx_date.isoformat(),
            description,
            int(is_important),
            payment_method,
            int(is_installment),
            installments_total,
            installment_index,
            parent_id,
        ),
    )
    return cur.lastrowid


def get_transaction(user_id, tx_id):
    row = db.query_db(SELECT_WITH_CATEGORY + " WHERE t.id=? AND t.user_id=?", (tx_id, user_id), one=True)
    if not row:
        raise NotFoundError("Transação não encontrada")
    return serialize_transaction(row)


def list_transactions(user_id, start_date=None, end_date=None, category_id=None, tx_type=None,
                      is_important=None):
    query = SELECT_WITH_CATEGORY + " WHERE t.user_id=?"
    args = [user_id]
    if start_date:
        query += " AND t.date >= ?"
        args.append(start_date.isoformat())
    if end_date:
        query += " AND t.date <= ?"
        args.append(end_date.isoformat())
    if category_id:
        query += " AND t.category_id = ?"
        args.append(category_id)
    if tx_type:
        query += " AND t.type = ?"
        args.append(tx_type)
    if is_important is not None:
        query += " AND t.is_important = ?"
        args.append(int(is_important))
    query += " ORDER BY t.date DESC, t.id DESC"
    return [serialize_transaction(r) for r in db.query_db(query, args)]


def _check_category(user_id, category_id, tx_type):
    category = get_visible_category(user_id, category_id)
    if category["type"] != tx_type:
        raise ValidationError("Categoria incompatível com o tipo da transação")


def _optional_payment_method(value):
    if value is None or str(value).strip() == "":
        return None
    return parse_choice(value, PAYMENT_METHODS, "payment_method")


def create_transaction(user_id, data):
    tx_type = parse_choice(data.get("type"), TRANSACTION_TYPES, "type")
    amount = parse_amount(data.get("amount"))
    tx_date = parse_date(data.get("date"))
    category_id = parse_int(data.get("category_id"), "category_id")
    description = optional_text(data.get("description"))
    is_important = parse_bool(data.get("is_important"))
    payment_method = _optional_payment_method(data.get("payment_method"))
    _check_category(user_id, category_id, tx_type)

    is_installment = parse_bool(data.get("is_installment"))
    total = None
    if is_installment:
        total = parse_int(data.get("installments_total"), "installments_total", 1, MAX_INSTALLMENTS)
        shares = split_installments(amount, total)
        dates = installment_dates(tx_date, total)

    common = dict(
        tx_type=tx_type,
        category_id=category_id,
        description=description,
        is_important=is_important,
        payment_method=payment_method,
    )
    conn = db.get_db()
    with conn:
        if not is_installment:
            head_id = insert_transaction(conn, user_id, amount=amount, tx_date=tx_date, **common)
        else:
            head_id = insert_transaction(
                conn, user_id, amount=shares[0], tx_date=dates[0], is_installment=True,
                installments_total=total, installment_index=1, **common
            )
            for index in range(2, total + 1):
                insert_transaction(
                    conn, user_id, amount=shares[index - 1], tx_date=dates[index - 1],
                    is_installment=True, installments_total=total, installment_index=index,
                    parent_id=head_id, **common
                )
            logger.info(f"Installment transaction created - ID: {head_id}, installments: {total}")
    return get_transaction(user_id, head_id)


def update_transaction(user_id, tx_id, data):
    current = get_transaction(user_id, tx_id)

    tx_type = parse_choice(data["type"], TRANSACTION_TYPES, "type") if data.get("type") else current["type"]
    amount = parse_amount(data["amount"]) if data.get("amount") is not None else current["amount"]
    tx_date = parse_date(data["date"]).isoformat() if data.get("date") else current["date"]
    category_id = (
        parse_int(data["category_id"], "category_id") if data.get("category_id") else current["category_id"]
    )
    description = optional_text(data["description"]) if "description" in data else current["description"]
    is_important = parse_bool(data["is_important"]) if "is_important" in data else current["is_important"]
    payment_method = (
        _optional_payment_method(data["payment_method"]) if "payment_method" in data else current["payment_method"]
    )
    _check_category(user_id, category_id, tx_type)

    db.execute_db(
        """UPDATE transactions SET type=?, amount=?, date=?, category_id=?, description=?,
        is_important=?, payment_method=?, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?""",
        (tx_type, amount, tx_date, category_id, description, int(is_important), payment_method, tx_id, user_id),
    )
    return get_transaction(user_id, tx_id)


def delete_transaction(user_id, tx_id):
    current = get_transaction(user_id, tx_id)
    conn = db.get_db()
    with conn:
        if current["is_installment"] and not current["parent_id"]:
            conn.execute("DELETE FROM transactions WHERE parent_id=? AND user_id=?", (tx_id, user_id))
        conn.execute("DELETE FROM transactions WHERE id=? AND user_id=?", (tx_id, user_id))


# ---------------- Routes ----------------
@bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    args = request.args
    start_date = parse_date(args["start_date"], "start_date") if args.get("start_date") else None
    end_date = parse_date(args["end_date"], "end_date") if args.get("end_date") else None
    category_id = parse_int(args["category_id"], "category_id") if args.get("category_id") else None
    tx_type = parse_choice(args["type"], TRANSACTION_TYPES, "type") if args.get("type") else None
    is_important = parse_bool(args["is_important"]) if args.get("is_important") else None
    return jsonify(list_transactions(current_user_id(), start_date, end_date, category_id, tx_type, is_important))


@bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    return jsonify(create_transaction(current_user_id(), get_payload())), 201


@bp.route("/<int:tx_id>", methods=["PUT"])
@jwt_required()
def update_route(tx_id):
    return jsonify(update_transaction(current_user_id(), tx_id, get_payload()))


@bp.route("/<int:tx_id>", methods=["DELETE"])
@jwt_required()
def delete_route(tx_id):
    delete_transaction(current_user_id(), tx_id)
    return "", 204

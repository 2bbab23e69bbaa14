# xfin/categories.py
import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from . import db
from .errors import ConflictError, NotFoundError, ValidationError
from .utils import current_user_id, get_payload, parse_choice, require_text, row_to_dict

logger = logging.getLogger("xfin-backend")

categories_bp = Blueprint("categories", __name__)

CATEGORY_TYPES = ("INCOME", "EXPENSE")
UNSPECIFIED_NAME = "Não especificado"


def serialize_category(row):
    category = row_to_dict(row)
    category["is_default"] = bool(category["is_default"])
    return category


def list_categories(user_id, cat_type=None):
    query = "SELECT * FROM categories WHERE (is_default=1 OR user_id=?)"
    args = [user_id]
    if cat_type:
        query += " AND type=?"
        args.append(parse_choice(cat_type, CATEGORY_TYPES, "type"))
    query += " ORDER BY is_default DESC, name ASC"
    return [serialize_category(r) for r in db.query_db(query, args)]


def get_visible_category(user_id, category_id):
    """A category the user may attach transactions to: a system default or one of their own."""
    row = db.query_db(
        "SELECT * FROM categories WHERE id=? AND (is_default=1 OR user_id=?)",
        (category_id, user_id),
        one=True,
    )
    if not row:
        raise NotFoundError("Categoria não encontrada")
    return row


def create_category(user_id, data):
    name = require_text(data, "name", 80)
    cat_type = parse_choice(data.get("type"), CATEGORY_TYPES, "type")
    category_id = db.execute_db(
        "INSERT INTO categories (name, type, user_id, is_default) VALUES (?, ?, ?, 0)",
        (name, cat_type, user_id),
    )
    return serialize_category(db.query_db("SELECT * FROM categories WHERE id=?", (category_id,), one=True))


REFERENCING_TABLES = ("transactions", "debts", "receivables", "recurring_incomes", "recurring_expenses")


def _is_referenced(category_id):
    return any(
        db.query_db(f"SELECT 1 FROM {table} WHERE category_id=? LIMIT 1", (category_id,), one=True)
        for table in REFERENCING_TABLES
    )


def update_category(user_id, category_id, data):
    category = get_visible_category(user_id, category_id)
    if category["is_default"]:
        raise ValidationError("Não é possível editar categorias padrão")

    name = require_text(data, "name", 80) if data.get("name") is not None else category["name"]
    cat_type = parse_choice(data["type"], CATEGORY_TYPES, "type") if data.get("type") else category["type"]
    if cat_type != category["type"] and _is_referenced(category_id):
        raise ConflictError("Categoria em uso não pode mudar de tipo")
    db.execute_db(
        "UPDATE categories SET name=?, type=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
        (name, cat_type, category_id),
    )
    return serialize_category(db.query_db("SELECT * FROM categories WHERE id=?", (category_id,), one=True))


def delete_category(user_id, category_id):
    category = get_visible_category(user_id, category_id)
    if category["is_default"]:
        raise ValidationError("Não é possível deletar categorias padrão")

    in_use = db.query_db(
        "SELECT COUNT(*) AS count FROM transactions WHERE category_id=?", (category_id,), one=True
    )
    if in_use["count"]:
        raise ConflictError("Categoria possui transações vinculadas e não pode ser removida")
    db.execute_db("DELETE FROM categories WHERE id=?", (category_id,))


def find_or_create_unspecified(user_id, cat_type, conn=None):
    """Id of the fallback category for generated transactions, created on first use."""
    conn = conn or db.get_db()
    row = conn.execute(
        "SELECT id FROM categories WHERE name=? AND type=? AND (user_id=? OR is_default=1) "
        "ORDER BY is_default ASC LIMIT 1",
        (UNSPECIFIED_NAME, cat_type, user_id),
    ).fetchone()
    if row:
        return row["id"]
    cur = conn.execute(
        "INSERT INTO categories (name, type, user_id, is_default) VALUES (?, ?, NULL, 1)",
        (UNSPECIFIED_NAME, cat_type),
    )
    logger.info(f"Created fallback category for {cat_type}")
    return cur.lastrowid


def resolve_category(user_id, category_id, cat_type, conn=None):
    """The item's own category when it is still visible and of the right type, else the fallback."""
    if category_id:
        row = db.query_db(
            "SELECT id, type FROM categories WHERE id=? AND (is_default=1 OR user_id=?)",
            (category_id, user_id),
            one=True,
        )
        if row and row["type"] == cat_type:
            return row["id"]
    return find_or_create_unspecified(user_id, cat_type, conn)


# ---------------- Routes ----------------
@categories_bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    return jsonify(list_categories(current_user_id(), request.args.get("type")))


@categories_bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    return jsonify(create_category(current_user_id(), get_payload())), 201


@categories_bp.route("/<int:category_id>", methods=["PUT"])
@jwt_required()
def update_route(category_id):
    return jsonify(update_category(current_user_id(), category_id, get_payload()))


@categories_bp.route("/<int:category_id>", methods=["DELETE"])
@jwt_required()
def delete_route(category_id):
    delete_category(current_user_id(), category_id)
    return "", 204

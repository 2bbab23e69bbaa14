# xfin/piggy_banks.py
import logging

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from . import db
from .errors import NotFoundError, ValidationError
from .uploads import delete_photo, stored_photo
from .utils import (
    current_user_id,
    get_payload,
    optional_text,
    parse_amount,
    parse_choice,
    parse_optional_amount,
    require_text,
    row_to_dict,
)

logger = logging.getLogger("xfin-backend")

piggy_banks_bp = Blueprint("piggy_banks", __name__)

PERIOD_TYPES = ("DAY", "WEEK", "FORTNIGHT", "MONTH")
MOVEMENT_TYPES = ("DEPOSIT", "WITHDRAWAL")
PREVIEW_SIZE = 5


def _fetch(user_id, piggy_bank_id):
    row = db.query_db("SELECT * FROM piggy_banks WHERE id=? AND user_id=?", (piggy_bank_id, user_id), one=True)
    if not row:
        raise NotFoundError("Caixinha não encontrada")
    return row


def _movements(piggy_bank_id, limit=None):
    query = "SELECT * FROM piggy_bank_transactions WHERE piggy_bank_id=? ORDER BY created_at DESC, id DESC"
    args = [piggy_bank_id]
    if limit:
        query += " LIMIT ?"
        args.append(limit)
    return [row_to_dict(r) for r in db.query_db(query, args)]


def serialize_piggy_bank(row, movements):
    piggy_bank = row_to_dict(row)
    target = piggy_bank["target_amount"]
    piggy_bank["progress_percent"] = (
        round(min(100.0, piggy_bank["current_amount"] / target * 100), 2) if target else None
    )
    piggy_bank["transactions"] = movements
    return piggy_bank


def piggy_bank_fields(data, partial=False):
    fields = {}
    if not partial or data.get("name"):
        fields["name"] = require_text(data, "name", 120)
    if not partial or "description" in data:
        fields["description"] = optional_text(data.get("description"))
    if not partial or "target_amount" in data:
        fields["target_amount"] = parse_optional_amount(data.get("target_amount"), "target_amount")
    if not partial or data.get("amount_per_period"):
        fields["amount_per_period"] = parse_amount(data.get("amount_per_period"), "amount_per_period")
    if not partial or data.get("period_type"):
        fields["period_type"] = parse_choice(data.get("period_type"), PERIOD_TYPES, "period_type")
    return fields


def list_piggy_banks(user_id):
    rows = db.query_db("SELECT * FROM piggy_banks WHERE user_id=? ORDER BY created_at DESC, id DESC", (user_id,))
    return [serialize_piggy_bank(r, _movements(r["id"], PREVIEW_SIZE)) for r in rows]


def get_piggy_bank(user_id, piggy_bank_id):
    row = _fetch(user_id, piggy_bank_id)
    return serialize_piggy_bank(row, _movements(piggy_bank_id))


def create_piggy_bank(user_id, data):
    fields = piggy_bank_fields(data)
    with stored_photo() as photo_url:
        piggy_bank_id = db.execute_db(
            """INSERT INTO piggy_banks
            (user_id, name, description, photo_url, current_amount, target_amount, amount_per_period, period_type)
            VALUES (?, ?, ?, ?, 0, ?, ?, ?)""",
            (
                user_id,
                fields["name"],
                fields["description"],
                photo_url,
                fields["target_amount"],
                fields["amount_per_period"],
                fields["period_type"],
            ),
        )
    logger.info(f"Piggy bank created - ID: {piggy_bank_id}")
    return get_piggy_bank(user_id, piggy_bank_id)


def update_piggy_bank(user_id, piggy_bank_id, data):
    current = _fetch(user_id, piggy_bank_id)
    with stored_photo() as photo_url:
        # current_amount is never editable here; it moves only through deposits/withdrawals
        fields = piggy_bank_fields(data, partial=True)
        if photo_url:
            fields["photo_url"] = photo_url
        elif "photo_url" in data and not data.get("photo_url"):
            fields["photo_url"] = None
        if fields:
            assignments = ", ".join(f"{column}=?" for column in fields)
            db.execute_db(
                f"UPDATE piggy_banks SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
                list(fields.values()) + [piggy_bank_id, user_id],
            )
    if "photo_url" in fields and current["photo_url"] != fields["photo_url"]:
        delete_photo(current["photo_url"])
    return get_piggy_bank(user_id, piggy_bank_id)


def delete_piggy_bank(user_id, piggy_bank_id):
    current = _fetch(user_id, piggy_bank_id)
    db.execute_db("DELETE FROM piggy_banks WHERE id=? AND user_id=?", (piggy_bank_id, user_id))
    delete_photo(current["photo_url"])


def add_movement(user_id, piggy_bank_id, data):
    piggy_bank = _fetch(user_id, piggy_bank_id)
    amount = parse_amount(data.get("amount"))
    movement_type = parse_choice(data.get("type"), MOVEMENT_TYPES, "type")
    description = optional_text(data.get("description"))

    signed = amount if movement_type == "DEPOSIT" else -amount

    conn = db.get_db()
    with conn:
        updated = conn.execute(
            """UPDATE piggy_banks SET current_amount=ROUND(current_amount + ?, 2), updated_at=CURRENT_TIMESTAMP
            WHERE id=? AND ROUND(current_amount + ?, 2) >= 0""",
            (signed, piggy_bank["id"], signed),
        )
        if not updated.rowcount:
            raise ValidationError("Saldo insuficiente na caixinha")
        cur = conn.execute(
            "INSERT INTO piggy_bank_transactions (piggy_bank_id, amount, type, description) VALUES (?, ?, ?, ?)",
            (piggy_bank_id, amount, movement_type, description),
        )
        new_amount = conn.execute(
            "SELECT current_amount FROM piggy_banks WHERE id=?", (piggy_bank["id"],)
        ).fetchone()["current_amount"]
    logger.info(f"Piggy bank {piggy_bank_id} {movement_type.lower()} of {amount}, balance {new_amount}")
    return row_to_dict(db.query_db("SELECT * FROM piggy_bank_transactions WHERE id=?", (cur.lastrowid,), one=True))


def list_movements(user_id, piggy_bank_id):
    _fetch(user_id, piggy_bank_id)
    return _movements(piggy_bank_id)


# ---------------- Routes ----------------
@piggy_banks_bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    return jsonify(list_piggy_banks(current_user_id()))


@piggy_banks_bp.route("/<int:piggy_bank_id>", methods=["GET"])
@jwt_required()
def get_route(piggy_bank_id):
    return jsonify(get_piggy_bank(current_user_id(), piggy_bank_id))


@piggy_banks_bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    return jsonify(create_piggy_bank(current_user_id(), get_payload())), 201


@piggy_banks_bp.route("/<int:piggy_bank_id>", methods=["PUT"])
@jwt_required()
def update_route(piggy_bank_id):
    return jsonify(update_piggy_bank(current_user_id(), piggy_bank_id, get_payload()))


@piggy_banks_bp.route("/<int:piggy_bank_id>", methods=["DELETE"])
@jwt_required()
def delete_route(piggy_bank_id):
    delete_piggy_bank(current_user_id(), piggy_bank_id)
    return "", 204


@piggy_banks_bp.route("/<int:piggy_bank_id>/transactions", methods=["POST"])
@jwt_required()
def add_movement_route(piggy_bank_id):
    return jsonify(add_movement(current_user_id(), piggy_bank_id, get_payload())), 201


@piggy_banks_bp.route("/<int:piggy_bank_id>/transactions", methods=["GET"])
@jwt_required()
def list_movements_route(piggy_bank_id):
    return jsonify(list_movements(current_user_id(), piggy_bank_id))

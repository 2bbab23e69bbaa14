# xfin/recurring.py
import logging

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from . import db
from .categories import get_visible_category, resolve_category
from .errors import NotFoundError, ValidationError
from .transactions import get_transaction, insert_transaction
from .utils import (
    current_user_id,
    get_payload,
    parse_amount,
    parse_bool,
    parse_date,
    parse_int,
    parse_optional_date,
    require_text,
    row_to_dict,
    today,
)

logger = logging.getLogger("xfin-backend")


def serialize_recurring(row):
    item = row_to_dict(row)
    item["active"] = bool(item["active"])
    return item


class RecurringManager:
    """CRUD for recurring income/expense templates and their materialisation into transactions."""

    def __init__(self, table, transaction_type, not_found_message):
        self.table = table
        self.transaction_type = transaction_type
        self.not_found_message = not_found_message

    def _fetch(self, user_id, item_id):
        row = db.query_db(f"SELECT * FROM {self.table} WHERE id=? AND user_id=?", (item_id, user_id), one=True)
        if not row:
            raise NotFoundError(self.not_found_message)
        return row

    def _category(self, user_id, value):
        if value is None or value == "":
            return None
        category = get_visible_category(user_id, parse_int(value, "category_id"))
        if category["type"] != self.transaction_type:
            raise ValidationError("Categoria incompatível com o tipo do item")
        return category["id"]

    def fields(self, user_id, data, partial=False):
        fields = {}
        if not partial or data.get("name"):
            fields["name"] = require_text(data, "name", 120)
        if not partial or data.get("amount") is not None:
            fields["amount"] = parse_amount(data.get("amount"))
        if not partial or data.get("day_of_month") is not None:
            fields["day_of_month"] = parse_int(data.get("day_of_month"), "day_of_month", 1, 31)
        if not partial or data.get("start_date"):
            fields["start_date"] = parse_date(data.get("start_date"), "start_date").isoformat()
        if not partial or "end_date" in data:
            end_date = parse_optional_date(data.get("end_date"), "end_date")
            fields["end_date"] = end_date.isoformat() if end_date else None
        if not partial or "active" in data:
            fields["active"] = int(parse_bool(data["active"])) if "active" in data else 1
        if not partial or "category_id" in data:
            fields["category_id"] = self._category(user_id, data.get("category_id"))

        if fields.get("start_date") and fields.get("end_date") and fields["end_date"] < fields["start_date"]:
            raise ValidationError("A data final deve ser posterior à data inicial")
        return fields

    def list(self, user_id):
        rows = db.query_db(
            f"SELECT * FROM {self.table} WHERE user_id=? ORDER BY day_of_month ASC, id ASC", (user_id,)
        )
        return [serialize_recurring(r) for r in rows]

    def get(self, user_id, item_id):
        return serialize_recurring(self._fetch(user_id, item_id))

    def create(self, user_id, data):
        fields = self.fields(user_id, data)
        columns = ", ".join(["user_id"] + list(fields))
        placeholders = ", ".join("?" for _ in range(len(fields) + 1))
        item_id = db.execute_db(
            f"INSERT INTO {self.table} ({columns}) VALUES ({placeholders})", [user_id] + list(fields.values())
        )
        return self.get(user_id, item_id)

    def update(self, user_id, item_id, data):
        self._fetch(user_id, item_id)
        fields = self.fields(user_id, data, partial=True)
        if fields:
            assignments = ", ".join(f"{column}=?" for column in fields)
            db.execute_db(
                f"UPDATE {self.table} SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
                list(fields.values()) + [item_id, user_id],
            )
        return self.get(user_id, item_id)

    def delete(self, user_id, item_id):
        self._fetch(user_id, item_id)
        db.execute_db(f"DELETE FROM {self.table} WHERE id=? AND user_id=?", (item_id, user_id))

    def _materialize(self, conn, user_id, item):
        category_id = resolve_category(user_id, item["category_id"], self.transaction_type, conn)
        return insert_transaction(
            conn,
            user_id,
            tx_type=self.transaction_type,
            amount=item["amount"],
            tx_date=today(),
            category_id=category_id,
            description=item["name"],
        )

    def create_all_as_transactions(self, user_id):
        items = db.query_db(
            f"SELECT * FROM {self.table} WHERE user_id=? AND active=1 ORDER BY day_of_month ASC, id ASC",
            (user_id,),
        )
        conn = db.get_db()
        with conn:
            tx_ids = [self._materialize(conn, user_id, item) for item in items]
        logger.info(f"Applied {len(tx_ids)} {self.table} as transactions - User: {user_id}")
        return {
            "created": len(tx_ids),
            "transactions": [get_transaction(user_id, tx_id) for tx_id in tx_ids],
        }

    def create_transaction_from_item(self, user_id, item_id):
        item = self._fetch(user_id, item_id)
        if not item["active"]:
            raise ValidationError("Este item está inativo")
        conn = db.get_db()
        with conn:
            tx_id = self._materialize(conn, user_id, item)
        return get_transaction(user_id, tx_id)


recurring_incomes = RecurringManager("recurring_incomes", "INCOME", "Ganho fixo não encontrado")
recurring_expenses = RecurringManager("recurring_expenses", "EXPENSE", "Gasto fixo não encontrado")


def make_blueprint(name, manager):
    bp = Blueprint(name, __name__)

    @bp.route("", methods=["GET"])
    @jwt_required()
    def list_route():
        return jsonify(manager.list(current_user_id()))

    @bp.route("", methods=["POST"])
    @jwt_required()
    def create_route():
        return jsonify(manager.create(current_user_id(), get_payload())), 201

    @bp.route("/<int:item_id>", methods=["PUT"])
    @jwt_required()
    def update_route(item_id):
        return jsonify(manager.update(current_user_id(), item_id, get_payload()))

    @bp.route("/<int:item_id>", methods=["DELETE"])
    @jwt_required()
    def delete_route(item_id):
        manager.delete(current_user_id(), item_id)
        return "", 204

    @bp.route("/create-all-transactions", methods=["POST"])
    @jwt_required()
    def create_all_route():
        return jsonify(manager.create_all_as_transactions(current_user_id()))

    @bp.route("/<int:item_id>/create-transaction", methods=["POST"])
    @jwt_required()
    def create_one_route(item_id):
        return jsonify(manager.create_transaction_from_item(current_user_id(), item_id)), 201

    return bp


recurring_incomes_bp = make_blueprint("recurring_incomes", recurring_incomes)
recurring_expenses_bp = make_blueprint("recurring_expenses", recurring_expenses)

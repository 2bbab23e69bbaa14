# xfin/debts.py
from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from .categories import get_visible_category
from .errors import ValidationError
from .lifecycle import ObligationLifecycle
from .utils import (
    current_user_id,
    get_payload,
    optional_text,
    parse_amount,
    parse_bool,
    parse_choice,
    parse_date,
    parse_int,
    require_text,
    row_to_dict,
)

debts_bp = Blueprint("debts", __name__)

PRIORITIES = ("LOW", "MEDIUM", "HIGH")
RECURRENCES = ("MONTHLY", "QUARTERLY", "YEARLY")


def serialize_debt(row):
    debt = row_to_dict(row)
    debt["is_recurring"] = bool(debt["is_recurring"])
    return debt


debts = ObligationLifecycle(
    table="debts",
    counterpart_field="creditor_name",
    settled_status="PAID",
    settled_at_field="paid_at",
    transaction_type="EXPENSE",
    description_prefix="Pagamento de dívida",
    messages={
        "not_found": "Dívida não encontrada",
        "edit_settled": "Não é possível editar uma dívida que já foi paga. Reabra a dívida primeiro.",
        "already_settled": "Esta dívida já está marcada como paga",
        "not_settled": "Esta dívida não está marcada como paga",
    },
    serializer=serialize_debt,
)


def _expense_category(user_id, value):
    if value is None or value == "":
        return None
    category = get_visible_category(user_id, parse_int(value, "category_id"))
    if category["type"] != "EXPENSE":
        raise ValidationError("A categoria de uma dívida deve ser de despesa")
    return category["id"]


def _recurrence(data):
    if not data.get("recurrence"):
        return None
    return parse_choice(data["recurrence"], RECURRENCES, "recurrence")


def debt_fields(user_id, data, partial=False):
    """Column values from a request body; with partial=True only the keys present."""
    fields = {}
    if not partial or data.get("creditor_name"):
        fields["creditor_name"] = require_text(data, "creditor_name", 120)
    if not partial or "description" in data:
        fields["description"] = optional_text(data.get("description"))
    if not partial or data.get("total_amount") is not None:
        fields["total_amount"] = parse_amount(data.get("total_amount"), "total_amount")
    if not partial or "is_recurring" in data:
        fields["is_recurring"] = int(parse_bool(data.get("is_recurring")))
    if not partial or "recurrence" in data:
        fields["recurrence"] = _recurrence(data)
    if not partial or data.get("start_date"):
        fields["start_date"] = parse_date(data.get("start_date"), "start_date").isoformat()
    if not partial or data.get("due_date"):
        fields["due_date"] = parse_date(data.get("due_date"), "due_date")
    if not partial or data.get("priority"):
        fields["priority"] = parse_choice(data.get("priority") or "MEDIUM", PRIORITIES, "priority")
    if not partial or "category_id" in data:
        fields["category_id"] = _expense_category(user_id, data.get("category_id"))
    return fields


# ---------------- Routes ----------------
@debts_bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    return jsonify(debts.list(current_user_id()))


@debts_bp.route("/<int:debt_id>", methods=["GET"])
@jwt_required()
def get_route(debt_id):
    return jsonify(debts.get(current_user_id(), debt_id))


@debts_bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    user_id = current_user_id()
    return jsonify(debts.create(user_id, debt_fields(user_id, get_payload()))), 201


@debts_bp.route("/<int:debt_id>", methods=["PUT"])
@jwt_required()
def update_route(debt_id):
    user_id = current_user_id()
    return jsonify(debts.update(user_id, debt_id, debt_fields(user_id, get_payload(), partial=True)))


@debts_bp.route("/<int:debt_id>", methods=["DELETE"])
@jwt_required()
def delete_route(debt_id):
    debts.delete(current_user_id(), debt_id)
    return "", 204


@debts_bp.route("/<int:debt_id>/mark-paid", methods=["PATCH"])
@jwt_required()
def mark_paid_route(debt_id):
    return jsonify(debts.settle(current_user_id(), debt_id))


@debts_bp.route("/<int:debt_id>/unmark-paid", methods=["PATCH"])
@jwt_required()
def unmark_paid_route(debt_id):
    return jsonify(debts.reopen(current_user_id(), debt_id))

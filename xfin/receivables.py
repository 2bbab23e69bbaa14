# xfin/receivables.py
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
    parse_date,
    parse_int,
    require_text,
    row_to_dict,
)

receivables_bp = Blueprint("receivables", __name__)

receivables = ObligationLifecycle(
    table="receivables",
    counterpart_field="debtor_name",
    settled_status="RECEIVED",
    settled_at_field="received_at",
    transaction_type="INCOME",
    description_prefix="Recebimento",
    messages={
        "not_found": "Recebível não encontrado",
        "edit_settled": "Não é possível editar um recebível que já foi recebido. Reabra o recebível primeiro.",
        "already_settled": "Este recebível já está marcado como recebido",
        "not_settled": "Este recebível não está marcado como recebido",
    },
    serializer=row_to_dict,
)


def _income_category(user_id, value):
    if value is None or value == "":
        return None
    category = get_visible_category(user_id, parse_int(value, "category_id"))
    if category["type"] != "INCOME":
        raise ValidationError("A categoria de um recebível deve ser de receita")
    return category["id"]


def receivable_fields(user_id, data, partial=False):
    fields = {}
    if not partial or data.get("debtor_name"):
        fields["debtor_name"] = require_text(data, "debtor_name", 120)
    if not partial or "description" in data:
        fields["description"] = optional_text(data.get("description"))
    if not partial or data.get("total_amount") is not None:
        fields["total_amount"] = parse_amount(data.get("total_amount"), "total_amount")
    if not partial or data.get("due_date"):
        fields["due_date"] = parse_date(data.get("due_date"), "due_date")
    if not partial or "category_id" in data:
        fields["category_id"] = _income_category(user_id, data.get("category_id"))
    return fields


# ---------------- Routes ----------------
@receivables_bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    return jsonify(receivables.list(current_user_id()))


@receivables_bp.route("/<int:receivable_id>", methods=["GET"])
@jwt_required()
def get_route(receivable_id):
    return jsonify(receivables.get(current_user_id(), receivable_id))


@receivables_bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    user_id = current_user_id()
    return jsonify(receivables.create(user_id, receivable_fields(user_id, get_payload()))), 201


@receivables_bp.route("/<int:receivable_id>", methods=["PUT"])
@jwt_required()
def update_route(receivable_id):
    user_id = current_user_id()
    fields = receivable_fields(user_id, get_payload(), partial=True)
    return jsonify(receivables.update(user_id, receivable_id, fields))


@receivables_bp.route("/<int:receivable_id>", methods=["DELETE"])
@jwt_required()
def delete_route(receivable_id):
    receivables.delete(current_user_id(), receivable_id)
    return "", 204


@receivables_bp.route("/<int:receivable_id>/mark-received", methods=["PATCH"])
@jwt_required()
def mark_received_route(receivable_id):
    return jsonify(receivables.settle(current_user_id(), receivable_id))


@receivables_bp.route("/<int:receivable_id>/unmark-received", methods=["PATCH"])
@jwt_required()
def unmark_received_route(receivable_id):
    return jsonify(receivables.reopen(current_user_id(), receivable_id))

# xfin/wishlist.py
import json

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from . import db
from .errors import NotFoundError
from .uploads import delete_photo, stored_photo
from .utils import (
    current_user_id,
    get_payload,
    optional_text,
    parse_choice,
    parse_int,
    parse_json_list,
    parse_optional_amount,
    parse_optional_date,
    require_text,
    row_to_dict,
)

wishlist_bp = Blueprint("wishlist", __name__)

WISHLIST_STATUSES = ("PLANNED", "BOUGHT", "DROPPED")


def serialize_item(row):
    item = row_to_dict(row)
    item["purchase_links"] = json.loads(item["purchase_links"]) if item["purchase_links"] else []
    return item


def _fetch(user_id, item_id):
    row = db.query_db("SELECT * FROM wishlist_items WHERE id=? AND user_id=?", (item_id, user_id), one=True)
    if not row:
        raise NotFoundError("Item não encontrado")
    return row


def item_fields(data, partial=False):
    fields = {}
    if not partial or data.get("name"):
        fields["name"] = require_text(data, "name", 120)
    if not partial or data.get("priority") not in (None, ""):
        fields["priority"] = parse_int(data.get("priority") or 3, "priority", 1, 5)
    if not partial or "estimated_price" in data:
        fields["estimated_price"] = parse_optional_amount(data.get("estimated_price"), "estimated_price")
    if not partial or "utility_note" in data:
        fields["utility_note"] = optional_text(data.get("utility_note"))
    if not partial or "target_date" in data:
        target_date = parse_optional_date(data.get("target_date"), "target_date")
        fields["target_date"] = target_date.isoformat() if target_date else None
    if not partial or data.get("status"):
        fields["status"] = parse_choice(data.get("status") or "PLANNED", WISHLIST_STATUSES, "status")
    if not partial or "purchase_links" in data:
        links = parse_json_list(data.get("purchase_links"), "purchase_links")
        fields["purchase_links"] = json.dumps(links) if links else None
    return fields


def list_items(user_id):
    rows = db.query_db(
        """SELECT * FROM wishlist_items WHERE user_id=?
        ORDER BY priority DESC, estimated_price IS NULL, estimated_price ASC, id ASC""",
        (user_id,),
    )
    return [serialize_item(r) for r in rows]


def get_item(user_id, item_id):
    return serialize_item(_fetch(user_id, item_id))


def create_item(user_id, data):
    fields = item_fields(data)
    with stored_photo() as photo_url:
        fields["photo_url"] = photo_url
        columns = ", ".join(["user_id"] + list(fields))
        placeholders = ", ".join("?" for _ in range(len(fields) + 1))
        item_id = db.execute_db(
            f"INSERT INTO wishlist_items ({columns}) VALUES ({placeholders})", [user_id] + list(fields.values())
        )
    return get_item(user_id, item_id)


def update_item(user_id, item_id, data):
    current = _fetch(user_id, item_id)
    with stored_photo() as photo_url:
        fields = item_fields(data, partial=True)
        if photo_url:
            fields["photo_url"] = photo_url
        elif "photo_url" in data and not data.get("photo_url"):
            fields["photo_url"] = None
        if fields:
            assignments = ", ".join(f"{column}=?" for column in fields)
            db.execute_db(
                f"UPDATE wishlist_items SET {assignments}, updated_at=CURRENT_TIMESTAMP WHERE id=? AND user_id=?",
                list(fields.values()) + [item_id, user_id],
            )
    if "photo_url" in fields and current["photo_url"] != fields["photo_url"]:
        delete_photo(current["photo_url"])
    return get_item(user_id, item_id)


def delete_item(user_id, item_id):
    current = _fetch(user_id, item_id)
    db.execute_db("DELETE FROM wishlist_items WHERE id=? AND user_id=?", (item_id, user_id))
    delete_photo(current["photo_url"])


# ---------------- Routes ----------------
@wishlist_bp.route("", methods=["GET"])
@jwt_required()
def list_route():
    return jsonify(list_items(current_user_id()))


@wishlist_bp.route("/<int:item_id>", methods=["GET"])
@jwt_required()
def get_route(item_id):
    return jsonify(get_item(current_user_id(), item_id))


@wishlist_bp.route("", methods=["POST"])
@jwt_required()
def create_route():
    return jsonify(create_item(current_user_id(), get_payload())), 201


@wishlist_bp.route("/<int:item_id>", methods=["PUT"])
@jwt_required()
def update_route(item_id):
    return jsonify(update_item(current_user_id(), item_id, get_payload()))


@wishlist_bp.route("/<int:item_id>", methods=["DELETE"])
@jwt_required()
def delete_route(item_id):
    delete_item(current_user_id(), item_id)
    return "", 204

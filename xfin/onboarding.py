# xfin/onboarding.py
import logging

from flask import Blueprint, jsonify
from flask_jwt_extended import jwt_required

from . import db
from .auth import get_user
from .errors import ValidationError
from .utils import MAX_AMOUNT, current_user_id, get_payload, now_iso

logger = logging.getLogger("xfin-backend")

onboarding_bp = Blueprint("onboarding", __name__)


def set_initial_balance(user_id, value):
    # A starting balance may be zero or negative (an overdrawn account)
    try:
        initial_balance = round(float(value), 2)
    except (TypeError, ValueError):
        raise ValidationError("Valor inicial inválido")
    if abs(initial_balance) > MAX_AMOUNT:
        raise ValidationError("Valor inicial muito alto")

    get_user(user_id)
    db.execute_db(
        "UPDATE users SET initial_balance=?, initial_balance_set_at=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
        (initial_balance, now_iso(), user_id),
    )
    logger.info(f"Initial balance set - User: {user_id}")
    return get_user(user_id)


@onboarding_bp.route("/initial-balance", methods=["POST"])
@jwt_required()
def initial_balance_route():
    data = get_payload()
    return jsonify(set_initial_balance(current_user_id(), data.get("initial_balance")))

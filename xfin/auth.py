# xfin/auth.py
import logging
import re
from datetime import datetime, timedelta

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token, create_refresh_token, jwt_required
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .extensions import limiter
from .utils import current_user_id, get_payload, parse_bool, require_text, row_to_dict

logger = logging.getLogger("xfin-backend")

auth_bp = Blueprint("auth", __name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
USER_COLUMNS = "id, name, email, initial_balance, initial_balance_set_at, created_at, updated_at"


def hash_secret(value):
    method = current_app.config.get("PASSWORD_HASH_METHOD")
    if method:
        return generate_password_hash(value, method=method)
    return generate_password_hash(value)


def serialize_user(row):
    user = row_to_dict(row)
    user.pop("password_hash", None)
    return user


def get_user(user_id):
    row = db.query_db(f"SELECT {USER_COLUMNS} FROM users WHERE id=?", (user_id,), one=True)
    if not row:
        raise NotFoundError("Usuário não encontrado")
    return serialize_user(row)


def _open_session(user_id, email, lifetime):
    """Issue an access/refresh pair and store the refresh token's hash."""
    identity = str(user_id)
    access_token = create_access_token(identity=identity, additional_claims={"email": email})
    refresh_token = create_refresh_token(identity=identity, expires_delta=lifetime)
    expires_at = (datetime.now() + lifetime).isoformat(timespec="seconds")
    db.execute_db(
        "INSERT INTO sessions (user_id, refresh_token_hash, expires_at) VALUES (?, ?, ?)",
        (user_id, hash_secret(refresh_token), expires_at),
    )
    return access_token, refresh_token


def _purge_expired_sessions(user_id):
    # expires_at is ISO text: string order is time order
    db.execute_db(
        "DELETE FROM sessions WHERE user_id=? AND expires_at <= ?",
        (user_id, datetime.now().isoformat(timespec="seconds")),
    )


def _find_session(user_id, refresh_token):
    sessions = db.query_db(
        "SELECT * FROM sessions WHERE user_id=? AND expires_at > ?",
        (user_id, datetime.now().isoformat(timespec="seconds")),
    )
    for session in sessions:
        if check_password_hash(session["refresh_token_hash"], refresh_token):
            return session
    return None


def _bearer_token():
    header = request.headers.get("Authorization", "")
    return header[7:] if header.startswith("Bearer ") else ""


def register(data):
    name = require_text(data, "name", 120)
    email = require_text(data, "email", 255).lower()
    password = data.get("password") or ""

    if not EMAIL_RE.match(email):
        raise ValidationError("Email inválido")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres")
    if db.query_db("SELECT id FROM users WHERE email=?", (email,), one=True):
        raise ConflictError("Email já cadastrado")

    user_id = db.execute_db(
        "INSERT INTO users (name, email, password_hash) VALUES (?, ?, ?)",
        (name, email, hash_secret(password)),
    )
    lifetime = timedelta(days=current_app.config["REFRESH_TOKEN_DAYS"])
    access_token, refresh_token = _open_session(user_id, email, lifetime)
    logger.info(f"User registered - ID: {user_id}")
    return {"user": get_user(user_id), "access_token": access_token, "refresh_token": refresh_token}


def login(email, password, remember_me=False):
    email = (email or "").strip().lower()
    user = db.query_db("SELECT * FROM users WHERE email=?", (email,), one=True)
    if not user or not check_password_hash(user["password_hash"], password or ""):
        logger.warning(f"Rejected login for {email!r}")
        raise AuthenticationError("Credenciais inválidas")

    _purge_expired_sessions(user["id"])
    days_key = "REMEMBER_ME_REFRESH_TOKEN_DAYS" if remember_me else "REFRESH_TOKEN_DAYS"
    lifetime = timedelta(days=current_app.config[days_key])
    access_token, refresh_token = _open_session(user["id"], user["email"], lifetime)
    return {"user": serialize_user(user), "access_token": access_token, "refresh_token": refresh_token}


def refresh(user_id, refresh_token):
    """Rotate the refresh token: the old one stops working, the session keeps its expiry."""
    _purge_expired_sessions(user_id)
    session = _find_session(user_id, refresh_token)
    if not session or datetime.fromisoformat(session["expires_at"]) <= datetime.now():
        raise AuthenticationError("Refresh token inválido ou expirado")

    user = db.query_db("SELECT id, email FROM users WHERE id=?", (user_id,), one=True)
    if not user:
        raise AuthenticationError("Usuário não encontrado")

    remaining = datetime.fromisoformat(session["expires_at"]) - datetime.now()
    identity = str(user_id)
    access_token = create_access_token(identity=identity, additional_claims={"email": user["email"]})
    new_refresh_token = create_refresh_token(identity=identity, expires_delta=remaining)
    db.execute_db(
        "UPDATE sessions SET refresh_token_hash=? WHERE id=?",
        (hash_secret(new_refresh_token), session["id"]),
    )
    return {"access_token": access_token, "refresh_token": new_refresh_token}


def logout(user_id, refresh_token):
    session = _find_session(user_id, refresh_token)
    if session:
        db.execute_db("DELETE FROM sessions WHERE id=?", (session["id"],))


# ---------------- Routes ----------------
@auth_bp.route("/register", methods=["POST"])
def register_route():
    return jsonify(register(get_payload())), 201


@auth_bp.route("/login", methods=["POST"])
@limiter.limit(lambda: current_app.config["LOGIN_RATE_LIMIT"])
def login_route():
    data = get_payload()
    remember_me = parse_bool(data.get("remember_me"))
    return jsonify(login(data.get("email"), data.get("password"), remember_me))


@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh_route():
    return jsonify(refresh(current_user_id(), _bearer_token()))


@auth_bp.route("/logout", methods=["POST"])
@jwt_required(refresh=True)
def logout_route():
    logout(current_user_id(), _bearer_token())
    return jsonify({"message": "Logout realizado com sucesso"})


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me_route():
    return jsonify(get_user(current_user_id()))

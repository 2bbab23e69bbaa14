# xfin/extensions.py
from flask import jsonify
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


@jwt.unauthorized_loader
def _missing_token(reason):
    return jsonify({"error": "Token não fornecido"}), 401


@jwt.invalid_token_loader
def _invalid_token(reason):
    return jsonify({"error": "Token inválido"}), 401


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return jsonify({"error": "Token expirado"}), 401


# xfin/app.py

import logging

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import db
from .auth import auth_bp
from .categories import categories_bp
from .config import Config
from .dashboard import dashboard_bp
from .debts import debts_bp
from .errors import ServiceError
from .extensions import jwt, limiter
from .onboarding import onboarding_bp
from .piggy_banks import piggy_banks_bp
from .receivables import receivables_bp
from .recurring import recurring_expenses_bp, recurring_incomes_bp
from .seed import seed_demo_command
from .transactions import bp as transactions_bp
from .uploads import uploads_bp
from .wishlist import wishlist_bp

logger = logging.getLogger("xfin-backend")

API_PREFIX = "/api/v1"

BLUEPRINTS = [
    (auth_bp, "/auth"),
    (onboarding_bp, "/onboarding"),
    (dashboard_bp, "/dashboard"),
    (categories_bp, "/categories"),
    (transactions_bp, "/transactions"),
    (recurring_incomes_bp, "/recurring-incomes"),
    (recurring_expenses_bp, "/recurring-expenses"),
    (debts_bp, "/debts"),
    (receivables_bp, "/receivables"),
    (wishlist_bp, "/wishlist"),
    (piggy_banks_bp, "/piggy-banks"),
]


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(429)
    def handle_rate_limited(e):
        return jsonify({"error": "Muitas tentativas de login. Tente novamente em 15 minutos."}), 429

    @app.errorhandler(413)
    def handle_too_large(e):
        limit_mb = app.config["MAX_CONTENT_LENGTH"] // (1024 * 1024)
        return jsonify({"error": f"Arquivo muito grande. Tamanho máximo: {limit_mb}MB"}), 413

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({"error": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.exception("Unhandled error")
        return jsonify({"error": "Erro interno do servidor"}), 500


# ---------------- Flask App Factory ----------------
def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    logging.basicConfig(level=app.config["LOG_LEVEL"])

    # CORS
    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={r"/*": {"origins": origins}}, supports_credentials=True)

    jwt.init_app(app)
    limiter.init_app(app)
    db.init_app(app)
    app.cli.add_command(seed_demo_command)

    for blueprint, prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=API_PREFIX + prefix)
    app.register_blueprint(uploads_bp)
    register_error_handlers(app)

    # Initialize DB
    with app.app_context():
        db.init_db()
        logger.info(f"Database initialized at {app.config['DATABASE']}")

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    return app


# ---------------- Run ----------------
if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=5000, debug=True)

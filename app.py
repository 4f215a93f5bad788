import logging

from flask import Flask, jsonify, request
from flask_login import LoginManager

import config

# Shared Util
from user_model import get_user_by_id

# ---------------- Blueprints ----------------
from login import login_bp, get_current_identity
from services.activity_audit import ensure_activity_log_indexes, audit_request
from services.daily_income import ensure_income_indexes
from routes.daily_closing import daily_closing_bp
from routes.reports import reports_bp
from api_cashbook import api_bp

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------- App & Auth Setup ----------------
app = Flask(__name__)
app.secret_key = config.SECRET_KEY
app.config["PERMANENT_SESSION_LIFETIME"] = config.SESSION_LIFETIME
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["REMEMBER_COOKIE_DURATION"] = config.SESSION_LIFETIME
app.config["REMEMBER_COOKIE_HTTPONLY"] = True
app.config["REMEMBER_COOKIE_SAMESITE"] = "Lax"
app.config["SESSION_COOKIE_SECURE"] = config.IS_PRODUCTION
app.config["REMEMBER_COOKIE_SECURE"] = config.IS_PRODUCTION

ensure_activity_log_indexes()
ensure_income_indexes()

login_manager = LoginManager()
login_manager.init_app(app)


@login_manager.user_loader
def load_user(user_id):
    return get_user_by_id(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(ok=False, message="Sign in required."), 401


# ---------------- Blueprint Registration ----------------
app.register_blueprint(login_bp)
app.register_blueprint(daily_closing_bp)
app.register_blueprint(reports_bp)
app.register_blueprint(api_bp)


# ---------------- Root ----------------
@app.route("/")
def root():
    ident = get_current_identity()
    return jsonify(
        ok=True,
        service="branch-cashbook",
        signed_in=bool(ident.get("is_authenticated")),
    )


@app.after_request
def audit_mutations(response):
    audit_request(request, response)
    return response


if __name__ == "__main__":
    app.run(debug=not config.IS_PRODUCTION)

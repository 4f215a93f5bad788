from datetime import datetime

from flask import Blueprint, jsonify, request, session
from flask_bcrypt import Bcrypt
from flask_login import current_user, login_user, logout_user

from db import db
from services.rbac import generate_user_permissions, legacy_role_name
from user_model import User

login_bp = Blueprint('login', __name__)
bcrypt = Bcrypt()

# MongoDB collections
users_col  = db.users
logins_col = db.login_logs


def ensure_login_indexes() -> None:
    try:
        users_col.create_index([("username", 1)], unique=True)
        users_col.create_index([("role", 1)])
        logins_col.create_index([("user_id", 1), ("timestamp", -1)])
    except Exception:
        pass


# ---------------------------
# Utilities
# ---------------------------
def _client_ip() -> str:
    return request.headers.get('X-Forwarded-For', '').split(',')[0].strip() or (request.remote_addr or '')


def get_current_identity() -> dict:
    if not getattr(current_user, "is_authenticated", False):
        return {"is_authenticated": False}
    access = getattr(current_user, "access", {}) or {}
    return {
        "is_authenticated": True,
        "role": (getattr(current_user, "role", "") or "").lower(),
        "user_id": str(getattr(current_user, "id", "") or ""),
        "name": getattr(current_user, "name", "") or getattr(current_user, "username", "") or "User",
        "legacy_role": legacy_role_name(access, getattr(current_user, "is_executive", False)),
        "home_branch": getattr(current_user, "home_branch", None),
        "access": access,
    }


def hash_password(password: str) -> str:
    return bcrypt.generate_password_hash(password).decode("utf-8")


@login_bp.record_once
def on_load(state):
    bcrypt.init_app(state.app)
    ensure_login_indexes()


# ---------------------------
# Login / logout
# ---------------------------
@login_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form.to_dict()
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        return jsonify(ok=False, message="Username and password are required."), 400

    user_data = users_col.find_one({"username": username})
    if not user_data or not user_data.get('password'):
        return jsonify(ok=False, message="Invalid username or password."), 401

    user = User(user_data)
    if not user.is_active:
        return jsonify(ok=False, message="Your account is not active. Contact an administrator."), 403

    try:
        ok = bcrypt.check_password_hash(user_data['password'], password)
    except ValueError:
        ok = False
    if not ok:
        return jsonify(ok=False, message="Invalid username or password."), 401

    session.permanent = True
    login_user(user, remember=True)

    logins_col.insert_one({
        "user_id": user.id,
        "username": user.username,
        "role": user.role,
        "ip": _client_ip(),
        "user_agent": request.headers.get('User-Agent'),
        "timestamp": datetime.utcnow(),
    })

    return jsonify(
        ok=True,
        user={"id": user.id, "username": user.username, "name": user.name, "role": user.role},
        permissions=generate_user_permissions(user.access)["permissions"],
    )


@login_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    logout_user()
    return jsonify(ok=True)


@login_bp.route('/me', methods=['GET'])
def me():
    ident = get_current_identity()
    if not ident.get("is_authenticated"):
        return jsonify(ok=False, message="Not signed in."), 401
    return jsonify(ok=True, identity=ident)

# api_cashbook.py
import logging
from datetime import datetime

from flask import Blueprint, jsonify, request

import config
from services.closing_summary import compute_daily_closing
from services.daily_income import get_income
from services.errors import InvalidPeriodError
from services.numbers import format_day

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _require_api_key():
    """
    Basic header check for backend-to-backend calls.
    Send:  X-API-Key: <CASHBOOK_API_KEY>
    No key configured means the API is closed.
    """
    sent = request.headers.get("X-API-Key")
    if not config.API_KEY or not sent or sent != config.API_KEY:
        return jsonify({"ok": False, "error": "Unauthorized"}), 401
    return None


# ----------------------------------------------------------------------
# Health check
# ----------------------------------------------------------------------
@api_bp.route("/health", methods=["GET"])
def api_health():
    return jsonify({
        "ok": True,
        "service": "Branch Cashbook API",
        "time_utc": datetime.utcnow().isoformat() + "Z"
    })


# ----------------------------------------------------------------------
# Daily closing for one branch/day
#   GET /api/daily-closing?branch=0450&date=2024-03-01
# ----------------------------------------------------------------------
@api_bp.route("/daily-closing", methods=["GET"])
def api_daily_closing():
    auth = _require_api_key()
    if auth:
        return auth

    branch = (request.args.get("branch") or "").strip()
    if not branch:
        return jsonify({"ok": False, "error": "branch is required"}), 400

    try:
        day = format_day(request.args.get("date"))
    except InvalidPeriodError as e:
        return jsonify({"ok": False, "error": str(e)}), 400

    try:
        daily = get_income(branch, day, include_parts=True)
        closing = compute_daily_closing(day, daily, branch)
    except Exception:
        logger.exception("API daily closing failed for %s on %s", branch, day)
        return jsonify({"ok": False, "error": "Could not compute the daily closing"}), 500

    return jsonify({
        "ok": True,
        "branch_code": branch,
        "date": day,
        "closing": closing,
    })

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required
from pymongo.errors import DuplicateKeyError

import config
from constants import ALL_BRANCHES
from db import db
from routes.common import branch_arg, guard_branch, json_error, run_report
from services.activity_audit import audit_action
from services.closing_summary import compute_daily_closing
from services.daily_income import get_income, get_income_parts
from services.numbers import date_range, format_day

logger = logging.getLogger(__name__)

daily_closing_bp = Blueprint(
    "daily_closing",
    __name__,
    url_prefix="/account/daily-closing",
)

closings_col = db["daily_closings"]


def ensure_closing_indexes() -> None:
    try:
        closings_col.create_index([("branch_code", 1), ("date", 1)], unique=True)
        closings_col.create_index([("confirmed_at", -1)])
    except Exception as e:
        logger.warning("Could not create daily closing indexes: %s", e)


@daily_closing_bp.record_once
def on_load(state):
    ensure_closing_indexes()


def _today() -> str:
    return datetime.now().strftime("%Y-%m-%d")


def _closing_for(branch: str, day: str) -> Dict[str, Any]:
    day = format_day(day)
    daily = get_income(branch, day, include_parts=True)
    return {
        "income": daily.to_dict(),
        "closing": compute_daily_closing(day, daily, branch),
    }


# ---------------------------
# Daily closing
# ---------------------------
@daily_closing_bp.route("", methods=["GET"])
@login_required
def daily_closing():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    data, err = run_report(_closing_for, branch, request.args.get("date") or _today())
    if err:
        return err
    return jsonify(ok=True, branch_code=branch, **data)


@daily_closing_bp.route("/parts", methods=["GET"])
@login_required
def daily_closing_parts():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    day, err = run_report(format_day, request.args.get("date") or _today())
    if err:
        return err
    daily, err = run_report(get_income_parts, branch, day)
    if err:
        return err
    return jsonify(ok=True, branch_code=branch, date=day, income=daily.to_dict())


@daily_closing_bp.route("/confirm", methods=["POST"])
@login_required
@audit_action("closing.confirmed", "Confirmed Daily Closing", entity_type="closing", entity_id="branch_code")
def confirm_daily_closing():
    data = request.get_json(silent=True) or request.form.to_dict()
    branch = (data.get("branch_code") or "").strip()
    if not branch or branch == ALL_BRANCHES:
        return json_error("A single branch_code is required.", 400)
    denied = guard_branch(branch)
    if denied:
        return denied

    result, err = run_report(_closing_for, branch, data.get("date") or "")
    if err:
        return err
    closing = result["closing"]

    if closings_col.find_one({"branch_code": branch, "date": closing["date"]}, {"_id": 1}):
        return json_error(f"Closing for {branch} on {closing['date']} is already confirmed.", 409)

    doc = {
        **closing,
        "confirmed_by": str(getattr(current_user, "id", "") or ""),
        "confirmed_by_name": getattr(current_user, "name", "") or getattr(current_user, "username", ""),
        "confirmed_at": datetime.utcnow(),
    }
    try:
        closings_col.insert_one(doc)
    except DuplicateKeyError:
        return json_error(f"Closing for {branch} on {closing['date']} is already confirmed.", 409)
    logger.info("Daily closing confirmed: %s %s by %s", branch, closing["date"], doc["confirmed_by"])
    return jsonify(ok=True, closing=closing), 201


@daily_closing_bp.route("/confirmed", methods=["GET"])
@login_required
def confirmed_closings():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    end = request.args.get("to") or _today()
    start = request.args.get("from") or end
    days, err = run_report(date_range, start, end, max_days=config.MAX_REPORT_DAYS)
    if err:
        return err

    query: Dict[str, Any] = {"date": {"$gte": days[0], "$lte": days[-1]}}
    if branch != ALL_BRANCHES:
        query["branch_code"] = branch

    rows = []
    for doc in closings_col.find(query).sort([("date", 1), ("branch_code", 1)]):
        doc.pop("_id", None)
        rows.append(doc)
    return jsonify(ok=True, rows=rows)

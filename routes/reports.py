from __future__ import annotations

import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Tuple

from flask import Blueprint, Response, jsonify, request
from flask_login import login_required

from routes.common import branch_arg, guard_branch, run_report
from services.closing_summary import (
    format_income_summary,
    format_monthly_summary,
    summarize_months,
    totals_row,
)
from services.expense_summary import expense_totals_by_type, get_expense_summary
from services.income_summary import get_income_summary

logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__, url_prefix="/reports")

# (column, header) for the daily money CSV export
DAILY_MONEY_COLUMNS: List[Tuple[str, str]] = [
    ("date", "Date"),
    ("total_income", "Total income"),
    ("total_expense", "Total expense"),
    ("total_chevrolet", "Chevrolet expense"),
    ("daily_net_income", "Daily net income"),
    ("after_daily_closed", "Received after daily closing"),
    ("transfer_hq", "Transfer to HQ"),
    ("bank_deposit", "Bank deposit"),
    ("personal_loan_total", "Personal loan"),
    ("during_day_total", "Handed over during day"),
    ("net_total", "Net total"),
    ("change_repay", "Change fund repaid"),
    ("cash_evening", "Cash received evening"),
    ("total_cash", "Total cash"),
    ("executive_cash_deposit", "Executive cash deposit"),
    ("direct_handover", "Direct handover"),
    ("transfer_baac", "Transfer BAAC"),
    ("total_transfer", "Total transfer"),
    ("total", "Total"),
    ("cash_hq", "Cash to HQ"),
]


def _period_args() -> Tuple[str, str]:
    today = datetime.now().strftime("%Y-%m-%d")
    end = (request.args.get("to") or today).strip()
    start = (request.args.get("from") or end).strip()
    return start, end


def _daily_money_csv(branch: str, start: str, end: str, rows: List[Dict[str, Any]]) -> Response:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Daily Money Summary"])
    writer.writerow(["Branch", branch])
    writer.writerow(["From", start, "To", end])
    writer.writerow([])

    writer.writerow([header for _, header in DAILY_MONEY_COLUMNS])
    for row in rows + [totals_row(rows)]:
        line = [row.get("date")]
        for key, _ in DAILY_MONEY_COLUMNS[1:]:
            line.append(f"{float(row.get(key) or 0.0):.2f}")
        writer.writerow(line)

    csv_bytes = output.getvalue().encode("utf-8-sig")
    filename = f"daily_money_{branch}_{start}_{end}.csv"
    return Response(
        csv_bytes,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ------------------ Daily money ------------------
@reports_bp.route("/daily-money", methods=["GET"])
@login_required
def daily_money():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    start, end = _period_args()
    rows, err = run_report(format_income_summary, branch, start, end)
    if err:
        return err

    if (request.args.get("format") or "").lower() == "csv":
        return _daily_money_csv(branch, start, end, rows)
    return jsonify(ok=True, branch_code=branch, rows=rows, totals=totals_row(rows))


# ------------------ Monthly money ------------------
@reports_bp.route("/monthly-money", methods=["GET"])
@login_required
def monthly_money():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    month = (request.args.get("month") or datetime.now().strftime("%Y-%m")).strip()
    data, err = run_report(format_monthly_summary, branch, month)
    if err:
        return err
    return jsonify(ok=True, **data)


@reports_bp.route("/monthly-money/range", methods=["GET"])
@login_required
def monthly_money_range():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    this_month = datetime.now().strftime("%Y-%m")
    end = (request.args.get("to") or this_month).strip()
    start = (request.args.get("from") or end).strip()
    rows, err = run_report(summarize_months, branch, start, end)
    if err:
        return err
    return jsonify(ok=True, branch_code=branch, rows=rows, totals=totals_row(rows))


# ------------------ Income / expense matrices ------------------
@reports_bp.route("/income-summary", methods=["GET"])
@login_required
def income_summary():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    start, end = _period_args()
    data, err = run_report(get_income_summary, branch, start, end)
    if err:
        return err
    return jsonify(ok=True, branch_code=branch, **data)


@reports_bp.route("/expense-summary", methods=["GET"])
@login_required
def expense_summary():
    branch = branch_arg()
    denied = guard_branch(branch)
    if denied:
        return denied

    start, end = _period_args()
    data, err = run_report(get_expense_summary, branch, start, end)
    if err:
        return err
    by_type, err = run_report(expense_totals_by_type, branch, start, end)
    if err:
        return err
    return jsonify(ok=True, branch_code=branch, totals_by_type=by_type, **data)

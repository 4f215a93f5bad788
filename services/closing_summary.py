from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import config
from services.daily_income import DailyIncome, get_income
from services.numbers import (
    date_range,
    distinct_rows,
    iter_months,
    month_days,
    sum_field,
    to_number,
)

logger = logging.getLogger(__name__)

# Columns of a closing row that are summed when rows are merged or rolled up.
SUMMARY_KEYS = (
    "net_total",
    "change_repay",
    "cash_evening",
    "total_cash",
    "executive_cash_deposit",
    "direct_handover",
    "bank_deposit",
    "transfer_hq",
    "transfer_baac",
    "total_transfer",
    "total",
    "baac_not_received",
    "cash_hq",
    "personal_loan_total",
    "after_daily_closed",
    "during_day_total",
    "total_income",
    "total_expense",
    "total_chevrolet",
    "daily_net_income",
)


def _empty_row() -> Dict[str, Any]:
    return {k: 0.0 for k in SUMMARY_KEYS}


def compute_daily_closing(
    day: str,
    daily: DailyIncome,
    branch: Optional[str] = None,
    handover_receiver: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Reconcile one day into the cash figure sent to head office.
    Pure function - no database access.
    """
    receiver = handover_receiver if handover_receiver is not None else config.DIRECT_HANDOVER_RECEIVER

    change_repay = to_number(daily.daily_change_deposit) + to_number(daily.part_change_deposit)
    bank_deposit = sum_field(daily.bank_deposit, "total")
    transfer_hq = sum_field(daily.bank_transfer, "amount")
    personal_loan_total = sum_field(daily.personal_loan, "amount")
    cash_evening = sum_field(daily.after_account_closed, "total")
    after_daily_closed = sum_field(daily.after_daily_closed, "total")
    executive_cash_deposit = sum_field(daily.executive_cash_deposit, "total")

    direct_handover = sum_field(
        [r for r in daily.during_day_records if r.get("receiver_during_day") == receiver],
        "amt_during_day",
    )

    total_income = sum_field(daily.incomes, "total")
    total_expense = sum_field([e for e in daily.expenses if not e.get("is_chevrolet")], "total")
    total_chevrolet = sum_field([e for e in daily.expenses if e.get("is_chevrolet")], "total")
    daily_net_income = total_income - total_expense - total_chevrolet

    cash_hq = daily_net_income - transfer_hq - direct_handover - executive_cash_deposit
    during_day_total = sum_field(daily.during_day_money, "value", skip_deleted=False)
    net_total = (
        daily_net_income
        - after_daily_closed
        - transfer_hq
        - bank_deposit
        - personal_loan_total
        - during_day_total
    )

    # BAAC sales are settled by the bank later; not part of the day's transfers yet.
    transfer_baac = 0.0

    total_cash = net_total - change_repay + cash_evening
    total_transfer = transfer_hq + transfer_baac + bank_deposit
    total = total_cash + total_transfer

    return {
        "date": day,
        "branch_code": branch,
        **_empty_row(),
        "cash_hq": cash_hq,
        "change_repay": change_repay,
        "transfer_hq": transfer_hq,
        "bank_deposit": bank_deposit,
        "cash_evening": cash_evening,
        "after_daily_closed": after_daily_closed,
        "personal_loan_total": personal_loan_total,
        "during_day_total": during_day_total,
        "total_cash": total_cash,
        "executive_cash_deposit": executive_cash_deposit,
        "direct_handover": direct_handover,
        "transfer_baac": transfer_baac,
        "total_transfer": total_transfer,
        "total": total,
        "net_total": net_total,
        "total_income": total_income,
        "total_expense": total_expense,
        "total_chevrolet": total_chevrolet,
        "daily_net_income": daily_net_income,
        "count": 1,
    }


def _is_idle_day(row: Dict[str, Any]) -> bool:
    return (
        to_number(row.get("net_total")) == 0
        and to_number(row.get("change_repay")) == 0
        and to_number(row.get("total_cash")) == 0
    )


def _closings_for_days(branch: str, days: List[str], handover_receiver: Optional[str]) -> List[Dict[str, Any]]:
    rows = []
    for day in days:
        daily = get_income(branch, day, include_parts=True)
        rows.append(compute_daily_closing(day, daily, branch, handover_receiver))
    return rows


def merge_daily_rows(rows: List[Dict[str, Any]], drop_idle: bool = True) -> List[Dict[str, Any]]:
    merged = distinct_rows(rows, ["date"], list(SUMMARY_KEYS) + ["count"])
    if drop_idle:
        # Days with nothing recorded are most likely holidays.
        merged = [r for r in merged if not _is_idle_day(r)]
    return [{**row, "id": idx} for idx, row in enumerate(merged)]


def totals_row(rows: List[Dict[str, Any]], label: str = "Total") -> Dict[str, Any]:
    out = {"date": label, **_empty_row(), "count": 0}
    for row in rows:
        for key in SUMMARY_KEYS:
            out[key] += to_number(row.get(key))
        out["count"] += int(to_number(row.get("count")))
    return out


def format_income_summary(
    branch: str,
    start: str,
    end: str,
    handover_receiver: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Daily money summary: one closing row per active day in [start, end]."""
    days = date_range(start, end, max_days=config.MAX_REPORT_DAYS)
    rows = _closings_for_days(branch, days, handover_receiver)
    result = merge_daily_rows(rows)
    logger.info("Daily money summary %s %s..%s: %d active days", branch, days[0], days[-1], len(result))
    return result


def format_monthly_summary(
    branch: str,
    month: str,
    handover_receiver: Optional[str] = None,
) -> Dict[str, Any]:
    """Daily closings for every active day of `month` plus a totals row."""
    rows = merge_daily_rows(_closings_for_days(branch, month_days(month), handover_receiver))
    return {
        "month": month,
        "branch_code": branch,
        "rows": rows,
        "totals": totals_row(rows),
    }


def summarize_months(
    branch: str,
    start_month: str,
    end_month: str,
    handover_receiver: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """One rolled-up closing row per month in [start_month, end_month]."""
    months = iter_months(start_month, end_month)
    # validates the overall span against MAX_REPORT_DAYS
    date_range(f"{months[0]}-01", month_days(months[-1])[-1], max_days=config.MAX_REPORT_DAYS)

    out = []
    for idx, month in enumerate(months):
        monthly = format_monthly_summary(branch, month, handover_receiver)
        row = totals_row(monthly["rows"], label=month)
        row["month"] = month
        row["branch_code"] = branch
        row["id"] = idx
        out.append(row)
    return out

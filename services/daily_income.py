"""Daily income / expense collection for one branch and one day.

Everything the daily closing needs is fetched here: daily incomes per
sub-category, the daily change-fund expense and its items, money received
after the account was closed, bank deposits and executive cash deposits.
`build_daily_income` is pure; `get_income` / `get_income_parts` wrap it
with the database reads.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from constants import (
    ALL_BRANCHES,
    ALL_INCOME_TYPES,
    EXPENSE_TYPE_DAILY_CHANGE,
    INCOME_CATEGORY_AFTER_CLOSE,
    INCOME_CATEGORY_DAILY,
    INCOME_DAILY_SUBCATEGORIES,
    PART_INCOME_TYPES,
    SERVICE_INCOME_TYPES,
)
from db import (
    bank_deposits_collection,
    executive_cash_deposits_collection,
    expense_items_collection,
    expenses_collection,
    incomes_collection,
)
from services.numbers import distinct_rows, format_day, money, sum_field, to_number
from services.payment_items import customer_name, get_bank_transfer_items, get_personal_loan_items

logger = logging.getLogger(__name__)

DAILY_SUBCATEGORIES = tuple(INCOME_DAILY_SUBCATEGORIES)


def ensure_income_indexes() -> None:
    try:
        incomes_collection.create_index([("date", 1), ("branch_code", 1), ("income_category", 1)])
        incomes_collection.create_index([("income_date", 1), ("branch_code", 1)])
        incomes_collection.create_index([("income_id", 1)])
        expenses_collection.create_index([("date", 1), ("branch_code", 1), ("expense_type", 1)])
        expense_items_collection.create_index([("expense_id", 1)])
        expense_items_collection.create_index([("date", 1), ("branch_code", 1)])
        bank_deposits_collection.create_index([("deposit_date", 1), ("branch_code", 1)])
        executive_cash_deposits_collection.create_index([("deposit_date", 1), ("branch_code", 1)])
    except Exception as e:
        logger.warning("Could not create income indexes: %s", e)


@dataclass
class DailySources:
    """Raw documents for one branch/day, as read from the database."""

    daily_changes: List[Dict[str, Any]] = field(default_factory=list)
    daily_change_items: List[Dict[str, Any]] = field(default_factory=list)
    vehicles: List[Dict[str, Any]] = field(default_factory=list)
    service: List[Dict[str, Any]] = field(default_factory=list)
    parts: List[Dict[str, Any]] = field(default_factory=list)
    other: List[Dict[str, Any]] = field(default_factory=list)
    after_daily_closed: List[Dict[str, Any]] = field(default_factory=list)
    after_account_closed: List[Dict[str, Any]] = field(default_factory=list)
    bank_deposit: List[Dict[str, Any]] = field(default_factory=list)
    executive_cash_deposit: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class DailyIncome:
    daily_change_deposit: float = 0.0
    part_change_deposit: float = 0.0
    bank_transfer: List[Dict[str, Any]] = field(default_factory=list)
    personal_loan: List[Dict[str, Any]] = field(default_factory=list)
    incomes: List[Dict[str, Any]] = field(default_factory=list)
    expenses: List[Dict[str, Any]] = field(default_factory=list)
    after_daily_closed: List[Dict[str, Any]] = field(default_factory=list)
    after_account_closed: List[Dict[str, Any]] = field(default_factory=list)
    during_day_money: List[Dict[str, Any]] = field(default_factory=list)
    during_day_records: List[Dict[str, Any]] = field(default_factory=list)
    bank_deposit: List[Dict[str, Any]] = field(default_factory=list)
    executive_cash_deposit: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ------------------ Fetching ------------------
def _plain(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    oid = out.pop("_id", None)
    if oid is not None:
        out["doc_id"] = str(oid)
    return out


def _find(col, query: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [_plain(doc) for doc in col.find(query).sort("_id", 1)]


def _scoped(query: Dict[str, Any], branch: Optional[str]) -> Dict[str, Any]:
    if branch and branch != ALL_BRANCHES:
        return {**query, "branch_code": branch}
    return query


def fetch_daily_sources(branch: str, day: str, subcategories=DAILY_SUBCATEGORIES) -> DailySources:
    day = format_day(day)
    sources = DailySources()

    sources.daily_changes = _find(
        expenses_collection,
        _scoped({"expense_type": EXPENSE_TYPE_DAILY_CHANGE, "date": day}, branch),
    )
    for sub in subcategories:
        docs = _find(
            incomes_collection,
            _scoped({"income_category": INCOME_CATEGORY_DAILY, "income_sub_category": sub, "date": day}, branch),
        )
        setattr(sources, sub, docs)

    sources.after_daily_closed = _find(
        incomes_collection,
        _scoped({"income_category": INCOME_CATEGORY_AFTER_CLOSE, "income_date": day}, branch),
    )
    sources.after_account_closed = _find(
        incomes_collection,
        _scoped({"income_category": INCOME_CATEGORY_AFTER_CLOSE, "date": day}, branch),
    )
    sources.bank_deposit = _find(bank_deposits_collection, _scoped({"deposit_date": day}, branch))
    sources.executive_cash_deposit = _find(
        executive_cash_deposits_collection, _scoped({"deposit_date": day}, branch)
    )

    if sources.daily_changes:
        first = sources.daily_changes[0]
        expense_id = _expense_id(first)
        if first.get("items"):
            sources.daily_change_items = [{**it, "expense_id": expense_id} for it in first["items"]]
        else:
            sources.daily_change_items = _find(expense_items_collection, {"expense_id": expense_id})

    return sources


# ------------------ Line builders ------------------
def _expense_id(doc: Dict[str, Any]) -> Optional[str]:
    return doc.get("expense_id") or doc.get("doc_id")


def _short_day(value: Any) -> str:
    try:
        d = datetime.strptime(str(value), "%Y-%m-%d")
    except ValueError:
        return str(value or "")
    return f"{d.day}/{d.month}/{d.strftime('%y')}"


def change_deposit_total(expense: Dict[str, Any]) -> float:
    deposit = expense.get("change_deposit")
    if not deposit:
        return 0.0
    if isinstance(deposit, list):
        return sum_field(deposit, "total")
    return to_number(deposit)


def _vehicle_line(doc: Dict[str, Any]) -> Dict[str, Any]:
    income_type = doc.get("income_type")
    label = ALL_INCOME_TYPES.get(income_type, income_type or "")
    details = ""
    if income_type in ("down", "cash", "reservation"):
        names = "".join(it.get("name") or "" for it in doc.get("items") or [])
        info = f"{names} {customer_name(doc)}".strip()
        details = info
    elif income_type == "baac":
        info = customer_name(doc)
        details = f"BAAC receipt no. {doc['baac_no']}" if doc.get("baac_no") else ""
    else:
        info = customer_name(doc)
    return {
        "income_id": doc.get("income_id"),
        "item": f"Income {label} {info}".strip(),
        "receiver_employee": doc.get("receiver_employee") or doc.get("recorded_by") or doc.get("created_by"),
        "total": doc.get("total"),
        "details": details,
        "remark": doc.get("remark"),
        "deleted": bool(doc.get("deleted", False)),
    }


def _other_line(doc: Dict[str, Any]) -> Dict[str, Any]:
    info = ""
    if doc.get("amt_other") and isinstance(doc.get("amt_others"), list):
        for it in doc["amt_others"]:
            info += f" received {it.get('name') or ''} {money(it['total']) if it.get('total') else ''}"
    if doc.get("deduct_other") and isinstance(doc.get("deduct_others"), list):
        for it in doc["deduct_others"]:
            info += f" deducted {it.get('name') or ''} {money(it['total']) if it.get('total') else ''}"

    title = ""
    if doc.get("amt_rebate"):
        title += f"Refund received {money(doc['amt_rebate'])}"
    if doc.get("amt_excess"):
        title += f"Excess received {money(doc['amt_excess'])}"
    return {
        "income_id": doc.get("income_id"),
        "item": f"{title} {customer_name(doc)}".strip(),
        "receiver_employee": (
            doc.get("receiver_employee")
            or doc.get("receiver_during_day")
            or doc.get("recorded_by")
            or doc.get("created_by")
        ),
        "total": doc.get("total"),
        "details": info.strip(),
        "remark": doc.get("remark"),
        "deleted": bool(doc.get("deleted", False)),
    }


def _service_line(doc: Dict[str, Any]) -> Dict[str, Any]:
    info = f"Reg. {doc['vehicle_reg_number']}" if doc.get("vehicle_reg_number") else ""
    if doc.get("income_type") != "repairDeposit":
        for it in doc.get("items") or []:
            info += f" {it.get('item') or ''}"
    label = SERVICE_INCOME_TYPES.get(doc.get("income_type"), doc.get("income_type") or "")
    return {
        "income_id": doc.get("income_id"),
        "item": f"Service income {label} {_short_day(doc.get('date'))}",
        "receiver_employee": doc.get("receiver_employee") or doc.get("technician_id"),
        "total": doc.get("total"),
        "details": info.strip(),
        "remark": doc.get("remark"),
        "deleted": bool(doc.get("deleted", False)),
    }


def _part_line(doc: Dict[str, Any]) -> Dict[str, Any]:
    income_type = doc.get("income_type")
    prefix = "Received " if income_type != "partChange" else ""
    return {
        "income_id": doc.get("income_id"),
        "item": f"{prefix}{PART_INCOME_TYPES.get(income_type, income_type or '')}",
        "receiver_employee": doc.get("receiver_employee") or doc.get("created_by"),
        "total": doc.get("total"),
        "details": "",
        "remark": doc.get("remark"),
        "deleted": bool(doc.get("deleted", False)),
    }


def _collect_during_day(doc: Dict[str, Any], money_lines: List[Dict[str, Any]], records: List[Dict[str, Any]]) -> None:
    if not doc.get("amt_during_day") or doc.get("deleted"):
        return
    money_lines.append({
        "item": f"Less: handed to finance during day {doc.get('income_no') or ''}".strip(),
        "value": doc["amt_during_day"],
        "qty": 1,
    })
    records.append({
        "date": doc.get("date"),
        "deleted": doc.get("deleted"),
        "income_id": doc.get("income_id"),
        "amt_during_day": doc["amt_during_day"],
        "receiver_during_day": doc.get("receiver_during_day"),
    })


def _append(lines: List[Dict[str, Any]], line: Dict[str, Any]) -> None:
    lines.append({"id": len(lines), **line})


def build_daily_income(sources: DailySources, include_parts: bool = True) -> DailyIncome:
    result = DailyIncome(
        after_daily_closed=list(sources.after_daily_closed),
        after_account_closed=list(sources.after_account_closed),
        bank_deposit=list(sources.bank_deposit),
        executive_cash_deposit=list(sources.executive_cash_deposit),
    )
    during_day: List[Dict[str, Any]] = []

    # Change fund handed to the branch in the morning
    if sources.daily_changes:
        first = sources.daily_changes[0]
        total_deposit = change_deposit_total(first)
        _append(result.incomes, {
            "expense_id": _expense_id(first),
            "item": "Change fund received",
            "receiver_employee": first.get("receiver_employee") or first.get("input_by"),
            "total": total_deposit,
            "details": "",
            "remark": "",
            "deleted": bool(first.get("deleted", False)),
            "change_deposit": first.get("change_deposit") or [],
        })
        result.daily_change_deposit = total_deposit

    for doc in sources.vehicles:
        _append(result.incomes, _vehicle_line(doc))
        _collect_during_day(doc, during_day, result.during_day_records)

    for doc in sources.other:
        _append(result.incomes, _other_line(doc))
        _collect_during_day(doc, during_day, result.during_day_records)

    for doc in sources.service:
        _append(result.incomes, _service_line(doc))
        _collect_during_day(doc, during_day, result.during_day_records)

    if include_parts and sources.parts:
        part_change = [d for d in sources.parts if d.get("income_type") == "partChange"]
        if part_change:
            result.part_change_deposit = to_number(part_change[0].get("total"))
        for doc in sources.parts:
            _append(result.incomes, _part_line(doc))
            _collect_during_day(doc, during_day, result.during_day_records)

    deleted_parents = {_expense_id(d) for d in sources.daily_changes if d.get("deleted")}
    for it in sources.daily_change_items:
        _append(result.expenses, {
            "expense_id": it.get("expense_id"),
            "expense_item_id": it.get("item_key"),
            "item": it.get("expense_name"),
            "payer": it.get("payer"),
            "total": it.get("total"),
            "price_type": it.get("price_type"),
            "details": "",
            "remark": it.get("remark"),
            "deleted": it.get("expense_id") in deleted_parents or bool(it.get("deleted", False)),
            "is_chevrolet": bool(it.get("is_chevrolet", False)),
        })

    payment_sources = [sources.vehicles, sources.service]
    if include_parts:
        payment_sources.append(sources.parts)
    payment_sources.append(sources.other)
    for docs in payment_sources:
        result.bank_transfer.extend(get_bank_transfer_items(docs))
        result.personal_loan.extend(get_personal_loan_items(docs))

    merged = distinct_rows(during_day, ["item"], ["value", "qty"])
    result.during_day_money = [
        {
            "item": f"{row['item']} {int(row['qty'])} item(s)" if row.get("qty") else row["item"],
            "value": row["value"],
        }
        for row in merged
    ]
    return result


# ------------------ Public API ------------------
def get_income(branch: str, day: str, include_parts: bool = True) -> DailyIncome:
    """Daily income/expense set for `branch` ("all" for every branch) on `day`."""
    subcategories = DAILY_SUBCATEGORIES if include_parts else ("vehicles", "service", "other")
    sources = fetch_daily_sources(branch, day, subcategories)
    logger.debug(
        "Daily sources %s %s: %d change, %d vehicle, %d service, %d parts, %d other",
        branch, day, len(sources.daily_changes), len(sources.vehicles),
        len(sources.service), len(sources.parts), len(sources.other),
    )
    return build_daily_income(sources, include_parts=include_parts)


def get_income_parts(branch: str, day: str) -> DailyIncome:
    """Parts-department view of the same day: change fund plus parts income only."""
    sources = fetch_daily_sources(branch, day, ("parts",))
    return build_daily_income(sources, include_parts=True)

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

import config
from constants import ALL_BRANCHES, INCOME_CATEGORY_DAILY
from db import incomes_collection
from services.numbers import date_range, to_number

logger = logging.getLogger(__name__)

# (section key, section title, line titles in display order)
SECTIONS: List[Tuple[str, str, List[str]]] = [
    ("vehicles", "Vehicle income", [
        "Cash sale income",
        "Deposit / reservation income",
        "Down payment income",
        "BAAC income",
        "Registration / insurance income",
        "Installment income",
        "Other vehicle income",
    ]),
    ("parts", "Parts income", [
        "Parts / oil SKC income",
        "KBN battery sales",
        "KBN exhaust sales",
        "KBN GPS sales",
        "KBN tyre sales",
        "Wholesale parts income",
        "Parts deposit income",
    ]),
    ("service_inside", "In-shop repair", [
        "Parts - in-shop",
        "Oil - in-shop",
        "Labour - in-shop",
        "Distance - in-shop",
        "Gasket / sealant - in-shop",
        "Other - in-shop",
        "Repair deposit income",
        "Less deposit - in-shop",
    ]),
    ("service_outside", "Field service (care plan)", [
        "Parts - field care",
        "Oil - field care",
        "Labour - field care",
        "Distance - field care",
        "Gasket / sealant - field care",
        "Other - field care",
        "Less deposit - field care",
    ]),
    ("service_1512", "Field service 1-5-12", [
        "Parts - 1-5-12",
        "Oil - 1-5-12",
        "Labour - 1-5-12",
        "Distance - 1-5-12",
        "Gasket / sealant - 1-5-12",
        "Other - 1-5-12",
    ]),
    ("other", "Other income", ["Other income"]),
]

DEDUCTION_PREFIX = "Less deposit"

VEHICLE_TITLES = {
    "cash": "Cash sale income",
    "reservation": "Deposit / reservation income",
    "down": "Down payment income",
    "baac": "BAAC income",
    "licensePlateFee": "Registration / insurance income",
    "kbnLeasing": "Installment income",
    "installment": "Installment income",
    "other": "Other vehicle income",
}

PART_TITLES = {
    "partSKC": "Parts / oil SKC income",
    "wholeSale": "Wholesale parts income",
    "partDeposit": "Parts deposit income",
}

PART_KBN_BREAKDOWN = [
    ("amt_battery", "KBN battery sales"),
    ("amt_intake", "KBN exhaust sales"),
    ("amt_gps", "KBN GPS sales"),
    ("amt_tyre", "KBN tyre sales"),
]

SERVICE_BREAKDOWN = [
    ("amt_parts", "Parts"),
    ("amt_oil", "Oil"),
    ("amt_wage", "Labour"),
    ("amt_distance", "Distance"),
    ("amt_black_glue", "Gasket / sealant"),
    ("amt_other", "Other"),
]

SERVICE_SUFFIX = {
    "inside": "in-shop",
    "outsideCare": "field care",
    "outside1512": "1-5-12",
}


def _line_amounts(doc: Dict[str, Any]) -> List[Tuple[str, float]]:
    """(title, amount) pairs a single income document contributes."""
    sub = doc.get("income_sub_category")
    income_type = doc.get("income_type")
    amount = to_number(doc.get("total"))

    if sub in ("vehicle", "vehicles"):
        title = VEHICLE_TITLES.get(income_type)
        return [(title, amount)] if title else []

    if sub == "parts":
        if income_type == "partKBN":
            return [(t, to_number(doc.get(f))) for f, t in PART_KBN_BREAKDOWN if doc.get(f)]
        title = PART_TITLES.get(income_type)
        return [(title, amount)] if title else []

    if sub == "service":
        if income_type == "repairDeposit":
            return [("Repair deposit income", amount)]
        suffix = SERVICE_SUFFIX.get(income_type)
        if not suffix:
            return []
        lines = [(f"{t} - {suffix}", to_number(doc.get(f))) for f, t in SERVICE_BREAKDOWN if doc.get(f)]
        if income_type != "outside1512" and doc.get("deduct_deposit"):
            lines.append((f"{DEDUCTION_PREFIX} - {suffix}", to_number(doc.get("deduct_deposit"))))
        return lines

    if sub == "other":
        return [("Other income", amount)]

    return []


def build_income_summary(docs: Iterable[Dict[str, Any]], days: List[str]) -> List[Dict[str, Any]]:
    """
    Income matrix: one row per line title, one `D<date>` column per day,
    section rows summing their lines (deposit deductions subtracted).
    Pure function - no database access.
    """
    day_keys = [f"D{d}" for d in days]
    values: Dict[str, Dict[str, float]] = {}
    skipped = 0

    for doc in docs:
        if doc.get("deleted"):
            continue
        key = f"D{doc.get('date')}"
        if key not in day_keys:
            continue
        lines = _line_amounts(doc)
        if not lines:
            skipped += 1
            continue
        for title, amount in lines:
            row = values.setdefault(title, {})
            row[key] = row.get(key, 0.0) + amount

    if skipped:
        logger.debug("Income summary: %d documents without a report line", skipped)

    rows: List[Dict[str, Any]] = []
    for section_key, section_title, titles in SECTIONS:
        section = {"title": section_title, "section": section_key, "is_section": True}
        for dk in day_keys:
            plus = sum(values.get(t, {}).get(dk, 0.0) for t in titles if not t.startswith(DEDUCTION_PREFIX))
            minus = sum(values.get(t, {}).get(dk, 0.0) for t in titles if t.startswith(DEDUCTION_PREFIX))
            section[dk] = plus - minus
        section["total"] = sum(section[dk] for dk in day_keys)
        rows.append(section)

        for title in titles:
            line = {"title": title, "section": section_key, "is_section": False}
            for dk in day_keys:
                line[dk] = values.get(title, {}).get(dk, 0.0)
            line["total"] = sum(line[dk] for dk in day_keys)
            rows.append(line)

    return [{**row, "id": idx} for idx, row in enumerate(rows)]


def get_income_summary(branch: str, start: str, end: str) -> Dict[str, Any]:
    days = date_range(start, end, max_days=config.MAX_REPORT_DAYS)
    query: Dict[str, Any] = {
        "income_category": INCOME_CATEGORY_DAILY,
        "date": {"$gte": days[0], "$lte": days[-1]},
    }
    if branch and branch != ALL_BRANCHES:
        query["branch_code"] = branch
    docs = list(incomes_collection.find(query, {"_id": 0}))
    rows = build_income_summary(docs, days)
    grand_total = sum(r["total"] for r in rows if r["is_section"])
    return {"days": days, "rows": rows, "grand_total": grand_total}

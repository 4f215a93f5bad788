from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

import config
from constants import ALL_BRANCHES, EXPENSE_TYPES, SEPARATE_VAT
from db import expense_items_collection, expenses_collection
from services.numbers import date_range, to_number

logger = logging.getLogger(__name__)


def item_net_total(item: Dict[str, Any]) -> float:
    """total + VAT (only when VAT is charged separately) - withholding tax."""
    vat = to_number(item.get("vat")) if item.get("price_type") == SEPARATE_VAT else 0.0
    return to_number(item.get("total")) + vat - to_number(item.get("wh_tax"))


def _parent_query(branch: str, start: str, end: str) -> Dict[str, Any]:
    query: Dict[str, Any] = {"date": {"$gte": start, "$lte": end}, "deleted": {"$ne": True}}
    if branch and branch != ALL_BRANCHES:
        # expenses another branch paid on this branch's behalf
        paid_for = expense_items_collection.distinct(
            "expense_id", {"pay_to_branch": branch, "date": {"$gte": start, "$lte": end}}
        )
        query["$or"] = [
            {"branch_code": branch},
            {"items.pay_to_branch": branch},
            {"expense_id": {"$in": paid_for}},
        ]
    return query


def _with_payer(item: Dict[str, Any], branch: str) -> Dict[str, Any]:
    """Resolve which branch an item is charged to and flag cross-branch payments."""
    parent_branch = item.get("branch_code")
    pay_to = item.get("pay_to_branch")
    scoped = bool(branch) and branch != ALL_BRANCHES
    item["other_branch_pay"] = bool(pay_to) and scoped and branch != parent_branch and branch == pay_to
    item["pay_to_other_branch"] = bool(pay_to) and scoped and branch != pay_to and branch == parent_branch
    item["pay_to_branch"] = pay_to or parent_branch
    return item


def fetch_expense_items(branch: str, start: str, end: str) -> List[Dict[str, Any]]:
    """
    Expense items for the range. Newer expenses embed their items, older
    ones keep them in `expense_items`; both are returned flattened with the
    parent's date, branch and type.

    An item belongs to the branch in its `pay_to_branch` (the parent's branch
    when unset). For a single branch, items paid by another branch on its
    behalf are included and flagged `other_branch_pay`; items it paid for
    another branch are left out.
    """
    parents = list(expenses_collection.find(_parent_query(branch, start, end)))

    items: List[Dict[str, Any]] = []
    external: Dict[str, Dict[str, Any]] = {}
    for parent in parents:
        expense_id = parent.get("expense_id") or str(parent.get("_id"))
        base = {
            "expense_id": expense_id,
            "date": parent.get("date"),
            "branch_code": parent.get("branch_code"),
            "expense_type": parent.get("expense_type"),
        }
        if parent.get("items"):
            items.extend({**it, **base} for it in parent["items"])
        else:
            external[expense_id] = base

    if external:
        for it in expense_items_collection.find({"expense_id": {"$in": list(external)}}):
            it = dict(it)
            it.pop("_id", None)
            items.append({**it, **external[it["expense_id"]]})

    items = [_with_payer(it, branch) for it in items]
    if branch and branch != ALL_BRANCHES:
        items = [it for it in items if it["pay_to_branch"] == branch]
    return items


def build_expense_summary(items: Iterable[Dict[str, Any]], days: List[str]) -> List[Dict[str, Any]]:
    """Expense matrix per expense type section and expense name. Pure."""
    day_keys = [f"D{d}" for d in days]
    by_type: Dict[str, Dict[Tuple[str, bool, bool], Dict[str, float]]] = {}

    for it in items:
        if it.get("deleted"):
            continue
        key = f"D{it.get('date')}"
        if key not in day_keys:
            continue
        expense_type = it.get("expense_type") or "other"
        name = it.get("expense_name") or it.get("category") or "Unspecified"
        line_key = (name, bool(it.get("other_branch_pay")), bool(it.get("pay_to_other_branch")))
        row = by_type.setdefault(expense_type, {}).setdefault(line_key, {})
        row[key] = row.get(key, 0.0) + item_net_total(it)

    ordered_types = [t for t in EXPENSE_TYPES if t in by_type]
    ordered_types += sorted(t for t in by_type if t not in EXPENSE_TYPES)

    rows: List[Dict[str, Any]] = []
    for expense_type in ordered_types:
        lines = by_type[expense_type]
        section = {
            "title": EXPENSE_TYPES.get(expense_type, expense_type),
            "expense_type": expense_type,
            "is_section": True,
        }
        for dk in day_keys:
            section[dk] = sum(vals.get(dk, 0.0) for vals in lines.values())
        section["total"] = sum(section[dk] for dk in day_keys)
        rows.append(section)

        for (name, other_branch_pay, pay_to_other_branch), vals in lines.items():
            line = {
                "title": name,
                "expense_type": expense_type,
                "is_section": False,
                "other_branch_pay": other_branch_pay,
                "pay_to_other_branch": pay_to_other_branch,
            }
            for dk in day_keys:
                line[dk] = vals.get(dk, 0.0)
            line["total"] = sum(line[dk] for dk in day_keys)
            rows.append(line)

    return [{**row, "id": idx} for idx, row in enumerate(rows)]


def get_expense_summary(branch: str, start: str, end: str) -> Dict[str, Any]:
    days = date_range(start, end, max_days=config.MAX_REPORT_DAYS)
    items = fetch_expense_items(branch, days[0], days[-1])
    rows = build_expense_summary(items, days)
    grand_total = sum(r["total"] for r in rows if r["is_section"])
    return {"days": days, "rows": rows, "grand_total": grand_total}


def expense_totals_by_type(branch: str, start: str, end: str) -> List[Dict[str, Any]]:
    """
    Net item totals and counts per expense type, largest first. Uses the
    same items and net amounts as the summary matrix, so the totals add up
    to its grand total.
    """
    days = date_range(start, end, max_days=config.MAX_REPORT_DAYS)
    totals: Dict[str, Dict[str, Any]] = {}
    for it in fetch_expense_items(branch, days[0], days[-1]):
        if it.get("deleted"):
            continue
        key = it.get("expense_type") or "other"
        entry = totals.setdefault(key, {
            "expense_type": key,
            "label": EXPENSE_TYPES.get(key, key),
            "total": 0.0,
            "count": 0,
        })
        entry["total"] += item_net_total(it)
        entry["count"] += 1
    return sorted(totals.values(), key=lambda e: e["total"], reverse=True)

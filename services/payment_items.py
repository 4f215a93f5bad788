from __future__ import annotations

from typing import Any, Dict, Iterable, List

from constants import LEGACY_PAYMENT_SLOTS, PAYMENT_PERSONAL_LOAN, PAYMENT_TRANSFER
from services.numbers import to_number


def customer_name(doc: Dict[str, Any]) -> str:
    return f"{doc.get('prefix') or ''}{doc.get('first_name') or ''} {doc.get('last_name') or ''}".strip()


def _is_legacy(doc: Dict[str, Any]) -> bool:
    """Documents written before the `payments` array existed. An empty array is a new document."""
    return doc.get("payments") is None


def _legacy_slots(doc: Dict[str, Any], payment_type: str) -> List[Dict[str, Any]]:
    """
    Pre-2023 income documents store up to four payments as flat fields
    (payment_type, pay_amount, bank_acc, borrower + suffix 1..3).
    """
    slots = []
    for suffix in LEGACY_PAYMENT_SLOTS:
        if doc.get(f"payment_type{suffix}") != payment_type:
            continue
        amount = doc.get(f"pay_amount{suffix}")
        if not amount:
            continue
        slots.append({
            "suffix": suffix,
            "amount": amount,
            "bank_acc": doc.get(f"bank_acc{suffix}"),
            "borrower": doc.get(f"borrower{suffix}"),
        })
    return slots


def get_bank_transfer_items(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Bank transfer lines from income documents of both storage shapes."""
    legacy_lines: List[Dict[str, Any]] = []
    new_lines: List[Dict[str, Any]] = []

    for doc in docs or []:
        if doc.get("deleted"):
            continue

        if _is_legacy(doc):
            if to_number(doc.get("total")) <= 0:
                continue
            slots = [s for s in _legacy_slots(doc, PAYMENT_TRANSFER) if s["bank_acc"]]
            for idx, slot in enumerate(slots):
                legacy_lines.append({
                    "id": idx,
                    "payment_type": PAYMENT_TRANSFER,
                    "amount": slot["amount"],
                    "self_bank": slot["bank_acc"] or None,
                    "person": None,
                    "income_id": doc.get("income_id"),
                    "deleted": bool(doc.get("deleted", False)),
                })
            continue

        for payment in doc.get("payments") or []:
            if payment.get("payment_type") != PAYMENT_TRANSFER:
                continue
            new_lines.append({
                **payment,
                "income_id": doc.get("income_id"),
                "deleted": bool(doc.get("deleted", False)),
            })

    return legacy_lines + new_lines


def get_personal_loan_items(docs: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Personal loan (pLoan) lines; the borrower falls back to the customer."""
    legacy_lines: List[Dict[str, Any]] = []
    new_lines: List[Dict[str, Any]] = []

    for doc in docs or []:
        if doc.get("deleted"):
            continue

        if _is_legacy(doc):
            if to_number(doc.get("total")) <= 0:
                continue
            for idx, slot in enumerate(_legacy_slots(doc, PAYMENT_PERSONAL_LOAN)):
                legacy_lines.append({
                    "id": idx,
                    "payment_type": PAYMENT_PERSONAL_LOAN,
                    "amount": slot["amount"],
                    "borrower": slot["borrower"] or customer_name(doc),
                    "income_id": doc.get("income_id"),
                    "deleted": bool(doc.get("deleted", False)),
                })
            continue

        for payment in doc.get("payments") or []:
            if payment.get("payment_type") != PAYMENT_PERSONAL_LOAN:
                continue
            new_lines.append({
                **payment,
                "borrower": payment.get("borrower") or customer_name(doc),
                "income_id": doc.get("income_id"),
                "deleted": bool(doc.get("deleted", False)),
            })

    return legacy_lines + new_lines

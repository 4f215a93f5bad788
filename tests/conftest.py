"""
Shared fixtures.

MongoDB is replaced by mongomock before any application module is
imported; `db.py` binds its client at import time.
"""

import os

import mongomock
import pymongo
import pytest

pymongo.MongoClient = mongomock.MongoClient

os.environ.setdefault("CASHBOOK_API_KEY", "test-api-key")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("DIRECT_HANDOVER_RECEIVER", "KBN10002")

from app import app as flask_app  # noqa: E402
from db import db  # noqa: E402
from login import hash_password  # noqa: E402

DAY = "2024-03-01"
BRANCH = "0450"
PASSWORD = "S3cret-pass"


@pytest.fixture(autouse=True)
def clean_db():
    """Empty every collection between tests."""
    for name in db.list_collection_names():
        db[name].delete_many({})
    yield


@pytest.fixture(scope="session")
def password_hash():
    """Hash once; bcrypt is slow on purpose."""
    return hash_password(PASSWORD)


@pytest.fixture
def app():
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    """Return an anonymous test client."""
    return app.test_client()


@pytest.fixture
def make_user(password_hash):
    """Factory inserting a user with the given access document."""
    def _make(username, access, status="active", **extra):
        doc = {
            "username": username,
            "password": password_hash,
            "name": username.title(),
            "role": "accounting",
            "status": status,
            "access": access,
            **extra,
        }
        db.users.insert_one(doc)
        return doc
    return _make


@pytest.fixture
def admin_user(make_user):
    return make_user("admin", {"authority": "ADMIN", "geographic": "ALL", "departments": ["ACCOUNTING"]})


@pytest.fixture
def branch_user(make_user):
    return make_user("clerk", {
        "authority": "LEAD",
        "geographic": "BRANCH",
        "departments": ["ACCOUNTING"],
        "assigned_branches": [BRANCH],
        "home_branch": BRANCH,
    })


def _login(client, username):
    resp = client.post("/login", json={"username": username, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def admin_client(client, admin_user):
    """Return a test client signed in as a nationwide admin."""
    return _login(client, "admin")


@pytest.fixture
def branch_client(client, branch_user):
    """Return a test client signed in as a single-branch accounting lead."""
    return _login(client, "clerk")


@pytest.fixture
def seeded_day():
    """
    One busy day at BRANCH plus noise that must be filtered out.

    Expected closing (handover receiver KBN10002):
        total_income 14000, total_expense 200, total_chevrolet 300,
        transfer_hq 4000, bank_deposit 1000, personal_loan_total 500,
        during_day_total 2100, direct_handover 2000, net_total 5500,
        change_repay 1800, cash_evening 250, total_cash 3950, total 8950.
    """
    base = {"branch_code": BRANCH, "date": DAY}
    daily = {**base, "income_category": "daily"}

    db.expenses.insert_one({
        **base,
        "expense_id": "E1",
        "expense_type": "dailyChange",
        "receiver_employee": "KBN1",
        "change_deposit": [{"total": 1000}, {"total": "500"}],
    })
    db.expense_items.insert_many([
        {**base, "expense_id": "E1", "expense_type": "dailyChange", "item_key": "i1",
         "expense_name": "Fuel", "total": 200, "is_chevrolet": False},
        {**base, "expense_id": "E1", "expense_type": "dailyChange", "item_key": "i2",
         "expense_name": "Chevrolet parts", "total": 300, "is_chevrolet": True},
    ])

    db.incomes.insert_many([
        {**daily, "income_sub_category": "vehicles", "income_id": "V1", "income_type": "cash",
         "total": 10000, "first_name": "Anan", "last_name": "Boon",
         "payments": [
             {"payment_type": "transfer", "amount": 4000, "self_bank": "SCB-01"},
             {"payment_type": "cash", "amount": 6000},
         ],
         "amt_during_day": 2000, "receiver_during_day": "KBN10002", "income_no": "R-1"},
        {**daily, "income_sub_category": "service", "income_id": "S1", "income_type": "inside",
         "total": 1500, "vehicle_reg_number": "AB-1234",
         "payment_type": "pLoan", "pay_amount": 500, "borrower": "Technician"},
        {**daily, "income_sub_category": "parts", "income_id": "P1", "income_type": "partChange",
         "total": 300},
        {**daily, "income_sub_category": "parts", "income_id": "P2", "income_type": "partSKC",
         "total": 700, "amt_during_day": 100, "receiver_during_day": "KBN2", "income_no": "R-2"},
        # other branch, same day
        {**daily, "branch_code": "0999", "income_sub_category": "vehicles", "income_id": "X1",
         "income_type": "cash", "total": 777},
        # received after the daily closing of DAY, booked the next day
        {"branch_code": BRANCH, "income_category": "afterAccountClosed", "income_id": "A1",
         "income_date": DAY, "date": "2024-03-02", "total": 400},
        # received on DAY for an earlier closed account
        {"branch_code": BRANCH, "income_category": "afterAccountClosed", "income_id": "A2",
         "income_date": "2024-02-29", "date": DAY, "total": 250},
    ])

    db.bank_deposits.insert_many([
        {"branch_code": BRANCH, "deposit_date": DAY, "total": 1000},
        {"branch_code": BRANCH, "deposit_date": DAY, "total": 999, "deleted": True},
    ])
    db.executive_cash_deposits.insert_one({"branch_code": BRANCH, "deposit_date": DAY, "total": 600})
    return {"branch": BRANCH, "day": DAY}

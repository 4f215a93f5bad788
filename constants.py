"""Income / expense classification used by the daily closing and reports."""

# ------------------ Income categories ------------------
INCOME_CATEGORY_DAILY = "daily"
INCOME_CATEGORY_AFTER_CLOSE = "afterAccountClosed"

INCOME_DAILY_SUBCATEGORIES = {
    "vehicles": "Vehicles & equipment",
    "service": "Service",
    "parts": "Parts",
    "other": "Other",
}

VEHICLE_INCOME_TYPES = {
    "cash": "Cash sale",
    "down": "Down payment",
    "reservation": "Reservation",
    "baac": "BAAC / cooperative",
    "licensePlateFee": "Registration + compulsory insurance",
    "installment": "Leasing installment",
    "kbnLeasing": "Dealer leasing",
    "other": "Other",
}

SERVICE_INCOME_TYPES = {
    "inside": "In-shop repair",
    "outsideCare": "Field service (care plan)",
    "outside1512": "Field service 1-5-12 / inspection / oil change",
    "repairDeposit": "Repair deposit",
}

PART_INCOME_TYPES = {
    "partSKC": "Counter sale parts / oil SKC",
    "partKBN": "Counter sale parts KBN",
    "wholeSale": "Wholesale parts",
    "partDeposit": "Parts deposit",
    "partChange": "Parts department change fund",
}

ALL_INCOME_TYPES = {
    **VEHICLE_INCOME_TYPES,
    **SERVICE_INCOME_TYPES,
    **PART_INCOME_TYPES,
    "other": "Other",
}

# ------------------ Expense types ------------------
EXPENSE_TYPE_DAILY_CHANGE = "dailyChange"

EXPENSE_TYPES = {
    "dailyChange": "Branch daily change fund",
    "headOfficeTransfer": "Head office transfer",
    "executive": "Executive",
}

SEPARATE_VAT = "separateVat"

# ------------------ Payment types ------------------
PAYMENT_CASH = "cash"
PAYMENT_TRANSFER = "transfer"
PAYMENT_PERSONAL_LOAN = "pLoan"

# Legacy income documents carry up to four payment slots:
# payment_type / payment_type1 / payment_type2 / payment_type3.
LEGACY_PAYMENT_SLOTS = ("", "1", "2", "3")

ALL_BRANCHES = "all"

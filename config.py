from __future__ import annotations

import os
from datetime import timedelta


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ---------------- Database ----------------
MONGO_URI = os.environ.get("MONGO_URI", "mongodb://localhost:27017/")
MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "branch_cashbook")

# ---------------- Flask / session ----------------
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-only-change-me")
SESSION_LIFETIME = timedelta(days=_env_int("SESSION_LIFETIME_DAYS", 30))
IS_PRODUCTION = os.environ.get("FLASK_ENV", "").lower() == "production"

# ---------------- API ----------------
API_KEY = os.environ.get("CASHBOOK_API_KEY", "")

# ---------------- Reporting ----------------
# Employee code whose during-day handovers are reported in their own column.
DIRECT_HANDOVER_RECEIVER = os.environ.get("DIRECT_HANDOVER_RECEIVER", "KBN10002")
MAX_REPORT_DAYS = _env_int("MAX_REPORT_DAYS", 366)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

from __future__ import annotations

import calendar
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from services.errors import InvalidPeriodError

_NUMBER_NOISE = re.compile(r"[\r\n, ]")


# ------------------ Numbers ------------------
def to_number(value: Any) -> float:
    """
    Coerce a stored amount to float. Amounts typed into forms arrive as
    strings like "1,250.00"; anything unparsable counts as zero.
    """
    if value is None or value == "" or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        cleaned = _NUMBER_NOISE.sub("", str(value))
        try:
            num = float(cleaned)
        except ValueError:
            return 0.0
    if math.isnan(num) or math.isinf(num):
        return 0.0
    if abs(num) < 1e-9:
        return 0.0
    return num


def sum_field(rows: Iterable[Dict[str, Any]], field: str, skip_deleted: bool = True) -> float:
    total = 0.0
    for row in rows or []:
        if skip_deleted and row.get("deleted"):
            continue
        total += to_number(row.get(field))
    return total


def distinct_rows(
    rows: Iterable[Dict[str, Any]],
    keys: Sequence[str],
    sum_keys: Optional[Sequence[str]] = None,
) -> List[Dict[str, Any]]:
    """
    Group rows by the values of `keys`, keeping first-seen order.
    The first row of a group is copied; `sum_keys` are accumulated.
    """
    result: List[Dict[str, Any]] = []
    seen: Dict[str, Dict[str, Any]] = {}
    for row in rows or []:
        key = "/".join(str(row.get(k)) for k in keys)
        if key not in seen:
            new_row = dict(row)
            for sk in sum_keys or []:
                new_row[sk] = to_number(new_row.get(sk))
            seen[key] = new_row
            result.append(new_row)
        else:
            existing = seen[key]
            for sk in sum_keys or []:
                existing[sk] += to_number(row.get(sk))
    return result


# ------------------ Dates ------------------
def parse_day(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidPeriodError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")


def format_day(value: Any) -> str:
    return parse_day(value).strftime("%Y-%m-%d")


def parse_month(value: Any) -> tuple:
    raw = str(value or "").strip()
    if len(raw) != 7 or raw[4] != "-":
        raise InvalidPeriodError(f"Invalid month: {value!r} (expected YYYY-MM)")
    try:
        year = int(raw[:4])
        month = int(raw[5:7])
    except ValueError:
        raise InvalidPeriodError(f"Invalid month: {value!r} (expected YYYY-MM)")
    if month < 1 or month > 12:
        raise InvalidPeriodError(f"Invalid month: {value!r}")
    return year, month


def date_range(start: Any, end: Any, max_days: Optional[int] = None) -> List[str]:
    """Inclusive list of YYYY-MM-DD strings."""
    start_d = parse_day(start)
    end_d = parse_day(end)
    if end_d < start_d:
        raise InvalidPeriodError("Start date must be before end date.")
    span = (end_d - start_d).days + 1
    if max_days and span > max_days:
        raise InvalidPeriodError(f"Range cannot exceed {max_days} days.")

    days = []
    current = start_d
    while current <= end_d:
        days.append(current.strftime("%Y-%m-%d"))
        current += timedelta(days=1)
    return days


def month_days(month: Any) -> List[str]:
    year, mth = parse_month(month)
    last = calendar.monthrange(year, mth)[1]
    return [f"{year:04d}-{mth:02d}-{d:02d}" for d in range(1, last + 1)]


def iter_months(start_month: Any, end_month: Any) -> List[str]:
    current = date(*parse_month(start_month), 1)
    last = date(*parse_month(end_month), 1)
    if last < current:
        raise InvalidPeriodError("Start month must be before end month.")
    months: List[str] = []
    while current <= last:
        months.append(current.strftime("%Y-%m"))
        current += relativedelta(months=1)
    return months


def money(value: Any) -> str:
    return f"{to_number(value):,.2f}"

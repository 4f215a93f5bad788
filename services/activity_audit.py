from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple, Union

from flask import g, request as flask_request

from db import db
from login import get_current_identity

logger = logging.getLogger(__name__)

activity_logs_col = db["activity_logs"]

# Request fields copied into `meta`; never passwords or free-form payloads.
META_ALLOWLIST = (
    "branch",
    "branch_code",
    "date",
    "from",
    "to",
    "month",
    "total",
    "amount",
    "income_type",
    "expense_type",
    "status",
    "note",
)

# Known endpoints; anything else falls back to keyword matching.
ENDPOINT_ACTIONS: Dict[str, Tuple[str, str, str]] = {
    "daily_closing.confirm_daily_closing": ("closing.confirmed", "Confirmed Daily Closing", "closing"),
}

ENTITY_KEYWORDS = (
    ("closing", "Daily Closing", ("closing",)),
    ("deposit", "Deposit", ("deposit",)),
    ("income", "Income", ("income",)),
    ("expense", "Expense", ("expense",)),
    ("branch", "Branch", ("branch",)),
    ("user", "User", ("user",)),
)

VERB_KEYWORDS = (
    ("confirm", "confirmed"),
    ("approve", "approved"),
    ("delete", "deleted"),
    ("export", "exported"),
    ("create", "created"),
    ("add", "created"),
)


def ensure_activity_log_indexes() -> None:
    try:
        activity_logs_col.create_index([("user_id", 1), ("timestamp", -1)])
        activity_logs_col.create_index([("action", 1), ("timestamp", -1)])
        activity_logs_col.create_index([("entity_type", 1), ("entity_id", 1)])
    except Exception as e:
        logger.warning("Could not create activity log indexes: %s", e)


def _request_payload(req) -> Dict[str, Any]:
    if req.is_json:
        data = req.get_json(silent=True)
    elif req.form:
        data = req.form.to_dict()
    else:
        data = None
    return data if isinstance(data, dict) else {}


def _request_meta(req) -> Dict[str, Any]:
    data = {**req.args.to_dict(), **_request_payload(req)}
    meta = {k: data[k] for k in META_ALLOWLIST if data.get(k) not in (None, "")}
    meta["path"] = req.path
    meta["method"] = req.method
    return meta


def _client_info(req) -> Tuple[Optional[str], Optional[str]]:
    if req is None:
        return None, None
    ip = req.headers.get("X-Forwarded-For", "").split(",")[0].strip() or req.remote_addr
    return ip, req.headers.get("User-Agent")


def log_activity(
    action: str,
    action_label: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    req=None,
) -> Optional[str]:
    """
    Write one `activity_logs` document for the signed-in user.
    Anonymous requests are not logged. Returns the inserted id.
    """
    ident = get_current_identity()
    if not ident.get("is_authenticated"):
        return None

    timestamp = datetime.utcnow()
    ip, user_agent = _client_info(req or flask_request)
    doc = {
        "user_id": ident.get("user_id") or "",
        "username": ident.get("name") or "",
        "role": ident.get("legacy_role") or ident.get("role") or "",
        "home_branch": ident.get("home_branch"),
        "action": action,
        "action_label": action_label,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "meta": meta or {},
        "ip": ip,
        "user_agent": user_agent,
        "timestamp": timestamp,
        "day": timestamp.strftime("%Y-%m-%d"),
    }

    try:
        res = activity_logs_col.insert_one(doc)
    except Exception:
        logger.exception("Failed to write activity log %s", action)
        return None
    g.activity_logged = True
    return str(res.inserted_id)


def resolve_action_for_request(req) -> Tuple[str, str, Optional[str]]:
    """(action, label, entity_type) for a mutating request."""
    endpoint = req.endpoint or ""
    if endpoint in ENDPOINT_ACTIONS:
        return ENDPOINT_ACTIONS[endpoint]

    corpus = f"{req.path} {endpoint}".lower()
    verb = next((out for key, out in VERB_KEYWORDS if key in corpus), "updated")
    for entity_type, entity_label, keys in ENTITY_KEYWORDS:
        if any(k in corpus for k in keys):
            return f"{entity_type}.{verb}", f"{verb.capitalize()} {entity_label}", entity_type

    if endpoint:
        return f"mutation.{endpoint.replace('.', '_')}", f"Updated via {endpoint}", None
    return "mutation.request", "Updated Record", None


def should_log_request(req, response) -> bool:
    if getattr(g, "activity_logged", False):
        return False
    if req.method in ("GET", "HEAD", "OPTIONS"):
        return False
    if response is not None and response.status_code >= 400:
        return False
    if not req.endpoint or req.endpoint.startswith("static"):
        return False
    # sign-in/out are recorded in login_logs
    return req.endpoint not in ("login.login", "login.logout")


def audit_request(req, response) -> None:
    """`after_request` hook: log successful mutations not already logged."""
    if not should_log_request(req, response):
        return
    action, label, entity_type = resolve_action_for_request(req)
    entity_id = next(
        (str(v) for k, v in (req.view_args or {}).items() if k.endswith("_id") or k in ("id", "code")),
        None,
    )
    log_activity(action, label, entity_type, entity_id, _request_meta(req), req=req)


def _status_of(resp) -> int:
    if isinstance(resp, tuple) and len(resp) > 1 and isinstance(resp[1], int):
        return resp[1]
    return getattr(resp, "status_code", 200)


def audit_action(
    action: str,
    label: str,
    entity_type: Optional[str] = None,
    entity_id: Union[str, Callable[[Dict[str, Any]], Any], None] = None,
):
    """
    Log a high-value action explicitly once the view succeeds.

    `entity_id` is a request field name (view args, JSON/form body, query
    string) or a callable receiving the request body.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            resp = fn(*args, **kwargs)
            if _status_of(resp) >= 400 or getattr(g, "activity_logged", False):
                return resp

            body = _request_payload(flask_request)
            if callable(entity_id):
                ent = entity_id(body)
            elif entity_id:
                ent = kwargs.get(entity_id) or body.get(entity_id) or flask_request.args.get(entity_id)
            else:
                ent = None
            log_activity(
                action,
                label,
                entity_type,
                str(ent) if ent else None,
                _request_meta(flask_request),
                req=flask_request,
            )
            return resp
        return wrapper
    return decorator

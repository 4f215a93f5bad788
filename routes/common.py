from __future__ import annotations

import logging

from flask import jsonify, request
from flask_login import current_user

from constants import ALL_BRANCHES
from services.errors import AccessDeniedError, InvalidPeriodError
from services.rbac import require_report_access

logger = logging.getLogger(__name__)


def json_error(message: str, status: int):
    return jsonify(ok=False, message=message), status


def branch_arg(args=None) -> str:
    """`branch` query arg, falling back to the signed-in user's home branch."""
    args = args if args is not None else request.args
    branch = (args.get("branch") or "").strip()
    if branch:
        return branch
    return getattr(current_user, "home_branch", None) or ALL_BRANCHES


def guard_branch(branch: str):
    """Returns an error response when the current user may not see `branch`."""
    try:
        require_report_access(getattr(current_user, "access", None), branch)
    except AccessDeniedError as e:
        return json_error(str(e), 403)
    return None


def run_report(fn, *args, **kwargs):
    """Call a report service and translate its errors into JSON responses."""
    try:
        return fn(*args, **kwargs), None
    except InvalidPeriodError as e:
        return None, json_error(str(e), 400)
    except Exception:
        logger.exception("Report %s failed", getattr(fn, "__name__", fn))
        return None, json_error("Report failed. Try again later.", 500)

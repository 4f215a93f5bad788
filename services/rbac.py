"""Clean Slate RBAC: authority x geographic scope x departments.

A user's `access` document decides which actions they may perform and on
which branches. Permissions are derived, never stored:

    ADMIN + ALL          -> "*"
    otherwise            -> "<department>.<action>" for every department/action,
                            plus users.*, admin.*, reports.view (level >= 2)
                            and reports.approve (level >= 3)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from constants import ALL_BRANCHES
from db import branches_collection
from services.errors import AccessDeniedError

logger = logging.getLogger(__name__)

AUTHORITY_LEVELS: Dict[str, Dict[str, Any]] = {
    "ADMIN": {
        "label": "System Administrator",
        "actions": ["VIEW", "EDIT", "APPROVE", "MANAGE"],
        "can_manage_users": True,
        "can_manage_system": True,
        "level": 4,
    },
    "MANAGER": {
        "label": "Manager",
        "actions": ["VIEW", "EDIT", "APPROVE"],
        "can_manage_users": True,
        "can_manage_system": False,
        "level": 3,
    },
    "LEAD": {
        "label": "Department Lead",
        "actions": ["VIEW", "EDIT", "REVIEW"],
        "can_manage_users": False,
        "can_manage_system": False,
        "level": 2,
    },
    "STAFF": {
        "label": "Staff",
        "actions": ["VIEW", "EDIT"],
        "can_manage_users": False,
        "can_manage_system": False,
        "level": 1,
    },
}

GEOGRAPHIC_SCOPES: Dict[str, Dict[str, Any]] = {
    "ALL": {"label": "All Provinces", "access": "all_provinces", "level": 3},
    "PROVINCE": {"label": "Province Level", "access": "province_branches", "level": 2},
    "BRANCH": {"label": "Branch Level", "access": "specific_branches", "level": 1},
}

DEPARTMENTS = {
    "ACCOUNTING": "Accounting & Finance",
    "SALES": "Sales & Customer",
    "SERVICE": "Service & Repair",
    "INVENTORY": "Inventory & Parts",
    "HR": "Human Resources",
    "GENERAL": "General",
}

_DEPARTMENT_ROLES = {
    "ACCOUNTING": "ACCOUNTING_STAFF",
    "SALES": "SALES_STAFF",
    "SERVICE": "SERVICE_STAFF",
    "INVENTORY": "INVENTORY_STAFF",
    "HR": "HR_STAFF",
}


def generate_user_permissions(access: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not access:
        return {"permissions": [], "geographic": None, "authority": None}

    authority = access.get("authority")
    geographic = access.get("geographic")
    departments = [d for d in (access.get("departments") or ["GENERAL"]) if d in DEPARTMENTS]

    authority_level = AUTHORITY_LEVELS.get(authority)
    geo_scope = GEOGRAPHIC_SCOPES.get(geographic)
    if not authority_level or not geo_scope:
        logger.warning("Invalid authority or geographic scope: %s / %s", authority, geographic)
        return {"permissions": [], "geographic": None, "authority": None}

    permissions: List[str] = []
    if authority == "ADMIN" and geographic == "ALL":
        permissions.append("*")
    else:
        for dept in departments:
            for action in authority_level["actions"]:
                permissions.append(f"{dept.lower()}.{action.lower()}")
        if authority_level["can_manage_users"]:
            permissions += ["users.manage", "users.view"]
        if authority_level["can_manage_system"]:
            permissions += ["admin.manage", "admin.view"]
        if authority_level["level"] >= 2:
            permissions.append("reports.view")
        if authority_level["level"] >= 3:
            permissions.append("reports.approve")

    return {
        "permissions": permissions,
        "geographic": {"scope": geographic, **geo_scope},
        "authority": {"level": authority, **authority_level},
    }


def branch_province(branch_code: str) -> Optional[str]:
    doc = branches_collection.find_one({"branch_code": branch_code}, {"province": 1})
    return (doc or {}).get("province")


def check_geographic_access(
    access: Optional[Dict[str, Any]],
    branch: Optional[str] = None,
    province: Optional[str] = None,
) -> bool:
    if not access:
        return False

    geographic = access.get("geographic")
    provinces = access.get("assigned_provinces")
    branches = access.get("assigned_branches")

    if geographic == "ALL":
        return True

    if geographic == "PROVINCE":
        if province:
            return not provinces or province in provinces
        if branch:
            if branches and branch in branches:
                return True
            return not provinces or branch_province(branch) in provinces
        return True

    if geographic == "BRANCH":
        if branch:
            return not branches or branch in branches
        # branch-level users cannot see province-wide data
        return False

    return False


def has_permission(
    access: Optional[Dict[str, Any]],
    permission: str,
    branch: Optional[str] = None,
    province: Optional[str] = None,
) -> bool:
    perms = generate_user_permissions(access)["permissions"]
    if "*" in perms:
        return True
    if permission not in perms:
        return False
    if branch or province:
        return check_geographic_access(access, branch=branch, province=province)
    return True


def legacy_role_name(access: Optional[Dict[str, Any]], is_executive: bool = False) -> str:
    if not access:
        return "STAFF"
    authority = access.get("authority")
    geographic = access.get("geographic")
    departments = access.get("departments") or []

    if authority == "ADMIN" and geographic == "ALL":
        return "SUPER_ADMIN"
    if authority == "ADMIN" and is_executive:
        return "EXECUTIVE"
    if authority == "MANAGER":
        return "BRANCH_MANAGER" if geographic == "BRANCH" else "PROVINCE_MANAGER"
    if len(departments) == 1:
        return _DEPARTMENT_ROLES.get(departments[0], "STAFF")
    return "CUSTOM_ROLE"


def can_view_branch_reports(access: Optional[Dict[str, Any]], branch: str) -> bool:
    """Accounting report visibility: `branch == "all"` needs nationwide scope."""
    perms = generate_user_permissions(access)["permissions"]
    if "*" in perms:
        return True
    if "accounting.view" not in perms and "reports.view" not in perms:
        return False
    if not branch or branch == ALL_BRANCHES:
        return (access or {}).get("geographic") == "ALL"
    return check_geographic_access(access, branch=branch)


def require_report_access(access: Optional[Dict[str, Any]], branch: str) -> None:
    if not can_view_branch_reports(access, branch):
        raise AccessDeniedError(f"No access to reports for branch {branch!r}")

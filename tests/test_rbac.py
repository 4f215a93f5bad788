import pytest

from db import db
from services.errors import AccessDeniedError
from services.rbac import (
    can_view_branch_reports,
    check_geographic_access,
    generate_user_permissions,
    has_permission,
    legacy_role_name,
    require_report_access,
)

ADMIN_ALL = {"authority": "ADMIN", "geographic": "ALL"}
BRANCH_LEAD = {
    "authority": "LEAD",
    "geographic": "BRANCH",
    "departments": ["ACCOUNTING"],
    "assigned_branches": ["0450"],
}
PROVINCE_MANAGER = {
    "authority": "MANAGER",
    "geographic": "PROVINCE",
    "departments": ["ACCOUNTING", "SALES"],
    "assigned_provinces": ["Nakhon Ratchasima"],
}
SALES_STAFF = {"authority": "STAFF", "geographic": "BRANCH", "departments": ["SALES"], "assigned_branches": ["0450"]}


class TestPermissions:
    def test_admin_everywhere_is_wildcard(self):
        assert generate_user_permissions(ADMIN_ALL)["permissions"] == ["*"]

    def test_lead_permissions(self):
        perms = generate_user_permissions(BRANCH_LEAD)["permissions"]
        assert "accounting.view" in perms
        assert "accounting.review" in perms
        assert "reports.view" in perms
        assert "reports.approve" not in perms
        assert "users.manage" not in perms

    def test_manager_can_manage_users(self):
        perms = generate_user_permissions(PROVINCE_MANAGER)["permissions"]
        assert {"users.manage", "reports.approve", "sales.approve"} <= set(perms)

    @pytest.mark.parametrize("access", [None, {}, {"authority": "GOD", "geographic": "ALL"}])
    def test_invalid_access_has_nothing(self, access):
        assert generate_user_permissions(access)["permissions"] == []


class TestGeographicAccess:
    def test_branch_scope(self):
        assert check_geographic_access(BRANCH_LEAD, branch="0450")
        assert not check_geographic_access(BRANCH_LEAD, branch="0999")
        assert not check_geographic_access(BRANCH_LEAD, province="Nakhon Ratchasima")

    def test_province_scope_looks_up_branch_province(self):
        db.branches.insert_many([
            {"branch_code": "0450", "province": "Nakhon Ratchasima"},
            {"branch_code": "0999", "province": "Chiang Mai"},
        ])
        assert check_geographic_access(PROVINCE_MANAGER, branch="0450")
        assert not check_geographic_access(PROVINCE_MANAGER, branch="0999")
        assert check_geographic_access(PROVINCE_MANAGER, province="Nakhon Ratchasima")

    def test_has_permission_combines_both(self):
        assert has_permission(BRANCH_LEAD, "accounting.edit", branch="0450")
        assert not has_permission(BRANCH_LEAD, "accounting.edit", branch="0999")
        assert not has_permission(BRANCH_LEAD, "accounting.approve")
        assert has_permission(ADMIN_ALL, "anything.at_all")


class TestReportAccess:
    def test_all_branches_needs_nationwide_scope(self):
        assert can_view_branch_reports(ADMIN_ALL, "all")
        assert not can_view_branch_reports(BRANCH_LEAD, "all")
        assert can_view_branch_reports({**BRANCH_LEAD, "authority": "MANAGER", "geographic": "ALL"}, "all")

    def test_sales_staff_cannot_view_accounting(self):
        assert not can_view_branch_reports(SALES_STAFF, "0450")

    def test_require_report_access_raises(self):
        require_report_access(BRANCH_LEAD, "0450")
        with pytest.raises(AccessDeniedError):
            require_report_access(BRANCH_LEAD, "0999")


@pytest.mark.parametrize("access, is_executive, expected", [
    (ADMIN_ALL, False, "SUPER_ADMIN"),
    ({"authority": "ADMIN", "geographic": "PROVINCE"}, True, "EXECUTIVE"),
    ({"authority": "MANAGER", "geographic": "BRANCH"}, False, "BRANCH_MANAGER"),
    (PROVINCE_MANAGER, False, "PROVINCE_MANAGER"),
    (BRANCH_LEAD, False, "ACCOUNTING_STAFF"),
    ({"authority": "STAFF", "geographic": "BRANCH", "departments": ["SALES", "SERVICE"]}, False, "CUSTOM_ROLE"),
    (None, False, "STAFF"),
])
def test_legacy_role_name(access, is_executive, expected):
    assert legacy_role_name(access, is_executive) == expected

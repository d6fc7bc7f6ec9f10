"""
Unit tests for the Role Gate rules.
"""
import pytest

from devicehub.core.errors import Forbidden, InvalidRole
from devicehub.core.roles import (
    ALL_ROLES,
    OPERATION_ROLE_AUTHORITY,
    Role,
    creatable_roles,
    deletable_roles,
    ensure_allowed,
    is_elevated,
    parse_role,
    visible_roles,
)


class TestParseRole:

    def test_accepts_known_values(self):
        assert parse_role("customer") is Role.CUSTOMER
        assert parse_role("admin") is Role.ADMIN
        assert parse_role(Role.SUPERADMIN) is Role.SUPERADMIN

    @pytest.mark.parametrize("value", ["user", "ADMIN", "", None, "root"])
    def test_rejects_anything_else(self, value):
        with pytest.raises(InvalidRole):
            parse_role(value)


class TestOperationAuthority:

    @pytest.mark.parametrize("operation", ["device.list", "device.claim", "share.create", "telemetry.view"])
    def test_customer_operations_open_to_everyone(self, operation):
        for role in Role:
            ensure_allowed(role, operation)

    @pytest.mark.parametrize(
        "operation",
        ["device.create", "device.generate_bulk", "device.reassign", "device.delete", "user.list", "stats.view"],
    )
    def test_admin_operations_reject_customers(self, operation):
        with pytest.raises(Forbidden):
            ensure_allowed(Role.CUSTOMER, operation)
        ensure_allowed(Role.ADMIN, operation)
        ensure_allowed(Role.SUPERADMIN, operation)

    @pytest.mark.parametrize("operation", ["user.change_role", "login_log.view"])
    def test_superadmin_only_operations(self, operation):
        for role in (Role.CUSTOMER, Role.ADMIN):
            with pytest.raises(Forbidden):
                ensure_allowed(role, operation)
        ensure_allowed(Role.SUPERADMIN, operation)

    def test_forbidden_message_lists_required_roles(self):
        with pytest.raises(Forbidden) as exc:
            ensure_allowed(Role.ADMIN, "login_log.view")
        assert "superadmin" in exc.value.message

    def test_unknown_operation_is_a_programming_error(self):
        with pytest.raises(ValueError):
            ensure_allowed(Role.SUPERADMIN, "device.teleport")

    def test_every_operation_maps_to_a_non_empty_role_set(self):
        for operation, roles in OPERATION_ROLE_AUTHORITY.items():
            assert roles, operation
            assert roles <= ALL_ROLES


class TestTargetPolicies:

    def test_creatable_roles(self):
        assert creatable_roles(Role.CUSTOMER) == frozenset()
        assert creatable_roles(Role.ADMIN) == {Role.CUSTOMER}
        assert creatable_roles(Role.SUPERADMIN) == {Role.CUSTOMER, Role.ADMIN}

    def test_visible_roles(self):
        assert visible_roles(Role.CUSTOMER) == frozenset()
        assert visible_roles(Role.ADMIN) == {Role.CUSTOMER}
        assert visible_roles(Role.SUPERADMIN) == ALL_ROLES

    def test_superadmin_never_deletes_superadmin(self):
        assert Role.SUPERADMIN not in deletable_roles(Role.SUPERADMIN)
        assert deletable_roles(Role.ADMIN) == {Role.CUSTOMER}

    def test_is_elevated(self):
        assert is_elevated(Role.CUSTOMER) is False
        assert is_elevated(Role.ADMIN) is True
        assert is_elevated(Role.SUPERADMIN) is True

    @pytest.mark.parametrize("policy", [creatable_roles, visible_roles, deletable_roles, is_elevated])
    def test_unhandled_role_raises(self, policy):
        with pytest.raises(ValueError):
            policy("customer")

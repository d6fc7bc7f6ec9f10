# devicehub/core/roles.py
"""
Role Gate: the closed role enumeration and every role-based rule.

Two kinds of rules live here:
- OPERATION_ROLE_AUTHORITY maps an operation name to the roles allowed to
  call it at all. Routers declare their operation through
  `deps.require_operation(...)`, which consults this table before any
  business logic runs.
- The policy functions below (creatable/visible/deletable roles) answer the
  finer questions that depend on the target account's role.

Each policy branches over every Role member and raises on anything else, so
adding a role without extending the rules fails loudly instead of silently
granting or denying.
"""
from enum import Enum

from devicehub.core.errors import Forbidden, InvalidRole


class Role(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


ALL_ROLES = frozenset(Role)


def parse_role(value) -> Role:
    """Convert a raw role value to Role, rejecting anything outside the enumeration."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise InvalidRole()


def _unhandled(role) -> None:
    raise ValueError(f"unhandled role: {role!r}")


# ==================================================
# OPERATION -> ROLES ALLOWED TO CALL IT
# ==================================================
CUSTOMER_OR_HIGHER = frozenset({Role.CUSTOMER, Role.ADMIN, Role.SUPERADMIN})
ADMIN_OR_HIGHER = frozenset({Role.ADMIN, Role.SUPERADMIN})
SUPERADMIN_ONLY = frozenset({Role.SUPERADMIN})

OPERATION_ROLE_AUTHORITY = {
    # Profile
    "profile.view": CUSTOMER_OR_HIGHER,
    "auth.logout": CUSTOMER_OR_HIGHER,
    "otp.cleanup": ADMIN_OR_HIGHER,

    # Customer-scoped device operations
    "device.list": CUSTOMER_OR_HIGHER,
    "device.view": CUSTOMER_OR_HIGHER,
    "device.claim": CUSTOMER_OR_HIGHER,
    "device.qr": CUSTOMER_OR_HIGHER,
    "telemetry.view": CUSTOMER_OR_HIGHER,
    "share.create": CUSTOMER_OR_HIGHER,
    "share.revoke": CUSTOMER_OR_HIGHER,
    "share.list": CUSTOMER_OR_HIGHER,
    "customer.directory": CUSTOMER_OR_HIGHER,

    # Provisioning
    "device.create": ADMIN_OR_HIGHER,
    "device.generate_bulk": ADMIN_OR_HIGHER,
    "device.reassign": ADMIN_OR_HIGHER,
    "device.update_m2m": ADMIN_OR_HIGHER,
    "device.delete": ADMIN_OR_HIGHER,

    # User management
    "user.create": ADMIN_OR_HIGHER,
    "user.list": ADMIN_OR_HIGHER,
    "user.view": ADMIN_OR_HIGHER,
    "user.delete": ADMIN_OR_HIGHER,
    "stats.view": ADMIN_OR_HIGHER,
    "user.change_role": SUPERADMIN_ONLY,
    "login_log.view": SUPERADMIN_ONLY,
}


def ensure_allowed(role: Role, operation: str) -> None:
    allowed = OPERATION_ROLE_AUTHORITY.get(operation)
    if allowed is None:
        raise ValueError(f"unknown operation: {operation}")
    if role not in allowed:
        names = ", ".join(sorted(r.value for r in allowed))
        raise Forbidden(f"Access denied. Required roles: {names}")


# ==================================================
# TARGET-DEPENDENT POLICIES
# ==================================================
def is_elevated(role: Role) -> bool:
    if role is Role.CUSTOMER:
        return False
    if role is Role.ADMIN or role is Role.SUPERADMIN:
        return True
    _unhandled(role)


def creatable_roles(actor: Role) -> frozenset:
    """Roles an actor may assign to a newly created account."""
    if actor is Role.CUSTOMER:
        return frozenset()
    if actor is Role.ADMIN:
        return frozenset({Role.CUSTOMER})
    if actor is Role.SUPERADMIN:
        return frozenset({Role.CUSTOMER, Role.ADMIN})
    _unhandled(actor)


def visible_roles(actor: Role) -> frozenset:
    """Roles whose accounts an actor may list and view."""
    if actor is Role.CUSTOMER:
        return frozenset()
    if actor is Role.ADMIN:
        return frozenset({Role.CUSTOMER})
    if actor is Role.SUPERADMIN:
        return ALL_ROLES
    _unhandled(actor)


def deletable_roles(actor: Role) -> frozenset:
    """Roles whose accounts an actor may delete (never their own account)."""
    if actor is Role.CUSTOMER:
        return frozenset()
    if actor is Role.ADMIN:
        return frozenset({Role.CUSTOMER})
    if actor is Role.SUPERADMIN:
        return frozenset({Role.CUSTOMER, Role.ADMIN})
    _unhandled(actor)

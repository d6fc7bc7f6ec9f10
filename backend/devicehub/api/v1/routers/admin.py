# devicehub/api/v1/routers/admin.py
import datetime as dt
import uuid

from fastapi import APIRouter, Depends, Query, status

from devicehub.api.v1.deps import (
    get_device_registry,
    get_identity_service,
    get_otp_service,
    require_operation,
)
from devicehub.config import settings
from devicehub.core.clock import utc_now
from devicehub.repositories.base import UserRecord
from devicehub.schemas.admin import AdminUserCreateIn, RoleUpdateIn
from devicehub.schemas.views import user_to_dict
from devicehub.services.audit import logins_since, recent_logins
from devicehub.services.devices import DeviceRegistry
from devicehub.services.identity import IdentityService
from devicehub.services.otp import OtpService

router = APIRouter(prefix="/admin", tags=["admin"])


# ==============================================================================
# I. User Management Interface
#     Prefix: /api/v1/admin/users
# ==============================================================================
@router.get("/users")
async def list_users(
    q: str | None = Query(default=None, description="Fuzzy search by name/phone/email"),
    role: str | None = Query(default=None, description="Only accounts with this role"),
    offset: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    actor: UserRecord = Depends(require_operation("user.list")),
    identity: IdentityService = Depends(get_identity_service),
):
    """
    Get paginated list of users.

    Admins see customer accounts only; superadmins see every account.
    Results are ordered by creation date (newest first).
    """
    items, total = await identity.list_users(actor, q=q, role=role, offset=offset, limit=limit)
    return {
        "success": True,
        "data": [user_to_dict(u) for u in items],
        "offset": offset,
        "limit": limit,
        "total": total,
    }


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: AdminUserCreateIn,
    actor: UserRecord = Depends(require_operation("user.create")),
    identity: IdentityService = Depends(get_identity_service),
):
    """
    Create an account.

    Error codes:
        - FORBIDDEN: An admin asked for a non-customer role
        - INVALID_ROLE: Unknown role, or a superadmin asked for superadmin
        - INVALID_PHONE / DUPLICATE_PHONE / DUPLICATE_EMAIL
    """
    user = await identity.create_user(actor, body.name, body.phone, body.email, body.role)
    return {"success": True, "message": "User created successfully", "data": {"user": user_to_dict(user)}}


@router.get("/users/{user_id}")
async def get_user(
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("user.view")),
    identity: IdentityService = Depends(get_identity_service),
):
    user = await identity.get_user(actor, user_id)
    return {"success": True, "data": {"user": user_to_dict(user)}}


@router.put("/users/{user_id}/role")
async def change_role(
    user_id: uuid.UUID,
    body: RoleUpdateIn,
    actor: UserRecord = Depends(require_operation("user.change_role")),
    identity: IdentityService = Depends(get_identity_service),
):
    """Change an account's role (superadmin only, never one's own)."""
    user = await identity.change_role(actor, user_id, body.role)
    return {"success": True, "message": "User role updated successfully", "data": {"user": user_to_dict(user)}}


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    actor: UserRecord = Depends(require_operation("user.delete")),
    identity: IdentityService = Depends(get_identity_service),
):
    """
    Delete an account.

    Admins delete customers only; superadmins delete customers and admins.
    Devices the user owned become unassigned; grants they received are
    removed.
    """
    await identity.delete_user(actor, user_id)
    return {"success": True, "message": "User deleted successfully"}


# ==============================================================================
# II. Audit & Statistics
# ==============================================================================
@router.get("/logs")
async def login_logs(
    limit: int = Query(100, ge=1, le=settings.login_logs_max_limit),
    _: UserRecord = Depends(require_operation("login_log.view")),
):
    """Most recent admin/superadmin logins (superadmin only)."""
    rows = await recent_logins(limit)
    return {"success": True, "data": rows, "total": len(rows)}


@router.get("/stats")
async def stats(
    _: UserRecord = Depends(require_operation("stats.view")),
    identity: IdentityService = Depends(get_identity_service),
    registry: DeviceRegistry = Depends(get_device_registry),
    otp: OtpService = Depends(get_otp_service),
):
    """User counts per role, device totals, recent logins and OTP activity."""
    now = utc_now()
    device_stats = await registry.stats()
    return {
        "success": True,
        "data": {
            "users": await identity.count_by_role(),
            "devices": {
                "total_devices": device_stats.total,
                "assigned_devices": device_stats.assigned,
                "unassigned_devices": device_stats.unassigned,
            },
            "recent_logins": await logins_since(now - dt.timedelta(days=7)),
            "otp_sessions_24h": await otp.sessions_since(now - dt.timedelta(hours=24)),
        },
    }

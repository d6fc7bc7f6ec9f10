# devicehub/api/v1/deps.py
import uuid

import jwt
from fastapi import Depends, Header, Request

from devicehub.core.errors import Unauthenticated
from devicehub.core.roles import ensure_allowed
from devicehub.core.security import decode_access_token
from devicehub.repositories.base import UserRecord, UserRepository
from devicehub.repositories.tortoise_repo import (
    TortoiseDeviceRepository,
    TortoiseShareRepository,
    TortoiseTelemetryRepository,
    TortoiseUserRepository,
)
from devicehub.services.access import AccessEvaluator
from devicehub.services.devices import DeviceRegistry
from devicehub.services.identity import IdentityService
from devicehub.services.otp import OtpService
from devicehub.services.qr import encode_qr
from devicehub.services.sharing import SharingLedger
from devicehub.services.sms import get_sms_transport
from devicehub.services.telemetry import TelemetryReader

# Repositories are stateless wrappers around the Tortoise models
_users = TortoiseUserRepository()
_devices = TortoiseDeviceRepository()
_shares = TortoiseShareRepository()
_telemetry = TortoiseTelemetryRepository()


def get_user_repository() -> UserRepository:
    return _users


def get_identity_service() -> IdentityService:
    return IdentityService(_users)


def get_access_evaluator() -> AccessEvaluator:
    return AccessEvaluator(_shares)


def get_device_registry(access: AccessEvaluator = Depends(get_access_evaluator)) -> DeviceRegistry:
    return DeviceRegistry(_devices, _users, access, encode_qr)


def get_sharing_ledger() -> SharingLedger:
    return SharingLedger(_shares, _devices, _users)


def get_telemetry_reader(registry: DeviceRegistry = Depends(get_device_registry)) -> TelemetryReader:
    return TelemetryReader(_telemetry, registry)


def get_otp_service() -> OtpService:
    return OtpService(_users, get_sms_transport())


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
) -> UserRecord:
    """
    FastAPI dependency to get the current authenticated user.

    This dependency extracts and validates the JWT token from either:
    1. Authorization header (Bearer token) - preferred method
    2. HttpOnly cookie (accessToken) - fallback method

    The role used for authorization is the one stored on the account, not
    the role claim inside the token, so a role change or deletion takes
    effect on the next request.

    Raises:
        Unauthenticated (401): no token, invalid/expired token, or the user
        no longer exists
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = request.cookies.get("accessToken")

    if not token:
        raise Unauthenticated("Access token required")

    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload.get("sub")))
    except (jwt.PyJWTError, ValueError):
        raise Unauthenticated("Invalid or expired token")

    user = await _users.get(user_id)
    if not user:
        raise Unauthenticated("User not found")
    return user


def require_operation(operation: str):
    """
    Dependency factory for the Role Gate.

    Usage:
        @router.post("/devices")
        async def create(actor: UserRecord = Depends(require_operation("device.create"))):
            ...
    """
    async def _gate(current: UserRecord = Depends(get_current_user)) -> UserRecord:
        ensure_allowed(current.role, operation)
        return current

    return _gate

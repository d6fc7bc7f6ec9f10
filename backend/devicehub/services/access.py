"""
Access Evaluator: may this user read this device's data?

Administrators always may. A customer may when they own the device or hold
a share grant for it. Denial raises AccessDenied, which renders exactly like
DeviceNotFound so a stranger cannot discover which codes exist.
"""
from devicehub.core.errors import AccessDenied
from devicehub.core.roles import Role
from devicehub.repositories.base import DeviceRecord, ShareRepository, UserRecord


class AccessEvaluator:

    def __init__(self, shares: ShareRepository):
        self.shares = shares

    async def can_access(self, user: UserRecord, device: DeviceRecord) -> bool:
        if user.role is Role.ADMIN or user.role is Role.SUPERADMIN:
            return True
        if user.role is Role.CUSTOMER:
            if device.owner_id is not None and device.owner_id == user.id:
                return True
            return await self.shares.exists(device.id, user.id)
        raise ValueError(f"unhandled role: {user.role!r}")

    async def ensure_access(self, user: UserRecord, device: DeviceRecord) -> None:
        if not await self.can_access(user, device):
            raise AccessDenied()

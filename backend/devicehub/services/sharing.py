"""
Sharing Ledger service: read-only grants from a device to other customers.

Grants are independent of ownership in one direction only: revoking a grant
never touches the owner, but an ownership change drops the device's grants
(handled by the repositories).
"""
import logging
import uuid
from typing import List

from devicehub.core.clock import utc_now
from devicehub.core.errors import (
    DeviceNotFound,
    Forbidden,
    GrantNotFound,
    InvalidInput,
    NotOwner,
    RecipientNotFound,
    UserNotFound,
)
from devicehub.core.roles import Role
from devicehub.repositories.base import (
    DeviceRepository,
    ReceivedShareRecord,
    SentShareRecord,
    ShareRepository,
    UserRecord,
    UserRepository,
)
from devicehub.services.devices import validate_device_code
from devicehub.services.identity import validate_phone

logger = logging.getLogger("uvicorn.error")

SHARE_NOT_OWNER = "You can only share devices that belong to you"


class SharingLedger:

    def __init__(self, shares: ShareRepository, devices: DeviceRepository, users: UserRepository):
        self.shares = shares
        self.devices = devices
        self.users = users

    async def share(self, device_id: uuid.UUID, owner: UserRecord, recipient_phone: str) -> UserRecord:
        """
        Grant `recipient_phone`'s customer read access to a device `owner` owns.

        Ownership is checked before the recipient is looked up, so a caller
        who does not own the device (or names one that does not exist) gets
        NOT_OWNER and learns nothing about which phones are registered.
        """
        device = await self.devices.get(device_id)
        if not device or device.owner_id != owner.id:
            raise NotOwner(SHARE_NOT_OWNER)

        phone = validate_phone(recipient_phone)
        recipient = await self.users.get_by_phone(phone)
        if not recipient or recipient.role is not Role.CUSTOMER:
            raise RecipientNotFound()
        if recipient.id == owner.id:
            raise InvalidInput("Cannot share a device with yourself")

        # Ownership is re-checked inside the insert transaction
        if not await self.shares.add(device.id, owner.id, recipient.id, utc_now()):
            raise NotOwner(SHARE_NOT_OWNER)
        logger.info("[sharing] %s shared %s with %s", owner.id, device.device_code, recipient.id)
        return recipient

    async def revoke(self, device_code: str, actor: UserRecord, recipient_id: uuid.UUID) -> None:
        device = await self.devices.get_by_code(validate_device_code(device_code))
        if not device:
            raise DeviceNotFound()
        if actor.role is Role.CUSTOMER:
            if device.owner_id != actor.id:
                raise NotOwner()
        elif actor.role is not Role.ADMIN and actor.role is not Role.SUPERADMIN:
            raise ValueError(f"unhandled role: {actor.role!r}")
        if not await self.users.get(recipient_id):
            raise UserNotFound()
        if not await self.shares.remove(device.id, recipient_id):
            raise GrantNotFound()
        logger.info("[sharing] %s revoked %s from %s", actor.id, device.device_code, recipient_id)

    def _ensure_self_or_admin(self, actor: UserRecord, user_id: uuid.UUID) -> None:
        if actor.role is Role.CUSTOMER:
            if actor.id != user_id:
                raise Forbidden("You can only view your own shares")
            return
        if actor.role is Role.ADMIN or actor.role is Role.SUPERADMIN:
            return
        raise ValueError(f"unhandled role: {actor.role!r}")

    async def list_sent_by(self, actor: UserRecord, owner_id: uuid.UUID) -> List[SentShareRecord]:
        self._ensure_self_or_admin(actor, owner_id)
        return await self.shares.list_sent(owner_id)

    async def list_received_by(self, actor: UserRecord, recipient_id: uuid.UUID) -> List[ReceivedShareRecord]:
        self._ensure_self_or_admin(actor, recipient_id)
        return await self.shares.list_received(recipient_id)

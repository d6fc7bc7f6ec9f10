"""
Device Registry service.

Ownership state machine:
    Unowned --claim / admin assign--> Owned(A)
    Owned(A) --admin reassign--> Owned(B)      (grants on the device dropped)
    Owned(A) --admin unassign / A deleted--> Unowned
    any --delete--> gone (telemetry and grants removed with it)

Customers can only take the first edge, through claim_device, which the
storage layer executes as a single conditional update.
"""
import logging
import re
import secrets
import string
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from devicehub.config import settings
from devicehub.core.clock import utc_now
from devicehub.core.errors import (
    AlreadyOwned,
    DeviceNotFound,
    DuplicateCode,
    Forbidden,
    InvalidCount,
    InvalidDeviceCode,
    InvalidInput,
    QrNotAvailable,
    UnknownOwner,
)
from devicehub.core.roles import Role
from devicehub.repositories.base import (
    DeviceRecord,
    DeviceRepository,
    DeviceStats,
    UserRecord,
    UserRepository,
)
from devicehub.services.access import AccessEvaluator

logger = logging.getLogger("uvicorn.error")

DEVICE_CODE_PATTERN = re.compile(r"^\d{16}$")
MAX_CODE_ATTEMPTS = 10


def validate_device_code(code: str) -> str:
    code = (code or "").strip()
    if not DEVICE_CODE_PATTERN.match(code):
        raise InvalidDeviceCode()
    return code


def random_device_code() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(16))


@dataclass
class BulkResult:
    devices: List[DeviceRecord] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)
    total_requested: int = 0

    @property
    def total_generated(self) -> int:
        return len(self.devices)


class DeviceRegistry:

    def __init__(
        self,
        devices: DeviceRepository,
        users: UserRepository,
        access: AccessEvaluator,
        qr_encoder: Callable[[str], bytes],
        code_factory: Callable[[], str] = random_device_code,
    ):
        self.devices = devices
        self.users = users
        self.access = access
        self.qr_encoder = qr_encoder
        self.code_factory = code_factory

    async def _resolve_owner(self, owner_id: Optional[uuid.UUID]) -> Optional[UserRecord]:
        if owner_id is None:
            return None
        owner = await self.users.get(owner_id)
        if not owner:
            raise UnknownOwner()
        return owner

    async def _require(self, device_code: str) -> DeviceRecord:
        device = await self.devices.get_by_code(validate_device_code(device_code))
        if not device:
            raise DeviceNotFound()
        return device

    # ----- provisioning -----
    async def create_device(
        self,
        device_code: str,
        device_name: str,
        owner_id: Optional[uuid.UUID] = None,
    ) -> DeviceRecord:
        code = validate_device_code(device_code)
        name = (device_name or "").strip()
        if not name:
            raise InvalidInput("Device name is required")
        await self._resolve_owner(owner_id)
        if await self.devices.code_exists(code):
            raise DuplicateCode()
        device = await self.devices.create(code, name, owner_id, self.qr_encoder(code), utc_now())
        logger.info("[devices] created %s owner=%s", code, owner_id)
        return device

    async def generate_bulk(self, count: int) -> BulkResult:
        """
        Create `count` unowned devices with random codes.

        Each unit gets up to MAX_CODE_ATTEMPTS draws to find a free code.
        A unit that exhausts them (or loses the insert race) is reported in
        `errors` and skipped; the rest of the batch still goes through.
        """
        if not isinstance(count, int) or isinstance(count, bool) or not 1 <= count <= settings.bulk_max_count:
            raise InvalidCount()
        result = BulkResult(total_requested=count)
        for index in range(count):
            code = None
            for _ in range(MAX_CODE_ATTEMPTS):
                candidate = self.code_factory()
                if not await self.devices.code_exists(candidate):
                    code = candidate
                    break
            if code is None:
                result.errors.append({
                    "index": index,
                    "error": f"Failed to generate unique code after {MAX_CODE_ATTEMPTS} attempts",
                })
                continue
            try:
                device = await self.devices.create(
                    code, f"Device {code}", None, self.qr_encoder(code), utc_now()
                )
            except DuplicateCode:
                result.errors.append({"index": index, "deviceCode": code, "error": DuplicateCode.message})
                continue
            except Exception as e:
                # QR encoding or storage failure: earlier units stay committed
                logger.exception("[devices] bulk unit %d (%s) failed", index, code)
                result.errors.append({"index": index, "deviceCode": code, "error": f"Failed to create device: {e}"})
                continue
            result.devices.append(device)
        logger.info(
            "[devices] bulk generated %d/%d (%d failed)",
            result.total_generated, count, len(result.errors),
        )
        return result

    # ----- ownership -----
    async def claim_device(
        self,
        device_code: str,
        user: UserRecord,
        device_name: Optional[str] = None,
    ) -> DeviceRecord:
        code = validate_device_code(device_code)
        name = (device_name or "").strip() or None
        claimed = await self.devices.claim(code, user.id, name, utc_now())
        if not claimed:
            existing = await self.devices.get_by_code(code)
            if not existing:
                raise DeviceNotFound()
            raise AlreadyOwned()
        logger.info("[devices] %s claimed by %s", code, user.id)
        return await self.devices.get_by_code(code)

    async def reassign(
        self,
        device_code: str,
        owner_id: Optional[uuid.UUID],
        actor: UserRecord,
    ) -> DeviceRecord:
        device = await self._require(device_code)
        await self._resolve_owner(owner_id)
        if device.owner_id is not None and device.owner_id != owner_id:
            logger.warning(
                "[devices] audit: %s %s overwrote owner of %s: %s -> %s",
                actor.role.value, actor.id, device.device_code, device.owner_id, owner_id,
            )
        await self.devices.set_owner(device.device_code, owner_id, utc_now())
        logger.info("[devices] %s assigned to %s by %s", device.device_code, owner_id, actor.id)
        return await self.devices.get_by_code(device.device_code)

    # ----- reads -----
    async def list_for(self, actor: UserRecord) -> List[DeviceRecord]:
        """Customers get what they own; administrators get every device."""
        if actor.role is Role.CUSTOMER:
            return await self.devices.list_by_owner(actor.id)
        if actor.role is Role.ADMIN or actor.role is Role.SUPERADMIN:
            return await self.devices.list_all()
        raise ValueError(f"unhandled role: {actor.role!r}")

    async def list_owned(self, actor: UserRecord, user_id: uuid.UUID) -> List[DeviceRecord]:
        """Active devices owned by user_id, most recently allocated first."""
        if actor.role is Role.CUSTOMER and actor.id != user_id:
            raise Forbidden("You can only view your own devices")
        return await self.devices.list_by_owner(user_id, active_only=True)

    async def get_by_code(self, actor: UserRecord, device_code: str) -> DeviceRecord:
        device = await self._require(device_code)
        await self.access.ensure_access(actor, device)
        return device

    async def get_by_id(self, actor: UserRecord, device_id: uuid.UUID) -> DeviceRecord:
        device = await self.devices.get(device_id)
        if not device:
            raise DeviceNotFound()
        await self.access.ensure_access(actor, device)
        return device

    async def qr_image(self, actor: UserRecord, device_code: str) -> bytes:
        device = await self.get_by_code(actor, device_code)
        png = await self.devices.get_qr(device.device_code)
        if not png:
            raise QrNotAvailable()
        return png

    # ----- admin maintenance -----
    async def update_m2m(self, device_code: str, m2m_number: str) -> DeviceRecord:
        number = (m2m_number or "").strip()
        if not number:
            raise InvalidInput("M2M number is required")
        device = await self._require(device_code)
        await self.devices.update_m2m(device.device_code, number)
        logger.info("[devices] %s m2m number updated", device.device_code)
        return await self.devices.get_by_code(device.device_code)

    async def delete(self, device_code: str, actor: UserRecord) -> None:
        device = await self._require(device_code)
        await self.devices.delete(device.device_code)
        logger.warning("[devices] deleted %s (owner=%s) by %s", device.device_code, device.owner_id, actor.id)

    async def stats(self) -> DeviceStats:
        return await self.devices.stats()

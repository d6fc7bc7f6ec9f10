"""
Tortoise ORM implementation of the storage contracts.

Atomicity comes from the database:
- claim is a single conditional UPDATE (... WHERE owner_id IS NULL)
- share insert runs in a transaction that locks the device row
  (SELECT ... FOR UPDATE where the engine supports it) and relies on the
  (device, recipient) unique constraint for duplicates
- multi-table deletes run inside one transaction
"""
from typing import List, Optional, Tuple

from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from devicehub.core.errors import AlreadyShared, DuplicateCode, DuplicateEmail, DuplicatePhone
from devicehub.core.roles import Role
from devicehub.models.device import Device, DeviceShare
from devicehub.models.telemetry import DistanceReading, PressureReading, TemperatureReading
from devicehub.models.user import User
from devicehub.repositories.base import (
    DeviceRecord,
    DeviceRepository,
    DeviceStats,
    ReceivedShareRecord,
    SentShareRecord,
    ShareRepository,
    TelemetryRepository,
    UserRecord,
    UserRepository,
)


def _user_record(u: User) -> UserRecord:
    return UserRecord(
        id=u.id,
        name=u.name,
        phone=u.phone,
        email=u.email,
        role=Role(u.role),
        created_at=u.created_at,
    )


def _device_record(d: Device, owner_name: Optional[str] = None) -> DeviceRecord:
    return DeviceRecord(
        id=d.id,
        device_code=d.device_code,
        device_name=d.device_name,
        owner_id=d.owner_id,
        m2m_number=d.m2m_number,
        is_active=d.is_active,
        allocated_at=d.allocated_at,
        created_at=d.created_at,
        has_qr_code=d.qr_code is not None,
        owner_name=owner_name,
    )


class TortoiseUserRepository(UserRepository):

    async def create(self, name, phone, email, role):
        try:
            u = await User.create(name=name, phone=phone, email=email, role=role)
        except IntegrityError:
            # Only two unique columns besides the pk
            if await User.filter(phone=phone).exists():
                raise DuplicatePhone()
            raise DuplicateEmail()
        return _user_record(u)

    async def get(self, user_id):
        u = await User.get_or_none(id=user_id)
        return _user_record(u) if u else None

    async def get_by_phone(self, phone):
        u = await User.get_or_none(phone=phone)
        return _user_record(u) if u else None

    async def list(self, roles, q=None, offset=0, limit=20) -> Tuple[List[UserRecord], int]:
        qs = User.filter(role__in=list(roles)).order_by("-created_at")
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(phone__icontains=q) | Q(email__icontains=q))
        total = await qs.count()
        rows = await qs.offset(offset).limit(limit)
        return [_user_record(u) for u in rows], total

    async def update_role(self, user_id, role):
        await User.filter(id=user_id).update(role=role)

    async def delete(self, user_id):
        async with in_transaction() as conn:
            user = await User.get_or_none(id=user_id, using_db=conn)
            if not user:
                return False
            owned_ids = await Device.filter(owner_id=user_id).using_db(conn).values_list("id", flat=True)
            if owned_ids:
                # Ownership changes, so the grants made on these devices go too
                await DeviceShare.filter(device_id__in=owned_ids).using_db(conn).delete()
                await Device.filter(id__in=owned_ids).using_db(conn).update(
                    owner_id=None, is_active=False, allocated_at=None
                )
            await DeviceShare.filter(recipient_id=user_id).using_db(conn).delete()
            await user.delete(using_db=conn)
        return True

    async def count_by_role(self):
        counts = {}
        for role in Role:
            counts[role.value] = await User.filter(role=role).count()
        return counts


class TortoiseDeviceRepository(DeviceRepository):

    async def create(self, device_code, device_name, owner_id, qr_code, now):
        try:
            d = await Device.create(
                device_code=device_code,
                device_name=device_name,
                owner_id=owner_id,
                qr_code=qr_code,
                is_active=owner_id is not None,
                allocated_at=now if owner_id is not None else None,
            )
        except IntegrityError:
            raise DuplicateCode()
        return _device_record(d)

    async def code_exists(self, device_code):
        return await Device.filter(device_code=device_code).exists()

    async def get(self, device_id):
        d = await Device.get_or_none(id=device_id)
        return _device_record(d) if d else None

    async def get_by_code(self, device_code):
        d = await Device.get_or_none(device_code=device_code)
        return _device_record(d) if d else None

    async def list_all(self):
        rows = await Device.all().select_related("owner").order_by("-created_at")
        return [_device_record(d, d.owner.name if d.owner else None) for d in rows]

    async def list_by_owner(self, owner_id, active_only=False):
        qs = Device.filter(owner_id=owner_id)
        if active_only:
            qs = qs.filter(is_active=True).order_by("-allocated_at")
        else:
            qs = qs.order_by("-created_at")
        return [_device_record(d) for d in await qs]

    async def claim(self, device_code, owner_id, device_name, now):
        values = {"owner_id": owner_id, "is_active": True, "allocated_at": now}
        if device_name:
            values["device_name"] = device_name
        updated = await Device.filter(device_code=device_code, owner_id__isnull=True).update(**values)
        return updated == 1

    async def set_owner(self, device_code, owner_id, now):
        async with in_transaction() as conn:
            device = await Device.filter(device_code=device_code).select_for_update().using_db(conn).first()
            if not device:
                return False
            if device.owner_id == owner_id:
                return True
            await DeviceShare.filter(device_id=device.id).using_db(conn).delete()
            await Device.filter(id=device.id).using_db(conn).update(
                owner_id=owner_id,
                is_active=owner_id is not None,
                allocated_at=now if owner_id is not None else None,
            )
        return True

    async def update_m2m(self, device_code, m2m_number):
        return await Device.filter(device_code=device_code).update(m2m_number=m2m_number) > 0

    async def get_qr(self, device_code):
        d = await Device.get_or_none(device_code=device_code)
        return d.qr_code if d else None

    async def delete(self, device_code):
        async with in_transaction() as conn:
            device = await Device.get_or_none(device_code=device_code, using_db=conn)
            if not device:
                return False
            await DeviceShare.filter(device_id=device.id).using_db(conn).delete()
            for series in (PressureReading, TemperatureReading, DistanceReading):
                await series.filter(device_id=device.id).using_db(conn).delete()
            await device.delete(using_db=conn)
        return True

    async def stats(self):
        total = await Device.all().count()
        assigned = await Device.filter(owner_id__isnull=False).count()
        return DeviceStats(total=total, assigned=assigned, unassigned=total - assigned)


class TortoiseShareRepository(ShareRepository):

    async def add(self, device_id, owner_id, recipient_id, now):
        try:
            async with in_transaction() as conn:
                device = await (
                    Device.filter(id=device_id, owner_id=owner_id).select_for_update().using_db(conn).first()
                )
                if not device:
                    return False
                await DeviceShare.create(
                    device_id=device_id, recipient_id=recipient_id, shared_at=now, using_db=conn
                )
        except IntegrityError:
            raise AlreadyShared()
        return True

    async def exists(self, device_id, recipient_id):
        return await DeviceShare.filter(device_id=device_id, recipient_id=recipient_id).exists()

    async def remove(self, device_id, recipient_id):
        deleted = await DeviceShare.filter(device_id=device_id, recipient_id=recipient_id).delete()
        return deleted > 0

    async def list_sent(self, owner_id):
        rows = await (
            DeviceShare.filter(device__owner_id=owner_id)
            .select_related("device", "recipient")
            .order_by("-shared_at")
        )
        return [
            SentShareRecord(
                device_id=s.device.id,
                device_code=s.device.device_code,
                device_name=s.device.device_name,
                recipient_id=s.recipient.id,
                recipient_name=s.recipient.name,
                recipient_phone=s.recipient.phone,
                shared_at=s.shared_at,
            )
            for s in rows
        ]

    async def list_received(self, recipient_id):
        rows = await (
            DeviceShare.filter(recipient_id=recipient_id, device__owner_id__isnull=False)
            .select_related("device", "device__owner")
            .order_by("-shared_at")
        )
        return [
            ReceivedShareRecord(
                device_id=s.device.id,
                device_code=s.device.device_code,
                device_name=s.device.device_name,
                owner_id=s.device.owner.id,
                owner_name=s.device.owner.name,
                shared_at=s.shared_at,
            )
            for s in rows
        ]


class TortoiseTelemetryRepository(TelemetryRepository):

    async def pressure(self, device_id, limit):
        return await (
            PressureReading.filter(device_id=device_id)
            .order_by("-recorded_at")
            .limit(limit)
            .values("pressure1", "pressure2", "recorded_at")
        )

    async def temperature(self, device_id, limit):
        return await (
            TemperatureReading.filter(device_id=device_id)
            .order_by("-recorded_at")
            .limit(limit)
            .values("temperature", "recorded_at")
        )

    async def distance(self, device_id, limit):
        return await (
            DistanceReading.filter(device_id=device_id)
            .order_by("-recorded_at")
            .limit(limit)
            .values("distance", "recorded_at")
        )

    async def append_pressure(self, device_id, pressure1, pressure2, at):
        await PressureReading.create(device_id=device_id, pressure1=pressure1, pressure2=pressure2, recorded_at=at)

    async def append_temperature(self, device_id, temperature, at):
        await TemperatureReading.create(device_id=device_id, temperature=temperature, recorded_at=at)

    async def append_distance(self, device_id, distance, at):
        await DistanceReading.create(device_id=device_id, distance=distance, recorded_at=at)

"""
In-memory implementation of the storage contracts.

Used by the service unit tests. Every check-then-act method runs without an
`await` between the check and the write, which makes it atomic under a
single asyncio event loop, mirroring the guarantees of the database version.
"""
import dataclasses
import datetime as dt
import uuid
from typing import Dict, List, Tuple

from devicehub.core.clock import utc_now
from devicehub.core.errors import AlreadyShared, DuplicateCode, DuplicateEmail, DuplicatePhone
from devicehub.core.roles import Role
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


class MemoryStore:
    """Shared state behind the four in-memory repositories."""

    def __init__(self):
        self.users: Dict[uuid.UUID, UserRecord] = {}
        self.devices: Dict[uuid.UUID, DeviceRecord] = {}
        self.qr_codes: Dict[uuid.UUID, bytes] = {}
        self.shares: Dict[Tuple[uuid.UUID, uuid.UUID], dt.datetime] = {}
        self.readings: Dict[str, list] = {"pressure": [], "temperature": [], "distance": []}

        self.user_repo = MemoryUserRepository(self)
        self.device_repo = MemoryDeviceRepository(self)
        self.share_repo = MemoryShareRepository(self)
        self.telemetry_repo = MemoryTelemetryRepository(self)

    def device_by_code(self, device_code: str):
        for d in self.devices.values():
            if d.device_code == device_code:
                return d
        return None

    def drop_grants(self, device_id: uuid.UUID) -> None:
        for key in [k for k in self.shares if k[0] == device_id]:
            del self.shares[key]


def _copy(record):
    return dataclasses.replace(record)


class MemoryUserRepository(UserRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    async def create(self, name, phone, email, role):
        for u in self.store.users.values():
            if u.phone == phone:
                raise DuplicatePhone()
            if email and u.email == email:
                raise DuplicateEmail()
        record = UserRecord(id=uuid.uuid4(), name=name, phone=phone, email=email, role=role, created_at=utc_now())
        self.store.users[record.id] = record
        return _copy(record)

    async def get(self, user_id):
        u = self.store.users.get(user_id)
        return _copy(u) if u else None

    async def get_by_phone(self, phone):
        for u in self.store.users.values():
            if u.phone == phone:
                return _copy(u)
        return None

    async def list(self, roles, q=None, offset=0, limit=20):
        rows = [u for u in self.store.users.values() if u.role in roles]
        if q:
            needle = q.lower()
            rows = [
                u for u in rows
                if needle in u.name.lower() or needle in u.phone or needle in (u.email or "").lower()
            ]
        rows.sort(key=lambda u: u.created_at, reverse=True)
        return [_copy(u) for u in rows[offset:offset + limit]], len(rows)

    async def update_role(self, user_id, role):
        if user_id in self.store.users:
            self.store.users[user_id].role = role

    async def delete(self, user_id):
        if user_id not in self.store.users:
            return False
        for d in self.store.devices.values():
            if d.owner_id == user_id:
                self.store.drop_grants(d.id)
                d.owner_id = None
                d.is_active = False
                d.allocated_at = None
        for key in [k for k in self.store.shares if k[1] == user_id]:
            del self.store.shares[key]
        del self.store.users[user_id]
        return True

    async def count_by_role(self):
        counts = {role.value: 0 for role in Role}
        for u in self.store.users.values():
            counts[u.role.value] += 1
        return counts


class MemoryDeviceRepository(DeviceRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    def _out(self, d: DeviceRecord) -> DeviceRecord:
        owner = self.store.users.get(d.owner_id) if d.owner_id else None
        return dataclasses.replace(
            d,
            has_qr_code=d.id in self.store.qr_codes,
            owner_name=owner.name if owner else None,
        )

    async def create(self, device_code, device_name, owner_id, qr_code, now):
        if self.store.device_by_code(device_code):
            raise DuplicateCode()
        record = DeviceRecord(
            id=uuid.uuid4(),
            device_code=device_code,
            device_name=device_name,
            owner_id=owner_id,
            m2m_number=None,
            is_active=owner_id is not None,
            allocated_at=now if owner_id is not None else None,
            created_at=now,
        )
        self.store.devices[record.id] = record
        if qr_code is not None:
            self.store.qr_codes[record.id] = qr_code
        return self._out(record)

    async def code_exists(self, device_code):
        return self.store.device_by_code(device_code) is not None

    async def get(self, device_id):
        d = self.store.devices.get(device_id)
        return self._out(d) if d else None

    async def get_by_code(self, device_code):
        d = self.store.device_by_code(device_code)
        return self._out(d) if d else None

    async def list_all(self):
        rows = sorted(self.store.devices.values(), key=lambda d: d.created_at, reverse=True)
        return [self._out(d) for d in rows]

    async def list_by_owner(self, owner_id, active_only=False):
        rows = [d for d in self.store.devices.values() if d.owner_id == owner_id]
        if active_only:
            rows = [d for d in rows if d.is_active]
            rows.sort(key=lambda d: d.allocated_at, reverse=True)
        else:
            rows.sort(key=lambda d: d.created_at, reverse=True)
        return [self._out(d) for d in rows]

    async def claim(self, device_code, owner_id, device_name, now):
        d = self.store.device_by_code(device_code)
        if d is None or d.owner_id is not None:
            return False
        d.owner_id = owner_id
        d.is_active = True
        d.allocated_at = now
        if device_name:
            d.device_name = device_name
        return True

    async def set_owner(self, device_code, owner_id, now):
        d = self.store.device_by_code(device_code)
        if d is None:
            return False
        if d.owner_id == owner_id:
            return True
        self.store.drop_grants(d.id)
        d.owner_id = owner_id
        d.is_active = owner_id is not None
        d.allocated_at = now if owner_id is not None else None
        return True

    async def update_m2m(self, device_code, m2m_number):
        d = self.store.device_by_code(device_code)
        if d is None:
            return False
        d.m2m_number = m2m_number
        return True

    async def get_qr(self, device_code):
        d = self.store.device_by_code(device_code)
        return self.store.qr_codes.get(d.id) if d else None

    async def delete(self, device_code):
        d = self.store.device_by_code(device_code)
        if d is None:
            return False
        self.store.drop_grants(d.id)
        for kind, rows in self.store.readings.items():
            self.store.readings[kind] = [r for r in rows if r[0] != d.id]
        self.store.qr_codes.pop(d.id, None)
        del self.store.devices[d.id]
        return True

    async def stats(self):
        total = len(self.store.devices)
        assigned = sum(1 for d in self.store.devices.values() if d.owner_id is not None)
        return DeviceStats(total=total, assigned=assigned, unassigned=total - assigned)


class MemoryShareRepository(ShareRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    async def add(self, device_id, owner_id, recipient_id, now):
        d = self.store.devices.get(device_id)
        if d is None or d.owner_id != owner_id:
            return False
        if (device_id, recipient_id) in self.store.shares:
            raise AlreadyShared()
        self.store.shares[(device_id, recipient_id)] = now
        return True

    async def exists(self, device_id, recipient_id):
        return (device_id, recipient_id) in self.store.shares

    async def remove(self, device_id, recipient_id):
        return self.store.shares.pop((device_id, recipient_id), None) is not None

    async def list_sent(self, owner_id):
        out: List[SentShareRecord] = []
        for (device_id, recipient_id), shared_at in self.store.shares.items():
            d = self.store.devices[device_id]
            if d.owner_id != owner_id:
                continue
            r = self.store.users[recipient_id]
            out.append(SentShareRecord(
                device_id=d.id,
                device_code=d.device_code,
                device_name=d.device_name,
                recipient_id=r.id,
                recipient_name=r.name,
                recipient_phone=r.phone,
                shared_at=shared_at,
            ))
        out.sort(key=lambda s: s.shared_at, reverse=True)
        return out

    async def list_received(self, recipient_id):
        out: List[ReceivedShareRecord] = []
        for (device_id, rid), shared_at in self.store.shares.items():
            if rid != recipient_id:
                continue
            d = self.store.devices[device_id]
            if d.owner_id is None:
                continue
            owner = self.store.users[d.owner_id]
            out.append(ReceivedShareRecord(
                device_id=d.id,
                device_code=d.device_code,
                device_name=d.device_name,
                owner_id=owner.id,
                owner_name=owner.name,
                shared_at=shared_at,
            ))
        out.sort(key=lambda s: s.shared_at, reverse=True)
        return out


class MemoryTelemetryRepository(TelemetryRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    def _latest(self, kind, device_id, limit):
        rows = [r[1] for r in self.store.readings[kind] if r[0] == device_id]
        rows.sort(key=lambda r: r["recorded_at"], reverse=True)
        return [dict(r) for r in rows[:limit]]

    async def pressure(self, device_id, limit):
        return self._latest("pressure", device_id, limit)

    async def temperature(self, device_id, limit):
        return self._latest("temperature", device_id, limit)

    async def distance(self, device_id, limit):
        return self._latest("distance", device_id, limit)

    async def append_pressure(self, device_id, pressure1, pressure2, at):
        self.store.readings["pressure"].append(
            (device_id, {"pressure1": pressure1, "pressure2": pressure2, "recorded_at": at})
        )

    async def append_temperature(self, device_id, temperature, at):
        self.store.readings["temperature"].append((device_id, {"temperature": temperature, "recorded_at": at}))

    async def append_distance(self, device_id, distance, at):
        self.store.readings["distance"].append((device_id, {"distance": distance, "recorded_at": at}))

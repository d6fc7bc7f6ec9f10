"""
Storage contracts for the identity store, device registry, sharing ledger
and telemetry series.

Services depend only on these abstract classes. Two implementations exist:
- tortoise_repo: Tortoise ORM (PostgreSQL in deployment, SQLite in tests)
- memory: plain in-process dictionaries, used by service unit tests

The two check-then-act sequences of the system are part of the contract:
- DeviceRepository.claim must set the owner only if it is still unset, as one
  atomic step, and report whether it did.
- ShareRepository.add must re-check ownership and insert the grant as one
  unit, raising AlreadyShared when the (device, recipient) pair exists.
"""
import datetime as dt
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

from devicehub.core.roles import Role


@dataclass
class UserRecord:
    id: uuid.UUID
    name: str
    phone: str
    email: Optional[str]
    role: Role
    created_at: Optional[dt.datetime] = None


@dataclass
class DeviceRecord:
    id: uuid.UUID
    device_code: str
    device_name: str
    owner_id: Optional[uuid.UUID]
    m2m_number: Optional[str]
    is_active: bool
    allocated_at: Optional[dt.datetime]
    created_at: Optional[dt.datetime]
    has_qr_code: bool = False
    owner_name: Optional[str] = None


@dataclass
class SentShareRecord:
    """A grant seen from the owner's side."""
    device_id: uuid.UUID
    device_code: str
    device_name: str
    recipient_id: uuid.UUID
    recipient_name: str
    recipient_phone: str
    shared_at: dt.datetime


@dataclass
class ReceivedShareRecord:
    """A grant seen from the recipient's side."""
    device_id: uuid.UUID
    device_code: str
    device_name: str
    owner_id: uuid.UUID
    owner_name: str
    shared_at: dt.datetime


@dataclass
class DeviceStats:
    total: int
    assigned: int
    unassigned: int


class UserRepository(ABC):

    @abstractmethod
    async def create(self, name: str, phone: str, email: Optional[str], role: Role) -> UserRecord:
        """Insert a user. Raises DuplicatePhone / DuplicateEmail."""

    @abstractmethod
    async def get(self, user_id: uuid.UUID) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def get_by_phone(self, phone: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    async def list(
        self,
        roles: frozenset,
        q: Optional[str] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[UserRecord], int]:
        """Users whose role is in `roles`, newest first, with the total match count."""

    @abstractmethod
    async def update_role(self, user_id: uuid.UUID, role: Role) -> None:
        pass

    @abstractmethod
    async def delete(self, user_id: uuid.UUID) -> bool:
        """
        Delete a user. Devices they own become unowned (and lose their grants);
        grants they received are removed. Returns False if no such user.
        """

    @abstractmethod
    async def count_by_role(self) -> dict:
        pass


class DeviceRepository(ABC):

    @abstractmethod
    async def create(
        self,
        device_code: str,
        device_name: str,
        owner_id: Optional[uuid.UUID],
        qr_code: Optional[bytes],
        now: dt.datetime,
    ) -> DeviceRecord:
        """Insert a device. Raises DuplicateCode on a taken code."""

    @abstractmethod
    async def code_exists(self, device_code: str) -> bool:
        pass

    @abstractmethod
    async def get(self, device_id: uuid.UUID) -> Optional[DeviceRecord]:
        pass

    @abstractmethod
    async def get_by_code(self, device_code: str) -> Optional[DeviceRecord]:
        pass

    @abstractmethod
    async def list_all(self) -> List[DeviceRecord]:
        """Every device with its owner's name, newest created first."""

    @abstractmethod
    async def list_by_owner(self, owner_id: uuid.UUID, active_only: bool = False) -> List[DeviceRecord]:
        """
        Devices owned by owner_id. With active_only the result is ordered by
        most recent allocation, otherwise by most recent creation.
        """

    @abstractmethod
    async def claim(
        self,
        device_code: str,
        owner_id: uuid.UUID,
        device_name: Optional[str],
        now: dt.datetime,
    ) -> bool:
        """Atomically set owner where the device is still unowned. True if this call set it."""

    @abstractmethod
    async def set_owner(self, device_code: str, owner_id: Optional[uuid.UUID], now: dt.datetime) -> bool:
        """
        Overwrite (or clear) the owner. When the owner changes, the device's
        share grants are dropped. False if no such device.
        """

    @abstractmethod
    async def update_m2m(self, device_code: str, m2m_number: str) -> bool:
        pass

    @abstractmethod
    async def get_qr(self, device_code: str) -> Optional[bytes]:
        pass

    @abstractmethod
    async def delete(self, device_code: str) -> bool:
        """Delete a device together with its telemetry and share grants."""

    @abstractmethod
    async def stats(self) -> DeviceStats:
        pass


class ShareRepository(ABC):

    @abstractmethod
    async def add(
        self,
        device_id: uuid.UUID,
        owner_id: uuid.UUID,
        recipient_id: uuid.UUID,
        now: dt.datetime,
    ) -> bool:
        """
        Insert a grant if owner_id still owns the device at write time.
        Returns False when it does not. Raises AlreadyShared on a duplicate pair.
        """

    @abstractmethod
    async def exists(self, device_id: uuid.UUID, recipient_id: uuid.UUID) -> bool:
        pass

    @abstractmethod
    async def remove(self, device_id: uuid.UUID, recipient_id: uuid.UUID) -> bool:
        pass

    @abstractmethod
    async def list_sent(self, owner_id: uuid.UUID) -> List[SentShareRecord]:
        pass

    @abstractmethod
    async def list_received(self, recipient_id: uuid.UUID) -> List[ReceivedShareRecord]:
        pass


class TelemetryRepository(ABC):
    """Append-only telemetry series, read most recent first."""

    @abstractmethod
    async def pressure(self, device_id: uuid.UUID, limit: int) -> List[dict]:
        pass

    @abstractmethod
    async def temperature(self, device_id: uuid.UUID, limit: int) -> List[dict]:
        pass

    @abstractmethod
    async def distance(self, device_id: uuid.UUID, limit: int) -> List[dict]:
        pass

    @abstractmethod
    async def append_pressure(self, device_id: uuid.UUID, pressure1: float, pressure2: float, at: dt.datetime) -> None:
        pass

    @abstractmethod
    async def append_temperature(self, device_id: uuid.UUID, temperature: float, at: dt.datetime) -> None:
        pass

    @abstractmethod
    async def append_distance(self, device_id: uuid.UUID, distance: float, at: dt.datetime) -> None:
        pass

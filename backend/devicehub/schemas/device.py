# devicehub/schemas/device.py
"""
Pydantic schemas for device, sharing and telemetry endpoints.

Device codes are accepted as plain strings here and validated by the
Device Registry, so a malformed code is reported as INVALID_DEVICE_CODE
rather than a generic validation error.
"""
import uuid
from typing import Any, Optional

from pydantic import BaseModel


class DeviceCreateIn(BaseModel):
    """Admin creation of a single device, optionally already assigned."""
    device_code: str  # 16-digit numeric code (QR payload)
    device_name: str
    assigned_to: Optional[uuid.UUID] = None  # Owner user id


class BulkGenerateIn(BaseModel):
    """Bulk provisioning of unowned devices with random codes."""
    count: Any  # Checked by the registry: a real integer in 1..1000, else INVALID_COUNT


class ClaimIn(BaseModel):
    """Customer claim of an unowned device (code usually scanned from its QR)."""
    device_code: str
    device_name: Optional[str] = None  # Optional rename on claim


class ReassignIn(BaseModel):
    """Admin reassignment. `assigned_to = null` unassigns the device."""
    assigned_to: Optional[uuid.UUID] = None


class M2mUpdateIn(BaseModel):
    m2m_number: str


class ShareIn(BaseModel):
    """Owner grants read-only access to the customer with `recipientPhone`."""
    deviceId: uuid.UUID
    recipientPhone: str

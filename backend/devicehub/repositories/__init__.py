"""
Repositories module initialization.
Exports the storage contracts and record types used by the services.
"""
from .base import (
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

__all__ = [
    "DeviceRecord",
    "DeviceRepository",
    "DeviceStats",
    "ReceivedShareRecord",
    "SentShareRecord",
    "ShareRepository",
    "TelemetryRepository",
    "UserRecord",
    "UserRepository",
]

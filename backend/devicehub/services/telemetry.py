"""
Telemetry reader: pressure, temperature and distance series per device,
served only after the Access Evaluator passes.
"""
import uuid
from typing import List, Optional

from devicehub.config import settings
from devicehub.core.errors import InvalidInput
from devicehub.repositories.base import TelemetryRepository, UserRecord
from devicehub.services.devices import DeviceRegistry

SERIES = ("pressure", "temperature", "distance")


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return settings.telemetry_default_limit
    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    return min(limit, settings.telemetry_max_limit)


class TelemetryReader:

    def __init__(self, telemetry: TelemetryRepository, registry: DeviceRegistry):
        self.telemetry = telemetry
        self.registry = registry

    async def _series(self, kind: str, device_id: uuid.UUID, limit: int) -> List[dict]:
        if kind == "pressure":
            return await self.telemetry.pressure(device_id, limit)
        if kind == "temperature":
            return await self.telemetry.temperature(device_id, limit)
        if kind == "distance":
            return await self.telemetry.distance(device_id, limit)
        raise ValueError(f"unknown telemetry series: {kind}")

    async def readings(
        self,
        actor: UserRecord,
        device_id: uuid.UUID,
        kind: str,
        limit: Optional[int] = None,
    ) -> List[dict]:
        device = await self.registry.get_by_id(actor, device_id)
        return await self._series(kind, device.id, clamp_limit(limit))

    async def latest(self, actor: UserRecord, device_id: uuid.UUID) -> dict:
        """Most recent reading of each series (None where a series is empty)."""
        device = await self.registry.get_by_id(actor, device_id)
        out = {}
        for kind in SERIES:
            rows = await self._series(kind, device.id, 1)
            out[kind] = rows[0] if rows else None
        return out

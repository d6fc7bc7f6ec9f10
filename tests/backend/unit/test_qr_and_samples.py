"""
Unit tests for the QR encoder, the telemetry reader and sample data.
"""
import datetime as dt
import io
import random

import pytest
from PIL import Image

from devicehub.config import settings
from devicehub.core.clock import utc_now
from devicehub.core.errors import DeviceNotFound, InvalidInput
from devicehub.core.roles import Role
from devicehub.services.access import AccessEvaluator
from devicehub.services.devices import DeviceRegistry
from devicehub.services.qr import encode_qr
from devicehub.services.sample_data import insert_sample_telemetry
from devicehub.services.telemetry import TelemetryReader, clamp_limit

pytestmark = pytest.mark.asyncio


def _reader(store):
    registry = DeviceRegistry(store.device_repo, store.user_repo, AccessEvaluator(store.share_repo), encode_qr)
    return TelemetryReader(store.telemetry_repo, registry)


async def test_encode_qr_returns_png():
    png = encode_qr("1234567890123456")
    assert png.startswith(b"\x89PNG\r\n\x1a\n")
    image = Image.open(io.BytesIO(png))
    assert image.format == "PNG"
    assert image.size[0] == image.size[1]


async def test_clamp_limit():
    assert clamp_limit(None) == settings.telemetry_default_limit
    assert clamp_limit(10) == 10
    assert clamp_limit(10_000) == settings.telemetry_max_limit
    with pytest.raises(InvalidInput):
        clamp_limit(0)


async def test_readings_are_newest_first_and_access_checked(store):
    alice = await store.user_repo.create("Alice", "9000000001", None, Role.CUSTOMER)
    bob = await store.user_repo.create("Bob", "9000000002", None, Role.CUSTOMER)
    device = await store.device_repo.create("1234567890123456", "Tank", alice.id, None, utc_now())
    now = utc_now()
    for minutes in (3, 1, 2):
        await store.telemetry_repo.append_temperature(device.id, 20.0 + minutes, now - dt.timedelta(minutes=minutes))

    reader = _reader(store)
    rows = await reader.readings(alice, device.id, "temperature", limit=2)
    assert [r["temperature"] for r in rows] == [21.0, 22.0]

    with pytest.raises(DeviceNotFound):
        await reader.readings(bob, device.id, "temperature")

    latest = await reader.latest(alice, device.id)
    assert latest["temperature"]["temperature"] == 21.0
    assert latest["pressure"] is None
    assert latest["distance"] is None


async def test_insert_sample_telemetry_fills_every_series(store):
    admin = await store.user_repo.create("Ops", "9100000001", None, Role.ADMIN)
    assert await insert_sample_telemetry(store.device_repo, store.telemetry_repo) == 0

    d1 = await store.device_repo.create("1000000000000001", "a", None, None, utc_now())
    await store.device_repo.create("1000000000000002", "b", None, None, utc_now())
    filled = await insert_sample_telemetry(
        store.device_repo, store.telemetry_repo, points=5, rng=random.Random(7)
    )
    assert filled == 2

    reader = _reader(store)
    for kind in ("pressure", "temperature", "distance"):
        rows = await reader.readings(admin, d1.id, kind, limit=100)
        assert len(rows) == 5
        stamps = [r["recorded_at"] for r in rows]
        assert stamps == sorted(stamps, reverse=True)

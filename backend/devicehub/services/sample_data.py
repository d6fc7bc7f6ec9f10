"""
Sample telemetry for demo and development databases.

Run against the configured database with:
    python -m devicehub.services.sample_data [--points 50] [--step-minutes 2]
"""
import argparse
import asyncio
import datetime as dt
import logging
import math
import random

from devicehub.core.clock import utc_now
from devicehub.repositories.base import DeviceRepository, TelemetryRepository

logger = logging.getLogger("uvicorn.error")


async def insert_sample_telemetry(
    devices: DeviceRepository,
    telemetry: TelemetryRepository,
    points: int = 50,
    step_minutes: int = 2,
    rng: random.Random | None = None,
) -> int:
    """
    Append `points` readings per series for every device, spaced
    `step_minutes` apart and ending now. Returns the number of devices filled.
    """
    rng = rng or random.Random()
    all_devices = await devices.list_all()
    if not all_devices:
        logger.warning("[sample] no devices found, create some first")
        return 0

    now = utc_now()
    for device in all_devices:
        for i in range(points):
            at = now - dt.timedelta(minutes=(points - i) * step_minutes)
            # kPa / degrees C / cm, with a slow wave so charts are not flat noise
            p1 = 80 + rng.random() * 40 + math.sin(i * 0.1) * 10
            p2 = 70 + rng.random() * 50 + math.cos(i * 0.15) * 15
            await telemetry.append_pressure(device.id, round(p1, 2), round(p2, 2), at)
            await telemetry.append_temperature(device.id, round(20 + rng.random() * 15 + math.sin(i * 0.08) * 5, 2), at)
            await telemetry.append_distance(device.id, round(100 + rng.random() * 200 + math.sin(i * 0.12) * 30, 2), at)
        logger.info("[sample] %d readings per series for %s", points, device.device_code)
    return len(all_devices)


async def _main(points: int, step_minutes: int) -> None:
    from devicehub.core.db import close_db, init_db
    from devicehub.repositories.tortoise_repo import TortoiseDeviceRepository, TortoiseTelemetryRepository

    await init_db()
    try:
        filled = await insert_sample_telemetry(
            TortoiseDeviceRepository(), TortoiseTelemetryRepository(), points, step_minutes
        )
        logger.info("[sample] done, %d devices filled", filled)
    finally:
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    parser = argparse.ArgumentParser(description="Insert sample telemetry for every device")
    parser.add_argument("--points", type=int, default=50)
    parser.add_argument("--step-minutes", type=int, default=2)
    args = parser.parse_args()
    asyncio.run(_main(args.points, args.step_minutes))

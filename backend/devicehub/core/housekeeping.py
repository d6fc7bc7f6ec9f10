"""
Background housekeeping: the periodic OTP expiry sweep.

Started from the app's startup hook and cancelled on shutdown. A failing
sweep is logged and retried on the next tick.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger("uvicorn.error")

_task: Optional[asyncio.Task] = None


async def _sweep_loop(sweep: Callable[[], Awaitable[int]], interval_sec: float) -> None:
    while True:
        await asyncio.sleep(interval_sec)
        try:
            await sweep()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[housekeeping] OTP sweep failed")


def start_sweeper(sweep: Callable[[], Awaitable[int]], interval_sec: float) -> asyncio.Task:
    global _task
    if _task is None or _task.done():
        _task = asyncio.create_task(_sweep_loop(sweep, interval_sec))
        logger.info("[housekeeping] OTP sweep every %ss", interval_sec)
    return _task


async def stop_sweeper() -> None:
    global _task
    if _task is None:
        return
    _task.cancel()
    try:
        await _task
    except asyncio.CancelledError:
        pass
    _task = None

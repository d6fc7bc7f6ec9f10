"""
Admin login audit trail.

Only administrator and superadmin logins are recorded. Recording is best
effort: a failure is logged and the login proceeds.
"""
import datetime as dt
import logging
from typing import List, Optional

from tortoise.exceptions import BaseORMException

from devicehub.core.roles import is_elevated
from devicehub.models.login_log import LoginLog
from devicehub.repositories.base import UserRecord

logger = logging.getLogger("uvicorn.error")


async def record_login(user: UserRecord, ip_address: Optional[str], user_agent: Optional[str]) -> bool:
    if not is_elevated(user.role):
        return False
    try:
        await LoginLog.create(
            admin_id=user.id,
            ip_address=(ip_address or "unknown")[:64],
            user_agent=(user_agent or "unknown")[:512],
        )
    except BaseORMException as e:
        logger.error("[audit] could not record login of %s: %r", user.id, e)
        return False
    logger.info("[audit] %s login %s (%s) from %s", user.role.value, user.name, user.phone, ip_address)
    return True


async def recent_logins(limit: int = 100) -> List[dict]:
    rows = await LoginLog.all().select_related("admin").order_by("-login_time").limit(limit)
    return [
        {
            "id": r.id,
            "adminId": str(r.admin.id),
            "adminName": r.admin.name,
            "adminPhone": r.admin.phone,
            "adminRole": r.admin.role.value,
            "ipAddress": r.ip_address,
            "userAgent": r.user_agent,
            "loginTime": r.login_time.isoformat() if r.login_time else None,
        }
        for r in rows
    ]


async def logins_since(since: dt.datetime) -> int:
    return await LoginLog.filter(login_time__gte=since).count()

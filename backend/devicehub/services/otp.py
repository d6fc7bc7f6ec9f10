"""
One-time login codes.

Flow:
  request_code(phone)  -> previous open codes consumed, new 6-digit code
                          stored as an argon2 hash, SMS sent
  verify_code(phone)   -> latest open, unexpired code checked and consumed
                          with a conditional update (one login per code)
  sweep_expired()      -> expired open codes marked consumed
"""
import datetime as dt
import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from devicehub.config import settings
from devicehub.core.clock import utc_now
from devicehub.core.errors import InvalidOtp, UserNotFound
from devicehub.core.roles import Role
from devicehub.core.security import hash_code, verify_code
from devicehub.models.otp import OtpSession
from devicehub.repositories.base import UserRecord, UserRepository
from devicehub.services.identity import validate_phone
from devicehub.services.sms import OTP_MESSAGE, SmsTransport

logger = logging.getLogger("uvicorn.error")


@dataclass
class OtpIssued:
    user: UserRecord
    code: str
    expires_at: dt.datetime
    delivered: bool


def generate_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def _matches_hint(role: Role, role_hint: Optional[str]) -> bool:
    if not role_hint:
        return True
    if role_hint == "admin":
        return role is Role.ADMIN or role is Role.SUPERADMIN
    if role_hint == "customer":
        return role is Role.CUSTOMER
    return role.value == role_hint


class OtpService:

    def __init__(self, users: UserRepository, sms: SmsTransport):
        self.users = users
        self.sms = sms

    async def request_code(self, phone: str, role_hint: Optional[str] = None) -> OtpIssued:
        phone = validate_phone(phone)
        user = await self.users.get_by_phone(phone)
        if not user:
            raise UserNotFound("Phone number not registered in the system")
        if not _matches_hint(user.role, role_hint):
            raise UserNotFound(f"Phone number not registered as {role_hint}")

        # Only the newest code is ever valid
        await OtpSession.filter(phone=phone, is_consumed=False).update(is_consumed=True)

        code = generate_code()
        expires_at = utc_now() + dt.timedelta(minutes=settings.otp_expire_minutes)
        await OtpSession.create(
            user_id=user.id,
            phone=phone,
            code_hash=hash_code(code),
            expires_at=expires_at,
        )
        delivered = await self.sms.send(phone, OTP_MESSAGE.format(code=code))
        if not delivered:
            logger.warning("[otp] code for %s stored but SMS delivery failed", phone)
        logger.info("[otp] code issued for %s (%s), expires %s", phone, user.role.value, expires_at.isoformat())
        return OtpIssued(user=user, code=code, expires_at=expires_at, delivered=delivered)

    async def verify_code(self, phone: str, code: str) -> UserRecord:
        phone = validate_phone(phone)
        code = (code or "").strip()
        session = await (
            OtpSession.filter(phone=phone, is_consumed=False, expires_at__gt=utc_now())
            .order_by("-created_at")
            .first()
        )
        if not session or not code or not verify_code(code, session.code_hash):
            raise InvalidOtp()
        # A concurrent verify of the same code loses here
        consumed = await OtpSession.filter(id=session.id, is_consumed=False).update(is_consumed=True)
        if consumed != 1:
            raise InvalidOtp()

        user = await self.users.get_by_phone(phone)
        if not user:
            raise UserNotFound()
        logger.info("[otp] verified %s (%s)", phone, user.role.value)
        return user

    async def sweep_expired(self) -> int:
        swept = await OtpSession.filter(is_consumed=False, expires_at__lte=utc_now()).update(is_consumed=True)
        if swept:
            logger.info("[otp] swept %d expired codes", swept)
        return swept

    async def sessions_since(self, since: dt.datetime) -> int:
        return await OtpSession.filter(created_at__gte=since).count()

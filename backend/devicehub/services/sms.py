"""
SMS transport used to deliver one-time login codes.

Delivery is fire-and-forget from the caller's point of view: send() never
raises, it reports success as a bool and logs failures.
"""
import logging
from abc import ABC, abstractmethod

import httpx

from devicehub.config import settings

logger = logging.getLogger("uvicorn.error")

OTP_MESSAGE = "Welcome to NighaTech Global Your OTP for authentication is {code} don't share with anybody Thank you"


class SmsTransport(ABC):

    @abstractmethod
    async def send(self, phone: str, message: str) -> bool:
        pass


class HttpSmsTransport(SmsTransport):
    """HTTP GET gateway (secret/sender/template id passed as query params)."""

    def __init__(self):
        self.api_url = settings.sms_api_url
        self.timeout = settings.sms_timeout_sec

    async def send(self, phone: str, message: str) -> bool:
        params = {
            "secret": settings.sms_secret,
            "sender": settings.sms_sender,
            "tempid": settings.sms_template_id,
            "receiver": phone,
            "route": settings.sms_route,
            "msgtype": settings.sms_msgtype,
            "sms": message,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.api_url, params=params)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("[sms] delivery to %s failed: %r", phone, e)
            return False
        logger.info("[sms] delivered to %s (status=%s)", phone, resp.status_code)
        return True


class LogSmsTransport(SmsTransport):
    """Used when no gateway secret is configured: the message only goes to the log."""

    async def send(self, phone: str, message: str) -> bool:
        logger.warning("[sms] gateway not configured, message for %s: %s", phone, message)
        return True


def get_sms_transport() -> SmsTransport:
    if settings.sms_secret:
        return HttpSmsTransport()
    return LogSmsTransport()

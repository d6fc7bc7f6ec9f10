"""
Services Module

Business logic behind the HTTP routers:
- identity: accounts, phone normalization, role-scoped user management
- devices: Device Registry (provisioning, claim, reassignment, QR)
- sharing: Sharing Ledger (grants, revocation, sent/received lists)
- access: Access Evaluator (who may read a device's data)
- telemetry: pressure / temperature / distance readings
- otp + sms: one-time login codes and their delivery
- audit: admin login log
"""

from .access import AccessEvaluator
from .devices import BulkResult, DeviceRegistry, validate_device_code
from .identity import IdentityService, format_phone, validate_phone
from .otp import OtpService
from .qr import encode_qr
from .sharing import SharingLedger
from .sms import HttpSmsTransport, LogSmsTransport, SmsTransport, get_sms_transport
from .telemetry import TelemetryReader

__all__ = [
    "AccessEvaluator",
    "BulkResult",
    "DeviceRegistry",
    "validate_device_code",
    "IdentityService",
    "format_phone",
    "validate_phone",
    "OtpService",
    "encode_qr",
    "SharingLedger",
    "HttpSmsTransport",
    "LogSmsTransport",
    "SmsTransport",
    "get_sms_transport",
    "TelemetryReader",
]

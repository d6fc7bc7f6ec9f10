# devicehub/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: Account (customer / admin / superadmin), identified by phone number
- Device: Sensor device with at most one owner
- DeviceShare: Read-only access grant from a device to a recipient
- PressureReading / TemperatureReading / DistanceReading: Telemetry series
- OtpSession: Hashed one-time login code
- LoginLog: Admin login audit row
"""
from .user import User
from .device import Device, DeviceShare
from .telemetry import PressureReading, TemperatureReading, DistanceReading
from .otp import OtpSession
from .login_log import LoginLog

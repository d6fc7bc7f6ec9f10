"""
Database models for devices and share grants.
"""
import uuid
from typing import Optional
from tortoise import fields, models

class Device(models.Model):
    """
    A sensor device.

    - device_code: 16-digit numeric string, the QR payload and public handle (unique, immutable)
    - owner: current owner (nullable: unassigned devices exist). At most one owner at a time
    - is_active: set when a customer claims the device or an admin assigns it
    - allocated_at: when the current owner got the device
    - qr_code: PNG image encoding device_code
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    device_code = fields.CharField(max_length=16, unique=True, index=True)
    device_name = fields.CharField(max_length=128)

    owner: Optional[fields.ForeignKeyNullableRelation["User"]] = fields.ForeignKeyField(
        "models.User",
        related_name="owned_devices",
        null=True,
        on_delete=fields.SET_NULL,
    )

    m2m_number = fields.CharField(max_length=32, null=True)  # Machine-to-machine SIM number
    is_active = fields.BooleanField(default=False)
    allocated_at = fields.DatetimeField(null=True)
    qr_code = fields.BinaryField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "devices"


class DeviceShare(models.Model):
    """
    Read-only access grant from a device to a recipient user.

    At most one grant exists per (device, recipient); the unique constraint
    turns a concurrent duplicate share into an IntegrityError.
    """
    id = fields.IntField(pk=True)
    device = fields.ForeignKeyField("models.Device", related_name="shares", on_delete=fields.CASCADE)
    recipient = fields.ForeignKeyField("models.User", related_name="received_shares", on_delete=fields.CASCADE)
    shared_at = fields.DatetimeField()

    class Meta:
        table = "device_shares"
        unique_together = (("device", "recipient"),)

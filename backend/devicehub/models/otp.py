import uuid
from typing import Optional
from tortoise import fields, models

class OtpSession(models.Model):
    """
    One-time login code sent over SMS.
    - code_hash: argon2 hash of the 6-digit code (plain text not stored)
    - expires_at: code is rejected after this time
    - is_consumed: set on successful verification, when a newer code is requested,
      or by the expiry sweep
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user: Optional[fields.ForeignKeyNullableRelation["User"]] = fields.ForeignKeyField(
        "models.User", related_name="otp_sessions", null=True, on_delete=fields.CASCADE
    )
    phone = fields.CharField(max_length=16, index=True)
    code_hash = fields.CharField(max_length=255)
    expires_at = fields.DatetimeField()
    is_consumed = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "otp_sessions"

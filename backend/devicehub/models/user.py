"""
Database model for users.
Represents an account in the dashboard: customers who own and share
devices, and administrators who provision devices and manage accounts.
"""
import uuid
from tortoise import fields, models

from devicehub.core.roles import Role

class User(models.Model):
    """
    User database model.

    Users log in with their phone number (one-time code over SMS), so the
    phone number is the unique identity; there is no password.

    Relationships:
    - Owns many Devices (one-to-many, via related_name="owned_devices")
    - Receives many DeviceShares (one-to-many, via related_name="received_shares")
    - Has many LoginLogs when the user is an admin/superadmin

    Deletion:
    - Owned devices are unassigned (owner set to NULL), not deleted
    - Received share grants are deleted
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    name = fields.CharField(max_length=128)  # Display name
    phone = fields.CharField(
        max_length=16,
        unique=True,
        index=True
    )  # Normalized 10-digit mobile number (login identity, unique)
    email = fields.CharField(max_length=256, null=True, unique=True)  # Optional email address
    role = fields.CharEnumField(Role, max_length=16, default=Role.CUSTOMER)  # customer / admin / superadmin
    created_at = fields.DatetimeField(auto_now_add=True)  # Timestamp when account was created (auto-set on creation)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name

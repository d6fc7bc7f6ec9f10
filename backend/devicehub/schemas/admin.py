# devicehub/schemas/admin.py
"""
Pydantic schemas for admin user management endpoints.
"""
from typing import Optional

from pydantic import BaseModel


class AdminUserCreateIn(BaseModel):
    """
    Request model for creating an account from the admin console.
    Admins may create customers only; superadmins customers or admins.
    """
    name: str
    phone: str
    email: Optional[str] = None
    role: str = "customer"  # Validated against the Role enumeration


class RoleUpdateIn(BaseModel):
    """Request model for a superadmin role change."""
    role: str

# devicehub/schemas/auth.py
"""
Pydantic schemas for authentication endpoints.
Defines request models for signup and the OTP login flow.
"""
from typing import Optional

from pydantic import BaseModel


class SignupIn(BaseModel):
    """
    Request model for customer self-registration.
    Admin and superadmin accounts are never created through signup.
    """
    name: str  # Display name
    phone: str  # Indian mobile number, normalized server-side
    email: Optional[str] = None  # Optional, unique when present


class SendOtpIn(BaseModel):
    """
    Request model for requesting a one-time login code.
    `role` narrows which accounts may log in from a given screen:
    "admin" accepts admins and superadmins, "customer" accepts customers.
    """
    phone: str
    role: Optional[str] = None


class VerifyOtpIn(BaseModel):
    """Request model for exchanging a one-time code for an access token."""
    phone: str
    otp: str

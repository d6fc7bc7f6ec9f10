# devicehub/core/security.py
"""
Security module for authentication.
Handles JWT token creation/validation and hashing of one-time login codes.
"""
import os
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext
from dotenv import load_dotenv
from pathlib import Path

# Load environment variables from project root
ENV_PATH = Path(__file__).resolve().parents[3] / ".env"
load_dotenv(dotenv_path=ENV_PATH)

# Hashing context for one-time codes
# OTP codes are never stored in plain text; argon2 hashes are kept instead
otp_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for code hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

# JWT configuration
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")  # Secret key for JWT signing (use strong secret in production)
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))  # Default: 7 days
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

def hash_code(plain: str) -> str:
    """
    Hash a one-time login code using Argon2.

    Args:
        plain: The 6-digit code sent to the user

    Returns:
        Hashed code string (safe to store in database)
    """
    return otp_context.hash(plain)

def verify_code(plain: str, hashed: str) -> bool:
    """
    Verify a one-time login code against its stored hash.

    Args:
        plain: Code entered by the user
        hashed: Hashed code from database

    Returns:
        True if the code matches, False otherwise
    """
    return otp_context.verify(plain, hashed)

def create_access_token(user_id: str, role: str, phone: str | None = None, name: str | None = None) -> str:
    """
    Create a JWT access token for a verified user.

    The token carries id, role, phone and name so the dashboard can render
    the session without another request. The Role Gate still re-checks that
    the user exists on every request.

    Args:
        user_id: Unique user identifier (UUID string)
        role: User role ("customer", "admin" or "superadmin")
        phone: Login phone number
        name: Display name

    Returns:
        Encoded JWT token string

    Token payload includes:
        - sub: Subject (user ID)
        - role: User role for authorization
        - phone / name: Profile claims (when given)
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sub": user_id,  # Subject (user ID)
        "role": role,    # User role for RBAC
        "iat": now,      # Issued at timestamp
        "exp": now + dt.timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),  # Expiration timestamp
    }
    if phone is not None:
        payload["phone"] = phone
    if name is not None:
        payload["name"] = name
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)

def decode_access_token(token: str) -> dict:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload dictionary containing user_id, role, etc.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed

    Note: This function validates the token signature and expiration automatically.
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])

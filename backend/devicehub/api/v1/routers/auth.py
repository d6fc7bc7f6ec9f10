# devicehub/api/v1/routers/auth.py
import logging

from fastapi import APIRouter, Depends, Request, Response, status

from devicehub.api.v1.deps import get_identity_service, get_otp_service, require_operation
from devicehub.config import settings
from devicehub.core.ratelimit import OTP_SEND_LIMIT_MESSAGE, OTP_VERIFY_LIMIT_MESSAGE, limiter
from devicehub.core.security import create_access_token
from devicehub.repositories.base import UserRecord
from devicehub.schemas.auth import SendOtpIn, SignupIn, VerifyOtpIn
from devicehub.schemas.views import user_to_dict
from devicehub.services.audit import record_login
from devicehub.services.identity import IdentityService
from devicehub.services.otp import OtpService

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(body: SignupIn, identity: IdentityService = Depends(get_identity_service)):
    """
    Register a new customer account.

    The phone number is normalized (country prefix, spaces and dashes
    stripped) and must be a 10-digit Indian mobile number. Phone and email
    must be unique across all users.

    Error codes:
        - INVALID_PHONE: Malformed phone number
        - DUPLICATE_PHONE / DUPLICATE_EMAIL: Already registered
    """
    user = await identity.signup(body.name, body.phone, body.email)
    return {"success": True, "message": "User registered successfully", "data": {"user": user_to_dict(user)}}


@router.post("/send-otp")
@limiter.limit(settings.rate_limit_send_otp, error_message=OTP_SEND_LIMIT_MESSAGE)
async def send_otp(request: Request, body: SendOtpIn, otp: OtpService = Depends(get_otp_service)):
    """
    Send a one-time login code to a registered phone number.

    Any earlier unused code for the phone stops working. SMS delivery is
    best effort; with EXPOSE_OTP enabled (development) the code is also
    returned in the response.

    Error codes:
        - INVALID_PHONE: Malformed phone number
        - USER_NOT_FOUND: Phone not registered (for the requested role)
        - RATE_LIMITED: More than 5 requests from this IP in 5 minutes (429)
    """
    issued = await otp.request_code(body.phone, body.role)
    data = {
        "phoneNumber": issued.user.phone,
        "userType": issued.user.role.value,
        "user": {"id": str(issued.user.id), "name": issued.user.name, "role": issued.user.role.value},
        "expiresAt": issued.expires_at.isoformat(),
        "smsDelivered": issued.delivered,
    }
    if settings.expose_otp:
        data["otp"] = issued.code
    return {"success": True, "message": "OTP sent successfully", "data": data}


@router.post("/verify-otp")
@limiter.limit(settings.rate_limit_verify_otp, error_message=OTP_VERIFY_LIMIT_MESSAGE)
async def verify_otp(
    request: Request,
    body: VerifyOtpIn,
    response: Response,
    otp: OtpService = Depends(get_otp_service),
):
    """
    Exchange a one-time code for an access token.

    The token is returned in the body and also set as an HttpOnly cookie
    named "accessToken". Admin and superadmin logins are written to the
    login log together with the client IP and user agent.

    Error codes:
        - INVALID_OTP: Wrong, expired or already used code
        - RATE_LIMITED: Too many attempts from this IP (429)
    """
    user = await otp.verify_code(body.phone, body.otp)
    client_ip = request.client.host if request.client else None
    await record_login(user, client_ip, request.headers.get("user-agent"))

    token = create_access_token(str(user.id), user.role.value, phone=user.phone, name=user.name)
    response.set_cookie("accessToken", token, httponly=True, secure=False, samesite="lax")
    logger.info("[auth] login %s (%s) role=%s", user.name, user.phone, user.role.value)
    return {"success": True, "message": "Login successful", "data": {"token": token, "user": user_to_dict(user)}}


@router.get("/me")
async def me(user: UserRecord = Depends(require_operation("profile.view"))):
    """Profile of the currently authenticated user."""
    return {"success": True, "data": {"user": user_to_dict(user)}}


@router.post("/logout")
async def logout(response: Response, user: UserRecord = Depends(require_operation("auth.logout"))):
    """
    Clear the access token cookie.

    Note:
        The JWT itself stays valid until it expires; the client drops it.
    """
    response.delete_cookie("accessToken")
    logger.info("[auth] logout %s (%s)", user.name, user.phone)
    return {"success": True, "message": "Logged out successfully"}


@router.post("/cleanup-otps")
async def cleanup_otps(
    _: UserRecord = Depends(require_operation("otp.cleanup")),
    otp: OtpService = Depends(get_otp_service),
):
    """Mark every expired, unused login code as consumed (admin only)."""
    swept = await otp.sweep_expired()
    return {"success": True, "message": f"Cleaned up {swept} expired OTP sessions", "data": {"cleaned": swept}}

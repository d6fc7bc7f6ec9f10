# devicehub/core/errors.py
"""
Error taxonomy shared by services, repositories and routers.

Every failure a caller can observe is an AppError subclass carrying an HTTP
status and a machine-readable code. Routers never build error responses by
hand: the handlers registered here render the uniform envelope
{"success": False, "message": ..., "code": ...}.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("uvicorn.error")


class AppError(Exception):
    """Base class: a failure that is reported to the caller."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL"
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ----- 401 / 403 -----
class Unauthenticated(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"
    message = "Access denied"


class NotOwner(Forbidden):
    code = "NOT_OWNER"
    message = "You can only manage devices that belong to you"


# ----- 404 -----
class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Not found"


class DeviceNotFound(NotFound):
    code = "DEVICE_NOT_FOUND"
    message = "Device not found"


class AccessDenied(DeviceNotFound):
    """Rendered exactly like DeviceNotFound so device existence is not leaked."""


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"
    message = "User not found"


class RecipientNotFound(NotFound):
    code = "RECIPIENT_NOT_FOUND"
    message = "No customer found with this phone number"


class GrantNotFound(NotFound):
    code = "GRANT_NOT_FOUND"
    message = "Device is not shared with this user"


class QrNotAvailable(NotFound):
    code = "QR_NOT_AVAILABLE"
    message = "QR code not available for this device"


# ----- 409 -----
class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Conflict"


class AlreadyOwned(Conflict):
    code = "ALREADY_OWNED"
    message = "Device is already assigned to another customer"


class AlreadyShared(Conflict):
    code = "ALREADY_SHARED"
    message = "Device is already shared with this user"


class DuplicateCode(Conflict):
    code = "DUPLICATE_CODE"
    message = "Device with this code already exists"


class DuplicatePhone(Conflict):
    code = "DUPLICATE_PHONE"
    message = "User with this phone number already exists"


class DuplicateEmail(Conflict):
    code = "DUPLICATE_EMAIL"
    message = "Email already registered"


# ----- 400 -----
class InvalidInput(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVALID_INPUT"
    message = "Invalid input"


class InvalidPhone(InvalidInput):
    code = "INVALID_PHONE"
    message = "Invalid phone number format. Must be a valid 10-digit Indian mobile number starting with 6-9"


class InvalidDeviceCode(InvalidInput):
    code = "INVALID_DEVICE_CODE"
    message = "Device code must be exactly 16 digits"


class InvalidCount(InvalidInput):
    code = "INVALID_COUNT"
    message = "Count must be between 1 and 1000"


class InvalidRole(InvalidInput):
    code = "INVALID_ROLE"
    message = "Invalid role. Must be one of: customer, admin, superadmin"


class UnknownOwner(InvalidInput):
    code = "UNKNOWN_OWNER"
    message = "Assigned user does not exist"


class InvalidOtp(InvalidInput):
    code = "INVALID_OTP"
    message = "Invalid or expired OTP"


# ----- 429 -----
class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    message = "Too many requests from this IP, please try again later."


def error_body(code: str, message: str) -> dict:
    return {"success": False, "message": message, "code": code}


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[error] %s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # First failing field is enough for the dashboard forms
    errors = exc.errors()
    if errors:
        loc = ".".join(str(p) for p in errors[0].get("loc", ()) if p != "body")
        message = f"{loc}: {errors[0].get('msg', 'invalid value')}" if loc else errors[0].get("msg", "Invalid input")
    else:
        message = InvalidInput.message
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body(InvalidInput.code, message))


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("[error] unhandled failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(AppError.code, AppError.message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, _app_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

from typing import Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AuthError(Exception):
    """Base class for failures surfaced by the authentication core."""

    status_code: int = 400
    error_code: str = "AUTH_ERROR"
    default_message: str = "Authentication failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidOrExpiredChallenge(AuthError):
    # wrong code, expired code and unknown mobile number all look the same
    status_code = 400
    error_code = "INVALID_OR_EXPIRED_OTP"
    default_message = "Invalid or expired OTP"


class ChallengeAlreadyUsed(AuthError):
    status_code = 409
    error_code = "OTP_ALREADY_USED"
    default_message = "OTP already used"


class AccountInactiveOrBlocked(AuthError):
    status_code = 403
    error_code = "ACCOUNT_INACTIVE_OR_BLOCKED"
    default_message = "Account is inactive or blocked"


class PrincipalNotFound(AuthError):
    status_code = 404
    error_code = "PRINCIPAL_NOT_FOUND"
    default_message = "No account is registered for this mobile number"


class DeliveryDegraded(Exception):
    """Every notification channel was unconfigured or failed. Never leaves the dispatcher."""


def create_error_response(error_message: str, error_code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message,
        "error_code": error_code,
    }


async def auth_exception_handler(request: Request, exc: AuthError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.error_code),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(str(exc.detail)),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return JSONResponse(
        status_code=422,
        content=create_error_response("; ".join(messages) or "Invalid request", "VALIDATION_ERROR"),
    )

# Schemas package
from .auth.otp import OtpRequest, OtpVerificationRequest, LoginRequest, ApiResponse, SessionData

__all__ = [
    "OtpRequest",
    "OtpVerificationRequest",
    "LoginRequest",
    "ApiResponse",
    "SessionData",
]

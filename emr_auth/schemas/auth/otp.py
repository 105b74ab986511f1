# emr_auth/schemas/auth/otp.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Any
import re

from ...db.models.auth.otp import OtpPurpose
from ...application.ports.principal_directory import PrincipalRole

MOBILE_PATTERN = re.compile(r'^\+?[1-9]\d{1,14}$')


def _clean_mobile(v: str) -> str:
    phone_clean = re.sub(r'[^\d+]', '', v or '')
    if not MOBILE_PATTERN.match(phone_clean):
        raise ValueError('Invalid mobile number format')
    return phone_clean


class OtpRequest(BaseModel):
    mobile_number: str = Field(..., description="Mobile number, optionally with + and country code")
    purpose: OtpPurpose = Field(..., description="REGISTRATION, LOGIN or PASSWORD_RESET")

    @field_validator('mobile_number')
    @classmethod
    def validate_mobile(cls, v):
        return _clean_mobile(v)


class OtpVerificationRequest(OtpRequest):
    otp: str = Field(..., min_length=6, max_length=6, pattern=r'^\d{6}$', description="6-digit OTP")


class LoginRequest(BaseModel):
    mobile_number: str
    otp: str = Field(..., min_length=6, max_length=6, pattern=r'^\d{6}$')
    user_type: Optional[PrincipalRole] = Field(None, description="DOCTOR or PATIENT; both are tried when omitted")

    @field_validator('mobile_number')
    @classmethod
    def validate_mobile(cls, v):
        return _clean_mobile(v)


class ApiResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Any = None
    error: Optional[str] = None


class SessionData(BaseModel):
    token: str
    refresh_token: str
    user_id: str
    name: Optional[str] = None
    user_type: str
    specialization: Optional[str] = None
    expires_in: int

# emr_auth/routers/auth_router.py
from fastapi import APIRouter, Depends, Request
import logging

from ..application.services.auth_service import AuthService
from ..db.models.auth.otp import OtpPurpose
from ..dependencies import get_auth_service
from ..exceptions import InvalidOrExpiredChallenge
from ..schemas import OtpRequest, OtpVerificationRequest, LoginRequest, ApiResponse, SessionData
from ..utils import mask_phone_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Authentication"])


def _request_id(request: Request):
    return getattr(request.state, "request_id", None)


@router.post("/otp/send", response_model=ApiResponse)
def send_otp(payload: OtpRequest, request: Request, auth_service: AuthService = Depends(get_auth_service)):
    """
    Issue a new OTP challenge for the mobile number and purpose.
    The code itself is only echoed back when OTP_EXPOSE_CODE is enabled.
    """
    logger.info(f"OTP request received for: {mask_phone_number(payload.mobile_number)}")
    receipt = auth_service.request_challenge(payload.mobile_number, payload.purpose, request_id=_request_id(request))

    data = {
        "mobile_number": receipt.mobile_number,
        "purpose": receipt.purpose.value,
        "expires_in": receipt.expires_in,
    }
    if receipt.code is not None:
        data["otp"] = receipt.code
    return ApiResponse(success=True, message=receipt.message, data=data)


@router.post("/otp/verify", response_model=ApiResponse)
def verify_otp(payload: OtpVerificationRequest, request: Request, auth_service: AuthService = Depends(get_auth_service)):
    logger.info(f"OTP verification request for: {mask_phone_number(payload.mobile_number)}")
    if not auth_service.verify_challenge(payload.mobile_number, payload.otp, payload.purpose, request_id=_request_id(request)):
        raise InvalidOrExpiredChallenge()
    return ApiResponse(success=True, message="OTP verified successfully", data=True)


@router.post("/auth/login", response_model=ApiResponse)
def login(payload: LoginRequest, request: Request, auth_service: AuthService = Depends(get_auth_service)):
    """
    Verify a LOGIN OTP and issue a session for the doctor or patient owning the number.
    """
    credential = auth_service.authenticate(
        payload.mobile_number,
        payload.otp,
        OtpPurpose.LOGIN,
        role=payload.user_type,
        request_id=_request_id(request),
    )
    session = SessionData(
        token=credential.access_token,
        refresh_token=credential.refresh_token,
        user_id=credential.subject_id,
        name=credential.claims.get("name"),
        user_type=credential.role,
        specialization=credential.claims.get("specialization"),
        expires_in=credential.expires_in_millis,
    )
    return ApiResponse(success=True, message="Login successful", data=session.model_dump())

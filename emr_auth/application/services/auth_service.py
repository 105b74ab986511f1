import logging
from dataclasses import dataclass
from typing import Optional

from ..ports.audit_logger import AuditLogger
from ..ports.principal_directory import PrincipalDirectory, PrincipalRole
from .otp_service import OTPService, IssuedChallenge
from .token_service import TokenService, SessionCredential
from ...db.models.auth.otp import OtpPurpose
from ...exceptions import AuthError, AccountInactiveOrBlocked, PrincipalNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeReceipt:
    message: str
    mobile_number: str
    purpose: OtpPurpose
    expires_in: int
    # only populated when code disclosure is explicitly enabled
    code: Optional[str] = None


@dataclass
class AuthService:
    otp_service: OTPService
    token_service: TokenService
    principals: PrincipalDirectory
    audit: Optional[AuditLogger] = None
    expose_code: bool = False

    def _audit(self, action: str, phone: str, **kwargs) -> None:
        if self.audit is not None:
            self.audit.log(action, phone, **kwargs)

    def _receipt(self, mobile_number: str, purpose: OtpPurpose, issued: IssuedChallenge) -> ChallengeReceipt:
        message = f"OTP sent successfully to {mobile_number}"
        code = None
        if self.expose_code:
            message += f" (Dev Mode - OTP: {issued.code})"
            code = issued.code
        return ChallengeReceipt(
            message=message,
            mobile_number=mobile_number,
            purpose=purpose,
            expires_in=self.otp_service.ttl_seconds,
            code=code,
        )

    def request_challenge(self, mobile_number: str, purpose: OtpPurpose, request_id: Optional[str] = None) -> ChallengeReceipt:
        issued = self.otp_service.request_challenge(mobile_number, purpose)
        self._audit("otp_requested", mobile_number, request_id=request_id, details={"purpose": purpose.value})
        return self._receipt(mobile_number, purpose, issued)

    def resend_challenge(self, mobile_number: str, purpose: OtpPurpose, request_id: Optional[str] = None) -> ChallengeReceipt:
        issued = self.otp_service.resend_challenge(mobile_number, purpose)
        self._audit("otp_requested", mobile_number, request_id=request_id, details={"purpose": purpose.value, "resend": True})
        return self._receipt(mobile_number, purpose, issued)

    def verify_challenge(self, mobile_number: str, code: str, purpose: OtpPurpose, request_id: Optional[str] = None) -> bool:
        try:
            self.otp_service.verify_challenge(mobile_number, code, purpose)
        except AuthError as e:
            self._audit("otp_verify_failed", mobile_number, request_id=request_id, success=False,
                        details={"purpose": purpose.value, "error": e.error_code})
            return False
        self._audit("otp_verified", mobile_number, request_id=request_id, details={"purpose": purpose.value})
        return True

    def authenticate(
        self,
        mobile_number: str,
        code: str,
        purpose: OtpPurpose = OtpPurpose.LOGIN,
        role: Optional[PrincipalRole] = None,
        request_id: Optional[str] = None,
    ) -> SessionCredential:
        try:
            self.otp_service.verify_challenge(mobile_number, code, purpose)
        except AuthError as e:
            self._audit("otp_verify_failed", mobile_number, request_id=request_id, success=False,
                        details={"purpose": purpose.value, "error": e.error_code})
            raise

        # Account state is only revealed once the OTP step has passed
        principal = self.principals.find_by_mobile(mobile_number, role)
        if principal is None:
            self._audit("login_rejected", mobile_number, request_id=request_id, success=False,
                        details={"error": PrincipalNotFound.error_code})
            raise PrincipalNotFound()

        if not principal.is_active or principal.is_blocked:
            self._audit("login_rejected", mobile_number, user_id=principal.id, request_id=request_id, success=False,
                        details={"error": AccountInactiveOrBlocked.error_code})
            raise AccountInactiveOrBlocked()

        display_claims = {"name": principal.display_name, "mobile": principal.mobile_number}
        if principal.specialization:
            display_claims["specialization"] = principal.specialization
        credential = self.token_service.issue_session(principal.id, principal.role.value, display_claims)

        self._audit("login_success", mobile_number, user_id=principal.id, request_id=request_id,
                    details={"role": principal.role.value})
        logger.info(f"{principal.role.value.title()} logged in: {principal.id}")
        return credential

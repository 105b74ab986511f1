import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from ..ports.challenge_repo import ChallengeRepository, ChallengeDto
from ..ports.notifier import Notifier
from ...db.models.auth.otp import OtpPurpose
from ...exceptions import ChallengeAlreadyUsed, InvalidOrExpiredChallenge
from ...utils import generate_otp, mask_phone_number, utcnow, truncate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedChallenge:
    challenge_id: int
    code: str
    expires_at: datetime


@dataclass
class OTPService:
    """Issues and verifies one-time passcodes.

    Every request creates a new, independent challenge; older unexpired ones stay
    valid until they expire or are used. Verification never relies on expired
    rows having been cleaned up.
    """

    repo: ChallengeRepository
    notifier: Notifier
    ttl_seconds: int = 300
    code_length: int = 6
    clock: Callable[[], datetime] = field(default=utcnow)

    def compose_message(self, code: str, purpose: OtpPurpose) -> str:
        minutes = max(1, self.ttl_seconds // 60)
        return (
            f"Your Bharat EMR OTP for {purpose.label} is: {code}. "
            f"Valid for {minutes} minutes. Do not share with anyone."
        )

    def _dispatch(self, mobile_number: str, code: str, purpose: OtpPurpose) -> None:
        try:
            self.notifier.send(mobile_number, self.compose_message(code, purpose))
        except Exception as e:
            # the user can always ask for a fresh code
            logger.error(f"OTP dispatch to {mask_phone_number(mobile_number)} failed: {truncate(str(e))}")

    def request_challenge(self, mobile_number: str, purpose: OtpPurpose) -> IssuedChallenge:
        now = self.clock()
        code = generate_otp(self.code_length)
        rec = self.repo.create(
            mobile_number=mobile_number,
            code=code,
            purpose=purpose,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
            created_at=now,
        )
        self._dispatch(mobile_number, code, purpose)
        logger.info(f"OTP generated and sent to {mask_phone_number(mobile_number)} for purpose {purpose.value}")
        return IssuedChallenge(challenge_id=rec.id, code=code, expires_at=rec.expires_at)

    def resend_challenge(self, mobile_number: str, purpose: OtpPurpose) -> IssuedChallenge:
        """Re-send the most recent pending code, or issue a new one if there is none."""
        latest = self.repo.find_latest(mobile_number, purpose)
        if latest is None or not latest.is_pending(self.clock()):
            return self.request_challenge(mobile_number, purpose)
        self._dispatch(mobile_number, latest.code, purpose)
        logger.info(f"OTP {latest.id} resent to {mask_phone_number(mobile_number)} for purpose {purpose.value}")
        return IssuedChallenge(challenge_id=latest.id, code=latest.code, expires_at=latest.expires_at)

    def verify_challenge(self, mobile_number: str, code: str, purpose: OtpPurpose) -> ChallengeDto:
        now = self.clock()
        rec = self.repo.find_valid(mobile_number, code, purpose, now)
        if rec is None:
            raise InvalidOrExpiredChallenge()

        if not self.repo.mark_verified(rec.id, now):
            # Lost the race: either another caller used it first, or it expired
            # (and possibly got swept) in between.
            current = self.repo.get(rec.id)
            if current is not None and current.verified:
                raise ChallengeAlreadyUsed()
            raise InvalidOrExpiredChallenge()

        logger.info(f"OTP verified successfully for {mask_phone_number(mobile_number)}")
        return rec

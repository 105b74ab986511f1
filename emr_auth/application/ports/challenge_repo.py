from typing import Protocol, Optional
from dataclasses import dataclass
from datetime import datetime

from ...db.models.auth.otp import OtpPurpose


@dataclass(frozen=True)
class ChallengeDto:
    id: int
    mobile_number: str
    code: str
    purpose: OtpPurpose
    verified: bool
    expires_at: datetime
    created_at: datetime

    def is_pending(self, now: datetime) -> bool:
        # valid only strictly before expires_at
        return not self.verified and now < self.expires_at


class ChallengeRepository(Protocol):
    def create(self, mobile_number: str, code: str, purpose: OtpPurpose, expires_at: datetime, created_at: datetime) -> ChallengeDto:
        ...

    def get(self, challenge_id: int) -> Optional[ChallengeDto]:
        ...

    def find_latest(self, mobile_number: str, purpose: OtpPurpose) -> Optional[ChallengeDto]:
        ...

    def find_valid(self, mobile_number: str, code: str, purpose: OtpPurpose, now: datetime) -> Optional[ChallengeDto]:
        """Unverified record matching mobile, code and purpose with expires_at > now."""
        ...

    def mark_verified(self, challenge_id: int, now: datetime) -> bool:
        """Set verified=true only if still unverified and unexpired. True for exactly one caller."""
        ...

    def delete_expired(self, now: datetime) -> int:
        ...

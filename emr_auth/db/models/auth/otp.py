# emr_auth/db/models/auth/otp.py
from enum import Enum
from typing import Optional
from datetime import datetime

from sqlalchemy import DateTime, Index
from sqlmodel import SQLModel, Field

from ....utils import utcnow


class OtpPurpose(str, Enum):
    REGISTRATION = "REGISTRATION"
    LOGIN = "LOGIN"
    PASSWORD_RESET = "PASSWORD_RESET"

    @property
    def label(self) -> str:
        return self.value.lower().replace("_", " ")


class ChallengeRecord(SQLModel, table=True):
    """One row per OTP send attempt."""

    __tablename__ = "otp_verifications"
    __table_args__ = (
        Index("idx_otp_verifications_mobile_purpose", "mobile_number", "purpose"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    mobile_number: str = Field(max_length=20, index=True)
    code: str = Field(max_length=10)
    purpose: OtpPurpose
    verified: bool = Field(default=False)
    # naive UTC, see utils.utcnow
    expires_at: datetime = Field(sa_type=DateTime, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

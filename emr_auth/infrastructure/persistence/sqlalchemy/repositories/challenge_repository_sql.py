from datetime import datetime
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from .....db.models import ChallengeRecord, OtpPurpose
from .....application.ports.challenge_repo import ChallengeRepository, ChallengeDto


class SqlChallengeRepository(ChallengeRepository):
    """Each call opens its own short-lived session, so one instance can serve every request thread."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def _to_dto(self, rec: ChallengeRecord) -> ChallengeDto:
        return ChallengeDto(
            id=rec.id,
            mobile_number=rec.mobile_number,
            code=rec.code,
            purpose=OtpPurpose(rec.purpose),
            verified=bool(rec.verified),
            expires_at=rec.expires_at,
            created_at=rec.created_at,
        )

    def create(self, mobile_number: str, code: str, purpose: OtpPurpose, expires_at: datetime, created_at: datetime) -> ChallengeDto:
        rec = ChallengeRecord(
            mobile_number=mobile_number,
            code=code,
            purpose=purpose,
            verified=False,
            expires_at=expires_at,
            created_at=created_at,
        )
        with Session(self.engine) as session:
            session.add(rec)
            session.commit()
            session.refresh(rec)
            return self._to_dto(rec)

    def get(self, challenge_id: int) -> Optional[ChallengeDto]:
        with Session(self.engine) as session:
            rec = session.get(ChallengeRecord, challenge_id)
            return self._to_dto(rec) if rec else None

    def find_latest(self, mobile_number: str, purpose: OtpPurpose) -> Optional[ChallengeDto]:
        with Session(self.engine) as session:
            rec = session.exec(
                select(ChallengeRecord)
                .where(
                    ChallengeRecord.mobile_number == mobile_number,
                    ChallengeRecord.purpose == purpose,
                )
                .order_by(ChallengeRecord.created_at.desc(), ChallengeRecord.id.desc())
            ).first()
            return self._to_dto(rec) if rec else None

    def find_valid(self, mobile_number: str, code: str, purpose: OtpPurpose, now: datetime) -> Optional[ChallengeDto]:
        with Session(self.engine) as session:
            rec = session.exec(
                select(ChallengeRecord)
                .where(
                    ChallengeRecord.mobile_number == mobile_number,
                    ChallengeRecord.code == code,
                    ChallengeRecord.purpose == purpose,
                    ChallengeRecord.verified == False,  # noqa: E712
                    ChallengeRecord.expires_at > now,
                )
                .order_by(ChallengeRecord.created_at.desc(), ChallengeRecord.id.desc())
            ).first()
            return self._to_dto(rec) if rec else None

    def mark_verified(self, challenge_id: int, now: datetime) -> bool:
        # Single conditional UPDATE; the row count tells which caller won
        stmt = (
            update(ChallengeRecord)
            .where(
                ChallengeRecord.id == challenge_id,
                ChallengeRecord.verified == False,  # noqa: E712
                ChallengeRecord.expires_at > now,
            )
            .values(verified=True)
        )
        with self.engine.begin() as conn:
            result = conn.execute(stmt)
            return result.rowcount == 1

    def delete_expired(self, now: datetime) -> int:
        stmt = delete(ChallengeRecord).where(ChallengeRecord.expires_at < now)
        with self.engine.begin() as conn:
            return conn.execute(stmt).rowcount

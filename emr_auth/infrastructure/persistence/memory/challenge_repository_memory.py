import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Optional

from ....db.models.auth.otp import OtpPurpose
from ....application.ports.challenge_repo import ChallengeRepository, ChallengeDto


class InMemoryChallengeRepository(ChallengeRepository):
    def __init__(self) -> None:
        self._rows: Dict[int, ChallengeDto] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, mobile_number: str, code: str, purpose: OtpPurpose, expires_at: datetime, created_at: datetime) -> ChallengeDto:
        with self._lock:
            rec = ChallengeDto(
                id=next(self._ids),
                mobile_number=mobile_number,
                code=code,
                purpose=purpose,
                verified=False,
                expires_at=expires_at,
                created_at=created_at,
            )
            self._rows[rec.id] = rec
            return rec

    def get(self, challenge_id: int) -> Optional[ChallengeDto]:
        with self._lock:
            return self._rows.get(challenge_id)

    def find_latest(self, mobile_number: str, purpose: OtpPurpose) -> Optional[ChallengeDto]:
        with self._lock:
            matches = [r for r in self._rows.values() if r.mobile_number == mobile_number and r.purpose == purpose]
        return max(matches, key=lambda r: (r.created_at, r.id), default=None)

    def find_valid(self, mobile_number: str, code: str, purpose: OtpPurpose, now: datetime) -> Optional[ChallengeDto]:
        with self._lock:
            matches = [
                r for r in self._rows.values()
                if r.mobile_number == mobile_number
                and r.code == code
                and r.purpose == purpose
                and not r.verified
                and r.expires_at > now
            ]
        return max(matches, key=lambda r: (r.created_at, r.id), default=None)

    def mark_verified(self, challenge_id: int, now: datetime) -> bool:
        with self._lock:
            rec = self._rows.get(challenge_id)
            if rec is None or rec.verified or rec.expires_at <= now:
                return False
            self._rows[challenge_id] = replace(rec, verified=True)
            return True

    def delete_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [cid for cid, r in self._rows.items() if r.expires_at < now]
            for cid in expired:
                del self._rows[cid]
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)

import threading
from datetime import datetime, timedelta
from typing import Optional

import pytest

from emr_auth.application.ports.principal_directory import PrincipalDto, PrincipalRole
from emr_auth.application.services.auth_service import AuthService
from emr_auth.application.services.otp_service import OTPService
from emr_auth.application.services.token_service import TokenService
from emr_auth.database import build_engine, create_db_and_tables
from emr_auth.infrastructure.persistence.memory.challenge_repository_memory import InMemoryChallengeRepository

SECRET = "test-signing-secret-that-is-long-enough-for-hs256"


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            return self.now

    def advance(self, **kwargs) -> None:
        with self._lock:
            self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime) -> None:
        with self._lock:
            self.now = now


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, mobile_number: str, message: str) -> None:
        self.sent.append((mobile_number, message))


class FakePrincipals:
    def __init__(self):
        self.by_mobile = {}

    def add(self, principal: PrincipalDto) -> PrincipalDto:
        self.by_mobile[principal.mobile_number] = principal
        return principal

    def find_by_mobile(self, mobile_number: str, role: Optional[PrincipalRole] = None) -> Optional[PrincipalDto]:
        p = self.by_mobile.get(mobile_number)
        if p is None or (role is not None and p.role != role):
            return None
        return p


class RecordingAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, phone, user_id=None, request_id=None, success=True, details=None):
        self.entries.append({"action": action, "phone": phone, "user_id": user_id, "success": success, "details": details or {}})

    @property
    def actions(self):
        return [e["action"] for e in self.entries]


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 1, 15, 10, 0, 0))


@pytest.fixture
def repo():
    return InMemoryChallengeRepository()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def otp_service(repo, notifier, clock):
    return OTPService(repo=repo, notifier=notifier, ttl_seconds=300, clock=clock)


@pytest.fixture
def token_service():
    return TokenService(secret_key=SECRET)


@pytest.fixture
def principals():
    directory = FakePrincipals()
    directory.add(PrincipalDto(
        id="DR1A2B3C4D",
        display_name="Asha Rao",
        role=PrincipalRole.DOCTOR,
        mobile_number="+919812345678",
        is_active=True,
        is_blocked=False,
        specialization="Cardiology",
    ))
    directory.add(PrincipalDto(
        id="PT9Z8Y7X6W",
        display_name="Ravi Kumar",
        role=PrincipalRole.PATIENT,
        mobile_number="+919800000001",
        is_active=True,
        is_blocked=False,
    ))
    return directory


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def auth_service(otp_service, token_service, principals, audit):
    return AuthService(otp_service=otp_service, token_service=token_service, principals=principals, audit=audit)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'auth.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt

from ...utils import utcnow

RESERVED_CLAIMS = frozenset({"sub", "role", "type", "iat", "exp", "jti"})


@dataclass(frozen=True)
class SessionCredential:
    access_token: str
    refresh_token: str
    subject_id: str
    role: str
    expires_in_millis: int
    claims: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TokenService:
    """Mints stateless signed access/refresh token pairs."""

    secret_key: str
    algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(hours=24)
    refresh_token_ttl: timedelta = timedelta(days=30)
    clock: Callable[[], datetime] = field(default=utcnow)

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ValueError("A signing secret is required")

    def _encode(self, claims: Dict[str, Any]) -> str:
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def create_access_token(self, subject_id: str, role: str, display_claims: Optional[Dict[str, Any]] = None) -> str:
        now = self.clock()
        to_encode = {k: v for k, v in (display_claims or {}).items() if k not in RESERVED_CLAIMS}
        to_encode.update({
            "sub": subject_id,
            "role": role,
            "type": "access",
            "iat": now,
            "exp": now + self.access_token_ttl,
            "jti": uuid.uuid4().hex,
        })
        return self._encode(to_encode)

    def create_refresh_token(self, subject_id: str) -> str:
        now = self.clock()
        return self._encode({
            "sub": subject_id,
            "type": "refresh",
            "iat": now,
            "exp": now + self.refresh_token_ttl,
            "jti": uuid.uuid4().hex,
        })

    def issue_session(self, subject_id: str, role: str, display_claims: Optional[Dict[str, Any]] = None) -> SessionCredential:
        return SessionCredential(
            access_token=self.create_access_token(subject_id, role, display_claims),
            refresh_token=self.create_refresh_token(subject_id),
            subject_id=subject_id,
            role=role,
            expires_in_millis=int(self.access_token_ttl.total_seconds() * 1000),
            claims=dict(display_claims or {}),
        )

    def decode(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """Validate signature, expiry and token type. Raises jwt.InvalidTokenError."""
        payload = jwt.decode(
            token,
            self.secret_key,
            algorithms=[self.algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
        if payload.get("type") != expected_type:
            raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
        return payload

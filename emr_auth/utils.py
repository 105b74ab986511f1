import hashlib
import secrets
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =========================
# OTP Generation
# =========================
def generate_otp(length: int = 6) -> str:
    """Uniformly random numeric code that never starts with zero (100000-999999 for length 6)."""
    lower = 10 ** (length - 1)
    return str(lower + secrets.randbelow(9 * lower))


def hash_phone_number(phone: str) -> str:
    """Hash phone number for logs (one-way hash)"""
    return hashlib.sha256(phone.encode()).hexdigest()


def mask_phone_number(phone: str) -> str:
    if len(phone) <= 4:
        return "*" * len(phone)
    return "*" * (len(phone) - 4) + phone[-4:]


def truncate(text: str, limit: int = 200) -> str:
    return text if len(text) <= limit else text[:limit] + "..."

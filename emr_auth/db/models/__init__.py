# Models package (re-export feature modules for stable imports)
from .auth.otp import ChallengeRecord, OtpPurpose
from .principals.doctor import Doctor
from .principals.patient import Patient

__all__ = [
    "ChallengeRecord",
    "OtpPurpose",
    "Doctor",
    "Patient",
]

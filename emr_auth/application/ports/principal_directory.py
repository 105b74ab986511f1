from enum import Enum
from typing import Protocol, Optional
from dataclasses import dataclass


class PrincipalRole(str, Enum):
    DOCTOR = "DOCTOR"
    PATIENT = "PATIENT"


@dataclass(frozen=True)
class PrincipalDto:
    id: str
    display_name: str
    role: PrincipalRole
    mobile_number: str
    is_active: bool
    is_blocked: bool
    specialization: Optional[str] = None


class PrincipalDirectory(Protocol):
    def find_by_mobile(self, mobile_number: str, role: Optional[PrincipalRole] = None) -> Optional[PrincipalDto]:
        ...

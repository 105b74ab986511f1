# emr_auth/db/models/principals/doctor.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow


class Doctor(SQLModel, table=True):
    """Only the columns the authentication core reads; clinical fields live elsewhere."""

    __tablename__ = "doctors"
    id: Optional[int] = Field(default=None, primary_key=True)
    doctor_id: str = Field(default_factory=lambda: f"DR{uuid.uuid4().hex[:8].upper()}", unique=True, index=True)
    full_name: str = Field(max_length=100)
    mobile_number: str = Field(max_length=20, unique=True, index=True)
    specialization: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = Field(default=True)
    is_blocked: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

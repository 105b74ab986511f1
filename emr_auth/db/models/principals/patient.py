# emr_auth/db/models/principals/patient.py
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field
from datetime import datetime
import uuid

from ....utils import utcnow


class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: Optional[int] = Field(default=None, primary_key=True)
    patient_id: str = Field(default_factory=lambda: f"PT{uuid.uuid4().hex[:8].upper()}", unique=True, index=True)
    full_name: str = Field(max_length=100)
    mobile_number: str = Field(max_length=20, unique=True, index=True)
    is_active: bool = Field(default=True)
    is_blocked: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

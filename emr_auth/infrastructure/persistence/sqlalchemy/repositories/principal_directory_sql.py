from typing import Optional
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from .....db.models import Doctor, Patient
from .....application.ports.principal_directory import PrincipalDirectory, PrincipalDto, PrincipalRole


class SqlPrincipalDirectory(PrincipalDirectory):
    def __init__(self, engine: Engine):
        self.engine = engine

    def _doctor_to_dto(self, doctor: Doctor) -> PrincipalDto:
        return PrincipalDto(
            id=doctor.doctor_id,
            display_name=doctor.full_name,
            role=PrincipalRole.DOCTOR,
            mobile_number=doctor.mobile_number,
            is_active=bool(doctor.is_active),
            is_blocked=bool(doctor.is_blocked),
            specialization=doctor.specialization,
        )

    def _patient_to_dto(self, patient: Patient) -> PrincipalDto:
        return PrincipalDto(
            id=patient.patient_id,
            display_name=patient.full_name,
            role=PrincipalRole.PATIENT,
            mobile_number=patient.mobile_number,
            is_active=bool(patient.is_active),
            is_blocked=bool(patient.is_blocked),
        )

    def find_by_mobile(self, mobile_number: str, role: Optional[PrincipalRole] = None) -> Optional[PrincipalDto]:
        with Session(self.engine) as session:
            if role in (None, PrincipalRole.DOCTOR):
                doctor = session.exec(select(Doctor).where(Doctor.mobile_number == mobile_number)).first()
                if doctor:
                    return self._doctor_to_dto(doctor)
            if role in (None, PrincipalRole.PATIENT):
                patient = session.exec(select(Patient).where(Patient.mobile_number == mobile_number)).first()
                if patient:
                    return self._patient_to_dto(patient)
        return None

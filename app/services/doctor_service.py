from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional
import logging

from ..core.catalog import TIME_SLOTS
from ..models.doctor import Doctor, DoctorSpecialization
from ..models.user import User
from ..models.visit import ConsultationType, Visit, VisitStatus
from ..schemas.doctor import (
    DashboardStats, DoctorCreate, DoctorDashboard, DoctorSummary,
    DoctorUpdate, ScheduleEntry
)

logger = logging.getLogger(__name__)

CONSULTATION_LABELS = {
    ConsultationType.ONLINE: "Online Consultation",
    ConsultationType.HOME_VISIT: "Home Visit",
}

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def register_profile(self, user: User, doctor_data: DoctorCreate) -> Doctor:
        """Create the doctor profile for a freshly registered doctor account."""
        if self.db.query(Doctor).filter(Doctor.user_id == user.id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor profile already exists"
            )

        fields = doctor_data.model_dump(exclude={"condition_types"})
        doctor = Doctor(user_id=user.id, email=user.email, is_online=False, **fields)
        for condition_type in dict.fromkeys(doctor_data.condition_types):
            doctor.specializations.append(DoctorSpecialization(condition_type=condition_type))

        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Doctor profile {doctor.id} registered for user {user.id}")
        return doctor

    def get(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def search(self, query: Optional[str] = None, online_only: bool = False,
               skip: int = 0, limit: int = 50) -> List[Doctor]:
        """Directory listing, matching name or specialization case-insensitively."""
        doctors = self.db.query(Doctor)
        if query:
            pattern = f"%{query.strip().lower()}%"
            doctors = doctors.filter(or_(
                func.lower(Doctor.name).like(pattern),
                func.lower(Doctor.specialization).like(pattern),
            ))
        if online_only:
            doctors = doctors.filter(Doctor.is_online == True)

        return doctors.order_by(Doctor.name, Doctor.id).offset(skip).limit(limit).all()

    def update_profile(self, doctor: Doctor, update: DoctorUpdate) -> Doctor:
        for field, value in update.model_dump(exclude_unset=True).items():
            if value is None and field in ("name", "specialization", "availability", "address",
                                           "consultation_fee", "visit_fee", "experience"):
                continue
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def set_online(self, doctor: Doctor, is_online: bool) -> Doctor:
        doctor.is_online = is_online
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def dashboard(self, doctor: Doctor, today: Optional[date] = None) -> DoctorDashboard:
        today = today or date.today()
        active = self.db.query(Visit).filter(
            Visit.doctor_id == doctor.id,
            Visit.status != VisitStatus.CANCELLED,
        )

        todays_visits = active.filter(Visit.preferred_date == today).all()
        todays_visits.sort(key=lambda v: (_slot_index(v.preferred_time), v.id))

        total_patients = active.with_entities(
            func.count(func.distinct(Visit.patient_id))
        ).scalar() or 0

        month_start = today.replace(day=1)
        earnings = self.db.query(func.coalesce(func.sum(Visit.fee), 0)).filter(
            Visit.doctor_id == doctor.id,
            Visit.status == VisitStatus.COMPLETED,
            Visit.preferred_date >= month_start,
            Visit.preferred_date <= today,
        ).scalar()

        return DoctorDashboard(
            doctor=DoctorSummary.model_validate(doctor),
            stats=DashboardStats(
                todays_appointments=len(todays_visits),
                total_patients=total_patients,
                monthly_earnings=float(earnings or 0),
                is_online=bool(doctor.is_online),
            ),
            todays_schedule=[
                ScheduleEntry(
                    visit_id=visit.id,
                    patient=visit.patient.name,
                    time=visit.preferred_time,
                    type=CONSULTATION_LABELS[visit.consultation_type],
                    status=visit.status.value,
                )
                for visit in todays_visits
            ],
        )

def _slot_index(slot: str) -> int:
    try:
        return TIME_SLOTS.index(slot)
    except ValueError:
        return len(TIME_SLOTS)

from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import List, Optional
import logging

from ..core.security import UserRole
from ..models.doctor import Doctor
from ..models.notification import NotificationType, RecipientType
from ..models.patient import Patient
from ..models.user import User
from ..models.visit import ConsultationType, Visit, VisitStatus
from ..schemas.visit import VisitCreate, VisitResponse
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

# Allowed status transitions; completed and cancelled are final
TRANSITIONS = {
    VisitStatus.PENDING: {VisitStatus.CONFIRMED, VisitStatus.CANCELLED},
    VisitStatus.CONFIRMED: {VisitStatus.COMPLETED, VisitStatus.CANCELLED},
    VisitStatus.COMPLETED: set(),
    VisitStatus.CANCELLED: set(),
}

class VisitService:
    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def book(self, patient: Patient, visit_data: VisitCreate) -> Visit:
        """Book an online consultation or home visit with a doctor."""
        doctor = self.db.query(Doctor).filter(Doctor.id == visit_data.doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )

        address = visit_data.address or patient.address
        phone = visit_data.phone or patient.phone
        if visit_data.consultation_type == ConsultationType.HOME_VISIT and not address:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Visit address is required for a home visit"
            )

        fee = (
            doctor.visit_fee
            if visit_data.consultation_type == ConsultationType.HOME_VISIT
            else doctor.consultation_fee
        )

        visit = Visit(
            patient_id=patient.id,
            doctor_id=doctor.id,
            consultation_type=visit_data.consultation_type,
            visit_type=visit_data.visit_type,
            preferred_date=visit_data.preferred_date,
            preferred_time=visit_data.preferred_time,
            symptoms=visit_data.symptoms,
            urgency=visit_data.urgency,
            address=address,
            phone=phone,
            payment_method=visit_data.payment_method,
            special_instructions=visit_data.special_instructions,
            fee=fee,
            status=VisitStatus.PENDING,
        )
        self.db.add(visit)
        self.db.flush()

        notification = self.notifications.stage(
            RecipientType.DOCTOR,
            doctor.id,
            "New visit request",
            f"{patient.name} requested a {visit.visit_type} on "
            f"{visit.preferred_date.isoformat()} at {visit.preferred_time}",
            NotificationType.VISIT_BOOKED,
        )
        self.db.commit()
        self.db.refresh(visit)
        self.notifications.publish([notification])

        logger.info(f"Visit {visit.id} booked: patient {patient.id} -> doctor {doctor.id}")
        return visit

    def list_for(self, user: User) -> List[Visit]:
        query = self.db.query(Visit)
        if user.role == UserRole.PATIENT:
            patient = self._patient_for(user)
            query = query.filter(Visit.patient_id == patient.id)
        else:
            doctor = self._doctor_for(user)
            query = query.filter(Visit.doctor_id == doctor.id)

        return query.order_by(Visit.preferred_date.desc(), Visit.id.desc()).all()

    def get_for(self, user: User, visit_id: int) -> Visit:
        visit = self.db.query(Visit).filter(Visit.id == visit_id).first()
        if not visit or not self._is_party(user, visit):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Visit not found"
            )
        return visit

    def update_status(self, user: User, visit_id: int, new_status: VisitStatus,
                      reason: Optional[str] = None) -> Visit:
        visit = self.get_for(user, visit_id)

        if user.role == UserRole.PATIENT and new_status != VisitStatus.CANCELLED:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Patients can only cancel a visit"
            )

        if new_status not in TRANSITIONS[visit.status]:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Cannot change visit from {visit.status.value} to {new_status.value}"
            )

        visit.status = new_status
        if new_status == VisitStatus.CANCELLED:
            visit.cancelled_reason = reason

        # Tell the other party
        if user.role == UserRole.PATIENT:
            recipient = (RecipientType.DOCTOR, visit.doctor_id)
        else:
            recipient = (RecipientType.PATIENT, visit.patient_id)
        notification = self.notifications.stage(
            *recipient,
            f"Visit {new_status.value}",
            f"Your {visit.visit_type} on {visit.preferred_date.isoformat()} at "
            f"{visit.preferred_time} is now {new_status.value}",
            NotificationType.VISIT_UPDATE,
        )
        self.db.commit()
        self.db.refresh(visit)
        self.notifications.publish([notification])

        return visit

    @staticmethod
    def to_response(visit: Visit) -> VisitResponse:
        response = VisitResponse.model_validate(visit)
        return response.model_copy(update={
            "doctor_name": visit.doctor.name,
            "patient_name": visit.patient.name,
        })

    def _is_party(self, user: User, visit: Visit) -> bool:
        if user.role == UserRole.PATIENT:
            return visit.patient.user_id == user.id
        return visit.doctor.user_id == user.id

    def _patient_for(self, user: User) -> Patient:
        patient = self.db.query(Patient).filter(Patient.user_id == user.id).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

    def _doctor_for(self, user: User) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.user_id == user.id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor profile not found"
            )
        return doctor

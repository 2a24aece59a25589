from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import date, datetime

from ..core.catalog import TIME_SLOTS, VISIT_TYPES
from ..models.visit import ConsultationType, PaymentMethod, Urgency, VisitStatus

class VisitCreate(BaseModel):
    doctor_id: int
    consultation_type: ConsultationType = ConsultationType.HOME_VISIT
    visit_type: str
    preferred_date: date
    preferred_time: str
    symptoms: str = Field(..., min_length=1)
    urgency: Urgency
    payment_method: PaymentMethod
    address: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    special_instructions: Optional[str] = None

    @field_validator("visit_type")
    @classmethod
    def check_visit_type(cls, value):
        if value not in VISIT_TYPES:
            raise ValueError(f"Unknown visit type: {value}")
        return value

    @field_validator("preferred_time")
    @classmethod
    def check_time_slot(cls, value):
        if value not in TIME_SLOTS:
            raise ValueError(f"Unavailable time slot: {value}")
        return value

    @field_validator("preferred_date")
    @classmethod
    def check_not_past(cls, value):
        if value < date.today():
            raise ValueError("Preferred date cannot be in the past")
        return value

class VisitStatusUpdate(BaseModel):
    status: VisitStatus
    reason: Optional[str] = Field(None, max_length=255)

class VisitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    doctor_name: Optional[str] = None
    patient_name: Optional[str] = None
    consultation_type: ConsultationType
    visit_type: str
    preferred_date: date
    preferred_time: str
    symptoms: str
    urgency: Urgency
    address: Optional[str] = None
    phone: Optional[str] = None
    payment_method: PaymentMethod
    special_instructions: Optional[str] = None
    fee: float
    status: VisitStatus
    cancelled_reason: Optional[str] = None
    created_at: Optional[datetime] = None

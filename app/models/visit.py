from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Date, Text, Numeric, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class VisitStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class ConsultationType(str, enum.Enum):
    ONLINE = "online"
    HOME_VISIT = "home_visit"

class Urgency(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"

class PaymentMethod(str, enum.Enum):
    ONLINE = "online"
    CASH = "cash"

class Visit(Base):
    __tablename__ = "visits"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    # Booking details
    consultation_type = Column(SQLEnum(ConsultationType), nullable=False, default=ConsultationType.HOME_VISIT)
    visit_type = Column(String(100), nullable=False)
    preferred_date = Column(Date, nullable=False, index=True)
    preferred_time = Column(String(20), nullable=False)
    symptoms = Column(Text, nullable=False)
    urgency = Column(SQLEnum(Urgency), nullable=False)
    address = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    special_instructions = Column(Text, nullable=True)
    fee = Column(Numeric(10, 2), nullable=False)
    status = Column(SQLEnum(VisitStatus), default=VisitStatus.PENDING, nullable=False)
    cancelled_reason = Column(String(255), nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="visits")
    doctor = relationship("Doctor", back_populates="visits")

    def __repr__(self):
        return f"<Visit(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.preferred_date}')>"

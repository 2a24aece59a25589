from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Numeric
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    name = Column(String(200), nullable=False)
    specialization = Column(String(100), nullable=False, index=True)
    experience = Column(Integer, nullable=False, default=1)
    qualifications = Column(Text, nullable=True)
    languages = Column(String(255), nullable=True)
    services = Column(Text, nullable=True)
    about_text = Column(Text, nullable=True)
    mbbs_certificate_url = Column(String(255), nullable=True)

    # Fees and availability
    consultation_fee = Column(Numeric(10, 2), nullable=False)
    visit_fee = Column(Numeric(10, 2), nullable=False)
    availability = Column(String(100), nullable=False)
    is_online = Column(Boolean, default=False)

    # Contact information
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    visits = relationship("Visit", back_populates="doctor")
    specializations = relationship(
        "DoctorSpecialization", back_populates="doctor", cascade="all, delete-orphan"
    )

    @property
    def condition_types(self):
        return [s.condition_type for s in self.specializations]

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialization='{self.specialization}')>"

class DoctorSpecialization(Base):
    __tablename__ = "doctor_specializations"

    id = Column(Integer, primary_key=True, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    condition_type = Column(String(100), nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("Doctor", back_populates="specializations")

    def __repr__(self):
        return f"<DoctorSpecialization(doctor_id={self.doctor_id}, condition_type='{self.condition_type}')>"

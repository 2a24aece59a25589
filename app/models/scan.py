from sqlalchemy import Column, Integer, ForeignKey, DateTime, Boolean, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base

class ScanType(str, enum.Enum):
    RETINAL = "retinal"
    RPPG = "rppg"
    VOICE = "voice"

class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

class Scan(Base):
    __tablename__ = "scans"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    scan_type = Column(SQLEnum(ScanType), nullable=False)

    # Capture payload and synthetic analysis output
    scan_data = Column(JSON, nullable=False, default=dict)
    results = Column(JSON, nullable=False, default=dict)
    recommendations = Column(JSON, nullable=False, default=list)
    anomalies_detected = Column(Boolean, default=False)
    risk_level = Column(SQLEnum(RiskLevel), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="scans")
    notifications = relationship("Notification", back_populates="scan")

    def __repr__(self):
        return f"<Scan(id={self.id}, patient_id={self.patient_id}, type='{self.scan_type}', risk='{self.risk_level}')>"

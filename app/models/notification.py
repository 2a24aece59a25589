from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base

class RecipientType(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"

class NotificationType(str, enum.Enum):
    SCAN_COMPLETE = "scan_complete"
    ANOMALY_DETECTED = "anomaly_detected"
    APPOINTMENT_SUGGESTION = "appointment_suggestion"
    VISIT_BOOKED = "visit_booked"
    VISIT_UPDATE = "visit_update"
    CALL_REQUEST = "call_request"
    GENERAL = "general"

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    recipient_type = Column(SQLEnum(RecipientType), nullable=False)
    recipient_id = Column(Integer, nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    notification_type = Column(SQLEnum(NotificationType), nullable=False, default=NotificationType.GENERAL)
    scan_id = Column(Integer, ForeignKey("scans.id"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)

    # Python-side default keeps sub-second ordering on SQLite
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    scan = relationship("Scan", back_populates="notifications")

    def __repr__(self):
        return f"<Notification(id={self.id}, to={self.recipient_type}:{self.recipient_id}, type='{self.notification_type}')>"

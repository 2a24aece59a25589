from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text, Enum as SQLEnum
from datetime import datetime
import enum

from ..core.database import Base

class MessageSender(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"

class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    sender = Column(SQLEnum(MessageSender), nullable=False)
    text = Column(Text, nullable=False)

    # Simulated replies are stored ahead of time and dated when they become visible
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, sender='{self.sender}')>"

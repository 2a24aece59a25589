"""
Simulated consultation chat.

Doctor replies are canned: a welcome line when a conversation opens and an
acknowledgement after every patient message. The acknowledgement is stored
right away but dated ``CHAT_REPLY_DELAY_SECONDS`` ahead, and conversations only
show messages whose date has passed, so the reply "arrives" a little later.
"""
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime, timedelta
from typing import List, Optional
import logging

from ..core.config import settings
from ..models.chat import ChatMessage, MessageSender
from ..models.doctor import Doctor
from ..models.notification import NotificationType, RecipientType
from ..models.patient import Patient
from ..schemas.chat import (
    AssistantMessage, CallMode, CallResponse, Conversation, MessageResponse
)
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

DOCTOR_ACKNOWLEDGEMENT = (
    "Thank you for your message. I'll review your concern and provide guidance shortly."
)

# Checked in order; the first group with a matching keyword answers
TRIAGE_REPLIES = [
    (("fever", "temperature"),
     "I understand you're experiencing fever. This could indicate an infection. How long "
     "have you had the fever? Any other symptoms like headache, body aches, or chills? The "
     "doctor will want to know your exact temperature if you've measured it."),
    (("headache", "head pain"),
     "Headaches can have various causes. Is this a sudden severe headache, or gradual? Any "
     "visual changes, nausea, or sensitivity to light? The doctor will help determine if "
     "this needs immediate attention."),
    (("chest pain", "heart"),
     "Chest pain requires careful evaluation. Is the pain sharp, dull, or pressure-like? "
     "Does it worsen with breathing or movement? Given the importance of this symptom, I "
     "recommend requesting an immediate video consultation with the doctor."),
    (("stomach", "nausea", "vomit"),
     "Digestive issues can be concerning. How long have you been experiencing this? Any "
     "fever, severe pain, or blood? The doctor can provide guidance on whether this needs "
     "urgent care or can be managed at home."),
]

DEFAULT_TRIAGE_REPLY = (
    "Thank you for sharing that information. I've noted your symptoms. The doctor will "
    "review this and provide appropriate guidance. Would you like to start a video "
    "consultation now, or do you have any other symptoms to mention?"
)

def triage_reply(text: str) -> str:
    message = text.lower()
    for keywords, reply in TRIAGE_REPLIES:
        if any(keyword in message for keyword in keywords):
            return reply
    return DEFAULT_TRIAGE_REPLY

def assistant_intro(doctor: Doctor) -> List[AssistantMessage]:
    name = doctor.name
    return [
        AssistantMessage(text=(
            f"Hello! I'm the AI assistant for {name}. Please describe your symptoms or "
            "health concerns, and I'll help assess your situation before connecting you "
            "with the doctor."
        )),
        AssistantMessage(text=(
            "You can also request a video call or phone consultation anytime during our chat."
        )),
    ]

class ChatService:
    def __init__(self, db: Session, notifications: Optional[NotificationService] = None):
        self.db = db
        self.notifications = notifications or NotificationService(db)

    def conversation(self, patient: Patient, doctor_id: int,
                     now: Optional[datetime] = None) -> Conversation:
        now = now or datetime.utcnow()
        doctor = self._doctor(doctor_id)

        if self._messages(patient.id, doctor.id).first() is None:
            self.db.add(ChatMessage(
                patient_id=patient.id,
                doctor_id=doctor.id,
                sender=MessageSender.DOCTOR,
                text=f"Hello! I'm {doctor.name}. How can I help you today?",
                created_at=now,
            ))
            self.db.commit()

        visible = self._messages(patient.id, doctor.id).filter(
            ChatMessage.created_at <= now
        ).order_by(ChatMessage.created_at, ChatMessage.id).all()

        return Conversation(
            doctor_id=doctor.id,
            doctor_name=doctor.name,
            messages=[MessageResponse.model_validate(m) for m in visible],
        )

    def send(self, patient: Patient, doctor_id: int, text: str,
             now: Optional[datetime] = None) -> Conversation:
        now = now or datetime.utcnow()
        doctor = self._doctor(doctor_id)
        text = text.strip()
        if not text:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Message cannot be empty"
            )

        # Make sure the welcome line precedes the first patient message
        self.conversation(patient, doctor.id, now=now)

        self.db.add(ChatMessage(
            patient_id=patient.id,
            doctor_id=doctor.id,
            sender=MessageSender.PATIENT,
            text=text,
            created_at=now,
        ))
        reply_at = now + timedelta(seconds=settings.CHAT_REPLY_DELAY_SECONDS)
        # One acknowledgement answers a burst, always after its latest message
        pending = self._messages(patient.id, doctor.id).filter(
            ChatMessage.sender == MessageSender.DOCTOR,
            ChatMessage.created_at > now
        ).order_by(ChatMessage.created_at.desc()).first()
        if pending is not None:
            pending.created_at = max(pending.created_at, reply_at)
        else:
            self.db.add(ChatMessage(
                patient_id=patient.id,
                doctor_id=doctor.id,
                sender=MessageSender.DOCTOR,
                text=DOCTOR_ACKNOWLEDGEMENT,
                created_at=reply_at,
            ))
        self.db.commit()

        return self.conversation(patient, doctor.id, now=now)

    def request_call(self, patient: Patient, doctor_id: int, mode: CallMode) -> CallResponse:
        doctor = self._doctor(doctor_id)

        if mode == CallMode.VIDEO:
            title = "Video Call Initiated"
            message = f"Connecting you with {doctor.name}. Please wait..."
            doctor_message = f"{patient.name} is waiting for a video consultation"
        else:
            title = "Phone Call Requested"
            message = f"{doctor.name} will call you shortly."
            doctor_message = f"{patient.name} asked for a phone call at {patient.phone or 'their registered number'}"

        self.notifications.create(
            RecipientType.DOCTOR,
            doctor.id,
            f"{mode.value.capitalize()} call request",
            doctor_message,
            NotificationType.CALL_REQUEST,
        )
        logger.info(f"Patient {patient.id} requested a {mode.value} call with doctor {doctor.id}")

        return CallResponse(doctor_id=doctor.id, mode=mode, title=title, message=message)

    def _doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def _messages(self, patient_id: int, doctor_id: int):
        return self.db.query(ChatMessage).filter(
            ChatMessage.patient_id == patient_id,
            ChatMessage.doctor_id == doctor_id,
        )

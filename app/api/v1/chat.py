from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_patient
from ...models.patient import Patient
from ...schemas.chat import (
    AssistantMessage, AssistantReply, CallRequest, CallResponse, Conversation, MessageCreate
)
from ...services.chat_service import ChatService, assistant_intro, triage_reply
from ...services.doctor_service import DoctorService

router = APIRouter(tags=["Consultations"])

@router.get("/chats/{doctor_id}/messages", response_model=Conversation)
async def get_conversation(
    doctor_id: int,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Messages with a doctor that have arrived so far."""
    return ChatService(db).conversation(patient, doctor_id)

@router.post("/chats/{doctor_id}/messages", response_model=Conversation)
async def send_message(
    doctor_id: int,
    message: MessageCreate,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    return ChatService(db).send(patient, doctor_id, message.text)

@router.get("/assistant/{doctor_id}/intro", response_model=AssistantReply)
async def get_assistant_intro(
    doctor_id: int,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Opening lines of the pre-consultation assistant."""
    doctor = DoctorService(db).get(doctor_id)
    return AssistantReply(doctor_id=doctor.id, messages=assistant_intro(doctor))

@router.post("/assistant/{doctor_id}/messages", response_model=AssistantReply)
async def ask_assistant(
    doctor_id: int,
    message: MessageCreate,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Keyword triage reply to a described symptom. Nothing is stored."""
    doctor = DoctorService(db).get(doctor_id)
    return AssistantReply(
        doctor_id=doctor.id,
        messages=[AssistantMessage(text=triage_reply(message.text))]
    )

@router.post("/consultations/{doctor_id}/call", response_model=CallResponse)
async def request_call(
    doctor_id: int,
    call: CallRequest,
    patient: Patient = Depends(get_current_patient),
    db: Session = Depends(get_db)
):
    """Ask for a video or phone consultation; the doctor is notified."""
    return ChatService(db).request_call(patient, doctor_id, call.mode)

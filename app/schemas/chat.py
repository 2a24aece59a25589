from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import datetime
from enum import Enum

from ..models.chat import MessageSender

class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=4000)

class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender: MessageSender
    text: str
    created_at: datetime

class Conversation(BaseModel):
    doctor_id: int
    doctor_name: str
    messages: List[MessageResponse]

class AssistantMessage(BaseModel):
    sender: str = "bot"
    text: str

class AssistantReply(BaseModel):
    doctor_id: int
    messages: List[AssistantMessage]

class CallMode(str, Enum):
    VIDEO = "video"
    PHONE = "phone"

class CallRequest(BaseModel):
    mode: CallMode

class CallResponse(BaseModel):
    doctor_id: int
    mode: CallMode
    title: str
    message: str

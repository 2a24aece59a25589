from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from ..models.notification import NotificationType, RecipientType

class NotificationCreate(BaseModel):
    """Doctor-authored notification addressed to a patient."""
    patient_id: int
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    notification_type: NotificationType = NotificationType.APPOINTMENT_SUGGESTION

class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_type: RecipientType
    recipient_id: int
    title: str
    message: str
    notification_type: NotificationType
    scan_id: Optional[int] = None
    is_read: bool
    created_at: datetime

class NotificationList(BaseModel):
    unread_count: int
    notifications: List[NotificationResponse]

class MarkedRead(BaseModel):
    updated: int

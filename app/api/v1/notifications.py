from fastapi import (
    APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
)
from sqlalchemy.orm import Session
from typing import Optional
import asyncio
import logging

from ...core.database import get_db
from ...api.deps import get_current_doctor, get_current_user, user_from_token
from ...models.doctor import Doctor
from ...models.user import User
from ...schemas.notification import (
    MarkedRead, NotificationCreate, NotificationList, NotificationResponse
)
from ...services.notification_service import (
    NotificationBroker, NotificationService, get_broker, recipient_for
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])

# Close code sent when the socket's token does not resolve to a user
WS_UNAUTHORIZED = 4401

@router.get("", response_model=NotificationList)
async def list_notifications(
    unread_only: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Notifications for the signed-in user, newest first, with the unread badge count."""
    return NotificationService(db).list_for(current_user, unread_only=unread_only)

@router.post("", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def send_notification(
    notification_data: NotificationCreate,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db)
):
    """Doctor sends a patient a note, e.g. an appointment suggestion."""
    notification = NotificationService(db).send_from_doctor(
        doctor,
        notification_data.patient_id,
        notification_data.title,
        notification_data.message,
        notification_data.notification_type,
    )
    return NotificationResponse.model_validate(notification)

@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    notification = NotificationService(db).mark_read(current_user, notification_id)
    return NotificationResponse.model_validate(notification)

@router.post("/read-all", response_model=MarkedRead)
async def mark_all_notifications_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return MarkedRead(updated=NotificationService(db).mark_all_read(current_user))

@router.websocket("/ws")
async def notification_feed(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    notification_broker: NotificationBroker = Depends(get_broker)
):
    """
    Realtime notification inserts for the user owning ``token``.

    Sends ``{"type": "welcome"}`` once subscribed, then one
    ``{"type": "notification", "data": {...}}`` frame per new row.
    A client text frame of ``ping`` is answered with ``{"type": "pong"}``.
    """
    await websocket.accept()

    try:
        user = user_from_token(token, db)
        recipient = recipient_for(db, user) if user is not None else None
    except HTTPException:
        recipient = None
    finally:
        # Release the pooled connection before the socket goes idle
        db.close()

    if recipient is None:
        await websocket.close(code=WS_UNAUTHORIZED, reason="Invalid or expired token")
        return
    recipient_type, recipient_id = recipient

    subscription = notification_broker.subscribe(recipient_type, recipient_id)
    await websocket.send_json({
        "type": "welcome",
        "recipient_type": recipient_type.value,
        "recipient_id": recipient_id,
    })

    receiver = asyncio.ensure_future(websocket.receive_text())
    getter = None
    try:
        while True:
            getter = asyncio.ensure_future(subscription.get())
            done, _ = await asyncio.wait(
                {receiver, getter}, return_when=asyncio.FIRST_COMPLETED
            )

            if getter in done:
                await websocket.send_json({"type": "notification", "data": getter.result()})
            else:
                getter.cancel()

            if receiver in done:
                text = receiver.result()
                if text == "ping":
                    await websocket.send_json({"type": "pong"})
                receiver = asyncio.ensure_future(websocket.receive_text())
    except WebSocketDisconnect:
        logger.info(f"Realtime subscriber {recipient_type.value}:{recipient_id} disconnected")
    finally:
        receiver.cancel()
        if getter is not None:
            getter.cancel()
        notification_broker.unsubscribe(subscription)

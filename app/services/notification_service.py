"""
Notification storage and the realtime insert feed.

Every committed notification row is pushed to the subscribers registered for
its recipient. Subscribers are WebSocket handlers; each owns an asyncio queue
bound to the loop it was created on, so publishing from a worker thread is
safe.
"""
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from typing import Iterable, List, Optional, Tuple
import asyncio
import logging

from ..models.doctor import Doctor
from ..models.notification import Notification, NotificationType, RecipientType
from ..models.patient import Patient
from ..models.user import User
from ..core.security import UserRole
from ..schemas.notification import NotificationList, NotificationResponse

logger = logging.getLogger(__name__)

class Subscription:
    def __init__(self, recipient_type: RecipientType, recipient_id: int):
        self.recipient_type = recipient_type
        self.recipient_id = recipient_id
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue = asyncio.Queue()

    def matches(self, payload: dict) -> bool:
        return (
            payload.get("recipient_type") == self.recipient_type.value
            and payload.get("recipient_id") == self.recipient_id
        )

    async def get(self) -> dict:
        return await self.queue.get()

class NotificationBroker:
    """In-process fan-out of notification inserts."""

    def __init__(self):
        self._subscriptions: List[Subscription] = []

    def subscribe(self, recipient_type: RecipientType, recipient_id: int) -> Subscription:
        subscription = Subscription(recipient_type, recipient_id)
        self._subscriptions.append(subscription)
        logger.info(f"Realtime subscriber added for {recipient_type.value}:{recipient_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, payload: dict) -> int:
        """Queue the payload for every matching subscriber; returns deliveries."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.matches(payload):
                continue
            try:
                subscription.loop.call_soon_threadsafe(subscription.queue.put_nowait, payload)
            except RuntimeError:
                # Event loop already closed; the socket is gone
                logger.warning("Dropping subscriber with a closed event loop")
                self.unsubscribe(subscription)
                continue
            delivered += 1
        return delivered

broker = NotificationBroker()

def get_broker() -> NotificationBroker:
    return broker

def recipient_for(db: Session, user: User) -> Tuple[RecipientType, int]:
    """Resolve the notification address of a user from their profile row."""
    if user.role == UserRole.PATIENT:
        profile = db.query(Patient).filter(Patient.user_id == user.id).first()
        recipient_type = RecipientType.PATIENT
    else:
        profile = db.query(Doctor).filter(Doctor.user_id == user.id).first()
        recipient_type = RecipientType.DOCTOR

    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{recipient_type.value.capitalize()} profile not found"
        )
    return recipient_type, profile.id

class NotificationService:
    def __init__(self, db: Session, notification_broker: Optional[NotificationBroker] = None):
        self.db = db
        self.broker = notification_broker or broker

    def stage(
        self,
        recipient_type: RecipientType,
        recipient_id: int,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.GENERAL,
        scan_id: Optional[int] = None,
    ) -> Notification:
        """Add a notification to the current transaction without committing."""
        notification = Notification(
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            title=title,
            message=message,
            notification_type=notification_type,
            scan_id=scan_id,
            is_read=False,
        )
        self.db.add(notification)
        return notification

    def create(self, *args, **kwargs) -> Notification:
        notification = self.stage(*args, **kwargs)
        self.db.commit()
        self.db.refresh(notification)
        self.publish([notification])
        return notification

    def publish(self, notifications: Iterable[Notification]) -> None:
        """Push committed notifications to realtime subscribers."""
        for notification in notifications:
            self.broker.publish(self.to_payload(notification))

    @staticmethod
    def to_payload(notification: Notification) -> dict:
        return NotificationResponse.model_validate(notification).model_dump(mode="json")

    def list_for(self, user: User, unread_only: bool = False) -> NotificationList:
        recipient_type, recipient_id = recipient_for(self.db, user)
        query = self._query(recipient_type, recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)

        notifications = query.order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).all()
        unread_count = self._query(recipient_type, recipient_id).filter(
            Notification.is_read == False
        ).count()

        return NotificationList(
            unread_count=unread_count,
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
        )

    def mark_read(self, user: User, notification_id: int) -> Notification:
        """Mark one notification read. Calling it again leaves it read."""
        recipient_type, recipient_id = recipient_for(self.db, user)
        notification = self._query(recipient_type, recipient_id).filter(
            Notification.id == notification_id
        ).first()

        if not notification:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Notification not found"
            )

        if not notification.is_read:
            notification.is_read = True
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, user: User) -> int:
        recipient_type, recipient_id = recipient_for(self.db, user)
        updated = self._query(recipient_type, recipient_id).filter(
            Notification.is_read == False
        ).update({"is_read": True}, synchronize_session=False)
        self.db.commit()
        return updated

    def send_from_doctor(self, doctor: Doctor, patient_id: int, title: str, message: str,
                         notification_type: NotificationType) -> Notification:
        patient = self.db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )

        logger.info(f"Doctor {doctor.id} notifying patient {patient.id} ({notification_type.value})")
        return self.create(
            RecipientType.PATIENT, patient.id, title, message, notification_type
        )

    def _query(self, recipient_type: RecipientType, recipient_id: int):
        return self.db.query(Notification).filter(
            Notification.recipient_type == recipient_type,
            Notification.recipient_id == recipient_id,
        )

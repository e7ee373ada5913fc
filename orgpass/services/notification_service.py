"""In-app notifications"""

from typing import List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session

from orgpass.database.models import Notification, User

logger = structlog.get_logger(__name__)

NOTIFICATION_TYPES = ("info", "success", "warning", "error")


class NotificationService:
    """
    Writes notification rows inside the caller's transaction.

    notify() and notify_email() never commit; the engine that triggers a
    notification owns the transaction so the notification lands together
    with the change it describes.
    """

    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: str,
        title: str,
        body: Optional[str] = None,
        organization_id: Optional[str] = None,
        type: str = "info",
        link: Optional[str] = None,
    ) -> Notification:
        if type not in NOTIFICATION_TYPES:
            raise ValueError(f"Unknown notification type: {type}")

        notification = Notification(
            user_id=user_id,
            organization_id=organization_id,
            type=type,
            title=title,
            body=body,
            link=link,
        )
        self.db.add(notification)
        logger.debug("notification_created", user_id=user_id, organization_id=organization_id, title=title)
        return notification

    def notify_email(
        self,
        email: str,
        title: str,
        body: Optional[str] = None,
        organization_id: Optional[str] = None,
        type: str = "info",
    ) -> Optional[Notification]:
        """Notify the account registered under ``email``, if there is one"""
        user = self.db.query(User).filter(func.lower(User.email) == email.lower().strip()).first()
        if not user:
            return None
        return self.notify(user.id, title, body=body, organization_id=organization_id, type=type)

    def list_user_notifications(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        query = self.db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        updated = self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).update({Notification.is_read: True}, synchronize_session="fetch")
        self.db.commit()
        return updated > 0

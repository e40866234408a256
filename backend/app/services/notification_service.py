import logging
from typing import Optional
from sqlalchemy.orm import Session
from app.core.exceptions import NotFoundError
from app.models.engagement import NotificationType
from app.models.user import User
from app.repositories.engagement_repository import EngagementRepository
from app.schemas.engagement import NotificationResponse, UnreadCountResponse
from app.schemas.pagination import MessageResponse, PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)


class NotificationService:
    @staticmethod
    def notify(
        db: Session,
        recipient_id: str,
        actor: User,
        type: NotificationType,
        message: str,
        article_id: Optional[str] = None,
    ):
        """Queue a notification in the current transaction; nobody is notified of their own action."""
        if recipient_id == actor.id:
            return None
        return EngagementRepository.create_notification(
            db,
            user_id=recipient_id,
            actor_id=actor.id,
            type=type.value,
            message=message,
            article_id=article_id,
        )

    @staticmethod
    def list_notifications(db: Session, user: User, pagination: PaginationParams) -> PaginatedResponse[NotificationResponse]:
        """Notifications for the user, newest first"""
        items, total = EngagementRepository.notifications(db, user.id, pagination.limit, pagination.offset)
        return PaginatedResponse[NotificationResponse].build(
            [NotificationResponse.model_validate(n) for n in items], total, pagination.page, pagination.limit
        )

    @staticmethod
    def unread_count(db: Session, user: User) -> UnreadCountResponse:
        return UnreadCountResponse(unread_count=EngagementRepository.unread_count(db, user.id))

    @staticmethod
    def mark_as_read(db: Session, user: User, notification_id: str) -> MessageResponse:
        """Mark one of the user's notifications as read"""
        if EngagementRepository.mark_as_read(db, user.id, notification_id) == 0:
            raise NotFoundError("Notification not found")
        return MessageResponse(message="Notification marked as read")

    @staticmethod
    def mark_all_as_read(db: Session, user: User) -> MessageResponse:
        updated = EngagementRepository.mark_all_as_read(db, user.id)
        logger.debug(f"Marked {updated} notifications read for user {user.id}")
        return MessageResponse(message="All notifications marked as read")

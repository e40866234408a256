from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import get_current_user, pagination_params
from app.models.user import User
from app.schemas.engagement import NotificationResponse, UnreadCountResponse
from app.schemas.pagination import MessageResponse, PaginatedResponse, PaginationParams
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=PaginatedResponse[NotificationResponse])
async def list_notifications(
    pagination: PaginationParams = Depends(pagination_params),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService.list_notifications(db, current_user, pagination)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService.unread_count(db, current_user)


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_as_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService.mark_all_as_read(db, current_user)


@router.put("/{notification_id}/read", response_model=MessageResponse)
async def mark_as_read(
    notification_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return NotificationService.mark_as_read(db, current_user, notification_id)

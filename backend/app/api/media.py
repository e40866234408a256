from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.db.database import get_db
from app.core.deps import get_current_admin_user, get_current_author_user, get_current_user, pagination_params
from app.models.user import User
from app.schemas.media import MediaResponse
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.services.media_service import MediaService

router = APIRouter()


@router.post("/upload", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def upload_media(
    file: UploadFile = File(...),
    alt_text: str = Form(""),
    current_user: User = Depends(get_current_author_user),
    db: Session = Depends(get_db)
):
    """Upload an image (JPEG, PNG, WebP or GIF)"""
    data = await file.read()
    return MediaService.upload(db, current_user, file.filename, file.content_type, data, alt_text)


@router.get("", response_model=PaginatedResponse[MediaResponse])
async def list_media(
    pagination: PaginationParams = Depends(pagination_params),
    mime_type: Optional[str] = None,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    return MediaService.list_media(db, current_user, pagination, mime_type)


@router.get("/{media_id}", response_model=MediaResponse)
async def get_media(media_id: str, db: Session = Depends(get_db)):
    return MediaService.get_media(db, media_id)


@router.delete("/{media_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_media(
    media_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    MediaService.delete_media(db, current_user, media_id)

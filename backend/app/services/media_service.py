import logging
import os
import uuid
from typing import Optional
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.models.media import Media
from app.models.user import User
from app.repositories.media_repository import MediaRepository
from app.schemas.media import MediaResponse
from app.schemas.pagination import PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
}


def generate_filename(original_filename: str, mime_type: str) -> str:
    ext = os.path.splitext(original_filename or "")[1].lower()
    if not ext:
        ext = ALLOWED_IMAGE_TYPES.get(mime_type, "")
    return f"{uuid.uuid4()}{ext}"


class MediaService:
    @staticmethod
    def to_response(media: Media) -> MediaResponse:
        return MediaResponse(
            id=media.id,
            filename=media.filename,
            original_filename=media.original_filename,
            url=f"/uploads/{media.filename}",
            file_size=media.file_size,
            mime_type=media.mime_type,
            uploaded_by=media.uploaded_by,
            is_featured=media.is_featured,
            alt_text=media.alt_text,
            created_at=media.created_at,
        )

    @staticmethod
    def upload(
        db: Session,
        user: User,
        original_filename: str,
        content_type: Optional[str],
        data: bytes,
        alt_text: str = "",
    ) -> MediaResponse:
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError(
                "Unsupported file type. Allowed: " + ", ".join(sorted(ALLOWED_IMAGE_TYPES)),
                code="INVALID_FILE_TYPE",
            )
        if not data:
            raise ValidationError("File is empty", code="EMPTY_FILE")
        if len(data) > settings.UPLOAD_MAX_SIZE:
            raise ValidationError(
                f"File exceeds the maximum size of {settings.UPLOAD_MAX_SIZE // (1024 * 1024)} MB",
                code="FILE_TOO_LARGE",
            )

        os.makedirs(settings.UPLOAD_PATH, exist_ok=True)
        filename = generate_filename(original_filename, content_type)
        file_path = os.path.join(settings.UPLOAD_PATH, filename)
        with open(file_path, "wb") as f:
            f.write(data)

        media = Media(
            filename=filename,
            original_filename=original_filename or filename,
            file_path=file_path,
            file_size=len(data),
            mime_type=content_type,
            uploaded_by=user.id,
            alt_text=alt_text or "",
        )
        try:
            MediaRepository.create(db, media)
        except Exception:
            os.remove(file_path)
            raise
        logger.info(f"Media uploaded: {filename} ({len(data)} bytes) by {user.id}")
        return MediaService.to_response(media)

    @staticmethod
    def get_media(db: Session, media_id: str) -> MediaResponse:
        """Media metadata by id"""
        media = MediaRepository.get_by_id(db, media_id)
        if not media:
            raise NotFoundError("Media not found", code="MEDIA_NOT_FOUND")
        return MediaService.to_response(media)

    @staticmethod
    def list_media(
        db: Session,
        user: User,
        pagination: PaginationParams,
        mime_type: Optional[str] = None,
    ) -> PaginatedResponse[MediaResponse]:
        if not user.can_manage_users():
            raise ForbiddenError("Admin role required")
        items, total = MediaRepository.find_all(
            db, mime_type=mime_type, limit=pagination.limit, offset=pagination.offset
        )
        return PaginatedResponse[MediaResponse].build(
            [MediaService.to_response(m) for m in items], total, pagination.page, pagination.limit
        )

    @staticmethod
    def delete_media(db: Session, user: User, media_id: str):
        """Delete an upload and its file (uploader or admin)"""
        media = MediaRepository.get_by_id(db, media_id)
        if not media:
            raise NotFoundError("Media not found", code="MEDIA_NOT_FOUND")
        if media.uploaded_by != user.id and not user.can_manage_users():
            raise ForbiddenError("You can only delete your own uploads")

        try:
            os.remove(media.file_path)
        except FileNotFoundError:
            logger.warning(f"Media file already missing: {media.file_path}")
        MediaRepository.delete(db, media)

import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.models.tag import Tag
from app.models.user import User
from app.repositories.tag_repository import TagRepository
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.schemas.tag import TagCreate, TagResponse, TagUpdate
from app.services.article_service import clamp_limit
from app.utils.slug import unique_slug

logger = logging.getLogger(__name__)

DEFAULT_POPULAR_LIMIT = 10
MAX_POPULAR_LIMIT = 50
RESERVED_TAG_SLUGS = frozenset({"popular"})


class TagService:
    @staticmethod
    def _require_manager(user: User):
        if not user.can_manage_tags():
            raise ForbiddenError("Editor role required to manage tags")

    @staticmethod
    def get_tag_or_404(db: Session, tag_id: str) -> Tag:
        tag = TagRepository.get_by_id(db, tag_id)
        if not tag:
            raise NotFoundError("Tag not found", code="TAG_NOT_FOUND")
        return tag

    @staticmethod
    def get_by_slug_or_404(db: Session, slug: str) -> Tag:
        tag = TagRepository.get_by_slug(db, slug)
        if not tag:
            raise NotFoundError("Tag not found", code="TAG_NOT_FOUND")
        return tag

    @staticmethod
    def create_tag(db: Session, data: TagCreate, user: User) -> TagResponse:
        """Create a tag (editor+)"""
        TagService._require_manager(user)
        if TagRepository.name_taken(db, data.name):
            raise ConflictError("Tag name already exists", code="TAG_EXISTS")
        tag = Tag(
            name=data.name,
            slug=unique_slug(data.name, lambda s: TagRepository.exists_by_slug(db, s), "tag", RESERVED_TAG_SLUGS),
            description=data.description or "",
        )
        TagRepository.save(db, tag)
        logger.info(f"Tag created: {tag.slug}")
        return TagResponse.model_validate(tag)

    @staticmethod
    def get_tag(db: Session, slug: str) -> TagResponse:
        return TagResponse.model_validate(TagService.get_by_slug_or_404(db, slug))

    @staticmethod
    def list_tags(db: Session, pagination: PaginationParams, search: Optional[str] = None) -> PaginatedResponse[TagResponse]:
        tags, total = TagRepository.find_all(db, search, pagination.limit, pagination.offset)
        return PaginatedResponse[TagResponse].build(
            [TagResponse.model_validate(t) for t in tags], total, pagination.page, pagination.limit
        )

    @staticmethod
    def popular_tags(db: Session, limit: Optional[int] = None) -> List[TagResponse]:
        """Tags ordered by usage"""
        limit = clamp_limit(limit, DEFAULT_POPULAR_LIMIT, MAX_POPULAR_LIMIT)
        return [TagResponse.model_validate(t) for t in TagRepository.popular(db, limit)]

    @staticmethod
    def update_tag(db: Session, tag_id: str, data: TagUpdate, user: User) -> TagResponse:
        """Rename or describe a tag"""
        TagService._require_manager(user)
        tag = TagService.get_tag_or_404(db, tag_id)
        if data.name is not None and data.name != tag.name:
            if TagRepository.name_taken(db, data.name, exclude_id=tag.id):
                raise ConflictError("Tag name already exists", code="TAG_EXISTS")
            tag.name = data.name
            tag.slug = unique_slug(
                data.name,
                lambda s: s != tag.slug and TagRepository.exists_by_slug(db, s),
                "tag",
                RESERVED_TAG_SLUGS,
            )
        if data.description is not None:
            tag.description = data.description
        TagRepository.save(db, tag)
        return TagResponse.model_validate(tag)

    @staticmethod
    def delete_tag(db: Session, tag_id: str, user: User):
        """Delete a tag no article uses"""
        TagService._require_manager(user)
        tag = TagService.get_tag_or_404(db, tag_id)
        if tag.usage_count > 0:
            raise ConflictError("Tag is in use by articles", code="TAG_IN_USE")
        TagRepository.delete(db, tag)
        logger.info(f"Tag deleted: {tag_id}")

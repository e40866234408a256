import logging
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.article import Article, ArticleStatus
from app.models.engagement import NotificationType
from app.models.user import User, UserFollow
from app.repositories.article_repository import ArticleFilters, ArticleRepository
from app.repositories.category_repository import CategoryRepository
from app.repositories.engagement_repository import EngagementRepository
from app.repositories.tag_repository import TagRepository
from app.repositories.user_repository import SocialGraphRepository
from app.schemas.article import (
    ArticleCreate,
    ArticleListQuery,
    ArticleListResponse,
    ArticleResponse,
    ArticleSummary,
    ArticleUpdate,
)
from app.schemas.pagination import page_meta
from app.services.notification_service import NotificationService
from app.utils.slug import MAX_SLUG_LENGTH, slugify, unique_slug

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 200
DEFAULT_TOP_LIMIT = 10
MAX_TOP_LIMIT = 50
DEFAULT_RELATED_LIMIT = 5
MAX_RELATED_LIMIT = 20

# fixed routes under /articles that would shadow an article slug
RESERVED_ARTICLE_SLUGS = frozenset({"feed", "trending", "recent", "staff-picks"})


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if not limit or limit <= 0:
        return default
    return min(limit, maximum)


def default_excerpt(content: str) -> str:
    if len(content) > EXCERPT_LENGTH:
        return content[:EXCERPT_LENGTH] + "..."
    return ""


class ArticleService:
    # Response building
    @staticmethod
    def to_summaries(db: Session, articles: List[Article]) -> List[ArticleSummary]:
        """List items enriched with like and comment counts."""
        likes, comments = ArticleRepository.engagement_counts(db, [a.id for a in articles])
        return [
            ArticleSummary.model_validate(a).model_copy(
                update={"likes_count": likes.get(a.id, 0), "comments_count": comments.get(a.id, 0)}
            )
            for a in articles
        ]

    @staticmethod
    def to_detail(db: Session, article: Article, viewer: Optional[User] = None) -> ArticleResponse:
        likes, comments = ArticleRepository.engagement_counts(db, [article.id])
        update = {
            "likes_count": likes.get(article.id, 0),
            "comments_count": comments.get(article.id, 0),
        }
        if viewer is not None:
            update["user_liked"] = EngagementRepository.has_liked(db, viewer.id, article.id)
            update["user_bookmarked"] = EngagementRepository.has_bookmarked(db, viewer.id, article.id)
        return ArticleResponse.model_validate(article).model_copy(update=update)

    @staticmethod
    def to_list_response(db: Session, articles: List[Article], total: int, page: int, limit: int) -> ArticleListResponse:
        return ArticleListResponse(articles=ArticleService.to_summaries(db, articles), **page_meta(total, page, limit))

    # Lookups
    @staticmethod
    def get_article_or_404(db: Session, article_id: str) -> Article:
        article = ArticleRepository.get_by_id(db, article_id)
        if not article:
            raise NotFoundError("Article not found")
        return article

    @staticmethod
    def get_published_or_404(db: Session, article_id: str) -> Article:
        article = ArticleService.get_article_or_404(db, article_id)
        if article.status != ArticleStatus.PUBLISHED.value:
            raise NotFoundError("Article not found")
        return article

    @staticmethod
    def _can_view(article: Article, viewer: Optional[User]) -> bool:
        if article.status == ArticleStatus.PUBLISHED.value:
            return True
        if viewer is None:
            return False
        return viewer.id == article.author_id or viewer.can_publish_article()

    @staticmethod
    def _resolve_categories(db: Session, category_ids: List[str]):
        unique_ids = list(dict.fromkeys(category_ids))
        categories = CategoryRepository.get_by_ids(db, unique_ids)
        if len(categories) != len(unique_ids):
            raise NotFoundError("One or more categories not found", code="CATEGORY_NOT_FOUND")
        return categories

    @staticmethod
    def _resolve_tags(db: Session, tag_ids: List[str]):
        unique_ids = list(dict.fromkeys(tag_ids))
        tags = TagRepository.get_by_ids(db, unique_ids)
        if len(tags) != len(unique_ids):
            raise NotFoundError("One or more tags not found", code="TAG_NOT_FOUND")
        return tags

    # Mutations
    @staticmethod
    def create_article(db: Session, article_data: ArticleCreate, user: User) -> ArticleResponse:
        """Create an article as a draft, or published when the author may publish"""
        if not user.can_create_article():
            raise ForbiddenError("Author role required to create articles")
        publish_now = article_data.status == ArticleStatus.PUBLISHED
        if publish_now and not user.can_publish_article():
            raise ForbiddenError("Editor role required to publish articles")
        if article_data.status == ArticleStatus.ARCHIVED:
            raise ValidationError("New articles cannot be archived")

        categories = ArticleService._resolve_categories(db, article_data.category_ids)
        tags = ArticleService._resolve_tags(db, article_data.tag_ids)

        article = Article(
            title=article_data.title,
            slug=unique_slug(
                article_data.title,
                lambda s: ArticleRepository.exists_by_slug(db, s),
                "article",
                RESERVED_ARTICLE_SLUGS,
            ),
            content=article_data.content,
            excerpt=article_data.excerpt or default_excerpt(article_data.content),
            featured_image_url=article_data.featured_image_url,
            meta_title=article_data.meta_title,
            meta_description=article_data.meta_description,
            meta_keywords=article_data.meta_keywords,
            author_id=user.id,
            categories=categories,
        )
        if publish_now:
            article.publish()

        try:
            ArticleRepository.create(db, article)
            ArticleRepository.replace_tags(db, article, tags)
            if publish_now:
                ArticleService._notify_followers(db, article, user)
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("An article with this slug already exists", code="SLUG_TAKEN")

        logger.info(f"Article created: {article.slug} by {user.id}")
        db.refresh(article)
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def update_article(db: Session, article_id: str, article_data: ArticleUpdate, user: User) -> ArticleResponse:
        """Update an article; the slug follows a new title only when free"""
        article = ArticleService.get_article_or_404(db, article_id)
        if not user.can_edit_article(article):
            raise ForbiddenError("You can only edit your own articles")

        if article_data.title is not None and article_data.title != article.title:
            article.title = article_data.title
            new_slug = slugify(article_data.title, MAX_SLUG_LENGTH)
            # keep the old slug rather than suffixing on collision
            if (
                new_slug
                and new_slug != article.slug
                and new_slug not in RESERVED_ARTICLE_SLUGS
                and not ArticleRepository.exists_by_slug(db, new_slug)
            ):
                article.slug = new_slug
        if article_data.content is not None:
            article.content = article_data.content
        for field in ("excerpt", "featured_image_url", "meta_title", "meta_description", "meta_keywords"):
            value = getattr(article_data, field)
            if value is not None:
                setattr(article, field, value)
        if article_data.category_ids is not None:
            article.categories = ArticleService._resolve_categories(db, article_data.category_ids)

        try:
            if article_data.tag_ids is not None:
                ArticleRepository.replace_tags(db, article, ArticleService._resolve_tags(db, article_data.tag_ids))
            article.update_reading_time()
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("An article with this slug already exists", code="SLUG_TAKEN")

        db.refresh(article)
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def delete_article(db: Session, article_id: str, user: User):
        """Soft-delete an article"""
        article = ArticleService.get_article_or_404(db, article_id)
        if not user.can_delete_article(article):
            raise ForbiddenError("You can only delete your own articles")
        ArticleRepository.soft_delete(db, article)
        db.commit()
        logger.info(f"Article deleted: {article.id} by {user.id}")

    @staticmethod
    def publish_article(db: Session, article_id: str, user: User) -> ArticleResponse:
        """Publish a draft and notify the author's followers"""
        if not user.can_publish_article():
            raise ForbiddenError("Editor role required")
        article = ArticleService.get_article_or_404(db, article_id)
        if article.status == ArticleStatus.PUBLISHED.value:
            raise ValidationError("Article is already published", code="ALREADY_PUBLISHED")
        if article.status == ArticleStatus.ARCHIVED.value:
            raise ValidationError("Archived articles cannot be published", code="ARTICLE_ARCHIVED")

        article.publish()
        ArticleService._notify_followers(db, article, article.author)
        db.commit()
        db.refresh(article)
        logger.info(f"Article published: {article.slug}")
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def unpublish_article(db: Session, article_id: str, user: User) -> ArticleResponse:
        """Return a published article to draft"""
        if not user.can_publish_article():
            raise ForbiddenError("Editor role required")
        article = ArticleService.get_article_or_404(db, article_id)
        if article.status != ArticleStatus.PUBLISHED.value:
            raise ValidationError("Article is not published", code="NOT_PUBLISHED")

        article.unpublish()
        db.commit()
        db.refresh(article)
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def archive_article(db: Session, article_id: str, user: User) -> ArticleResponse:
        """Archive an article; archived articles stay archived"""
        if not user.can_publish_article():
            raise ForbiddenError("Editor role required")
        article = ArticleService.get_article_or_404(db, article_id)
        if article.status == ArticleStatus.ARCHIVED.value:
            raise ValidationError("Article is already archived", code="ALREADY_ARCHIVED")

        article.archive()
        db.commit()
        db.refresh(article)
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def set_staff_pick(db: Session, article_id: str, is_staff_pick: bool, user: User) -> ArticleResponse:
        """Flag or unflag an article as a staff pick"""
        if not user.can_publish_article():
            raise ForbiddenError("Editor role required")
        if ArticleRepository.set_staff_pick(db, article_id, is_staff_pick) == 0:
            raise NotFoundError("Article not found")
        article = ArticleService.get_article_or_404(db, article_id)
        db.refresh(article)
        return ArticleService.to_detail(db, article, user)

    @staticmethod
    def _notify_followers(db: Session, article: Article, author: User):
        follower_ids = [
            row[0] for row in db.query(UserFollow.follower_id).filter(UserFollow.following_id == author.id).all()
        ]
        message = f"{author.full_name} published a new article: {article.title}"
        for follower_id in follower_ids:
            NotificationService.notify(db, follower_id, author, NotificationType.ARTICLE, message, article.id)

    # Reads
    @staticmethod
    def get_by_slug(db: Session, slug: str, viewer: Optional[User] = None) -> ArticleResponse:
        """Fetch an article for display, counting the view."""
        article = ArticleRepository.get_by_slug(db, slug)
        if not article or not ArticleService._can_view(article, viewer):
            raise NotFoundError("Article not found")

        ArticleRepository.increment_view_count(db, article.id)
        db.refresh(article)
        return ArticleService.to_detail(db, article, viewer)

    @staticmethod
    def list_articles(db: Session, query: ArticleListQuery, viewer: Optional[User] = None) -> ArticleListResponse:
        """Filtered article listing; non-editors only see published articles"""
        filters = ArticleFilters(
            author_id=query.author_id,
            from_date=query.from_date,
            to_date=query.to_date,
            limit=query.limit,
            offset=query.offset,
            sort=query.sort,
        )
        if viewer is not None and viewer.can_publish_article():
            filters.status = query.status.value if query.status else None
        elif viewer is not None and query.author_id == viewer.id and query.status:
            # authors may list their own drafts
            filters.status = query.status.value
        else:
            filters.status = ArticleStatus.PUBLISHED.value

        if query.category:
            category = CategoryRepository.get_by_slug(db, query.category)
            if not category:
                raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
            articles, total = ArticleRepository.find_by_category(db, category.id, filters)
        elif query.tag:
            tag = TagRepository.get_by_slug(db, query.tag)
            if not tag:
                raise NotFoundError("Tag not found", code="TAG_NOT_FOUND")
            articles, total = ArticleRepository.find_by_tag(db, tag.id, filters)
        elif query.search:
            articles, total = ArticleRepository.search(db, query.search, filters)
        else:
            articles, total = ArticleRepository.find_all(db, filters)
        return ArticleService.to_list_response(db, articles, total, query.page, query.limit)

    @staticmethod
    def search_articles(db: Session, text: str, page: int, limit: int, sort: str = "newest") -> ArticleListResponse:
        """Case-insensitive text search over published articles"""
        text = (text or "").strip()
        if not text:
            raise ValidationError("Search query is required")
        filters = ArticleFilters(
            status=ArticleStatus.PUBLISHED.value, limit=limit, offset=(page - 1) * limit, sort=sort
        )
        articles, total = ArticleRepository.search(db, text, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

    @staticmethod
    def get_trending(db: Session, limit: Optional[int] = None) -> List[ArticleSummary]:
        """Most viewed published articles"""
        limit = clamp_limit(limit, DEFAULT_TOP_LIMIT, MAX_TOP_LIMIT)
        return ArticleService.to_summaries(db, ArticleRepository.find_trending(db, limit))

    @staticmethod
    def get_recent(db: Session, limit: Optional[int] = None) -> List[ArticleSummary]:
        """Most recently published articles"""
        limit = clamp_limit(limit, DEFAULT_TOP_LIMIT, MAX_TOP_LIMIT)
        return ArticleService.to_summaries(db, ArticleRepository.find_recent(db, limit))

    @staticmethod
    def get_related(db: Session, slug: str, limit: Optional[int] = None) -> List[ArticleSummary]:
        """Published articles sharing a category or tag with the given one"""
        article = ArticleRepository.get_by_slug(db, slug)
        if not article or article.status != ArticleStatus.PUBLISHED.value:
            raise NotFoundError("Article not found")
        limit = clamp_limit(limit, DEFAULT_RELATED_LIMIT, MAX_RELATED_LIMIT)
        related = ArticleRepository.find_related(
            db,
            article.id,
            [c.id for c in article.categories],
            [t.id for t in article.tags],
            limit,
        )
        return ArticleService.to_summaries(db, related)

    @staticmethod
    def get_staff_picks(db: Session, page: int, limit: int, sort: str = "newest") -> ArticleListResponse:
        """Published staff picks"""
        filters = ArticleFilters(limit=limit, offset=(page - 1) * limit, sort=sort)
        articles, total = ArticleRepository.find_staff_picks(db, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

    @staticmethod
    def get_feed(db: Session, user: User, page: int, limit: int, sort: str = "newest") -> ArticleListResponse:
        """Personalized feed from followed authors and categories of interest.

        A user who follows nobody and has no interests gets the general
        published listing.
        """
        following_ids = SocialGraphRepository.get_following_ids(db, user.id)
        interest_ids = SocialGraphRepository.get_interest_ids(db, user.id)
        filters = ArticleFilters(limit=limit, offset=(page - 1) * limit, sort=sort)
        articles, total = ArticleRepository.find_for_user(db, following_ids, interest_ids, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

    @staticmethod
    def list_by_author(db: Session, author_id: str, page: int, limit: int) -> ArticleListResponse:
        """Published articles of one author"""
        filters = ArticleFilters(
            status=ArticleStatus.PUBLISHED.value,
            author_id=author_id,
            limit=limit,
            offset=(page - 1) * limit,
        )
        articles, total = ArticleRepository.find_all(db, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

    @staticmethod
    def list_by_category(db: Session, category_id: str, page: int, limit: int, sort: str = "newest") -> ArticleListResponse:
        filters = ArticleFilters(
            status=ArticleStatus.PUBLISHED.value, limit=limit, offset=(page - 1) * limit, sort=sort
        )
        articles, total = ArticleRepository.find_by_category(db, category_id, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

    @staticmethod
    def list_by_tag(db: Session, tag_id: str, page: int, limit: int, sort: str = "newest") -> ArticleListResponse:
        filters = ArticleFilters(
            status=ArticleStatus.PUBLISHED.value, limit=limit, offset=(page - 1) * limit, sort=sort
        )
        articles, total = ArticleRepository.find_by_tag(db, tag_id, filters)
        return ArticleService.to_list_response(db, articles, total, page, limit)

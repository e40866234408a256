import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, update, func, or_
from sqlalchemy.orm import Session, Query, selectinload

from app.models.article import Article, ArticleStatus, article_categories, article_tags
from app.models.engagement import Like
from app.models.comment import Comment
from app.models.tag import Tag
from app.utils.search import LIKE_ESCAPE, contains_pattern

logger = logging.getLogger(__name__)

SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"
SORT_POPULAR = "popular"
SORT_ALPHABETICAL = "alphabetical"
SORT_OPTIONS = (SORT_NEWEST, SORT_OLDEST, SORT_POPULAR, SORT_ALPHABETICAL)


@dataclass
class ArticleFilters:
    """Parameterized article query; nothing here is interpolated into SQL."""

    status: Optional[str] = None
    author_id: Optional[str] = None
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    limit: int = 20
    offset: int = 0
    sort: str = SORT_NEWEST


class ArticleRepository:
    @staticmethod
    def _base_query(db: Session) -> Query:
        return (
            db.query(Article)
            .filter(Article.deleted_at.is_(None))
            .options(
                selectinload(Article.author),
                selectinload(Article.categories),
                selectinload(Article.tags),
            )
        )

    @staticmethod
    def _apply_filters(query: Query, filters: ArticleFilters) -> Query:
        if filters.status:
            query = query.filter(Article.status == filters.status)
        if filters.author_id:
            query = query.filter(Article.author_id == filters.author_id)
        if filters.from_date:
            query = query.filter(Article.published_at >= filters.from_date)
        if filters.to_date:
            query = query.filter(Article.published_at <= filters.to_date)
        return query

    @staticmethod
    def _apply_sort(query: Query, sort: str) -> Query:
        if sort == SORT_OLDEST:
            return query.order_by(Article.created_at.asc(), Article.id.asc())
        if sort == SORT_POPULAR:
            return query.order_by(Article.view_count.desc(), Article.created_at.desc())
        if sort == SORT_ALPHABETICAL:
            return query.order_by(Article.title.asc())
        return query.order_by(Article.created_at.desc(), Article.id.desc())

    @staticmethod
    def _paginate(query: Query, filters: ArticleFilters) -> Tuple[List[Article], int]:
        query = ArticleRepository._apply_filters(query, filters)
        total = query.order_by(None).count()
        query = ArticleRepository._apply_sort(query, filters.sort)
        if filters.offset > 0:
            query = query.offset(filters.offset)
        if filters.limit > 0:
            query = query.limit(filters.limit)
        return query.all(), total

    @staticmethod
    def create(db: Session, article: Article) -> Article:
        db.add(article)
        db.flush()
        return article

    @staticmethod
    def get_by_id(db: Session, article_id: str) -> Optional[Article]:
        return ArticleRepository._base_query(db).filter(Article.id == article_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Article]:
        return ArticleRepository._base_query(db).filter(Article.slug == slug).first()

    @staticmethod
    def exists_by_slug(db: Session, slug: str) -> bool:
        # soft-deleted rows still hold their slug in the unique index
        return db.query(Article.id).filter(Article.slug == slug).first() is not None

    @staticmethod
    def find_all(db: Session, filters: ArticleFilters) -> Tuple[List[Article], int]:
        return ArticleRepository._paginate(ArticleRepository._base_query(db), filters)

    @staticmethod
    def find_by_category(db: Session, category_id: str, filters: ArticleFilters) -> Tuple[List[Article], int]:
        query = ArticleRepository._base_query(db).join(
            article_categories, article_categories.c.article_id == Article.id
        ).filter(article_categories.c.category_id == category_id)
        return ArticleRepository._paginate(query, filters)

    @staticmethod
    def find_by_tag(db: Session, tag_id: str, filters: ArticleFilters) -> Tuple[List[Article], int]:
        query = ArticleRepository._base_query(db).join(
            article_tags, article_tags.c.article_id == Article.id
        ).filter(article_tags.c.tag_id == tag_id)
        return ArticleRepository._paginate(query, filters)

    @staticmethod
    def search(db: Session, text: str, filters: ArticleFilters) -> Tuple[List[Article], int]:
        pattern = contains_pattern(text)
        query = ArticleRepository._base_query(db).filter(
            or_(
                Article.title.ilike(pattern, escape=LIKE_ESCAPE),
                Article.excerpt.ilike(pattern, escape=LIKE_ESCAPE),
                Article.content.ilike(pattern, escape=LIKE_ESCAPE),
            )
        )
        return ArticleRepository._paginate(query, filters)

    @staticmethod
    def find_staff_picks(db: Session, filters: ArticleFilters) -> Tuple[List[Article], int]:
        filters.status = ArticleStatus.PUBLISHED.value
        query = ArticleRepository._base_query(db).filter(Article.is_staff_pick.is_(True))
        return ArticleRepository._paginate(query, filters)

    @staticmethod
    def find_trending(db: Session, limit: int) -> List[Article]:
        return (
            ArticleRepository._base_query(db)
            .filter(Article.status == ArticleStatus.PUBLISHED.value)
            .order_by(Article.view_count.desc(), Article.published_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def find_recent(db: Session, limit: int) -> List[Article]:
        return (
            ArticleRepository._base_query(db)
            .filter(Article.status == ArticleStatus.PUBLISHED.value)
            .order_by(Article.published_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def find_related(
        db: Session,
        article_id: str,
        category_ids: Sequence[str],
        tag_ids: Sequence[str],
        limit: int,
    ) -> List[Article]:
        """Published articles sharing a category or a tag, excluding the article itself.

        With neither categories nor tags to match on, every other published
        article is a candidate.
        """
        query = ArticleRepository._base_query(db).filter(
            Article.id != article_id,
            Article.status == ArticleStatus.PUBLISHED.value,
        )
        conditions = []
        if category_ids:
            conditions.append(Article.id.in_(
                select(article_categories.c.article_id).where(article_categories.c.category_id.in_(category_ids))
            ))
        if tag_ids:
            conditions.append(Article.id.in_(
                select(article_tags.c.article_id).where(article_tags.c.tag_id.in_(tag_ids))
            ))
        if conditions:
            query = query.filter(or_(*conditions))
        return query.order_by(Article.published_at.desc()).limit(limit).all()

    @staticmethod
    def find_for_user(
        db: Session,
        following_ids: Sequence[str],
        interest_category_ids: Sequence[str],
        filters: ArticleFilters,
    ) -> Tuple[List[Article], int]:
        """Published articles by followed authors or in categories of interest."""
        query = ArticleRepository._base_query(db).filter(Article.status == ArticleStatus.PUBLISHED.value)
        conditions = []
        if following_ids:
            conditions.append(Article.author_id.in_(list(following_ids)))
        if interest_category_ids:
            conditions.append(Article.id.in_(
                select(article_categories.c.article_id).where(
                    article_categories.c.category_id.in_(list(interest_category_ids))
                )
            ))
        if conditions:
            query = query.filter(or_(*conditions))
        return ArticleRepository._paginate(query, filters)

    @staticmethod
    def increment_view_count(db: Session, article_id: str):
        db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(view_count=Article.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    @staticmethod
    def set_staff_pick(db: Session, article_id: str, is_staff_pick: bool) -> int:
        result = db.execute(
            update(Article)
            .where(Article.id == article_id, Article.deleted_at.is_(None))
            .values(is_staff_pick=is_staff_pick)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return result.rowcount

    @staticmethod
    def replace_tags(db: Session, article: Article, tags: Iterable[Tag]):
        """Swap the article's tags, moving usage_count for added and removed tags.

        Runs inside the caller's transaction.
        """
        new_tags = {t.id: t for t in tags}
        old_ids = {t.id for t in article.tags}
        added = [tid for tid in new_tags if tid not in old_ids]
        removed = [tid for tid in old_ids if tid not in new_tags]
        if added:
            db.execute(
                update(Tag).where(Tag.id.in_(added)).values(usage_count=Tag.usage_count + 1)
                .execution_options(synchronize_session=False)
            )
        if removed:
            ArticleRepository._decrement_tags(db, removed)
        article.tags = list(new_tags.values())

    @staticmethod
    def _decrement_tags(db: Session, tag_ids: Sequence[str]):
        db.execute(
            update(Tag)
            .where(Tag.id.in_(list(tag_ids)), Tag.usage_count > 0)
            .values(usage_count=Tag.usage_count - 1)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def soft_delete(db: Session, article: Article):
        """Mark deleted and release the article's tag usage."""
        tag_ids = [t.id for t in article.tags]
        if tag_ids:
            ArticleRepository._decrement_tags(db, tag_ids)
        article.tags = []
        article.deleted_at = datetime.now(timezone.utc)

    @staticmethod
    def count_published_by_author(db: Session, author_id: str) -> int:
        return (
            db.query(func.count(Article.id))
            .filter(
                Article.author_id == author_id,
                Article.status == ArticleStatus.PUBLISHED.value,
                Article.deleted_at.is_(None),
            )
            .scalar()
        )

    @staticmethod
    def engagement_counts(db: Session, article_ids: Sequence[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
        """Likes and visible comments per article, in two grouped queries."""
        if not article_ids:
            return {}, {}
        likes = dict(
            db.query(Like.article_id, func.count(Like.id))
            .filter(Like.article_id.in_(list(article_ids)))
            .group_by(Like.article_id)
            .all()
        )
        comments = dict(
            db.query(Comment.article_id, func.count(Comment.id))
            .filter(Comment.article_id.in_(list(article_ids)), Comment.deleted_at.is_(None))
            .group_by(Comment.article_id)
            .all()
        )
        return likes, comments

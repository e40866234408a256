from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models.article import Article, ArticleStatus, article_categories
from app.models.category import Category
from app.models.user import UserInterest
from app.utils.search import LIKE_ESCAPE, contains_pattern


class CategoryRepository:
    @staticmethod
    def get_by_id(db: Session, category_id: str) -> Optional[Category]:
        return db.query(Category).filter(Category.id == category_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Category]:
        return db.query(Category).filter(Category.slug == slug).first()

    @staticmethod
    def get_by_ids(db: Session, category_ids: List[str]) -> List[Category]:
        if not category_ids:
            return []
        return db.query(Category).filter(Category.id.in_(category_ids)).all()

    @staticmethod
    def exists_by_slug(db: Session, slug: str) -> bool:
        return db.query(Category.id).filter(Category.slug == slug).first() is not None

    @staticmethod
    def name_taken(db: Session, name: str, exclude_id: Optional[str] = None) -> bool:
        query = db.query(Category.id).filter(func.lower(Category.name) == name.lower())
        if exclude_id:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def find_all(
        db: Session,
        include_inactive: bool = False,
        parent_only: bool = False,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Category], int]:
        query = db.query(Category)
        if not include_inactive:
            query = query.filter(Category.is_active.is_(True))
        if parent_only:
            query = query.filter(Category.parent_id.is_(None))
        if search:
            pattern = contains_pattern(search)
            query = query.filter(or_(
                Category.name.ilike(pattern, escape=LIKE_ESCAPE),
                Category.description.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        total = query.count()
        categories = query.order_by(Category.display_order, Category.name).offset(offset).limit(limit).all()
        return categories, total

    @staticmethod
    def all_active(db: Session) -> List[Category]:
        return (
            db.query(Category)
            .filter(Category.is_active.is_(True))
            .order_by(Category.display_order, Category.name)
            .all()
        )

    @staticmethod
    def children_count(db: Session, category_id: str) -> int:
        return db.query(func.count(Category.id)).filter(Category.parent_id == category_id).scalar()

    @staticmethod
    def article_count(db: Session, category_id: str, published_only: bool = False) -> int:
        query = (
            db.query(func.count(Article.id))
            .join(article_categories, article_categories.c.article_id == Article.id)
            .filter(article_categories.c.category_id == category_id, Article.deleted_at.is_(None))
        )
        if published_only:
            query = query.filter(Article.status == ArticleStatus.PUBLISHED.value)
        return query.scalar()

    @staticmethod
    def save(db: Session, category: Category) -> Category:
        db.add(category)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Category name already exists", code="CATEGORY_EXISTS")
        db.refresh(category)
        return category

    @staticmethod
    def delete(db: Session, category: Category):
        db.query(UserInterest).filter(UserInterest.category_id == category.id).delete(synchronize_session=False)
        db.delete(category)
        db.commit()
